"""
Uniform response envelope for entity endpoints.
Every response carries status_code, payload, message and error; the HTTP
status mirrors status_code.
"""

import logging

from rest_framework import status
from rest_framework.response import Response

from access.errors import (
    AuthorizationDenied,
    IllegalTransition,
    StaleState,
)

logger = logging.getLogger(__name__)


def envelope(payload=None, *, status_code=status.HTTP_200_OK, message=None):
    """Wraps a successful payload."""
    return Response(
        {
            "status_code": status_code,
            "payload": payload,
            "message": message,
            "error": None,
        },
        status=status_code,
    )


def error_envelope(exc, *, status_code=None):
    """Translates a TransitionError into an error envelope."""
    code = status_code or exc.http_status
    if isinstance(exc, AuthorizationDenied):
        logger.warning("Authorization denied: %s", exc)
    elif isinstance(exc, IllegalTransition):
        logger.warning("Illegal transition refused: %s", exc)
    elif isinstance(exc, StaleState):
        logger.info("Stale state detected: %s", exc)
    return Response(
        {
            "status_code": code,
            "payload": None,
            "message": str(exc),
            "error": exc.code,
        },
        status=code,
    )
