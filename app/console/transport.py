"""
HTTP transport for the operator console.
Turns transitions into calls against the orders and accounts endpoints
and hands every answer back as an Envelope.
"""

import logging
from functools import partial

import requests

from access.errors import TransportFailure, ValidationFailure
from access.executor import Envelope
from access.roles import parse_role

logger = logging.getLogger(__name__)

ORDERS = "orders"
ACCOUNTS = "accounts"

# Action name -> detail route
ENDPOINTS = {
    "change_status": "status",
    "change_role": "role",
    "confirm_payment": "confirm-payment",
    "mark_shipped": "mark-shipped",
    "update_tracking": "update-tracking",
    "request_cancellation": "request-cancellation",
    "add_note": "add-note",
}


def request_body(transition, expected_status) -> dict:
    """Request body for `transition`, keyed the way the API expects."""
    metadata = dict(transition.metadata or {})
    action = transition.action

    if action == "change_status":
        body = {"new_status": transition.target, "metadata": metadata}
        if transition.reason:
            body["reason"] = transition.reason
    elif action == "change_role":
        return {"role_level": int(parse_role(transition.target))}
    elif action == "confirm_payment":
        body = {
            "payment_reference": metadata.get("payment_reference", ""),
            "notes": metadata.get("notes", ""),
        }
    elif action == "mark_shipped":
        body = {
            "tracking_number": metadata.get("tracking_number", ""),
            "carrier": metadata.get("carrier", ""),
        }
    elif action == "update_tracking":
        return {
            "tracking_number": metadata.get("tracking_number", ""),
            "carrier": metadata.get("carrier", ""),
        }
    elif action == "request_cancellation":
        body = {"reason": transition.reason}
    elif action == "add_note":
        return {"note": metadata.get("note", "")}
    else:
        raise ValidationFailure(f"No endpoint for action '{action}'.")

    if expected_status is not None:
        body["expected_status"] = expected_status
    return body


class ApiTransport:
    """
    Thin wrapper over a requests session with token authentication.
    `session` may be any requests.Session, e.g. DRF's RequestsClient.
    """

    def __init__(
        self, base_url, token=None, *, session=None, timeout=10.0
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        if token:
            self.authenticate(token)

    def authenticate(self, token):
        self.session.headers["Authorization"] = f"Token {token}"

    def url(self, *parts) -> str:
        path = "/".join(str(part).strip("/") for part in parts)
        return f"{self.base_url}/{path}/"

    def _call(self, method, url, **kwargs):
        try:
            response = self.session.request(
                method, url, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise TransportFailure(str(e)) from e
        return response

    def login(self, email, password) -> str:
        """Exchanges credentials for a token and starts using it."""
        response = self._call(
            "POST",
            self.url("users", "token"),
            json={"email": email, "password": password},
        )
        if response.status_code != 200:
            raise ValidationFailure(_describe(response))
        token = response.json()["token"]
        self.authenticate(token)
        return token

    def me(self) -> dict:
        response = self._call("GET", self.url("users", "me"))
        if response.status_code != 200:
            raise TransportFailure(_describe(response))
        return response.json()

    def fetch(self, kind, entity_id) -> Envelope:
        return _envelope(self._call("GET", self.url(kind, entity_id)))

    def send(self, kind, entity_id, transition, expected_status) -> Envelope:
        endpoint = ENDPOINTS.get(transition.action)
        if endpoint is None:
            raise ValidationFailure(
                f"No endpoint for action '{transition.action}'."
            )
        response = self._call(
            "POST",
            self.url(kind, entity_id, endpoint),
            json=request_body(transition, expected_status),
        )
        envelope = _envelope(response)
        if not envelope.ok and envelope.status_code not in (400, 403, 409):
            logger.warning(
                "Backend answered %s for %s on %s %s.",
                response.status_code,
                transition.action,
                kind,
                entity_id,
            )
        return envelope

    def sender(self, kind):
        """`send` bound to one entity kind, as the executor expects."""
        return partial(self.send, kind)


def _describe(response) -> str:
    try:
        return str(response.json())
    except ValueError:
        return f"HTTP {response.status_code}"


def _envelope(response) -> Envelope:
    """
    Reads an envelope from `response`. Plain DRF errors, such as
    serializer validation, are wrapped so they map to the same errors.
    """
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and "status_code" in data:
        return Envelope.from_dict(data)
    code = response.status_code
    return Envelope(
        status_code=code,
        message=_describe(response),
        error=ValidationFailure.code if code == 400 else None,
    )
