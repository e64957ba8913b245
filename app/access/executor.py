"""
Client-side transition executor.
Re-validates a transition against the freshest local snapshot, keeps at
most one transition per entity in flight, optionally applies it locally
before the backend answers, and rolls back on any failure.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .errors import (
    ERRORS_BY_CODE,
    AuthorizationDenied,
    Busy,
    IllegalTransition,
    StaleState,
    TransitionError,
    TransportFailure,
    ValidationFailure,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Envelope:
    """Uniform backend response."""

    status_code: int
    payload: Optional[dict] = None
    message: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Envelope":
        return cls(
            status_code=int(data.get("status_code", 0)),
            payload=data.get("payload"),
            message=data.get("message"),
            error=data.get("error"),
        )

    @property
    def ok(self) -> bool:
        return self.status_code == 200 and self.payload is not None


@dataclass(frozen=True)
class TransitionResult:
    entity: Any = None
    error: Optional[TransitionError] = None
    staged: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.staged


def error_from_envelope(envelope: Envelope) -> Optional[TransitionError]:
    """
    [PURE DOMAIN LOGIC]
    Maps a backend envelope to the matching error, or None on success.
    """
    if envelope.ok:
        return None
    message = envelope.message
    code = envelope.status_code
    if code == 200:
        return TransportFailure("The server returned an empty response.")
    if code == 409:
        return StaleState(message)
    if code == 403:
        return AuthorizationDenied(message)
    if code in (400, 422):
        error_cls = ERRORS_BY_CODE.get(envelope.error)
        if error_cls is not None and issubclass(
            error_cls, (IllegalTransition, ValidationFailure)
        ):
            return error_cls(message)
        return IllegalTransition(message)
    return TransportFailure(message or f"Unexpected response ({code}).")


class SnapshotStore:
    """Thread-safe map of entity id to the latest known snapshot."""

    def __init__(self):
        self._lock = threading.Lock()
        self._items = {}

    def get(self, entity_id):
        with self._lock:
            return self._items.get(entity_id)

    def put(self, entity_id, snapshot):
        with self._lock:
            self._items[entity_id] = snapshot

    def __contains__(self, entity_id):
        with self._lock:
            return entity_id in self._items


def _utcnow():
    return datetime.now(timezone.utc)


class TransitionExecutor:
    """
    Executes transitions for one entity kind on behalf of one actor.

    `send(entity_id, transition, expected_status)` performs the backend
    call and returns an Envelope.
    """

    def __init__(
        self,
        *,
        policy,
        send: Callable[..., Envelope],
        actor,
        store: Optional[SnapshotStore] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.policy = policy
        self.send = send
        self.actor = actor
        self.store = store if store is not None else SnapshotStore()
        self.clock = clock
        self._lock = threading.Lock()
        self._in_flight = set()

    def is_processing(self, entity_id) -> bool:
        with self._lock:
            return entity_id in self._in_flight

    def apply(self, entity_id, transition, optimistic=False):
        with self._lock:
            if entity_id in self._in_flight:
                logger.info(
                    "Rejected %s on %s: a transition is already in flight.",
                    transition.action,
                    entity_id,
                )
                return TransitionResult(
                    entity=self.store.get(entity_id), error=Busy()
                )
            self._in_flight.add(entity_id)
        try:
            return self._run(entity_id, transition, optimistic)
        finally:
            with self._lock:
                self._in_flight.discard(entity_id)

    def _run(self, entity_id, transition, optimistic):
        snapshot = self.store.get(entity_id)
        if snapshot is None:
            return TransitionResult(
                error=StaleState("Record is not loaded. Refresh and retry.")
            )

        try:
            self.policy.validate(transition)
            self.policy.authorize(snapshot, self.actor, transition)
        except TransitionError as e:
            return TransitionResult(entity=snapshot, error=e)

        # Confirmation-gated paths never update ahead of the backend
        if optimistic and self.policy.requires_confirmation(transition):
            optimistic = False
        if optimistic:
            self.store.put(
                entity_id,
                self.policy.apply_locally(snapshot, transition, self.clock()),
            )

        try:
            envelope = self.send(entity_id, transition, snapshot.status)
            error = error_from_envelope(envelope)
        except TransitionError as e:
            error = e
        except Exception as e:
            logger.exception("Backend call for %s failed.", entity_id)
            error = TransportFailure(str(e))

        if error is not None:
            if optimistic:
                logger.info(
                    "Rolling back %s on %s.", transition.action, entity_id
                )
                self.store.put(entity_id, snapshot)
            return TransitionResult(entity=snapshot, error=error)

        payload = envelope.payload
        entity = self.policy.snapshot_from_payload(
            payload.get("entity", payload)
        )
        self.store.put(entity_id, entity)
        return TransitionResult(entity=entity)
