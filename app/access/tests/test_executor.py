"""
Tests for the transition executor.
"""

import threading
from dataclasses import dataclass, replace

from django.test import SimpleTestCase

from access.context import Actor, Transition
from access.errors import (
    AuthorizationDenied,
    Busy,
    CreationOnlyTransition,
    IllegalTransition,
    StaleState,
    TransportFailure,
    ValidationFailure,
)
from access.executor import (
    Envelope,
    TransitionExecutor,
    error_from_envelope,
)


@dataclass(frozen=True)
class Thing:
    id: int
    status: str


class ThingPolicy:
    """Minimal policy: only 'go' moves A to B, risky moves need confirm."""

    def validate(self, transition):
        if transition.metadata.get("invalid"):
            raise ValidationFailure("Invalid payload.")

    def authorize(self, snapshot, actor, transition):
        if actor.role_level < 1000:
            raise AuthorizationDenied()
        if snapshot.status != "A":
            raise IllegalTransition()

    def requires_confirmation(self, transition):
        return transition.action == "risky"

    def apply_locally(self, snapshot, transition, now):
        return replace(snapshot, status=transition.target)

    def snapshot_from_payload(self, payload):
        return Thing(id=payload["id"], status=payload["status"])


def ok_envelope(status="B"):
    return Envelope(
        status_code=200,
        payload={"success": True, "entity": {"id": 1, "status": status}},
    )


class EnvelopeMappingTests(SimpleTestCase):
    """Test envelope status codes map to the error taxonomy."""

    def test_success(self):
        self.assertIsNone(error_from_envelope(ok_envelope()))

    def test_missing_payload_is_failure(self):
        error = error_from_envelope(Envelope(status_code=200))
        self.assertIsInstance(error, TransportFailure)

    def test_status_codes(self):
        cases = [
            (409, None, StaleState),
            (403, None, AuthorizationDenied),
            (400, "validation_failure", ValidationFailure),
            (422, "creation_only", CreationOnlyTransition),
            (400, "something_else", IllegalTransition),
            (500, None, TransportFailure),
            (404, None, TransportFailure),
        ]
        for code, error_code, expected in cases:
            envelope = Envelope(
                status_code=code, message="msg", error=error_code
            )
            self.assertIsInstance(error_from_envelope(envelope), expected)

    def test_from_dict(self):
        envelope = Envelope.from_dict(
            {"status_code": 409, "payload": None, "message": "stale"}
        )
        self.assertEqual(envelope.status_code, 409)
        self.assertFalse(envelope.ok)


class TransitionExecutorTests(SimpleTestCase):
    def setUp(self):
        self.calls = []
        self.response = ok_envelope()
        self.executor = TransitionExecutor(
            policy=ThingPolicy(),
            send=self.send,
            actor=Actor(id=7, role_level=1000),
        )
        self.executor.store.put(1, Thing(id=1, status="A"))
        self.transition = Transition(action="go", target="B")

    def send(self, entity_id, transition, expected_status):
        self.calls.append((entity_id, transition.target, expected_status))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    def test_success_stores_backend_snapshot(self):
        result = self.executor.apply(1, self.transition)

        self.assertTrue(result.ok)
        self.assertEqual(result.entity, Thing(id=1, status="B"))
        self.assertEqual(self.executor.store.get(1).status, "B")
        self.assertEqual(self.calls, [(1, "B", "A")])

    def test_revalidation_failure_skips_backend(self):
        """Test an illegal transition never reaches the backend."""
        self.executor.store.put(1, Thing(id=1, status="B"))
        result = self.executor.apply(1, self.transition)

        self.assertIsInstance(result.error, IllegalTransition)
        self.assertEqual(self.calls, [])

    def test_validation_failure_skips_backend(self):
        transition = Transition(
            action="go", target="B", metadata={"invalid": True}
        )
        result = self.executor.apply(1, transition)

        self.assertIsInstance(result.error, ValidationFailure)
        self.assertEqual(self.calls, [])

    def test_unauthorized_actor_is_refused(self):
        self.executor.actor = Actor(id=8, role_level=0)
        result = self.executor.apply(1, self.transition)

        self.assertIsInstance(result.error, AuthorizationDenied)
        self.assertEqual(self.calls, [])

    def test_unknown_entity_is_stale(self):
        result = self.executor.apply(99, self.transition)
        self.assertIsInstance(result.error, StaleState)

    def test_optimistic_update_is_visible_in_flight(self):
        """Test the local copy changes before the backend answers."""
        seen = []

        def send(entity_id, transition, expected_status):
            seen.append(self.executor.store.get(entity_id).status)
            return ok_envelope()

        self.executor.send = send
        self.executor.apply(1, self.transition, optimistic=True)

        self.assertEqual(seen, ["B"])

    def test_optimistic_rollback_on_error_status(self):
        self.response = Envelope(status_code=409, message="stale")
        result = self.executor.apply(1, self.transition, optimistic=True)

        self.assertIsInstance(result.error, StaleState)
        self.assertEqual(self.executor.store.get(1).status, "A")

    def test_optimistic_rollback_on_missing_payload(self):
        self.response = Envelope(status_code=200, payload=None)
        result = self.executor.apply(1, self.transition, optimistic=True)

        self.assertIsInstance(result.error, TransportFailure)
        self.assertEqual(self.executor.store.get(1).status, "A")

    def test_optimistic_rollback_on_exception(self):
        self.response = ConnectionError("down")
        with self.assertLogs("access.executor", level="ERROR"):
            result = self.executor.apply(1, self.transition, optimistic=True)

        self.assertIsInstance(result.error, TransportFailure)
        self.assertEqual(self.executor.store.get(1).status, "A")

    def test_confirmation_gated_transition_is_never_optimistic(self):
        seen = []

        def send(entity_id, transition, expected_status):
            seen.append(self.executor.store.get(entity_id).status)
            return ok_envelope()

        self.executor.send = send
        transition = Transition(action="risky", target="B")
        self.executor.apply(1, transition, optimistic=True)

        self.assertEqual(seen, ["A"])

    def test_second_apply_while_in_flight_is_busy(self):
        """Test a call made while one is in flight never hits backend."""
        inner = []

        def send(entity_id, transition, expected_status):
            self.calls.append(entity_id)
            inner.append(self.executor.apply(entity_id, transition))
            return ok_envelope()

        self.executor.send = send
        result = self.executor.apply(1, self.transition)

        self.assertTrue(result.ok)
        self.assertEqual(len(self.calls), 1)
        self.assertIsInstance(inner[0].error, Busy)

    def test_concurrent_threads_only_one_reaches_backend(self):
        started = threading.Event()
        release = threading.Event()

        def send(entity_id, transition, expected_status):
            self.calls.append(entity_id)
            started.set()
            release.wait(timeout=5)
            return ok_envelope()

        self.executor.send = send
        results = []
        worker = threading.Thread(
            target=lambda: results.append(
                self.executor.apply(1, self.transition)
            )
        )
        worker.start()
        started.wait(timeout=5)

        second = self.executor.apply(1, self.transition)
        self.assertTrue(self.executor.is_processing(1))
        release.set()
        worker.join(timeout=5)

        self.assertIsInstance(second.error, Busy)
        self.assertEqual(self.calls, [1])
        self.assertTrue(results[0].ok)
        self.assertFalse(self.executor.is_processing(1))

    def test_lock_is_released_after_failure(self):
        self.response = Envelope(status_code=500)
        self.executor.apply(1, self.transition)
        self.response = ok_envelope()

        result = self.executor.apply(1, self.transition)

        self.assertTrue(result.ok)
