"""
Tests for the two-phase confirmation workflow.
"""

from django.test import SimpleTestCase

from access.confirmation import (
    ConfirmationState,
    ConfirmationWorkflow,
    PendingChange,
)
from access.errors import StaleState
from access.executor import TransitionResult


class RecordingCommit:
    """Commit callable recording every value it receives."""

    def __init__(self, result=None):
        self.calls = []
        self.result = result or TransitionResult(entity="done")

    def __call__(self, value):
        self.calls.append(value)
        return self.result


class ConfirmationWorkflowTests(SimpleTestCase):
    def setUp(self):
        self.commit = RecordingCommit()
        self.workflow = ConfirmationWorkflow(self.commit)

    def test_confirm_without_staged_change_is_noop(self):
        """Test confirm() with nothing staged does nothing."""
        self.assertIsNone(self.workflow.confirm())
        self.assertEqual(self.commit.calls, [])
        self.assertEqual(self.workflow.state, ConfirmationState.IDLE)

    def test_stage_then_cancel_leaves_entity_unchanged(self):
        """Test a cancelled change never reaches the commit callable."""
        self.assertTrue(self.workflow.stage(PendingChange("SUSPENDED")))
        self.assertTrue(self.workflow.cancel())
        self.assertEqual(self.workflow.state, ConfirmationState.IDLE)
        self.assertIsNone(self.workflow.confirm())
        self.assertEqual(self.commit.calls, [])

    def test_cancel_without_staged_change(self):
        self.assertFalse(self.workflow.cancel())

    def test_low_risk_change_is_not_staged(self):
        """Test changes without confirmation requirement are refused."""
        staged = self.workflow.stage(
            PendingChange("ACTIVE", requires_confirmation=False)
        )
        self.assertFalse(staged)
        self.assertEqual(self.workflow.state, ConfirmationState.IDLE)

    def test_restage_replaces_candidate(self):
        """Test staging twice keeps only the latest candidate."""
        self.workflow.stage(PendingChange("SUSPENDED"))
        self.workflow.stage(PendingChange("ARCHIVED"))
        self.workflow.confirm()
        self.assertEqual(self.commit.calls, ["ARCHIVED"])

    def test_confirm_success_returns_to_idle(self):
        self.workflow.stage(PendingChange("SUSPENDED"))
        result = self.workflow.confirm()

        self.assertTrue(result.ok)
        self.assertEqual(self.commit.calls, ["SUSPENDED"])
        self.assertEqual(self.workflow.state, ConfirmationState.IDLE)
        self.assertIsNone(self.workflow.pending)

    def test_confirm_failure_stays_staged_with_error(self):
        """Test a failed commit keeps the change staged for retry."""
        error = StaleState()
        self.commit.result = TransitionResult(error=error)
        self.workflow.stage(PendingChange("SUSPENDED"))

        result = self.workflow.confirm()

        self.assertFalse(result.ok)
        self.assertEqual(self.workflow.state, ConfirmationState.STAGED)
        self.assertIs(self.workflow.error, error)
        self.assertEqual(self.workflow.pending.target_value, "SUSPENDED")

    def test_stage_refused_while_committing(self):
        """Test the commit callable cannot restage mid-commit."""
        outcomes = []

        def commit(value):
            outcomes.append(self.workflow.stage(PendingChange("ARCHIVED")))
            return TransitionResult(entity=value)

        self.workflow = ConfirmationWorkflow(commit)
        self.workflow.stage(PendingChange("SUSPENDED"))
        self.workflow.confirm()

        self.assertEqual(outcomes, [False])
        self.assertEqual(self.workflow.state, ConfirmationState.IDLE)

    def test_unexpected_exception_propagates_and_keeps_stage(self):
        def commit(value):
            raise RuntimeError("boom")

        self.workflow = ConfirmationWorkflow(commit)
        self.workflow.stage(PendingChange("SUSPENDED"))

        with self.assertRaises(RuntimeError):
            self.workflow.confirm()
        self.assertEqual(self.workflow.state, ConfirmationState.STAGED)

    def test_raised_transition_error_is_returned_as_failure(self):
        """Test a raising commit is told apart from an empty confirm."""
        error = StaleState()

        def commit(value):
            raise error

        self.workflow = ConfirmationWorkflow(commit)
        self.workflow.stage(PendingChange("SUSPENDED"))

        result = self.workflow.confirm()

        self.assertIsNotNone(result)
        self.assertFalse(result.ok)
        self.assertIs(result.error, error)
        self.assertEqual(self.workflow.state, ConfirmationState.STAGED)
        self.assertIs(self.workflow.error, error)
