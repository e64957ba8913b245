"""
Two-phase confirmation for high-risk transitions.
A staged change is held in memory only and is applied exclusively
through confirm(); cancel() discards it without side effects.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .errors import TransitionError
from .executor import TransitionResult

logger = logging.getLogger(__name__)


class ConfirmationState(str, Enum):
    IDLE = "idle"
    STAGED = "staged"
    COMMITTING = "committing"


@dataclass(frozen=True)
class PendingChange:
    """Candidate change awaiting explicit confirmation."""

    target_value: Any
    requires_confirmation: bool = True


class ConfirmationWorkflow:
    """
    Idle -> Staged -> Committing -> Idle, or back to Staged on failure.

    `commit` receives the staged target value and returns a result object
    exposing `ok` and `error` (see access.executor.TransitionResult).
    """

    def __init__(self, commit: Callable[[Any], Any]):
        self._commit = commit
        self.state = ConfirmationState.IDLE
        self.pending: Optional[PendingChange] = None
        self.error: Optional[TransitionError] = None

    @property
    def is_staged(self) -> bool:
        return self.state == ConfirmationState.STAGED

    def stage(self, change: PendingChange) -> bool:
        """
        Holds `change` until confirmed. Restaging replaces the candidate.
        Refused while a commit is running or if the change is low risk.
        """
        if self.state == ConfirmationState.COMMITTING:
            logger.info("Stage refused: a commit is already running.")
            return False
        if not change.requires_confirmation:
            return False
        self.pending = change
        self.error = None
        self.state = ConfirmationState.STAGED
        return True

    def cancel(self) -> bool:
        """Drops the staged change. Returns False if nothing was staged."""
        if self.state != ConfirmationState.STAGED:
            return False
        self.pending = None
        self.error = None
        self.state = ConfirmationState.IDLE
        return True

    def confirm(self):
        """
        Commits the staged change and returns the commit result; a
        raised TransitionError comes back as a failed result. With
        nothing staged this is a no-op returning None.
        """
        if self.state != ConfirmationState.STAGED or self.pending is None:
            return None

        change = self.pending
        self.state = ConfirmationState.COMMITTING
        try:
            result = self._commit(change.target_value)
        except TransitionError as e:
            self._fail(e)
            return TransitionResult(error=e)
        except Exception:
            self.state = ConfirmationState.STAGED
            raise

        if result.ok:
            self.pending = None
            self.error = None
            self.state = ConfirmationState.IDLE
        else:
            self._fail(result.error)
        return result

    def _fail(self, error):
        logger.info("Confirmed change failed, kept staged: %s", error)
        self.error = error
        self.state = ConfirmationState.STAGED
