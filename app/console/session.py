"""
Operator console session.
An EntityDesk holds one actor's view of one entity kind: the latest
snapshots, the action flags derived from them, and the confirmation
step that gates high-risk transitions.
"""

import logging

from access.confirmation import ConfirmationWorkflow, PendingChange
from access.context import Actor
from access.errors import Busy, StaleState, TransitionError
from access.executor import (
    TransitionExecutor,
    TransitionResult,
    error_from_envelope,
)
from orders.workflows import OrderPolicy
from users.workflows import AccountPolicy
from .transport import ACCOUNTS, ORDERS, ApiTransport

logger = logging.getLogger(__name__)


class EntityDesk:
    """Loads entities of one kind and routes transitions for them."""

    def __init__(self, *, kind, policy, transport, actor):
        self.kind = kind
        self.policy = policy
        self.transport = transport
        self.actor = actor
        self.executor = TransitionExecutor(
            policy=policy, send=transport.sender(kind), actor=actor
        )
        self._workflows = {}

    # --- Snapshots ---

    def load(self, entity_id):
        """Fetches the entity and makes it the current snapshot."""
        envelope = self.transport.fetch(self.kind, entity_id)
        error = error_from_envelope(envelope)
        if error is not None:
            raise error
        snapshot = self.policy.snapshot_from_payload(envelope.payload)
        self.executor.store.put(entity_id, snapshot)
        return snapshot

    refresh = load

    def snapshot(self, entity_id):
        return self.executor.store.get(entity_id)

    def actions(self, entity_id):
        """Action flags for the current snapshot, loading it if needed."""
        snapshot = self.snapshot(entity_id)
        if snapshot is None:
            snapshot = self.load(entity_id)
        return self.policy.actions(snapshot, self.actor)

    def is_processing(self, entity_id) -> bool:
        return self.executor.is_processing(entity_id)

    # --- Transitions ---

    def _workflow(self, entity_id) -> ConfirmationWorkflow:
        if entity_id not in self._workflows:
            self._workflows[entity_id] = ConfirmationWorkflow(
                lambda transition: self.executor.apply(entity_id, transition)
            )
        return self._workflows[entity_id]

    def request(self, entity_id, transition, optimistic=False):
        """
        Runs `transition` now, or stages it when it needs an explicit
        confirm(). Staged results carry `staged=True`.
        """
        if not self.policy.requires_confirmation(transition):
            return self.executor.apply(entity_id, transition, optimistic)

        snapshot = self.snapshot(entity_id)
        if snapshot is None:
            return TransitionResult(
                error=StaleState("Record is not loaded. Refresh and retry.")
            )
        try:
            self.policy.validate(transition)
            self.policy.authorize(snapshot, self.actor, transition)
        except TransitionError as e:
            return TransitionResult(entity=snapshot, error=e)

        if not self._workflow(entity_id).stage(PendingChange(transition)):
            return TransitionResult(entity=snapshot, error=Busy())
        logger.info(
            "Staged %s on %s %s for confirmation.",
            transition.action,
            self.kind,
            entity_id,
        )
        return TransitionResult(entity=snapshot, staged=True)

    def staged(self, entity_id):
        """The transition awaiting confirmation, if any."""
        workflow = self._workflows.get(entity_id)
        if workflow is None or not workflow.is_staged:
            return None
        return workflow.pending.target_value

    def confirm(self, entity_id):
        """Commits the staged transition. None if nothing was staged."""
        return self._workflow(entity_id).confirm()

    def cancel(self, entity_id) -> bool:
        return self._workflow(entity_id).cancel()


class ConsoleSession:
    """A logged-in operator with one desk per entity kind."""

    def __init__(self, transport: ApiTransport, actor: Actor):
        self.transport = transport
        self.actor = actor
        self.orders = EntityDesk(
            kind=ORDERS,
            policy=OrderPolicy(),
            transport=transport,
            actor=actor,
        )
        self.accounts = EntityDesk(
            kind=ACCOUNTS,
            policy=AccountPolicy(),
            transport=transport,
            actor=actor,
        )

    @classmethod
    def login(cls, transport: ApiTransport, email, password):
        transport.login(email, password)
        actor = Actor.from_payload(transport.me())
        logger.info("Console session opened for user %s.", actor.id)
        return cls(transport, actor)
