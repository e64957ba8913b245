"""
Domain layer - pure, Django-unaware, order lifecycle and action rules.
An action is available only when the status machine allows the move AND
the permission engine allows the actor to request it in this context.
"""

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Optional

from access.context import ActorContext, same_id
from access.errors import (
    AuthorizationDenied,
    IllegalTransition,
    ValidationFailure,
)
from access.grants import (
    Action,
    ContextScope,
    Resource,
    has_permission,
    has_scoped_permission,
)
from access.roles import (
    RoleLevel,
    has_minimum_role,
    is_exact_role,
    is_staff_level,
)


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    WAITING_CUSTOMER_APPROVAL = "WAITING_CUSTOMER_APPROVAL"
    PLACED = "PLACED"
    PAID = "PAID"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @property
    def label(self) -> str:
        return STATUS_METADATA[self]["label"]

    @classmethod
    def choices(cls) -> list:
        return [(s.value, s.label) for s in cls]


STATUS_METADATA = {
    OrderStatus.PENDING: {
        "label": "Pending",
        "variant": "warning",
        "description": "Awaiting staff review and quote preparation.",
    },
    OrderStatus.WAITING_CUSTOMER_APPROVAL: {
        "label": "Awaiting Customer Approval",
        "variant": "warning",
        "description": "Quote sent, awaiting customer approval.",
    },
    OrderStatus.PLACED: {
        "label": "Placed",
        "variant": "info",
        "description": "Customer approved the quote, awaiting payment.",
    },
    OrderStatus.PAID: {
        "label": "Paid",
        "variant": "info",
        "description": "Payment confirmed, ready for fulfillment.",
    },
    OrderStatus.PROCESSING: {
        "label": "Processing",
        "variant": "warning",
        "description": "Being prepared and packaged for shipment.",
    },
    OrderStatus.SHIPPED: {
        "label": "Shipped",
        "variant": "info",
        "description": "Shipped and in transit to the customer.",
    },
    OrderStatus.DELIVERED: {
        "label": "Delivered",
        "variant": "success",
        "description": "Delivered to the customer.",
    },
    OrderStatus.CANCELLED: {
        "label": "Cancelled",
        "variant": "error",
        "description": "Cancelled and will not be fulfilled.",
    },
}

HAPPY_PATH = (
    OrderStatus.PENDING,
    OrderStatus.WAITING_CUSTOMER_APPROVAL,
    OrderStatus.PLACED,
    OrderStatus.PAID,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Set once when the status is first reached, never cleared
STATUS_TIMESTAMPS = {
    OrderStatus.PLACED: "placed_at",
    OrderStatus.PAID: "payment_confirmed_at",
    OrderStatus.PROCESSING: "processing_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}

CANCELLATION_REQUEST_STATUSES = frozenset(
    {OrderStatus.PLACED, OrderStatus.PAID}
)


def _as_status(value) -> Optional[OrderStatus]:
    try:
        return OrderStatus(value)
    except ValueError:
        return None


# --- 1. Status machine ---


def is_terminal(status) -> bool:
    return _as_status(status) in TERMINAL_STATUSES


def get_next_status(status) -> Optional[OrderStatus]:
    """Single happy-path successor, or None for terminal statuses."""
    current = _as_status(status)
    if current is None or current in TERMINAL_STATUSES:
        return None
    return HAPPY_PATH[HAPPY_PATH.index(current) + 1]


def can_transition(from_status, to_status) -> bool:
    """
    [PURE DOMAIN LOGIC]
    Legal moves: the immediate successor, or CANCELLED from any
    non-terminal status. No skipping, no going back.
    """
    source = _as_status(from_status)
    target = _as_status(to_status)
    if source is None or target is None or source in TERMINAL_STATUSES:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    return get_next_status(source) == target


def validate_transition(from_status, to_status):
    """Raises IllegalTransition if the move is not allowed."""
    if not can_transition(from_status, to_status):
        raise IllegalTransition(
            f"Transition from '{from_status}' to '{to_status}'"
            " is not allowed."
        )


def allowed_transitions(status) -> list:
    return [s for s in OrderStatus if can_transition(status, s)]


def stamp_transition(timestamps: dict, status, now) -> dict:
    """
    Returns a copy of `timestamps` with the field for `status` set to
    `now`, unless that field is already set.
    """
    stamped = dict(timestamps)
    field = STATUS_TIMESTAMPS.get(_as_status(status))
    if field and not stamped.get(field):
        stamped[field] = now
    return stamped


# --- 2. Snapshot & context ---


@dataclass(frozen=True)
class OrderSnapshot:
    id: int
    status: str
    customer_id: Optional[int] = None
    assigned_sales_rep_id: Optional[int] = None
    total_amount: Optional[str] = None
    tracking_number: str = ""
    carrier: str = ""
    payment_reference: str = ""
    placed_at: Optional[str] = None
    payment_confirmed_at: Optional[str] = None
    processing_at: Optional[str] = None
    shipped_at: Optional[str] = None
    delivered_at: Optional[str] = None
    cancelled_at: Optional[str] = None
    cancellation_requested_at: Optional[str] = None
    cancellation_reason: str = ""

    @classmethod
    def from_payload(cls, payload: dict) -> "OrderSnapshot":
        fields = cls.__dataclass_fields__
        return cls(**{k: v for k, v in payload.items() if k in fields})

    def timestamps(self) -> dict:
        return {f: getattr(self, f) for f in STATUS_TIMESTAMPS.values()}


def order_context(snapshot, actor) -> ActorContext:
    """Own means the actor's company placed the order."""
    return ActorContext(
        role_level=actor.role_level,
        is_own_entity=same_id(snapshot.customer_id, actor.customer_id),
        is_assigned_entity=same_id(snapshot.assigned_sales_rep_id, actor.id),
    )


def has_fulfillment_duty(role_level) -> bool:
    """
    Fulfillment coordinators by exact role, plus whoever holds the
    fulfill grant. Sales reps never qualify.
    """
    return is_exact_role(
        role_level, RoleLevel.FULFILLMENT_COORDINATOR
    ) or has_permission(
        Resource.ORDERS, Action.FULFILL, ContextScope.ALL, role_level
    )


def _assigned_or_manager(context) -> bool:
    return (
        context.is_assigned_entity
        and has_minimum_role(context.role_level, RoleLevel.SALES_REP)
    ) or has_minimum_role(context.role_level, RoleLevel.SALES_MANAGER)


# --- 3. Contextual permissions ---


@dataclass(frozen=True)
class OrderActions:
    can_view: bool = False
    can_update: bool = False
    can_submit_for_approval: bool = False
    can_place: bool = False
    can_confirm_payment: bool = False
    can_update_tracking: bool = False
    can_mark_processing: bool = False
    can_mark_shipped: bool = False
    can_mark_delivered: bool = False
    can_cancel: bool = False
    can_request_cancellation: bool = False
    can_delete: bool = False
    can_add_internal_notes: bool = False
    is_staff: bool = False
    is_own_entity: bool = False
    is_assigned_entity: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


def get_order_actions(snapshot, actor) -> OrderActions:
    """
    [PURE DOMAIN LOGIC]
    Flags for what `actor` may do with this order right now.
    Recomputed on every call from the current snapshot.
    """
    context = order_context(snapshot, actor)
    level = context.role_level
    status = _as_status(snapshot.status)
    next_status = get_next_status(status)
    fulfillment = has_fulfillment_duty(level)
    open_order = status is not None and status not in TERMINAL_STATUSES

    return OrderActions(
        can_view=has_scoped_permission(Resource.ORDERS, Action.READ, context),
        can_update=has_scoped_permission(
            Resource.ORDERS, Action.UPDATE, context
        ),
        can_submit_for_approval=(
            next_status == OrderStatus.WAITING_CUSTOMER_APPROVAL
            and _assigned_or_manager(context)
        ),
        can_place=(
            next_status == OrderStatus.PLACED
            and (context.is_own_entity or _assigned_or_manager(context))
        ),
        can_confirm_payment=(
            status == OrderStatus.PLACED
            and has_scoped_permission(
                Resource.ORDERS, Action.CONFIRM_PAYMENT, context
            )
        ),
        can_update_tracking=open_order and fulfillment,
        can_mark_processing=status == OrderStatus.PAID and fulfillment,
        can_mark_shipped=status == OrderStatus.PROCESSING and fulfillment,
        can_mark_delivered=status == OrderStatus.SHIPPED and fulfillment,
        can_cancel=(
            open_order
            and status != OrderStatus.SHIPPED
            and has_permission(
                Resource.ORDERS, Action.CANCEL, ContextScope.ALL, level
            )
        ),
        can_request_cancellation=(
            status in CANCELLATION_REQUEST_STATUSES
            and context.is_own_entity
            and not is_staff_level(level)
        ),
        can_delete=has_permission(
            Resource.ORDERS, Action.DELETE, ContextScope.ALL, level
        ),
        can_add_internal_notes=has_permission(
            Resource.ORDERS, Action.ANNOTATE, ContextScope.ALL, level
        ),
        is_staff=is_staff_level(level),
        is_own_entity=context.is_own_entity,
        is_assigned_entity=context.is_assigned_entity,
    )


# --- 4. Policy used by services, executor and console ---

CHANGE_STATUS = "change_status"
CONFIRM_PAYMENT = "confirm_payment"
MARK_SHIPPED = "mark_shipped"
UPDATE_TRACKING = "update_tracking"
REQUEST_CANCELLATION = "request_cancellation"
ADD_NOTE = "add_note"

# Specialized actions that imply a target status
ACTION_TARGETS = {
    CONFIRM_PAYMENT: OrderStatus.PAID,
    MARK_SHIPPED: OrderStatus.SHIPPED,
}

# Flag that gates a move into each target status
TARGET_FLAGS = {
    OrderStatus.WAITING_CUSTOMER_APPROVAL: "can_submit_for_approval",
    OrderStatus.PLACED: "can_place",
    OrderStatus.PAID: "can_confirm_payment",
    OrderStatus.PROCESSING: "can_mark_processing",
    OrderStatus.SHIPPED: "can_mark_shipped",
    OrderStatus.DELIVERED: "can_mark_delivered",
    OrderStatus.CANCELLED: "can_cancel",
}

# Flag for actions that leave the status alone
ACTION_FLAGS = {
    UPDATE_TRACKING: "can_update_tracking",
    REQUEST_CANCELLATION: "can_request_cancellation",
    ADD_NOTE: "can_add_internal_notes",
}


def target_status(transition) -> Optional[OrderStatus]:
    """Status a transition moves to, or None for status-neutral actions."""
    if transition.action in ACTION_TARGETS:
        return ACTION_TARGETS[transition.action]
    if transition.action == CHANGE_STATUS:
        return _as_status(transition.target)
    return None


class OrderPolicy:
    """Authorization, validation and local application for orders."""

    resource = Resource.ORDERS

    def __init__(self, note_max_length: int = 2000):
        self.note_max_length = note_max_length

    def actions(self, snapshot, actor) -> OrderActions:
        return get_order_actions(snapshot, actor)

    def authorize(self, snapshot, actor, transition):
        flags = get_order_actions(snapshot, actor)

        if transition.action in ACTION_FLAGS:
            if not getattr(flags, ACTION_FLAGS[transition.action]):
                raise AuthorizationDenied(
                    f"'{transition.action}' is not available for this order."
                )
            return

        known = (
            transition.action == CHANGE_STATUS
            or transition.action in ACTION_TARGETS
        )
        if not known:
            raise IllegalTransition(
                f"Unknown order action '{transition.action}'."
            )

        target = target_status(transition)
        # Structural errors win over permission errors
        validate_transition(snapshot.status, target or transition.target)
        if not getattr(flags, TARGET_FLAGS[target]):
            raise AuthorizationDenied(
                f"You cannot move this order to '{target.label}'."
            )

    def validate(self, transition):
        target = target_status(transition)
        metadata = transition.metadata or {}
        reason = (transition.reason or "").strip()

        if target == OrderStatus.SHIPPED or (
            transition.action == UPDATE_TRACKING
        ):
            if not str(metadata.get("tracking_number") or "").strip():
                raise ValidationFailure("A tracking number is required.")
        if target == OrderStatus.CANCELLED and not reason:
            raise ValidationFailure("A cancellation reason is required.")
        if transition.action == REQUEST_CANCELLATION and not reason:
            raise ValidationFailure("Please tell us why you want to cancel.")
        if transition.action == ADD_NOTE:
            note = str(metadata.get("note") or "").strip()
            if not note:
                raise ValidationFailure("A note cannot be empty.")
            if len(note) > self.note_max_length:
                raise ValidationFailure(
                    f"Notes are limited to {self.note_max_length} characters."
                )

    def requires_confirmation(self, transition) -> bool:
        """Manager cancellation is confirmed; the customer request is not."""
        return target_status(transition) == OrderStatus.CANCELLED

    def apply_locally(self, snapshot, transition, now):
        metadata = transition.metadata or {}
        stamp = now.isoformat()
        changes = {}

        target = target_status(transition)
        if target is not None:
            changes["status"] = target.value
            changes.update(
                stamp_transition(snapshot.timestamps(), target, stamp)
            )
            if target == OrderStatus.CANCELLED:
                changes["cancellation_reason"] = transition.reason or ""
        if target == OrderStatus.SHIPPED or (
            transition.action == UPDATE_TRACKING
        ):
            changes["tracking_number"] = metadata.get("tracking_number", "")
            changes["carrier"] = metadata.get("carrier", snapshot.carrier)
        if transition.action == CONFIRM_PAYMENT:
            changes["payment_reference"] = metadata.get(
                "payment_reference", snapshot.payment_reference
            )
        if transition.action == REQUEST_CANCELLATION:
            changes["cancellation_requested_at"] = stamp
            changes["cancellation_reason"] = transition.reason or ""
        return replace(snapshot, **changes)

    def snapshot_from_payload(self, payload: dict) -> OrderSnapshot:
        return OrderSnapshot.from_payload(payload)
