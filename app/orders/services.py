"""
Application layer - Django-aware orchestrator service for order objects.
Calls Domain for authorization and validation, handles DB transactions,
row locking for stale-state detection, lifecycle timestamps and notes.
"""

import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from access.context import Actor, Transition
from access.errors import AuthorizationDenied, StaleState
from access.grants import Action, ContextScope, Resource, has_permission
from access.roles import RoleLevel, is_exact_role
from .models import Order
from .workflows import (
    ADD_NOTE,
    CHANGE_STATUS,
    CONFIRM_PAYMENT,
    MARK_SHIPPED,
    REQUEST_CANCELLATION,
    STATUS_TIMESTAMPS,
    UPDATE_TRACKING,
    OrderPolicy,
    OrderStatus,
    allowed_transitions,
    get_next_status,
    stamp_transition,
    target_status,
)

logger = logging.getLogger(__name__)

User = get_user_model()


def get_policy() -> OrderPolicy:
    return OrderPolicy(
        note_max_length=getattr(settings, "ORDER_NOTE_MAX_LENGTH", 2000)
    )


# --- HELPER FUNCTIONS ---


def _append_to_notes(order: Order, user: User, note_prefix: str, content):
    """
    Appends a new, timestamped entry to the order's 'notes' field.
    e.g., [2025-11-14 09:30 - rep@example.com - PAYMENT]:
    Payment confirmed.
    """
    timestamp = timezone.now().strftime("%Y-%m-%d %H:%M")
    new_note = (
        f"[{timestamp} - {user.email} - {note_prefix}]:\n"
        f"{content}\n"
        f"{'-' * 20}\n"
    )
    # Prepend new notes to the top
    order.notes = new_note + order.notes


def _check_expected(order: Order, expected_status):
    if expected_status is not None and order.status != expected_status:
        raise StaleState(
            f"Order #{order.pk} is now '{order.status}', expected"
            f" '{expected_status}'. Refresh and try again."
        )


# --- CONTEXTUAL DATA SERVICE (for retrieve()) ---


def get_order_context(order: Order, user: User) -> dict:
    """
    [APPLICATION SERVICE]
    Action flags plus the structurally reachable statuses for the
    detail payload.
    """
    actions = get_policy().actions(order.snapshot(), Actor.from_user(user))
    next_status = get_next_status(order.status)
    return {
        "actions": actions.as_dict(),
        "next_status": next_status.value if next_status else None,
        "allowed_transitions": [
            s.value for s in allowed_transitions(order.status)
        ],
    }


# --- CREATE, DELETE ---


@transaction.atomic
def create_order(*, user: User, customer, **kwargs) -> Order:
    """Creates a new order in PENDING; staff only."""
    if not has_permission(
        Resource.ORDERS, Action.CREATE, ContextScope.ALL, user.role_level
    ):
        raise AuthorizationDenied("Only sales staff can create orders.")
    kwargs.pop("status", None)
    # Reps only see assigned orders, so unassigned ones stay with them.
    if kwargs.get("assigned_sales_rep") is None and is_exact_role(
        user.role_level, RoleLevel.SALES_REP
    ):
        kwargs["assigned_sales_rep"] = user
    order = Order.objects.create(created_by=user, customer=customer, **kwargs)
    logger.info("Order %s created by user %s.", order.pk, user.pk)
    return order


@transaction.atomic
def delete_order(*, order: Order, user: User):
    flags = get_policy().actions(order.snapshot(), Actor.from_user(user))
    if not flags.can_delete:
        raise AuthorizationDenied("Only administrators can delete orders.")
    logger.info("Order %s deleted by user %s.", order.pk, user.pk)
    order.delete()


# --- TRANSITIONS ---


@transaction.atomic
def apply_transition(
    *, order: Order, user: User, transition: Transition, expected_status=None
):
    """
    Re-reads the order under a row lock, checks the caller's expected
    status, authorizes and validates, then applies the change.
    Returns (old_status, order).
    """
    locked = Order.objects.select_for_update().get(pk=order.pk)
    _check_expected(locked, expected_status)

    policy = get_policy()
    policy.authorize(locked.snapshot(), Actor.from_user(user), transition)
    policy.validate(transition)

    now = timezone.now()
    metadata = transition.metadata or {}
    reason = (transition.reason or "").strip()
    old_status = locked.status
    fields = {"updated_at"}

    target = target_status(transition)
    if target is not None:
        locked.status = target.value
        stamped = stamp_transition(locked.timestamps(), target, now)
        for name, value in stamped.items():
            setattr(locked, name, value)
        fields |= {"status", *STATUS_TIMESTAMPS.values()}

    if target == OrderStatus.SHIPPED or transition.action == UPDATE_TRACKING:
        locked.tracking_number = str(metadata["tracking_number"]).strip()
        locked.carrier = metadata.get("carrier") or locked.carrier
        fields |= {"tracking_number", "carrier"}

    if transition.action == CONFIRM_PAYMENT:
        reference = (metadata.get("payment_reference") or "").strip()
        if reference:
            locked.payment_reference = reference
            fields.add("payment_reference")
        _append_to_notes(
            locked,
            user,
            "PAYMENT",
            metadata.get("notes") or f"Payment confirmed. {reference}",
        )
        fields.add("notes")

    if target == OrderStatus.CANCELLED:
        locked.cancellation_reason = reason
        _append_to_notes(locked, user, "CANCELLED", reason)
        fields |= {"cancellation_reason", "notes"}

    if transition.action == REQUEST_CANCELLATION:
        locked.cancellation_requested_at = now
        locked.cancellation_reason = reason
        _append_to_notes(locked, user, "CANCELLATION REQUEST", reason)
        fields |= {
            "cancellation_requested_at",
            "cancellation_reason",
            "notes",
        }

    if transition.action == ADD_NOTE:
        _append_to_notes(locked, user, "NOTE", str(metadata["note"]).strip())
        fields.add("notes")

    locked.save(update_fields=sorted(fields))
    logger.info(
        "Order %s: %s (%s -> %s) by user %s.",
        locked.pk,
        transition.action,
        old_status,
        locked.status,
        user.pk,
    )
    return old_status, locked


def change_status(
    *,
    order: Order,
    user: User,
    new_status,
    reason="",
    metadata=None,
    expected_status=None,
):
    transition = Transition(
        action=CHANGE_STATUS,
        target=new_status,
        reason=reason,
        metadata=metadata or {},
    )
    return apply_transition(
        order=order,
        user=user,
        transition=transition,
        expected_status=expected_status,
    )


def confirm_payment(
    *, order, user, payment_reference="", notes="", expected_status=None
):
    """PLACED -> PAID, recording the payment reference."""
    transition = Transition(
        action=CONFIRM_PAYMENT,
        target=OrderStatus.PAID.value,
        metadata={"payment_reference": payment_reference, "notes": notes},
    )
    return apply_transition(
        order=order,
        user=user,
        transition=transition,
        expected_status=expected_status,
    )


def mark_shipped(
    *, order, user, tracking_number, carrier="", expected_status=None
):
    """PROCESSING -> SHIPPED; a tracking number is mandatory."""
    transition = Transition(
        action=MARK_SHIPPED,
        target=OrderStatus.SHIPPED.value,
        metadata={"tracking_number": tracking_number, "carrier": carrier},
    )
    return apply_transition(
        order=order,
        user=user,
        transition=transition,
        expected_status=expected_status,
    )


def update_tracking(*, order, user, tracking_number, carrier=""):
    transition = Transition(
        action=UPDATE_TRACKING,
        metadata={"tracking_number": tracking_number, "carrier": carrier},
    )
    return apply_transition(order=order, user=user, transition=transition)


def request_cancellation(*, order, user, reason, expected_status=None):
    """
    Customer path: records the request without changing the status.
    Staff decide whether to cancel.
    """
    transition = Transition(action=REQUEST_CANCELLATION, reason=reason)
    return apply_transition(
        order=order,
        user=user,
        transition=transition,
        expected_status=expected_status,
    )


def add_note(*, order, user, note):
    transition = Transition(action=ADD_NOTE, metadata={"note": note})
    return apply_transition(order=order, user=user, transition=transition)
