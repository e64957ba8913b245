"""
Domain layer - pure, Django-unaware permission engine.
A grant maps (resource, action, scope) to the minimum role level that
holds it. Anything missing from the table is denied for every role.
"""

from enum import Enum

from .roles import RoleLevel, has_minimum_role


class Resource(str, Enum):
    ORDERS = "orders"
    ACCOUNTS = "accounts"


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    CONFIRM_PAYMENT = "confirm_payment"
    FULFILL = "fulfill"
    CANCEL = "cancel"
    REQUEST_CANCELLATION = "request_cancellation"
    ANNOTATE = "annotate"
    CHANGE_ROLE = "change_role"
    CHANGE_STATUS = "change_status"


class ContextScope(str, Enum):
    """Relational breadth a grant applies to."""

    OWN = "own"
    ASSIGNED = "assigned"
    ALL = "all"


GRANTS = {
    # --- Orders ---
    (Resource.ORDERS, Action.READ, ContextScope.OWN): RoleLevel.CUSTOMER,
    (
        Resource.ORDERS,
        Action.READ,
        ContextScope.ASSIGNED,
    ): RoleLevel.SALES_REP,
    (
        Resource.ORDERS,
        Action.READ,
        ContextScope.ALL,
    ): RoleLevel.FULFILLMENT_COORDINATOR,
    (Resource.ORDERS, Action.UPDATE, ContextScope.OWN): RoleLevel.CUSTOMER,
    (
        Resource.ORDERS,
        Action.UPDATE,
        ContextScope.ASSIGNED,
    ): RoleLevel.SALES_REP,
    (
        Resource.ORDERS,
        Action.UPDATE,
        ContextScope.ALL,
    ): RoleLevel.FULFILLMENT_COORDINATOR,
    (Resource.ORDERS, Action.CREATE, ContextScope.ALL): RoleLevel.SALES_REP,
    (
        Resource.ORDERS,
        Action.CONFIRM_PAYMENT,
        ContextScope.ASSIGNED,
    ): RoleLevel.SALES_REP,
    (
        Resource.ORDERS,
        Action.CONFIRM_PAYMENT,
        ContextScope.ALL,
    ): RoleLevel.SALES_MANAGER,
    # Fulfillment coordinators are admitted by an exact-role rule,
    # see orders.workflows.has_fulfillment_duty.
    (
        Resource.ORDERS,
        Action.FULFILL,
        ContextScope.ALL,
    ): RoleLevel.SALES_MANAGER,
    (
        Resource.ORDERS,
        Action.CANCEL,
        ContextScope.ALL,
    ): RoleLevel.SALES_MANAGER,
    (
        Resource.ORDERS,
        Action.REQUEST_CANCELLATION,
        ContextScope.OWN,
    ): RoleLevel.CUSTOMER,
    (Resource.ORDERS, Action.ANNOTATE, ContextScope.ALL): RoleLevel.SALES_REP,
    (Resource.ORDERS, Action.DELETE, ContextScope.ALL): RoleLevel.ADMIN,
    # --- Accounts ---
    (Resource.ACCOUNTS, Action.READ, ContextScope.OWN): RoleLevel.CUSTOMER,
    (
        Resource.ACCOUNTS,
        Action.READ,
        ContextScope.ASSIGNED,
    ): RoleLevel.SALES_REP,
    (Resource.ACCOUNTS, Action.READ, ContextScope.ALL): RoleLevel.ADMIN,
    (Resource.ACCOUNTS, Action.UPDATE, ContextScope.OWN): RoleLevel.CUSTOMER,
    (Resource.ACCOUNTS, Action.UPDATE, ContextScope.ALL): RoleLevel.ADMIN,
    (
        Resource.ACCOUNTS,
        Action.CREATE,
        ContextScope.ALL,
    ): RoleLevel.SALES_MANAGER,
    (Resource.ACCOUNTS, Action.CHANGE_ROLE, ContextScope.ALL): RoleLevel.ADMIN,
    (
        Resource.ACCOUNTS,
        Action.CHANGE_STATUS,
        ContextScope.ALL,
    ): RoleLevel.ADMIN,
    (Resource.ACCOUNTS, Action.DELETE, ContextScope.ALL): RoleLevel.ADMIN,
}


def _as_member(enum_cls, value):
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return None


def required_role(resource, action, scope):
    """Minimum role level for a triple, or None if it is not granted."""
    key = (
        _as_member(Resource, resource),
        _as_member(Action, action),
        _as_member(ContextScope, scope),
    )
    if None in key:
        return None
    return GRANTS.get(key)


def has_permission(resource, action, scope, actor_role_level) -> bool:
    """
    [PURE DOMAIN LOGIC]
    True if the actor's level reaches the grant for this triple.
    Unknown triples are denied, never raised.
    """
    minimum = required_role(resource, action, scope)
    if minimum is None:
        return False
    return has_minimum_role(actor_role_level, minimum)


def has_scoped_permission(resource, action, context) -> bool:
    """
    Resolves scopes hierarchically: Own, then Assigned, then All.
    A narrow scope only counts when its relational fact holds.
    """
    level = context.role_level
    if context.is_own_entity and has_permission(
        resource, action, ContextScope.OWN, level
    ):
        return True
    if context.is_assigned_entity and has_permission(
        resource, action, ContextScope.ASSIGNED, level
    ):
        return True
    return has_permission(resource, action, ContextScope.ALL, level)
