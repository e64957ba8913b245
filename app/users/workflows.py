"""
Domain layer - pure, Django-unaware, account status rules.
Account statuses are not a linear lifecycle: legality depends on the
target status alone, plus a few statuses that are never set by hand.
"""

from dataclasses import asdict, dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from access.context import ActorContext, same_id
from access.errors import (
    AuthorizationDenied,
    AutomaticOnlyTransition,
    CreationOnlyTransition,
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
from access.roles import RoleLevel, has_minimum_role, parse_role


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    LOCKED = "LOCKED"
    ARCHIVED = "ARCHIVED"
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    FORCE_PASSWORD_CHANGE = "FORCE_PASSWORD_CHANGE"

    @property
    def label(self) -> str:
        return STATUS_METADATA[self]["label"]

    @classmethod
    def choices(cls) -> list:
        return [(s.value, s.label) for s in cls]


STATUS_METADATA = {
    AccountStatus.PENDING_VERIFICATION: {
        "label": "Pending Verification",
        "variant": "info",
        "description": "Email verification required before login.",
        "can_login": False,
        "requires_action": True,
    },
    AccountStatus.ACTIVE: {
        "label": "Active",
        "variant": "success",
        "description": "Account is fully operational.",
        "can_login": True,
        "requires_action": False,
    },
    AccountStatus.FORCE_PASSWORD_CHANGE: {
        "label": "Password Required",
        "variant": "warning",
        "description": "Password change required on next login.",
        "can_login": True,
        "requires_action": True,
    },
    AccountStatus.SUSPENDED: {
        "label": "Suspended",
        "variant": "error",
        "description": "Account has been suspended by an administrator.",
        "can_login": False,
        "requires_action": False,
    },
    AccountStatus.LOCKED: {
        "label": "Locked",
        "variant": "error",
        "description": "Account locked after repeated failed logins.",
        "can_login": False,
        "requires_action": True,
    },
    AccountStatus.ARCHIVED: {
        "label": "Archived",
        "variant": "neutral",
        "description": "Account has been archived and is no longer active.",
        "can_login": False,
        "requires_action": False,
    },
}

# Only the system sets these
AUTOMATIC_ONLY = frozenset({AccountStatus.LOCKED})
CREATION_ONLY = frozenset({AccountStatus.PENDING_VERIFICATION})

MANUAL_STATUSES = (
    AccountStatus.ACTIVE,
    AccountStatus.SUSPENDED,
    AccountStatus.ARCHIVED,
    AccountStatus.FORCE_PASSWORD_CHANGE,
)

CONFIRMATION_STATUSES = frozenset(
    {AccountStatus.SUSPENDED, AccountStatus.LOCKED, AccountStatus.ARCHIVED}
)

REASON_MIN_LENGTH = 5
REASON_MAX_LENGTH = 500


def _as_status(value) -> Optional[AccountStatus]:
    try:
        return AccountStatus(value)
    except ValueError:
        return None


# --- 1. Status machine ---


def validate_transition(from_status, to_status):
    """
    Raises the matching IllegalTransition subclass if an actor may not
    move an account from `from_status` to `to_status`.
    """
    source = _as_status(from_status)
    target = _as_status(to_status)
    if source is None or target is None:
        raise IllegalTransition(
            f"Unknown account status '{from_status}' or '{to_status}'."
        )
    if target in AUTOMATIC_ONLY:
        raise AutomaticOnlyTransition(
            f"'{target.label}' is set automatically after repeated"
            " failed logins and cannot be requested."
        )
    if target in CREATION_ONLY:
        raise CreationOnlyTransition(
            f"'{target.label}' is only assigned when an account is created."
        )
    if source == target:
        raise IllegalTransition(f"Account is already '{source.label}'.")


def can_transition(from_status, to_status) -> bool:
    """[PURE DOMAIN LOGIC] Non-raising variant of validate_transition."""
    try:
        validate_transition(from_status, to_status)
    except IllegalTransition:
        return False
    return True


def allowed_transitions(from_status) -> list:
    return [s for s in MANUAL_STATUSES if can_transition(from_status, s)]


def can_login(status) -> bool:
    target = _as_status(status)
    return target is not None and STATUS_METADATA[target]["can_login"]


def requires_confirmation(to_status) -> bool:
    return _as_status(to_status) in CONFIRMATION_STATUSES


def is_locked_out(failed_attempts: int, threshold: int) -> bool:
    """True once consecutive failures reach the lockout threshold."""
    return failed_attempts >= threshold


def validate_reason(to_status, reason):
    """Suspension needs a reason of sensible length."""
    if _as_status(to_status) != AccountStatus.SUSPENDED:
        return
    cleaned = (reason or "").strip()
    if not REASON_MIN_LENGTH <= len(cleaned) <= REASON_MAX_LENGTH:
        raise ValidationFailure(
            f"A suspension reason of {REASON_MIN_LENGTH} to"
            f" {REASON_MAX_LENGTH} characters is required."
        )


# --- 2. Snapshot & context ---


@dataclass(frozen=True)
class AccountSnapshot:
    id: int
    status: str
    role_level: int = RoleLevel.CUSTOMER
    email: str = ""
    full_name: Optional[str] = None
    customer_id: Optional[int] = None
    assigned_sales_rep_id: Optional[int] = None
    failed_login_attempts: int = 0
    status_changed_at: Optional[str] = None
    status_reason: str = ""

    @classmethod
    def from_payload(cls, payload: dict) -> "AccountSnapshot":
        fields = cls.__dataclass_fields__
        return cls(**{k: v for k, v in payload.items() if k in fields})


def account_context(snapshot, actor) -> ActorContext:
    return ActorContext(
        role_level=actor.role_level,
        is_own_entity=same_id(snapshot.id, actor.id),
        is_assigned_entity=same_id(snapshot.assigned_sales_rep_id, actor.id),
    )


# --- 3. Contextual permissions ---


@dataclass(frozen=True)
class AccountActions:
    can_view: bool = False
    can_update: bool = False
    can_change_role: bool = False
    can_change_status: bool = False
    can_activate: bool = False
    can_suspend: bool = False
    can_archive: bool = False
    can_force_password_change: bool = False
    can_reset_password: bool = False
    can_delete: bool = False
    is_own_entity: bool = False
    is_assigned_entity: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


def get_account_actions(snapshot, actor) -> AccountActions:
    """
    [PURE DOMAIN LOGIC]
    Flags for what `actor` may do with this account right now.
    Administrative actions never apply to the actor's own account.
    """
    context = account_context(snapshot, actor)
    level = context.role_level
    on_other = not context.is_own_entity

    def admin_grant(action):
        return on_other and has_permission(
            Resource.ACCOUNTS, action, ContextScope.ALL, level
        )

    may_change_status = admin_grant(Action.CHANGE_STATUS)

    def status_flag(target):
        return may_change_status and can_transition(snapshot.status, target)

    return AccountActions(
        can_view=has_scoped_permission(
            Resource.ACCOUNTS, Action.READ, context
        ),
        can_update=has_scoped_permission(
            Resource.ACCOUNTS, Action.UPDATE, context
        ),
        can_change_role=admin_grant(Action.CHANGE_ROLE),
        can_change_status=may_change_status
        and bool(allowed_transitions(snapshot.status)),
        can_activate=status_flag(AccountStatus.ACTIVE),
        can_suspend=status_flag(AccountStatus.SUSPENDED),
        can_archive=status_flag(AccountStatus.ARCHIVED),
        can_force_password_change=status_flag(
            AccountStatus.FORCE_PASSWORD_CHANGE
        ),
        can_reset_password=admin_grant(Action.UPDATE),
        can_delete=admin_grant(Action.DELETE),
        is_own_entity=context.is_own_entity,
        is_assigned_entity=context.is_assigned_entity,
    )


# --- 4. Policy used by services, executor and console ---

CHANGE_STATUS = "change_status"
CHANGE_ROLE = "change_role"


class AccountPolicy:
    """Authorization, validation and local application for accounts."""

    resource = Resource.ACCOUNTS

    def actions(self, snapshot, actor) -> AccountActions:
        return get_account_actions(snapshot, actor)

    def authorize(self, snapshot, actor, transition):
        flags = get_account_actions(snapshot, actor)
        if transition.action == CHANGE_ROLE:
            if not flags.can_change_role:
                raise AuthorizationDenied(
                    "Only administrators can change another account's role."
                )
            return
        if transition.action != CHANGE_STATUS:
            raise IllegalTransition(
                f"Unknown account action '{transition.action}'."
            )
        # Structural errors win over permission errors
        validate_transition(snapshot.status, transition.target)
        if not flags.can_change_status:
            raise AuthorizationDenied(
                "Only administrators can change another account's status."
            )

    def validate(self, transition):
        if transition.action == CHANGE_STATUS:
            validate_reason(transition.target, transition.reason)

    def requires_confirmation(self, transition) -> bool:
        if transition.action == CHANGE_ROLE:
            return has_minimum_role(
                parse_role(transition.target), RoleLevel.ADMIN
            )
        return requires_confirmation(transition.target)

    def apply_locally(self, snapshot, transition, now: datetime):
        if transition.action == CHANGE_ROLE:
            return replace(snapshot, role_level=parse_role(transition.target))
        return replace(
            snapshot,
            status=AccountStatus(transition.target).value,
            status_changed_at=now.isoformat(),
            status_reason=transition.reason or "",
        )

    def snapshot_from_payload(self, payload: dict) -> AccountSnapshot:
        return AccountSnapshot.from_payload(payload)
