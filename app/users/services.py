"""
Application layer - Django-aware orchestrator service for accounts.
Calls Domain for validation and authorization, handles DB transactions,
row locking for stale-state detection and automatic lockout.
"""

import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import ProtectedError
from django.utils import timezone

from access.context import Actor, Transition
from access.errors import (
    AuthorizationDenied,
    IllegalTransition,
    StaleState,
    ValidationFailure,
)
from access.roles import parse_role
from .workflows import (
    CHANGE_ROLE,
    CHANGE_STATUS,
    AccountPolicy,
    AccountStatus,
    can_login,
    is_locked_out,
)

logger = logging.getLogger(__name__)

User = get_user_model()

policy = AccountPolicy()

INVALID_CREDENTIALS = "Unable to authenticate with provided credentials."


def _lockout_threshold() -> int:
    return getattr(settings, "ACCOUNT_LOCKOUT_THRESHOLD", 5)


def _lock_row(account) -> User:
    """Re-reads the account under a row lock."""
    return User.objects.select_for_update().get(pk=account.pk)


def _check_expected(current, expected):
    if expected is not None and str(current) != str(expected):
        raise StaleState(
            f"Account changed to '{current}' since it was loaded."
        )


def _set_status(account, new_status: AccountStatus, reason: str = ""):
    account.status = new_status.value
    account.status_changed_at = timezone.now()
    account.status_reason = reason or ""
    account.is_active = can_login(new_status)
    fields = ["status", "status_changed_at", "status_reason", "is_active"]
    # A new login-eligible period starts with a clean failure count.
    if account.is_active:
        account.failed_login_attempts = 0
        fields.append("failed_login_attempts")
    account.save(update_fields=fields)


# --- Service Functions ---


@transaction.atomic
def register_account(*, email, password, full_name=None) -> User:
    """Self-registration: new accounts wait for verification."""
    account = User.objects.create_user(
        email=email,
        password=password,
        full_name=full_name,
        status=AccountStatus.PENDING_VERIFICATION.value,
        is_active=False,
    )
    logger.info("Account %s registered, pending verification.", account.pk)
    return account


@transaction.atomic
def verify_account(*, account) -> User:
    """System path out of PENDING_VERIFICATION after email verification."""
    locked = _lock_row(account)
    if locked.status != AccountStatus.PENDING_VERIFICATION.value:
        raise StaleState("Account is not awaiting verification.")
    _set_status(locked, AccountStatus.ACTIVE)
    logger.info("Account %s verified.", locked.pk)
    return locked


@transaction.atomic
def change_status(
    *, account, user, new_status, reason="", expected_status=None
):
    """
    Moves an account to `new_status` on behalf of `user`.
    Returns (old_status, account).
    """
    locked = _lock_row(account)
    _check_expected(locked.status, expected_status)

    transition = Transition(
        action=CHANGE_STATUS, target=new_status, reason=reason or ""
    )
    policy.authorize(locked.snapshot(), Actor.from_user(user), transition)
    policy.validate(transition)

    old_status = locked.status
    _set_status(locked, AccountStatus(new_status), reason)
    logger.info(
        "Account %s status %s -> %s by user %s.",
        locked.pk,
        old_status,
        locked.status,
        user.pk,
    )
    return old_status, locked


@transaction.atomic
def change_role(*, account, user, role_level, expected_role_level=None):
    """Returns (old_role_level, account)."""
    locked = _lock_row(account)
    _check_expected(locked.role_level, expected_role_level)

    level = parse_role(role_level)
    transition = Transition(action=CHANGE_ROLE, target=level)
    policy.authorize(locked.snapshot(), Actor.from_user(user), transition)

    old_level = locked.role_level
    locked.role_level = level
    locked.save(update_fields=["role_level"])
    logger.info(
        "Account %s role %s -> %s by user %s.",
        locked.pk,
        old_level,
        level,
        user.pk,
    )
    return old_level, locked


@transaction.atomic
def delete_account(*, account, user):
    flags = policy.actions(account.snapshot(), Actor.from_user(user))
    if not flags.can_delete:
        raise AuthorizationDenied(
            "Only administrators can delete another account."
        )
    try:
        account.delete()
    except ProtectedError:
        raise IllegalTransition(
            "Account is referenced by orders. Archive it instead."
        )
    logger.info("Account %s deleted by user %s.", account.pk, user.pk)


# --- Login bookkeeping ---


@transaction.atomic
def record_failed_login(account) -> User:
    """Counts a failure and locks the account at the threshold."""
    locked = _lock_row(account)
    locked.failed_login_attempts += 1
    locked.save(update_fields=["failed_login_attempts"])

    if can_login(locked.status) and is_locked_out(
        locked.failed_login_attempts, _lockout_threshold()
    ):
        _set_status(
            locked,
            AccountStatus.LOCKED,
            f"Locked after {locked.failed_login_attempts}"
            " consecutive failed logins.",
        )
        logger.warning("Account %s locked automatically.", locked.pk)
    return locked


def record_successful_login(account) -> User:
    account.failed_login_attempts = 0
    account.last_login = timezone.now()
    account.save(update_fields=["failed_login_attempts", "last_login"])
    return account


def authenticate_account(*, email, password) -> User:
    """
    Checks credentials and login eligibility.
    Raises ValidationFailure for bad credentials and AuthorizationDenied
    for accounts whose status does not allow login.
    """
    account = User.objects.filter(
        email=User.objects.normalize_email(email)
    ).first()
    if account is None:
        raise ValidationFailure(INVALID_CREDENTIALS)

    if not account.check_password(password):
        record_failed_login(account)
        raise ValidationFailure(INVALID_CREDENTIALS)

    if not can_login(account.status):
        label = AccountStatus(account.status).label
        raise AuthorizationDenied(f"Account is {label.lower()}.")

    return record_successful_login(account)
