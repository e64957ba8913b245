"""
Database models for custom user model.
"""

from django.db import models

from django.contrib.auth.models import (
    AbstractBaseUser,
    BaseUserManager,
    PermissionsMixin,
)

from access.roles import RoleLevel, role_label
from references.models import Customer
from .workflows import AccountSnapshot, AccountStatus


class UserManager(BaseUserManager):
    """Manager for users."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("The Email field must be set")
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("role_level", RoleLevel.SUPER_ADMIN)
        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """A user account: customer contact or staff member."""

    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=255, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(
        auto_now_add=True, db_column="created_at"
    )

    role_level = models.PositiveIntegerField(
        choices=RoleLevel.choices(), default=RoleLevel.CUSTOMER
    )
    status = models.CharField(
        max_length=32,
        choices=AccountStatus.choices(),
        default=AccountStatus.ACTIVE.value,
    )
    status_changed_at = models.DateTimeField(null=True, blank=True)
    status_reason = models.TextField(blank=True, default="")
    failed_login_attempts = models.PositiveIntegerField(default=0)

    customer = models.ForeignKey(
        Customer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="accounts",
    )
    assigned_sales_rep = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_accounts",
    )

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    def __str__(self):
        return self.email

    @property
    def role_name(self) -> str:
        return role_label(self.role_level)

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            id=self.id,
            status=self.status,
            role_level=self.role_level,
            email=self.email,
            full_name=self.full_name,
            customer_id=self.customer_id,
            assigned_sales_rep_id=self.assigned_sales_rep_id,
            failed_login_attempts=self.failed_login_attempts,
            status_changed_at=(
                self.status_changed_at.isoformat()
                if self.status_changed_at
                else None
            ),
            status_reason=self.status_reason,
        )
