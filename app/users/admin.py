"""
Django admin customization for custom user model.
"""

from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from access.errors import TransitionError
from users import services
from users.models import User
from users.workflows import AccountStatus

# Changed only through users.services.
TRANSITION_FIELDS = ["is_active", "role_level", "status", "status_reason"]


class UserAdmin(BaseUserAdmin):
    """Define the admin pages for users."""

    ordering = ["id"]
    list_display = ["email", "full_name", "role_level", "status"]
    list_filter = ["status", "role_level", "is_staff"]
    search_fields = ["email", "full_name"]
    autocomplete_fields = ["customer", "assigned_sales_rep"]
    actions = ["verify_accounts", "reactivate_accounts"]
    fieldsets = (
        (None, {"fields": ("email", "password", "full_name")}),
        (
            _("Permissions"),
            {
                "fields": (
                    "is_active",
                    "is_staff",
                    "is_superuser",
                    "role_level",
                )
            },
        ),
        (
            _("Account status"),
            {
                "fields": (
                    "status",
                    "status_changed_at",
                    "status_reason",
                    "failed_login_attempts",
                )
            },
        ),
        (
            _("Commercial relationship"),
            {
                "fields": (
                    "customer",
                    "assigned_sales_rep",
                )
            },
        ),
        (
            _("Important dates"),
            {
                "fields": (
                    "last_login",
                    "date_joined",
                )
            },
        ),
    )
    readonly_fields = [
        "last_login",
        "date_joined",
        "status_changed_at",
        "failed_login_attempts",
    ]
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": (
                    "email",
                    "password1",
                    "password2",
                    "full_name",
                    "role_level",
                    "customer",
                    "assigned_sales_rep",
                    "is_staff",
                    "is_superuser",
                ),
            },
        ),
    )

    def get_readonly_fields(self, request, obj=None):
        """Status and role of existing accounts change through services."""
        fields = super().get_readonly_fields(request, obj)
        if obj is None:
            return fields
        return [*fields, *TRANSITION_FIELDS]

    def _apply(self, request, queryset, change, done):
        count = 0
        for account in queryset:
            try:
                change(account)
            except TransitionError as e:
                self.message_user(
                    request, f"{account.email}: {e}", messages.WARNING
                )
            else:
                count += 1
        self.message_user(request, f"{count} account(s) {done}.")

    @admin.action(description=_("Verify selected accounts"))
    def verify_accounts(self, request, queryset):
        self._apply(
            request,
            queryset,
            lambda account: services.verify_account(account=account),
            "verified",
        )

    @admin.action(description=_("Reactivate selected accounts"))
    def reactivate_accounts(self, request, queryset):
        self._apply(
            request,
            queryset,
            lambda account: services.change_status(
                account=account,
                user=request.user,
                new_status=AccountStatus.ACTIVE.value,
            ),
            "reactivated",
        )


admin.site.register(User, UserAdmin)
