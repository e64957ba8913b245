"""
Views for the user and account APIs.
"""

from django.db.models import Q
from rest_framework import generics, mixins, permissions, viewsets
from rest_framework.authentication import TokenAuthentication
from rest_framework.authtoken.views import ObtainAuthToken
from rest_framework.decorators import action
from rest_framework.settings import api_settings
from drf_spectacular.utils import extend_schema

from access.context import Actor
from access.errors import TransitionError
from access.roles import RoleLevel, has_minimum_role
from core.envelope import envelope, error_envelope
from users import serializers, services
from .filters import AccountFilter
from .models import User


class CreateUserView(generics.CreateAPIView):
    """Create a new user in the system."""

    serializer_class = serializers.UserSerializer


class CreateTokenView(ObtainAuthToken):
    """Create a new auth token for user."""

    serializer_class = serializers.AuthTokenSerializer
    renderer_classes = api_settings.DEFAULT_RENDERER_CLASSES


class ManageUserView(generics.RetrieveUpdateAPIView):
    """Manage the authenticated user."""

    serializer_class = serializers.UserSerializer
    authentication_classes = [TokenAuthentication]
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        """Retrieve and return the authenticated user."""
        return self.request.user


def account_payload(account, user) -> dict:
    """Account snapshot plus the requesting user's action flags."""
    data = serializers.AccountSerializer(account).data
    data["actions"] = services.policy.actions(
        account.snapshot(), Actor.from_user(user)
    ).as_dict()
    return data


class AccountViewSet(
    mixins.ListModelMixin,
    viewsets.GenericViewSet,
):
    """View for reading accounts and changing their status or role."""

    serializer_class = serializers.AccountSerializer
    queryset = User.objects.all()
    authentication_classes = [TokenAuthentication]
    permission_classes = [permissions.IsAuthenticated]
    filterset_class = AccountFilter

    def get_queryset(self):
        """Role-based visibility: admins see everyone,
        sales staff their assigned accounts, others only themselves."""
        user = self.request.user
        queryset = super().get_queryset().order_by("id")

        if has_minimum_role(user.role_level, RoleLevel.ADMIN):
            return queryset
        if has_minimum_role(user.role_level, RoleLevel.SALES_REP):
            return queryset.filter(
                Q(pk=user.pk) | Q(assigned_sales_rep=user)
            ).distinct()
        return queryset.filter(pk=user.pk)

    def retrieve(self, request, pk=None):
        """Account snapshot with the caller's available actions."""
        account = self.get_object()
        return envelope(account_payload(account, request.user))

    def destroy(self, request, pk=None):
        account = self.get_object()
        try:
            services.delete_account(account=account, user=request.user)
        except TransitionError as e:
            return error_envelope(e)
        return envelope({"success": True, "entity": None})

    def _transition_response(self, old_value, new_value, account):
        return envelope(
            {
                "success": True,
                "old_status": old_value,
                "new_status": new_value,
                "entity": account_payload(account, self.request.user),
            }
        )

    @extend_schema(request=serializers.AccountStatusChangeSerializer)
    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request, pk=None):
        """Action to move an account to another status."""
        account = self.get_object()
        serializer = serializers.AccountStatusChangeSerializer(
            data=request.data
        )
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            old_status, updated = services.change_status(
                account=account,
                user=request.user,
                new_status=data["new_status"],
                reason=data.get("reason", ""),
                expected_status=data.get("expected_status"),
            )
        except TransitionError as e:  # Catch Layer 3 errors
            return error_envelope(e)
        return self._transition_response(old_status, updated.status, updated)

    @extend_schema(request=serializers.AccountRoleChangeSerializer)
    @action(detail=True, methods=["post"], url_path="role")
    def change_role(self, request, pk=None):
        """Action to change an account's role level."""
        account = self.get_object()
        serializer = serializers.AccountRoleChangeSerializer(
            data=request.data
        )
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            old_level, updated = services.change_role(
                account=account,
                user=request.user,
                role_level=data["role_level"],
                expected_role_level=data.get("expected_role_level"),
            )
        except TransitionError as e:
            return error_envelope(e)
        return self._transition_response(
            old_level, updated.role_level, updated
        )
