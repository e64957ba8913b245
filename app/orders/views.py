"""
Views for the orders APIs.
"""

from django.db.models import Q
from rest_framework import mixins, status, viewsets
from rest_framework.authentication import TokenAuthentication
from rest_framework.decorators import action
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from drf_spectacular.utils import extend_schema

from access.errors import TransitionError
from access.grants import Action, ContextScope, Resource, has_permission
from access.roles import is_staff_level
from core.envelope import envelope, error_envelope
from .models import Order
from . import serializers
from . import services
from .filters import OrderFilter


class StandardResultsSetPagination(PageNumberPagination):
    """Provides pagination for output."""

    page_size = 50
    page_size_query_param = "page_size"
    max_page_size = 100


def order_payload(order, user) -> dict:
    """Order snapshot plus the requesting user's action flags."""
    serializer_class = (
        serializers.OrderStaffDetailSerializer
        if is_staff_level(user.role_level)
        else serializers.OrderDetailSerializer
    )
    data = serializer_class(order).data
    data.update(services.get_order_context(order, user))
    return data


class OrderViewSet(
    mixins.ListModelMixin,
    viewsets.GenericViewSet,
):
    """View for managing orders APIs."""

    queryset = Order.objects.all()
    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination
    filterset_class = OrderFilter

    def get_queryset(self):
        """
        Implement data segregation from the READ grants: each scope the
        user holds adds the orders whose relational fact matches.
        """
        user = self.request.user
        queryset = (
            super()
            .get_queryset()
            .select_related("customer", "assigned_sales_rep", "created_by")
        )

        def granted(scope):
            return has_permission(
                Resource.ORDERS, Action.READ, scope, user.role_level
            )

        if granted(ContextScope.ALL):
            return queryset
        visible = Q(pk__in=[])
        if granted(ContextScope.ASSIGNED):
            visible |= Q(assigned_sales_rep=user)
        if granted(ContextScope.OWN) and user.customer_id is not None:
            visible |= Q(customer_id=user.customer_id)
        return queryset.filter(visible)

    def get_serializer_class(self):
        """Return the serializer class for request based on action."""
        if self.action == "list":
            return serializers.OrderListSerializer
        if self.action == "create":
            return serializers.OrderCreateSerializer
        if self.action == "change_status":
            return serializers.StatusChangeSerializer
        if self.action == "confirm_payment":
            return serializers.ConfirmPaymentSerializer
        if self.action == "mark_shipped":
            return serializers.MarkShippedSerializer
        if self.action == "update_tracking":
            return serializers.TrackingSerializer
        if self.action == "request_cancellation":
            return serializers.ReasonActionSerializer
        if self.action == "add_note":
            return serializers.NoteSerializer

        return serializers.OrderDetailSerializer

    def retrieve(self, request, pk=None):
        """
        Retrieve a single order with contextual data.
        """
        order = self.get_object()
        return envelope(order_payload(order, request.user))

    # --- Core CRUD Actions ---

    def create(self, request, *args, **kwargs):
        """
        Create a new order in PENDING.
        Permission: sales staff only (enforced in services).
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = services.create_order(
                user=request.user, **serializer.validated_data
            )
        except TransitionError as e:
            return error_envelope(e)
        return envelope(
            order_payload(order, request.user),
            status_code=status.HTTP_201_CREATED,
        )

    def destroy(self, request, pk=None):
        """
        Delete an order.
        Permission: administrators only.
        """
        order = self.get_object()
        try:
            services.delete_order(order=order, user=request.user)
        except TransitionError as e:
            return error_envelope(e)
        return envelope({"success": True, "entity": None})

    # --- Transitions ---

    def _run(self, service, order, **kwargs):
        """Calls a transition service and wraps the outcome."""
        try:
            old_status, updated = service(
                order=order, user=self.request.user, **kwargs
            )
        except TransitionError as e:  # Catch Layer 3 errors
            return error_envelope(e)
        return envelope(
            {
                "success": True,
                "old_status": old_status,
                "new_status": updated.status,
                "entity": order_payload(updated, self.request.user),
            }
        )

    def _validated(self):
        serializer = self.get_serializer(data=self.request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    @extend_schema(request=serializers.StatusChangeSerializer)
    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request, pk=None):
        """Action to move an order to another status."""
        order = self.get_object()
        data = self._validated()
        return self._run(
            services.change_status,
            order,
            new_status=data["new_status"],
            reason=data.get("reason", ""),
            metadata=data.get("metadata"),
            expected_status=data.get("expected_status"),
        )

    @extend_schema(request=serializers.ConfirmPaymentSerializer)
    @action(detail=True, methods=["post"], url_path="confirm-payment")
    def confirm_payment(self, request, pk=None):
        """
        Action to move an order from PLACED to PAID.
        Permission: assigned sales rep or a sales manager.
        """
        order = self.get_object()
        return self._run(services.confirm_payment, order, **self._validated())

    @extend_schema(request=serializers.MarkShippedSerializer)
    @action(detail=True, methods=["post"], url_path="mark-shipped")
    def mark_shipped(self, request, pk=None):
        """
        Action to move an order from PROCESSING to SHIPPED.
        Permission: fulfillment staff. Tracking number is required.
        """
        order = self.get_object()
        return self._run(services.mark_shipped, order, **self._validated())

    @extend_schema(request=serializers.TrackingSerializer)
    @action(detail=True, methods=["post"], url_path="update-tracking")
    def update_tracking(self, request, pk=None):
        order = self.get_object()
        return self._run(services.update_tracking, order, **self._validated())

    @extend_schema(request=serializers.ReasonActionSerializer)
    @action(detail=True, methods=["post"], url_path="request-cancellation")
    def request_cancellation(self, request, pk=None):
        """
        Action for the ordering customer to ask for a cancellation.
        The status is left unchanged. Reason is required.
        """
        order = self.get_object()
        return self._run(
            services.request_cancellation, order, **self._validated()
        )

    @extend_schema(request=serializers.NoteSerializer)
    @action(detail=True, methods=["post"], url_path="add-note")
    def add_note(self, request, pk=None):
        """Action to add an internal note; staff only."""
        order = self.get_object()
        return self._run(services.add_note, order, **self._validated())
