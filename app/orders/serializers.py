"""
Serializers for orders API.
"""

from rest_framework import serializers

from orders.models import Order
from references.models import Customer
from references.serializers import CustomerSerializer
from users.serializers import UserNestedSerializer
from .workflows import OrderStatus


class OrderListSerializer(serializers.ModelSerializer):
    """Serializer for the order LIST view (lightweight)."""

    customer_id = serializers.IntegerField(read_only=True)
    assigned_sales_rep_id = serializers.IntegerField(read_only=True)
    status_label = serializers.CharField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "status",
            "status_label",
            "customer_id",
            "assigned_sales_rep_id",
            "total_amount",
            "created_at",
        ]
        read_only_fields = fields


class OrderDetailSerializer(OrderListSerializer):
    """Serializer for the order DETAIL view.
    Carries every field of the rules-engine snapshot."""

    customer = CustomerSerializer(read_only=True)
    assigned_sales_rep = UserNestedSerializer(read_only=True)
    created_by = UserNestedSerializer(read_only=True)

    class Meta(OrderListSerializer.Meta):
        fields = OrderListSerializer.Meta.fields + [
            "customer",
            "assigned_sales_rep",
            "created_by",
            "tracking_number",
            "carrier",
            "payment_reference",
            "placed_at",
            "payment_confirmed_at",
            "processing_at",
            "shipped_at",
            "delivered_at",
            "cancelled_at",
            "cancellation_requested_at",
            "cancellation_reason",
            "updated_at",
        ]
        read_only_fields = fields


class OrderStaffDetailSerializer(OrderDetailSerializer):
    """Detail view for staff, including the internal notes log."""

    class Meta(OrderDetailSerializer.Meta):
        fields = OrderDetailSerializer.Meta.fields + ["notes"]
        read_only_fields = fields


class OrderCreateSerializer(serializers.ModelSerializer):
    """Serializer for CREATE action (writable fields)."""

    customer = serializers.PrimaryKeyRelatedField(
        queryset=Customer.objects.filter(is_active=True)
    )

    class Meta:
        model = Order
        fields = ["customer", "assigned_sales_rep", "total_amount"]


class StatusChangeSerializer(serializers.Serializer):
    """Input for POST /orders/{id}/status/."""

    new_status = serializers.ChoiceField(choices=OrderStatus.choices())
    expected_status = serializers.ChoiceField(
        choices=OrderStatus.choices(), required=False
    )
    reason = serializers.CharField(
        required=False, allow_blank=True, max_length=1000
    )
    metadata = serializers.DictField(required=False)


class ConfirmPaymentSerializer(serializers.Serializer):
    payment_reference = serializers.CharField(
        required=False, allow_blank=True, max_length=255
    )
    notes = serializers.CharField(required=False, allow_blank=True)
    expected_status = serializers.ChoiceField(
        choices=OrderStatus.choices(), required=False
    )


class MarkShippedSerializer(serializers.Serializer):
    tracking_number = serializers.CharField(max_length=100)
    carrier = serializers.CharField(
        required=False, allow_blank=True, max_length=100
    )
    expected_status = serializers.ChoiceField(
        choices=OrderStatus.choices(), required=False
    )


class TrackingSerializer(serializers.Serializer):
    tracking_number = serializers.CharField(max_length=100)
    carrier = serializers.CharField(
        required=False, allow_blank=True, max_length=100
    )


class ReasonActionSerializer(serializers.Serializer):
    """Serializer for actions that require a 'reason'."""

    reason = serializers.CharField(
        required=True, allow_blank=False, max_length=1000
    )
    expected_status = serializers.ChoiceField(
        choices=OrderStatus.choices(), required=False
    )


class NoteSerializer(serializers.Serializer):
    note = serializers.CharField(required=True, allow_blank=False)
