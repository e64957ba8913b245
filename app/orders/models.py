"""
Data models for the order domain.
"""

from django.db import models
from django.conf import settings

from core.models import TimestampedModel, OwnedModel
from references.models import Customer
from .workflows import STATUS_TIMESTAMPS, OrderSnapshot, OrderStatus


def _isoformat(value):
    return value.isoformat() if value else None


class Order(TimestampedModel, OwnedModel):
    """A customer order moving through the fulfillment lifecycle."""

    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name="orders"
    )
    assigned_sales_rep = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="assigned_orders",
    )
    status = models.CharField(
        max_length=32,
        choices=OrderStatus.choices(),
        default=OrderStatus.PENDING.value,
        db_index=True,
    )
    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=0
    )

    tracking_number = models.CharField(max_length=100, blank=True, default="")
    carrier = models.CharField(max_length=100, blank=True, default="")
    payment_reference = models.CharField(
        max_length=255, blank=True, default=""
    )
    # Timestamped log; internal, staff only
    notes = models.TextField(blank=True, default="")

    # Lifecycle timestamps, each set once and never cleared
    placed_at = models.DateTimeField(blank=True, null=True)
    payment_confirmed_at = models.DateTimeField(blank=True, null=True)
    processing_at = models.DateTimeField(blank=True, null=True)
    shipped_at = models.DateTimeField(blank=True, null=True)
    delivered_at = models.DateTimeField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)

    cancellation_requested_at = models.DateTimeField(blank=True, null=True)
    cancellation_reason = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-id"]

    def __str__(self):
        return f"Order #{self.pk} ({self.status})"

    @property
    def status_label(self) -> str:
        return OrderStatus(self.status).label

    def timestamps(self) -> dict:
        return {f: getattr(self, f) for f in STATUS_TIMESTAMPS.values()}

    def snapshot(self) -> OrderSnapshot:
        return OrderSnapshot(
            id=self.id,
            status=self.status,
            customer_id=self.customer_id,
            assigned_sales_rep_id=self.assigned_sales_rep_id,
            total_amount=str(self.total_amount),
            tracking_number=self.tracking_number,
            carrier=self.carrier,
            payment_reference=self.payment_reference,
            cancellation_requested_at=_isoformat(
                self.cancellation_requested_at
            ),
            cancellation_reason=self.cancellation_reason,
            **{k: _isoformat(v) for k, v in self.timestamps().items()},
        )
