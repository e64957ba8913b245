"""
Django admin customization for orders.
"""

from django.contrib import admin

from orders.models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "customer",
        "status",
        "total_amount",
        "assigned_sales_rep",
        "created_at",
    )
    list_filter = ("status", "created_at")
    search_fields = ("customer__name", "tracking_number")
    autocomplete_fields = ("customer", "assigned_sales_rep", "created_by")
    # Status and its side effects change only through orders.services.
    readonly_fields = (
        "status",
        "tracking_number",
        "carrier",
        "payment_reference",
        "cancellation_reason",
        "placed_at",
        "payment_confirmed_at",
        "processing_at",
        "shipped_at",
        "delivered_at",
        "cancelled_at",
        "cancellation_requested_at",
        "created_at",
        "updated_at",
    )
