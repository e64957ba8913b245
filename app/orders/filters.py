"""
Filters for the orders API.
"""

import django_filters

from .models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status")
    customer = django_filters.NumberFilter(field_name="customer_id")
    assigned_sales_rep = django_filters.CharFilter(
        method="filter_by_assigned_sales_rep"
    )

    created_after = django_filters.DateFilter(
        field_name="created_at", lookup_expr="date__gte"
    )
    created_before = django_filters.DateFilter(
        field_name="created_at", lookup_expr="date__lte"
    )
    cancellation_requested = django_filters.BooleanFilter(
        field_name="cancellation_requested_at", lookup_expr="isnull",
        exclude=True,
    )

    ordering = django_filters.OrderingFilter(
        fields=(
            ("created_at", "created_at"),
            ("total_amount", "total_amount"),
        )
    )

    class Meta:
        model = Order
        fields = [
            "status",
            "customer",
            "assigned_sales_rep",
            "created_after",
            "created_before",
            "cancellation_requested",
        ]

    def filter_by_assigned_sales_rep(self, queryset, name, value):
        if value == "me":
            return queryset.filter(assigned_sales_rep=self.request.user)
        return queryset.filter(assigned_sales_rep_id=value)
