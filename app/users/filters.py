"""
Filters for the accounts API.
"""

import django_filters
from django.db.models import Q

from .models import User


class AccountFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status")
    customer = django_filters.NumberFilter(field_name="customer_id")
    min_role = django_filters.NumberFilter(
        field_name="role_level", lookup_expr="gte"
    )
    assigned_sales_rep = django_filters.CharFilter(
        method="filter_by_assigned_sales_rep"
    )
    search = django_filters.CharFilter(method="filter_by_search")

    class Meta:
        model = User
        fields = ["status", "customer", "min_role", "assigned_sales_rep"]

    def filter_by_assigned_sales_rep(self, queryset, name, value):
        if value == "me":
            return queryset.filter(assigned_sales_rep=self.request.user)
        return queryset.filter(assigned_sales_rep_id=value)

    def filter_by_search(self, queryset, name, value):
        return queryset.filter(
            Q(email__icontains=value) | Q(full_name__icontains=value)
        )
