"""
Serializers for references app.
"""

from rest_framework import serializers

from .models import Customer


class CustomerSerializer(serializers.ModelSerializer):
    """Serializer for Customer objects."""

    class Meta:
        model = Customer
        fields = ["id", "name", "account_number"]
        read_only_fields = ["id"]
