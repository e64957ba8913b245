"""
Reference tables shared by the business apps.
Prevents circular dependencies.
"""

from django.db import models

from core.models import TimestampedModel


class Customer(TimestampedModel):
    """A customer company. Accounts and orders belong to one."""

    name = models.CharField(max_length=255)
    account_number = models.CharField(max_length=50, unique=True)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=50, blank=True, null=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name
