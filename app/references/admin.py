"""
Django admin customization for reference tables.
"""

from django.contrib import admin

from references import models


@admin.register(models.Customer)
class CustomerAdmin(admin.ModelAdmin):
    # Required by autocomplete_fields in UserAdmin and OrderAdmin
    search_fields = ("name", "account_number")
    list_display = ("name", "account_number", "is_active")
    list_filter = ("is_active",)
