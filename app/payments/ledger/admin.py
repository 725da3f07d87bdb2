"""
Django admin configuration for ledger models.

Ledger entries are immutable through the admin: they can be browsed and
searched, but not added, edited or deleted.
"""

from django.contrib import admin

from .models import LedgerEntry


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    list_display = [
        "entry_number",
        "created_at",
        "entry_type",
        "category",
        "gross_amount",
        "vat_amount",
        "tax_year",
        "status",
        "order",
    ]
    list_filter = ["entry_type", "category", "status", "tax_year"]
    search_fields = ["entry_number", "idempotency_key", "description", "order__id"]
    readonly_fields = [f.name for f in LedgerEntry._meta.fields]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        return False
