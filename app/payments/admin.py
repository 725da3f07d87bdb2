"""
Payment admin configuration.

This file imports admin configurations from the ledger submodule
and registers payment domain models with the Django admin.
"""

from django.contrib import admin

from payments.ledger.admin import LedgerEntryAdmin
from payments.models import Payment

__all__ = [
    "LedgerEntryAdmin",
    "PaymentAdmin",
]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payment.

    Status is read-only: it only changes through FSM transitions driven
    by the refund and reconciliation services.
    """

    list_display = [
        "id",
        "order",
        "amount",
        "currency",
        "status",
        "stripe_reference",
        "paid_at",
        "refunded_at",
    ]
    list_filter = ["status", "currency"]
    search_fields = ["id", "stripe_reference", "stripe_refund_id", "order__id"]
    readonly_fields = [
        "id",
        "status",
        "paid_at",
        "refunded_at",
        "stripe_refund_id",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
