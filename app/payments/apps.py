"""
Payments app configuration.

This app provides:
- Payment records and their refund state
- Stripe integration (reference resolution, refunds)
- Bookkeeping ledger for sales, refunds and reprint costs
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
