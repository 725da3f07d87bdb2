"""
Issues app configuration.

This app provides:
- Customer issue reporting and messaging
- Admin review, reprint and refund processing
- Order-level resolutions and direct refunds
"""

from django.apps import AppConfig


class IssuesConfig(AppConfig):
    """Configuration for the issues application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "issues"
    verbose_name = "Issues"
