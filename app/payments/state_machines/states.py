"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.

Payment States:
    pending → completed → refunded
    pending → failed
    failed → completed (late confirmation reconciled from the gateway)
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    States for the Payment model lifecycle.

    Terminal states: REFUNDED

    State Flow:
        PENDING → COMPLETED → REFUNDED

    Failure Flow:
        PENDING → FAILED

    Reconciliation Flow:
        PENDING/FAILED → COMPLETED (gateway reports the charge as paid)
    """

    PENDING = "PENDING", "Pending"
    COMPLETED = "COMPLETED", "Completed"
    REFUNDED = "REFUNDED", "Refunded"
    FAILED = "FAILED", "Failed"
