"""
Transactional outbox models.

A SideEffect row is written in the same transaction as the state change
that caused it (an issue completed, an order cancelled) and delivered
afterwards by a Celery task. If the process dies between commit and
dispatch the row stays PENDING and the periodic sweep picks it up.

Design Decisions:
    - Payload is plain JSON (ids and strings only), never model instances
    - Delivery is at-least-once; handlers are idempotent (ledger entries
      carry idempotency keys, audit records are append-only)
    - Rows are never deleted by the dispatcher so failures stay inspectable

Usage:
    from notifications.models import SideEffect, SideEffectKind

    SideEffect.objects.filter(
        kind=SideEffectKind.LEDGER_REFUND_ENTRY,
        status=SideEffectStatus.FAILED,
    )
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


# =============================================================================
# Enums
# =============================================================================


class SideEffectKind(models.TextChoices):
    """What a side effect does once dispatched."""

    ISSUE_MESSAGE_EMAIL = "issue_message_email", "Issue message email"
    REFUND_CONFIRMATION_EMAIL = "refund_confirmation_email", "Refund confirmation email"
    REPRINT_CONFIRMATION_EMAIL = "reprint_confirmation_email", "Reprint confirmation email"
    CANCELLATION_EMAIL = "cancellation_email", "Cancellation email"
    LEDGER_REFUND_ENTRY = "ledger_refund_entry", "Ledger refund entry"
    LEDGER_REPRINT_EXPENSE = "ledger_reprint_expense", "Ledger reprint expense"
    AUDIT = "audit", "Audit record"


class SideEffectStatus(models.TextChoices):
    """
    Delivery status of a side effect.

    State Flow:
        PENDING -> DELIVERED (handler succeeded)
        PENDING -> FAILED (attempts exhausted)
    """

    PENDING = "PENDING", "Pending"
    DELIVERED = "DELIVERED", "Delivered"
    FAILED = "FAILED", "Failed"


# =============================================================================
# Models
# =============================================================================


class SideEffect(UUIDPrimaryKeyMixin, BaseModel):
    """
    One pending or completed post-commit action.

    Fields:
        kind: Handler to route to
        payload: JSON arguments for the handler
        status: PENDING, DELIVERED or FAILED
        attempt_count: Number of failed delivery attempts so far
        last_error: Message of the most recent failure
        delivered_at: When the handler succeeded
        next_attempt_at: Earliest time the sweep may re-dispatch the row
    """

    kind = models.CharField(
        max_length=40,
        choices=SideEffectKind.choices,
        db_index=True,
        help_text="Handler the payload is routed to",
    )
    payload = models.JSONField(
        default=dict,
        blank=True,
        help_text="Handler arguments (JSON-serializable values only)",
    )
    status = models.CharField(
        max_length=20,
        choices=SideEffectStatus.choices,
        default=SideEffectStatus.PENDING,
        db_index=True,
        help_text="Current delivery status",
    )

    attempt_count = models.PositiveIntegerField(
        default=0,
        help_text="Number of failed delivery attempts",
    )
    last_error = models.TextField(
        blank=True,
        default="",
        help_text="Most recent failure message",
    )
    delivered_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the handler completed successfully",
    )
    next_attempt_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Earliest time the row may be re-dispatched",
    )

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(
                fields=["status", "created_at"],
                name="side_effect_status_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"SideEffect({self.kind}, {self.status})"
