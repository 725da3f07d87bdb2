"""
Audit trail models.

Usage:
    from audit.models import AuditAction, AuditLogEntry

    AuditLogEntry.objects.filter(
        action=AuditAction.ORDER_REFUNDED,
        entity_id=str(order.id),
    )
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin


class AuditAction(models.TextChoices):
    ISSUE_REPORTED = "ISSUE_REPORTED", "Issue reported"
    ISSUE_RESOLVED = "ISSUE_RESOLVED", "Issue resolved"
    REPRINT_CREATED = "REPRINT_CREATED", "Reprint created"
    ORDER_REFUNDED = "ORDER_REFUNDED", "Order refunded"
    CANCELLATION_APPROVED = "CANCELLATION_APPROVED", "Cancellation approved"
    CANCELLATION_REJECTED = "CANCELLATION_REJECTED", "Cancellation rejected"
    ORDER_CANCELLED = "ORDER_CANCELLED", "Order cancelled"


class ActorType(models.TextChoices):
    ADMIN = "ADMIN", "Admin"
    CUSTOMER = "CUSTOMER", "Customer"
    SYSTEM = "SYSTEM", "System"


class AuditLogEntry(UUIDPrimaryKeyMixin, models.Model):
    """
    One audited action.

    Entries are append-only: there is no updated_at and nothing in the
    codebase modifies or deletes them. The actor is stored as plain values
    rather than a foreign key so the record survives user deletion.

    Fields:
        action: What happened
        entity_type/entity_id: What it happened to ("issue", "order", ...)
        actor_id/actor_email/actor_type: Who did it
        details: Event-specific payload (amounts, refund ids, notes)
    """

    action = models.CharField(
        max_length=40,
        choices=AuditAction.choices,
        db_index=True,
    )
    entity_type = models.CharField(max_length=40)
    entity_id = models.CharField(max_length=64)

    actor_id = models.CharField(max_length=64, blank=True, default="")
    actor_email = models.EmailField(blank=True, default="")
    actor_type = models.CharField(
        max_length=10,
        choices=ActorType.choices,
        default=ActorType.SYSTEM,
    )

    details = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "Audit log entries"
        indexes = [
            models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.action} {self.entity_type}:{self.entity_id}"
