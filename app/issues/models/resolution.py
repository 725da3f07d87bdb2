"""
Order-level Resolution model.

A Resolution is the order-scoped counterpart of an Issue: an admin
decides to reprint or refund a whole order without a customer report.
Processing goes through the same CaseProcessor as issues (see
issues.cases).

Usage:
    from issues.models import Resolution

    resolution = Resolution.objects.create(
        order=order,
        type=ResolutionKind.REFUND,
        reason="Print faded",
        created_by=admin,
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from issues.state_machines import ResolutionKind, ResolutionStatus


class Resolution(UUIDPrimaryKeyMixin, BaseModel):
    """
    Admin-initiated reprint or refund of an entire order.

    State Flow:
        PENDING -> PROCESSING -> COMPLETED
        PROCESSING -> FAILED (refund failed; retryable)
        FAILED -> PROCESSING (retry)
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="resolutions",
    )
    type = models.CharField(max_length=10, choices=ResolutionKind.choices)
    status = FSMField(
        max_length=20,
        default=ResolutionStatus.PENDING,
        choices=ResolutionStatus.choices,
        db_index=True,
        protected=True,
    )

    reason = models.TextField(blank=True, default="")
    notes = models.TextField(blank=True, default="")
    direct_refund = models.BooleanField(
        default=False,
        help_text="Admin full refund of the order (refund keyed by order, not resolution)",
    )

    reprint_order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    refund_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Requested amount; replaced by the amount actually refunded",
    )
    stripe_refund_id = models.CharField(max_length=255, blank=True, default="")
    failure_reason = models.TextField(blank=True, default="")

    processing_started_at = models.DateTimeField(null=True, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Resolution({self.id}, {self.type}, {self.status})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=[ResolutionStatus.PENDING, ResolutionStatus.FAILED],
        target=ResolutionStatus.PROCESSING,
    )
    def begin_processing(self):
        self.processing_started_at = timezone.now()
        self.failure_reason = ""

    @transition(
        field=status,
        source=ResolutionStatus.PROCESSING,
        target=ResolutionStatus.COMPLETED,
    )
    def complete_reprint(self, reprint_order):
        self.reprint_order = reprint_order
        self.processed_at = timezone.now()

    @transition(
        field=status,
        source=ResolutionStatus.PROCESSING,
        target=ResolutionStatus.COMPLETED,
    )
    def complete_refund(self, refund_id: str, amount):
        self.stripe_refund_id = refund_id
        self.refund_amount = amount
        self.processed_at = timezone.now()

    @transition(
        field=status,
        source=ResolutionStatus.PROCESSING,
        target=ResolutionStatus.FAILED,
    )
    def fail(self, reason: str = ""):
        self.failure_reason = reason
        self.processing_started_at = None
