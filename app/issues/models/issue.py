"""
Issue and IssueMessage models.

An Issue is a customer-reported problem with exactly one OrderItem. Its
status is a django-fsm state machine (see issues.state_machines); every
status change goes through a transition method so the legal moves live
in one place.

Usage:
    from issues.models import Issue

    issue = Issue.objects.create(
        order_item=item,
        customer=item.order.customer,
        reason=IssueReason.DAMAGED_IN_TRANSIT,
    )
    issue.submit_for_review()
    issue.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from issues.state_machines import (
    PROCESSABLE_STATUSES,
    REVIEWABLE_STATUSES,
    CarrierFault,
    ClaimStatus,
    IssueReason,
    IssueStatus,
    MessageSender,
    ResolutionType,
)


def _can_appeal(issue: Issue) -> bool:
    return not issue.is_concluded and not issue.rejection_final


class Issue(UUIDPrimaryKeyMixin, BaseModel):
    """
    Customer-reported problem with one order item.

    State Flow:
        SUBMITTED -> AWAITING_REVIEW <-> INFO_REQUESTED
        review -> APPROVED_REPRINT | APPROVED_REFUND | REJECTED
        APPROVED_* -> PROCESSING -> COMPLETED
        PROCESSING -> APPROVED_REFUND (failed refund)

    Fields:
        order_item: The item the issue is about (one issue per item)
        original_issue: Earlier issue whose reprint this item came from
        carrier_fault: CARRIER_FAULT when the reason implicates the carrier
        claim_*: Insurance claim against the carrier
        resolved_type/refund_amount/stripe_refund_id/reprint_order: Outcome
        is_concluded: Single terminal marker read by reporting and
            notification suppression; set on every completion
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    order_item = models.OneToOneField(
        "orders.OrderItem",
        on_delete=models.PROTECT,
        related_name="issue",
        help_text="Item this issue is about",
    )
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="issues",
        help_text="Customer who reported the issue",
    )
    original_issue = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="follow_up_issues",
        help_text="Issue that produced the reprint this item belongs to",
    )

    # ==========================================================================
    # Report
    # ==========================================================================

    reason = models.CharField(max_length=30, choices=IssueReason.choices)
    notes = models.TextField(blank=True, default="")
    image_urls = models.JSONField(default=list, blank=True)

    status = FSMField(
        max_length=30,
        default=IssueStatus.SUBMITTED,
        choices=IssueStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the issue (managed by FSM)",
    )

    # ==========================================================================
    # Carrier Claim
    # ==========================================================================

    carrier_fault = models.CharField(
        max_length=20,
        choices=CarrierFault.choices,
        default=CarrierFault.UNKNOWN,
        db_index=True,
    )
    claim_reference = models.CharField(max_length=100, blank=True, default="")
    claim_status = models.CharField(
        max_length=20,
        choices=ClaimStatus.choices,
        default=ClaimStatus.NOT_FILED,
    )
    claim_submitted_at = models.DateTimeField(null=True, blank=True)
    claim_payout_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )
    claim_paid_at = models.DateTimeField(null=True, blank=True)
    claim_notes = models.TextField(blank=True, default="")

    # ==========================================================================
    # Review
    # ==========================================================================

    reviewed_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, default="")
    rejection_final = models.BooleanField(default=False)

    # ==========================================================================
    # Outcome
    # ==========================================================================

    resolved_type = models.CharField(
        max_length=20,
        choices=ResolutionType.choices,
        blank=True,
        default="",
    )
    refund_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )
    stripe_refund_id = models.CharField(max_length=255, blank=True, default="")
    reprint_order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Replacement order created for a reprint resolution",
    )
    processing_started_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the current processing attempt started",
    )
    processed_at = models.DateTimeField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)

    is_concluded = models.BooleanField(default=False, db_index=True)
    concluded_at = models.DateTimeField(null=True, blank=True)
    concluded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    conclusion_reason = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "carrier_fault"], name="issue_status_carrier_idx"),
        ]

    def __str__(self) -> str:
        return f"Issue({self.id}, {self.reason}, {self.status})"

    @property
    def order(self):
        return self.order_item.order

    def conclude(self, by=None, reason: str = "") -> None:
        """Set the terminal concluded marker (not a status transition)."""
        self.is_concluded = True
        self.concluded_at = timezone.now()
        self.concluded_by = by
        self.conclusion_reason = reason

    def reopen(self) -> None:
        self.is_concluded = False
        self.concluded_at = None
        self.concluded_by = None
        self.conclusion_reason = ""

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=IssueStatus.SUBMITTED,
        target=IssueStatus.AWAITING_REVIEW,
    )
    def submit_for_review(self):
        pass

    @transition(
        field=status,
        source=REVIEWABLE_STATUSES,
        target=IssueStatus.INFO_REQUESTED,
    )
    def request_info(self):
        self.reviewed_at = timezone.now()

    @transition(
        field=status,
        source=IssueStatus.INFO_REQUESTED,
        target=IssueStatus.AWAITING_REVIEW,
    )
    def receive_customer_reply(self):
        """Transition: INFO_REQUESTED -> AWAITING_REVIEW (customer answered)."""
        pass

    @transition(
        field=status,
        source=REVIEWABLE_STATUSES,
        target=IssueStatus.APPROVED_REPRINT,
    )
    def approve_reprint(self):
        self.reviewed_at = timezone.now()
        self.resolved_type = ResolutionType.REPRINT

    @transition(
        field=status,
        source=REVIEWABLE_STATUSES,
        target=IssueStatus.APPROVED_REFUND,
    )
    def approve_refund(self):
        """
        Transition: AWAITING_REVIEW/INFO_REQUESTED -> APPROVED_REFUND

        Defaults to a full refund; the admin picks full or partial when
        processing.
        """
        self.reviewed_at = timezone.now()
        self.resolved_type = ResolutionType.FULL_REFUND

    @transition(
        field=status,
        source=REVIEWABLE_STATUSES,
        target=IssueStatus.REJECTED,
    )
    def reject(self, reason: str, final: bool = False):
        self.reviewed_at = timezone.now()
        self.rejection_reason = reason
        self.rejection_final = final

    @transition(
        field=status,
        source=IssueStatus.REJECTED,
        target=IssueStatus.AWAITING_REVIEW,
        conditions=[_can_appeal],
    )
    def appeal(self):
        self.reviewed_at = None

    @transition(
        field=status,
        source=PROCESSABLE_STATUSES,
        target=IssueStatus.PROCESSING,
    )
    def begin_processing(self):
        self.processing_started_at = timezone.now()

    @transition(
        field=status,
        source=IssueStatus.PROCESSING,
        target=IssueStatus.COMPLETED,
    )
    def complete_reprint(self, reprint_order, by=None):
        self.resolved_type = ResolutionType.REPRINT
        self.reprint_order = reprint_order
        self.processed_at = timezone.now()
        self.conclude(by=by)

    @transition(
        field=status,
        source=IssueStatus.PROCESSING,
        target=IssueStatus.COMPLETED,
    )
    def complete_refund(self, resolution_type: str, refund_id: str, amount, by=None):
        self.resolved_type = resolution_type
        self.stripe_refund_id = refund_id
        self.refund_amount = amount
        self.processed_at = timezone.now()
        self.conclude(by=by)

    @transition(
        field=status,
        source=IssueStatus.PROCESSING,
        target=IssueStatus.APPROVED_REFUND,
    )
    def fail_refund(self):
        """Transition: PROCESSING -> APPROVED_REFUND (retryable)."""
        self.processing_started_at = None

    @transition(
        field=status,
        source=IssueStatus.INFO_REQUESTED,
        target=IssueStatus.CLOSED,
    )
    def close(self):
        self.closed_at = timezone.now()


class IssueMessage(UUIDPrimaryKeyMixin, BaseModel):
    """
    One message in an issue thread.

    The thread doubles as the issue's customer-visible timeline: status
    changes append ADMIN messages with no ``sender`` user (system notes).

    Fields:
        sender_type: CUSTOMER or ADMIN
        read_at: When the counterpart first fetched the thread after it
        email_sent/email_sent_at: Set once the customer was emailed
    """

    issue = models.ForeignKey(
        Issue,
        on_delete=models.CASCADE,
        related_name="messages",
    )
    sender_type = models.CharField(max_length=10, choices=MessageSender.choices)
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    content = models.TextField(blank=True, default="")
    image_urls = models.JSONField(default=list, blank=True)

    read_at = models.DateTimeField(null=True, blank=True)
    email_sent = models.BooleanField(default=False)
    email_sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"IssueMessage({self.sender_type}, {self.content[:30]!r})"
