"""
Payment model.

A Payment is the money side of a non-reprint Order: one row per paying
order, holding the Stripe reference the customer paid through. Reprint
orders never own a Payment; refunds on them are charged back against the
paying original order.

Usage:
    from payments.models import Payment
    from payments.state_machines import PaymentStatus

    payment = Payment.objects.create(
        order=order,
        amount=Decimal("25.00"),
        stripe_reference="cs_test_abc",
    )

    payment.mark_completed()
    payment.save()
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentStatus


def _not_yet_refunded(payment: Payment) -> bool:
    return payment.refunded_at is None


class Payment(UUIDPrimaryKeyMixin, BaseModel):
    """
    Customer payment for a single order.

    State Flow:
        PENDING -> COMPLETED -> REFUNDED
        PENDING -> FAILED

    Fields:
        order: The paying order (1:1)
        amount: Amount charged, in major currency units
        currency: ISO 4217 currency code (lowercase)
        stripe_reference: Stripe checkout session (cs_) or payment intent (pi_)
        status: Current FSM state
        paid_at: When the gateway confirmed payment
        refunded_at: When the full refund went through (set exactly once)
        stripe_refund_id: Stripe refund ID (re_xxx) of the full refund

    Note:
        stripe_reference starts life as a checkout session ID and is
        replaced by the payment intent ID once known (webhook or the
        reconciliation done on the refund path).
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="payment",
        help_text="Order this payment pays for",
    )

    # ==========================================================================
    # Amount & Currency
    # ==========================================================================

    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Amount charged in major currency units",
    )

    currency = models.CharField(
        max_length=3,
        default="gbp",
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    stripe_reference = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Stripe checkout session (cs_xxx) or PaymentIntent (pi_xxx) ID",
    )

    stripe_refund_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Stripe Refund ID (re_xxx) of the full refund",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the payment (managed by FSM)",
    )

    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the gateway confirmed payment",
    )

    refunded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the full refund was processed",
    )

    failure_reason = models.TextField(
        blank=True,
        default="",
        help_text="Reason if payment failed",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name="payment_amount_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment({self.id}, {self.status}, {self.amount} {self.currency.upper()})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=[PaymentStatus.PENDING, PaymentStatus.FAILED],
        target=PaymentStatus.COMPLETED,
    )
    def mark_completed(self, stripe_reference: str | None = None):
        """
        Mark the payment as paid.

        Transition: PENDING/FAILED -> COMPLETED

        Called from the checkout webhook, or when the refund path finds the
        gateway already reports the session as paid. ``paid_at`` keeps its
        first value.
        """
        if stripe_reference:
            self.stripe_reference = stripe_reference
        if self.paid_at is None:
            self.paid_at = timezone.now()

    @transition(
        field=status,
        source=PaymentStatus.COMPLETED,
        target=PaymentStatus.REFUNDED,
        conditions=[_not_yet_refunded],
    )
    def mark_refunded(self, refund_id: str = ""):
        """
        Record a full refund.

        Transition: COMPLETED -> REFUNDED

        Guarded so that ``refunded_at`` can only ever be written once.
        """
        self.refunded_at = timezone.now()
        self.stripe_refund_id = refund_id

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.FAILED,
    )
    def mark_failed(self, reason: str = ""):
        self.failure_reason = reason
