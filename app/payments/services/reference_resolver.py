"""
Payment reference resolution and reconciliation.

Stripe webhooks are not always delivered, so a local Payment can keep a
Checkout Session ID (and a PENDING status) long after Stripe has captured
the money. Before any refund, the stored reference is resolved live against
Stripe into the PaymentIntent ID that refunds must target, and the local
record is repaired when it has drifted.

Usage:
    from payments.services import PaymentReferenceResolver

    resolved = PaymentReferenceResolver.resolve(payment.stripe_reference)
    if resolved.charge_id is None:
        return ServiceResult.failure(f"Cannot process refund: {resolved.error}")

    PaymentReferenceResolver.reconcile(payment, resolved)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.utils import timezone

from core.services import BaseService

from payments.adapters import StripeAdapter
from payments.exceptions import PaymentReferenceError, StripeError
from payments.references import PaymentReference, ReferenceKind
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    from payments.models import Payment


@dataclass
class ResolvedPayment:
    """
    Outcome of resolving a stored reference.

    Attributes:
        charge_id: PaymentIntent ID to refund against, None when unresolved
        is_paid: Whether Stripe reports the payment as captured
        error: Why resolution failed (None on success)
        healed_from_session: True when the stored value was a session ID
    """

    charge_id: str | None
    is_paid: bool = False
    error: str | None = None
    healed_from_session: bool = False

    @property
    def resolved(self) -> bool:
        return self.charge_id is not None


class PaymentReferenceResolver(BaseService):
    """
    Resolves stored Stripe references into PaymentIntent IDs.

    resolve() never raises for gateway problems: an unresolvable reference
    is reported through ``ResolvedPayment.error`` and callers must treat it
    as terminal for the refund attempt.
    """

    # Stripe adapter - can be injected for testing
    _stripe_adapter: type | None = None

    @classmethod
    def get_stripe_adapter(cls) -> type:
        return cls._stripe_adapter or StripeAdapter

    @classmethod
    def set_stripe_adapter(cls, adapter: type | None) -> None:
        cls._stripe_adapter = adapter

    @classmethod
    def resolve(cls, raw: str | None) -> ResolvedPayment:
        """
        Resolve a raw stored reference against Stripe.

        - pi_...: retrieve the PaymentIntent; paid iff status is "succeeded"
        - cs_...: retrieve the Checkout Session; paid iff payment_status is
          "paid"; the charge is the session's linked PaymentIntent
        - anything else, or a failed lookup: charge_id is None
        """
        logger = cls.get_logger()

        try:
            reference = PaymentReference.parse(raw)
        except PaymentReferenceError as e:
            logger.warning(
                "Unparseable payment reference",
                extra={"reference": (raw or "")[:15]},
            )
            return ResolvedPayment(charge_id=None, error=e.message)

        adapter = cls.get_stripe_adapter()

        try:
            if reference.kind == ReferenceKind.CHARGE:
                intent = adapter.retrieve_payment_intent(reference.value)
                return ResolvedPayment(charge_id=intent.id, is_paid=intent.is_paid)

            session = adapter.retrieve_checkout_session(reference.value)
        except StripeError as e:
            logger.warning(
                "Payment reference lookup failed",
                extra={"reference": reference.value, "error": e.message},
            )
            return ResolvedPayment(charge_id=None, error=e.message)

        if not session.payment_intent_id:
            return ResolvedPayment(
                charge_id=None,
                error="Checkout session has no payment intent",
            )

        logger.info(
            "Resolved checkout session to payment intent",
            extra={
                "session_id": reference.value,
                "payment_intent_id": session.payment_intent_id,
                "is_paid": session.is_paid,
            },
        )
        return ResolvedPayment(
            charge_id=session.payment_intent_id,
            is_paid=session.is_paid,
            healed_from_session=True,
        )

    @classmethod
    def reconcile(cls, payment: Payment, resolved: ResolvedPayment) -> bool:
        """
        Repair a Payment whose stored reference was a Checkout Session.

        Writes the resolved PaymentIntent ID and, when needed, moves the
        payment to COMPLETED with ``paid_at`` set. Must be called inside the
        caller's transaction with ``payment`` locked. Returns whether the row
        was updated.
        """
        if not (resolved.healed_from_session and resolved.charge_id and resolved.is_paid):
            return False

        update_fields = ["stripe_reference", "paid_at", "updated_at"]
        if payment.status == PaymentStatus.COMPLETED:
            payment.stripe_reference = resolved.charge_id
            if payment.paid_at is None:
                payment.paid_at = timezone.now()
        else:
            payment.mark_completed(stripe_reference=resolved.charge_id)
            update_fields.append("status")

        payment.save(update_fields=update_fields)

        cls.get_logger().info(
            "Payment reconciled from checkout session",
            extra={
                "payment_id": str(payment.id),
                "payment_intent_id": resolved.charge_id,
            },
        )
        return True
