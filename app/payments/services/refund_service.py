"""
Refund execution against Stripe.

This module holds the money-moving primitives the resolution flows build on:

- RefundEligibility: preconditions checked before Stripe is contacted
- resolve_refund_amount: how much a full or partial refund is worth
- RefundExecutor: issues the Stripe refund and reports the outcome

RefundExecutor never touches the database and must be called outside any
open transaction so that no row locks are held across the network call.
Persisting the outcome is the caller's job (see issues.services.processing).

Usage:
    from payments.services import RefundEligibility, RefundExecutor

    RefundEligibility.check(payment)

    outcome = RefundExecutor.refund(
        charge_id="pi_xxx",
        amount=None,  # full refund
        idempotency_key=IdempotencyKeyGenerator.for_case("issue", issue.id),
    )
    if not outcome.success:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from core.services import BaseService

from payments.adapters import StripeAdapter
from payments.exceptions import PaymentReferenceError, RefundNotAllowedError, StripeError
from payments.references import PaymentReference
from payments.services.reference_resolver import PaymentReferenceResolver
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    from orders.models import Order, OrderItem
    from payments.models import Payment


DEFAULT_REFUND_REASON = "requested_by_customer"

_MINOR_UNIT = Decimal("100")
_PENNY = Decimal("0.01")


def to_minor_units(amount: Decimal) -> int:
    """Convert pounds to pence, rounding half up."""
    return int((Decimal(amount) * _MINOR_UNIT).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount_cents: int) -> Decimal:
    return (Decimal(amount_cents) / _MINOR_UNIT).quantize(_PENNY)


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class RefundOutcome:
    """
    Result of a refund attempt.

    Attributes:
        success: Whether Stripe accepted the refund
        refund_id: Stripe Refund ID (re_xxx) on success
        amount: Amount Stripe refunded, in pounds
        error: Message safe to show the admin on failure
        is_retryable: Whether the same call may succeed later
    """

    success: bool
    refund_id: str | None = None
    amount: Decimal | None = None
    error: str | None = None
    is_retryable: bool = False


# =============================================================================
# Preconditions
# =============================================================================


def _is_session_reference(raw: str) -> bool:
    try:
        return PaymentReference.parse(raw).is_session
    except PaymentReferenceError:
        return False


class RefundEligibility:
    """
    Refund preconditions.

    Every refund path applies the same strict set: the payment exists, has a
    Stripe reference, is COMPLETED and has never been refunded. Failures
    raise RefundNotAllowedError before any Stripe call.
    """

    @staticmethod
    def check(payment: Payment | None, *, allow_unconfirmed_session: bool = False) -> None:
        """
        Raise RefundNotAllowedError unless ``payment`` can be refunded.

        ``allow_unconfirmed_session`` lets a PENDING payment whose reference
        is still a Checkout Session through, so the reference can first be
        resolved and reconciled against Stripe. Callers must run check()
        again, strictly, once reconciliation is done.
        """
        if payment is None:
            raise RefundNotAllowedError(
                "No payment found for this order",
                error_code="PAYMENT_NOT_FOUND",
            )

        if not payment.stripe_reference:
            raise RefundNotAllowedError(
                "No Stripe payment ID found for this order",
                error_code="PAYMENT_REFERENCE_MISSING",
                details={"payment_id": str(payment.id)},
            )

        if payment.refunded_at is not None:
            raise RefundNotAllowedError(
                "This order has already been refunded",
                error_code="ALREADY_REFUNDED",
                details={"payment_id": str(payment.id)},
            )

        if payment.status == PaymentStatus.COMPLETED:
            return

        if (
            allow_unconfirmed_session
            and payment.status == PaymentStatus.PENDING
            and _is_session_reference(payment.stripe_reference)
        ):
            return

        raise RefundNotAllowedError(
            f'Payment status is "{payment.status}". '
            "Refunds can only be processed for completed payments.",
            error_code="PAYMENT_NOT_COMPLETED",
            details={"payment_id": str(payment.id), "status": payment.status},
        )


def resolve_refund_amount(
    paying_order: Order,
    *,
    full: bool,
    item: OrderItem | None = None,
) -> Decimal:
    """
    Work out how much a refund is worth, in pounds.

    Partial refunds are worth the item's own total, falling back to the
    paying order's total (reprint items are priced at zero). Full refunds
    are worth the paying order's captured payment, falling back to its
    total.

    Raises:
        RefundNotAllowedError: The amount is zero or negative
    """
    payment = getattr(paying_order, "payment", None)

    if full:
        amount = (payment.amount if payment else None) or paying_order.total_price
    else:
        amount = (item.total_price if item else None) or paying_order.total_price

    amount = Decimal(amount or 0).quantize(_PENNY)
    if amount <= 0:
        raise RefundNotAllowedError(
            "Cannot process refund: refund amount is 0",
            error_code="REFUND_AMOUNT_ZERO",
            details={"order_id": str(paying_order.id)},
        )
    return amount


def resolve_refundable_charge(payment: Payment | None) -> str:
    """
    Run every pre-refund step on a locked payment and return the charge ID.

    1. Loose eligibility check (a PENDING session payment may still be paid)
    2. Resolve the stored reference against Stripe
    3. Reconcile the payment if it was only known by its session
    4. Strict eligibility check
    5. Require Stripe to report the payment as paid

    Must run inside the caller's transaction with ``payment`` locked so the
    reconciliation commits with it.

    Raises:
        RefundNotAllowedError: Preconditions failed
        PaymentReferenceError: Reference unresolvable or not paid
    """
    RefundEligibility.check(payment, allow_unconfirmed_session=True)

    resolved = PaymentReferenceResolver.resolve(payment.stripe_reference)
    if not resolved.resolved:
        raise PaymentReferenceError(
            f"Cannot process refund: {resolved.error}",
            details={"payment_id": str(payment.id)},
        )

    PaymentReferenceResolver.reconcile(payment, resolved)
    RefundEligibility.check(payment)

    if not resolved.is_paid:
        raise PaymentReferenceError(
            "Cannot process refund: payment has not been completed at the payment provider",
            error_code="PAYMENT_NOT_PAID",
            details={"payment_id": str(payment.id)},
        )

    return resolved.charge_id


def reconcile_pending_payment(payment: Payment | None) -> bool:
    """
    Confirm a PENDING Checkout Session payment against Stripe, best effort.

    Returns whether the payment was moved to COMPLETED. An unpaid,
    abandoned or unreachable session leaves the row as it was. Must run
    inside the caller's transaction with ``payment`` locked.
    """
    if payment is None or payment.status != PaymentStatus.PENDING:
        return False
    if not _is_session_reference(payment.stripe_reference):
        return False

    resolved = PaymentReferenceResolver.resolve(payment.stripe_reference)
    return PaymentReferenceResolver.reconcile(payment, resolved)


# =============================================================================
# Refund Executor
# =============================================================================


class RefundExecutor(BaseService):
    """
    Issues refunds through Stripe.

    Safety Guarantees:
        - Idempotency key prevents duplicate refunds on retry
        - Stripe failures are returned, never raised, so callers always
          get to persist the outcome
        - No database access; safe to call with no transaction open
    """

    # Stripe adapter - can be injected for testing
    _stripe_adapter: type | None = None

    @classmethod
    def get_stripe_adapter(cls) -> type:
        """Get the Stripe adapter class."""
        return cls._stripe_adapter or StripeAdapter

    @classmethod
    def set_stripe_adapter(cls, adapter: type | None) -> None:
        """Set the Stripe adapter class (for testing)."""
        cls._stripe_adapter = adapter

    @classmethod
    def refund(
        cls,
        charge_id: str,
        idempotency_key: str,
        amount: Decimal | None = None,
        reason: str = DEFAULT_REFUND_REASON,
        metadata: dict[str, str] | None = None,
    ) -> RefundOutcome:
        """
        Refund a PaymentIntent.

        Args:
            charge_id: PaymentIntent ID (pi_xxx)
            idempotency_key: Deterministic key for this logical refund
            amount: Pounds to refund, or None to refund the whole charge
            reason: Stripe refund reason
            metadata: Attached to the Stripe refund for traceability

        Returns:
            RefundOutcome; on success ``amount`` is what Stripe refunded
        """
        logger = cls.get_logger()
        reference = PaymentReference.charge(charge_id)
        amount_cents = to_minor_units(amount) if amount is not None else None

        log_context = {
            "payment_intent_id": reference.value,
            "amount_cents": amount_cents,
            "idempotency_key": idempotency_key,
        }

        try:
            result = cls.get_stripe_adapter().create_refund(
                payment_intent_id=reference.value,
                idempotency_key=idempotency_key,
                amount_cents=amount_cents,
                reason=reason,
                metadata=metadata,
            )
        except StripeError as e:
            logger.warning(
                "Refund rejected by Stripe",
                extra={
                    **log_context,
                    "error_code": e.error_code,
                    "is_retryable": e.is_retryable,
                },
            )
            return RefundOutcome(
                success=False,
                error=e.message,
                is_retryable=e.is_retryable,
            )

        if result.status == "failed":
            logger.warning(
                "Stripe refund failed",
                extra={**log_context, "refund_id": result.id},
            )
            return RefundOutcome(
                success=False,
                refund_id=result.id,
                error="Refund was declined by the payment provider",
            )

        logger.info(
            "Refund issued",
            extra={
                **log_context,
                "refund_id": result.id,
                "refund_status": result.status,
            },
        )
        return RefundOutcome(
            success=True,
            refund_id=result.id,
            amount=from_minor_units(result.amount_cents),
        )
