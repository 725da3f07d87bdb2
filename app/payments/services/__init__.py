"""
Payment services.

This module provides:
- PaymentReferenceResolver: Turns stored Stripe references into PaymentIntent IDs
- RefundEligibility: Refund preconditions
- RefundExecutor: Issues Stripe refunds

Usage:
    from payments.services import PaymentReferenceResolver, RefundExecutor

    resolved = PaymentReferenceResolver.resolve(payment.stripe_reference)
    outcome = RefundExecutor.refund(resolved.charge_id, idempotency_key)
"""

from payments.services.reference_resolver import (
    PaymentReferenceResolver,
    ResolvedPayment,
)
from payments.services.refund_service import (
    DEFAULT_REFUND_REASON,
    RefundEligibility,
    RefundExecutor,
    RefundOutcome,
    from_minor_units,
    reconcile_pending_payment,
    resolve_refundable_charge,
    resolve_refund_amount,
    to_minor_units,
)

__all__ = [
    "DEFAULT_REFUND_REASON",
    "PaymentReferenceResolver",
    "RefundEligibility",
    "RefundExecutor",
    "RefundOutcome",
    "ResolvedPayment",
    "from_minor_units",
    "reconcile_pending_payment",
    "resolve_refundable_charge",
    "resolve_refund_amount",
    "to_minor_units",
]
