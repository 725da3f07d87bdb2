"""
Payment adapters for external services.

All payment gateway calls go through these adapters to ensure
consistent error handling, timeouts, idempotency, and observability.

Usage:
    from payments.adapters import IdempotencyKeyGenerator, StripeAdapter

    result = StripeAdapter.create_refund(
        payment_intent_id="pi_xxx",
        idempotency_key=IdempotencyKeyGenerator.for_case("refund", order.id),
    )
"""

from payments.adapters.stripe_adapter import (
    CheckoutSessionResult,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    RefundResult,
    StripeAdapter,
    is_retryable_stripe_error,
)

__all__ = [
    "CheckoutSessionResult",
    "IdempotencyKeyGenerator",
    "PaymentIntentResult",
    "RefundResult",
    "StripeAdapter",
    "is_retryable_stripe_error",
]
