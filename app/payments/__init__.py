"""
Payments app for Stripe integration.

This app handles:
- Payment records for paid orders
- Resolving stored Stripe references (checkout sessions, payment intents)
- Issuing idempotent Stripe refunds
- Bookkeeping entries for sales, refunds and reprints

Related apps:
    - orders: Order the payment belongs to
    - issues: Issue and resolution flows that trigger refunds

Usage:
    from payments.services import RefundEligibility, RefundExecutor

    RefundEligibility.check(order.payment)
    outcome = RefundExecutor.refund(charge_id, idempotency_key)
"""
