"""
Pytest fixtures for payment tests.

Usage:
    def test_refund(completed_payment, stripe_gateway):
        charge_id = resolve_refundable_charge(completed_payment)
        ...
"""

import pytest

from payments.tests.factories import PaymentFactory


@pytest.fixture
def completed_payment(db, delivered_order):
    """The delivered order's captured PaymentIntent payment."""
    return delivered_order.payment


@pytest.fixture
def session_payment(db):
    """A payment still known only by its Checkout Session (webhook missed)."""
    return PaymentFactory(pending_session=True)


@pytest.fixture
def refunded_payment(db):
    return PaymentFactory(refunded=True)
