"""
Pytest fixtures for order tests.
"""

import pytest

from orders.models import OrderStatus
from orders.tests.factories import CancellationRequestFactory, OrderFactory
from payments.tests.factories import PaymentFactory


@pytest.fixture
def confirmed_order(customer):
    """Paid order that has not gone to print yet."""
    order = OrderFactory(customer=customer, status=OrderStatus.CONFIRMED)
    PaymentFactory(order=order)
    return order


@pytest.fixture
def pending_request(customer):
    order = OrderFactory(customer=customer, status=OrderStatus.CANCELLATION_REQUESTED)
    PaymentFactory(order=order)
    return CancellationRequestFactory(order=order, previous_status=OrderStatus.CONFIRMED)
