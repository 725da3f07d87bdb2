"""
Project-wide pytest fixtures.

Users, API clients, a reportable order and the in-memory Stripe gateway
are shared by every app; app-specific fixtures live in each app's
tests/conftest.py.

Outbox rows are not dispatched during tests: pytest-django wraps each
test in a transaction, so SideEffectService.enqueue()'s on_commit hook
never fires. Tests that care about a side effect assert on the PENDING
row, or deliver it explicitly with SideEffectService.deliver().
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from orders.models import OrderStatus
from orders.tests.factories import AdminUserFactory, OrderFactory, OrderItemFactory, UserFactory
from payments.services import PaymentReferenceResolver, RefundExecutor
from payments.tests.factories import PaymentFactory
from payments.tests.stripe_fakes import FakeStripeGateway


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_models.py, test_references.py, test_stripe_adapter.py -> unit
    - everything else -> integration (most tests hit the database)

    Explicit markers on test functions/classes take precedence.
    """
    unit_patterns = [
        "test_models.py",
        "test_references.py",
        "test_stripe_adapter.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration"}:
            continue

        filename = str(item.fspath).split("/")[-1]
        if any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


def _patch_postgresql_flush_for_cascade():
    """
    Patch PostgreSQL flush to always use CASCADE.

    TransactionTestCase flushes with TRUNCATE, which fails on tables
    referenced by foreign keys unless CASCADE is used.
    """
    from django.db.backends.postgresql import operations

    original_sql_flush = operations.DatabaseOperations.sql_flush

    def sql_flush_with_cascade(
        self, style, tables, *, reset_sequences=False, allow_cascade=False
    ):
        return original_sql_flush(
            self, style, tables, reset_sequences=reset_sequences, allow_cascade=True
        )

    operations.DatabaseOperations.sql_flush = sql_flush_with_cascade


_patch_postgresql_flush_for_cascade()


# =============================================================================
# Users and Clients
# =============================================================================


@pytest.fixture
def customer(db):
    return UserFactory()


@pytest.fixture
def other_customer(db):
    return UserFactory()


@pytest.fixture
def admin_user(db):
    """Staff user; staff act as admins for review and processing."""
    return AdminUserFactory()


def _jwt_client(user) -> APIClient:
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def customer_client(customer):
    return _jwt_client(customer)


@pytest.fixture
def other_customer_client(other_customer):
    return _jwt_client(other_customer)


@pytest.fixture
def admin_client(admin_user):
    return _jwt_client(admin_user)


# =============================================================================
# Orders
# =============================================================================


@pytest.fixture
def delivered_order(customer):
    """Delivered £25.00 order with a COMPLETED PaymentIntent payment."""
    order = OrderFactory(customer=customer, status=OrderStatus.DELIVERED)
    PaymentFactory(order=order)
    return order


@pytest.fixture
def order_item(delivered_order):
    return OrderItemFactory(order=delivered_order)


# =============================================================================
# Stripe
# =============================================================================


@pytest.fixture
def stripe_gateway():
    """
    Route every Stripe call made by the refund path to an in-memory fake.
    """
    gateway = FakeStripeGateway()
    RefundExecutor.set_stripe_adapter(gateway)
    PaymentReferenceResolver.set_stripe_adapter(gateway)
    yield gateway
    RefundExecutor.set_stripe_adapter(None)
    PaymentReferenceResolver.set_stripe_adapter(None)
