"""
Pytest fixtures for ledger tests.
"""

from decimal import Decimal

import pytest

from payments.tests.factories import LedgerEntryFactory


@pytest.fixture
def sale_entry(db, delivered_order):
    """The confirmed sales entry booked when the delivered order was paid."""
    return LedgerEntryFactory(
        order=delivered_order,
        gross_amount=delivered_order.total_price,
        vat_amount=Decimal("4.17"),
        idempotency_key=f"ledger_sale:{delivered_order.id}",
    )
