"""
Data types for ledger operations.

Types:
    RecordEntryParams: Parameters for recording a ledger entry

Usage:
    from payments.ledger.types import RecordEntryParams

    params = RecordEntryParams(
        entry_type=EntryType.INCOME,
        category=LedgerCategory.REFUND,
        order_id=order.id,
        gross_amount=Decimal("-25.00"),
        idempotency_key="ledger_refund:issue_<id>",
    )
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal


@dataclass
class RecordEntryParams:
    """
    Parameters for recording a ledger entry.

    Required Attributes:
        entry_type: INCOME or EXPENSE
        category: sales, refund or reprint
        order_id: UUID of the order the money relates to
        gross_amount: VAT-inclusive amount in pounds (negative for refunds)
        idempotency_key: Unique key to prevent duplicate entries

    Optional Attributes:
        related_order_id: UUID of a second order (the reprint)
        description: Human-readable description
        notes: Free-form notes
    """

    # Required fields
    entry_type: str
    category: str
    order_id: uuid.UUID
    gross_amount: Decimal
    idempotency_key: str

    # Optional fields
    related_order_id: uuid.UUID | None = None
    description: str = ""
    notes: str = ""

    def __post_init__(self) -> None:
        """Validate params after initialization."""
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        self.gross_amount = Decimal(self.gross_amount)
