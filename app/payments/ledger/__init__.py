"""
Ledger - bookkeeping for sales, refunds and reprint costs.

Public API:
    Models:
        LedgerEntry - One bookkeeping record
        EntryType - INCOME / EXPENSE
        LedgerCategory - sales / refund / reprint
        EntryStatus - CONFIRMED / REVERSED

    Service:
        LedgerService - Class with all ledger operations

    Types:
        RecordEntryParams - Parameters for recording entries

    Exceptions:
        LedgerError - Base exception for ledger operations
        LedgerOrderNotFound - Order lookup failures
        InvalidLedgerAmount - Amount validation failures

Usage:
    from payments.ledger import LedgerService

    LedgerService.create_refund_entry(
        order_id=order.id,
        amount=Decimal("25.00"),
        memo="Cancellation approved",
        idempotency_key=f"ledger_refund:cancel_request_{order.id}",
    )
"""

from .exceptions import InvalidLedgerAmount, LedgerError, LedgerOrderNotFound
from .models import EntryStatus, EntryType, LedgerCategory, LedgerEntry
from .services import LedgerService, tax_year_for, vat_included
from .types import RecordEntryParams

__all__ = [
    # Models
    "LedgerEntry",
    "EntryType",
    "LedgerCategory",
    "EntryStatus",
    # Service
    "LedgerService",
    "tax_year_for",
    "vat_included",
    # Types
    "RecordEntryParams",
    # Exceptions
    "LedgerError",
    "LedgerOrderNotFound",
    "InvalidLedgerAmount",
]
