"""
Ledger-specific exceptions.

This module provides a hierarchy of exceptions for ledger operations,
inheriting from the core exception base class for API consistency.

Exception Hierarchy:
    LedgerError (base)
    ├── LedgerOrderNotFound - Referenced order does not exist
    └── InvalidLedgerAmount - Amount has the wrong sign for the entry

Usage:
    from payments.ledger.exceptions import LedgerOrderNotFound

    raise LedgerOrderNotFound(
        f"Order {order_id} not found",
        details={"order_id": str(order_id)},
    )
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError, NotFoundError


class LedgerError(BaseApplicationError):
    """
    Base exception for all ledger operations.

    Ledger writes run as side effects; the dispatcher logs these errors
    and retries, they never reach the caller of the primary operation.
    """

    default_error_code: str = "LEDGER_ERROR"


class LedgerOrderNotFound(LedgerError, NotFoundError):
    default_error_code: str = "LEDGER_ORDER_NOT_FOUND"


class InvalidLedgerAmount(LedgerError):
    """
    Raised when an amount cannot be booked.

    Example:
        if amount <= 0:
            raise InvalidLedgerAmount(
                "Refund amount must be positive",
                details={"amount": str(amount)},
            )
    """

    default_error_code: str = "INVALID_LEDGER_AMOUNT"
