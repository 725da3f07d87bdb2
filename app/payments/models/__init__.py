"""
Payment domain models.

- Payment: the customer's payment for one order, and its refund state
- LedgerEntry: re-exported from the ledger submodule so Django's
  migration system can discover it
"""

from payments.ledger.models import LedgerEntry
from payments.models.payment import Payment

__all__ = [
    "LedgerEntry",
    "Payment",
]
