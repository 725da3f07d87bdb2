"""
Ledger models for bookkeeping of sales, refunds and reprint costs.

Every money movement the shop makes produces one LedgerEntry:

- INCOME / sales: an order was paid (positive gross)
- INCOME / refund: money went back to the customer (negative gross)
- EXPENSE / reprint: a free replacement order was produced

Entries are immutable apart from their status: when an order is fully
refunded its original sales entry is marked REVERSED rather than edited.

Usage:
    from payments.ledger.models import LedgerEntry, EntryType, LedgerCategory

    refunds = LedgerEntry.objects.filter(category=LedgerCategory.REFUND)
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


class EntryType(models.TextChoices):
    """
    Direction of a ledger entry.

    Values:
        INCOME: Money received (or returned, as a negative amount)
        EXPENSE: Cost incurred by the business
    """

    INCOME = "INCOME", "Income"
    EXPENSE = "EXPENSE", "Expense"


class LedgerCategory(models.TextChoices):
    SALES = "sales", "Product Sales"
    REFUND = "refund", "Refund"
    REPRINT = "reprint", "Reprint"


class EntryStatus(models.TextChoices):
    CONFIRMED = "CONFIRMED", "Confirmed"
    REVERSED = "REVERSED", "Reversed"


ENTRY_NUMBER_PREFIXES = {
    EntryType.INCOME: "INC",
    EntryType.EXPENSE: "EXP",
}


class LedgerEntry(UUIDPrimaryKeyMixin, BaseModel):
    """
    A single bookkeeping record.

    Fields:
        entry_number: Human-readable number, INC-YYYYMMDD-XXXX / EXP-YYYYMMDD-XXXX
        entry_type: INCOME or EXPENSE
        category: sales, refund or reprint
        order: The order the money relates to
        related_order: Second order involved (the reprint, for reprint costs)
        gross_amount: VAT-inclusive amount in pounds (negative for refunds)
        vat_amount: VAT portion of gross_amount (gross / 6 at 20%)
        tax_year: UK tax year the entry falls in, e.g. "2024-25"
        status: CONFIRMED or REVERSED
        idempotency_key: Unique key to prevent duplicate entries

    Constraints:
        - entry_number must be unique
        - idempotency_key must be unique

    Example:
        entry = LedgerEntry.objects.create(
            entry_number="INC-20240601-0001",
            entry_type=EntryType.INCOME,
            category=LedgerCategory.REFUND,
            order=order,
            gross_amount=Decimal("-25.00"),
            vat_amount=Decimal("-4.17"),
            tax_year="2024-25",
            idempotency_key="ledger_refund:issue_<id>",
        )
    """

    entry_number = models.CharField(
        max_length=20,
        unique=True,
        help_text="Human-readable entry number",
    )
    entry_type = models.CharField(
        max_length=10,
        choices=EntryType.choices,
        help_text="Income or expense",
    )
    category = models.CharField(
        max_length=20,
        choices=LedgerCategory.choices,
        db_index=True,
        help_text="What the money was for",
    )

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="ledger_entries",
        help_text="Order this entry relates to",
    )
    related_order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
        help_text="Second order involved (e.g. the reprint order)",
    )

    description = models.TextField(
        blank=True,
        default="",
        help_text="Human-readable description of this entry",
    )
    gross_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="VAT-inclusive amount (negative for refunds)",
    )
    vat_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="VAT included in gross_amount",
    )
    currency = models.CharField(
        max_length=3,
        default="gbp",
        help_text="ISO 4217 currency code",
    )
    tax_year = models.CharField(
        max_length=7,
        db_index=True,
        help_text="UK tax year, e.g. 2024-25",
    )
    status = models.CharField(
        max_length=10,
        choices=EntryStatus.choices,
        default=EntryStatus.CONFIRMED,
        help_text="Whether the entry still stands",
    )
    notes = models.TextField(blank=True, default="")

    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Unique key to prevent duplicate entries",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "Ledger entries"
        indexes = [
            models.Index(fields=["order", "category"], name="ledger_order_category_idx"),
            models.Index(fields=["entry_type", "tax_year"], name="ledger_type_tax_year_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.entry_number}: {self.gross_amount} {self.currency.upper()}"
