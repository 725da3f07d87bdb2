"""
Ledger service layer for bookkeeping.

All ledger writes should go through this service to ensure consistent
numbering, VAT and tax-year handling, and idempotency.

Usage:
    from payments.ledger.services import LedgerService

    LedgerService.create_refund_entry(
        order_id=order.id,
        amount=Decimal("25.00"),
        memo="Issue refund",
        idempotency_key="ledger_refund:issue_<id>",
    )
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from orders.models import Order

from .exceptions import InvalidLedgerAmount, LedgerOrderNotFound
from .models import (
    ENTRY_NUMBER_PREFIXES,
    EntryStatus,
    EntryType,
    LedgerCategory,
    LedgerEntry,
)
from .types import RecordEntryParams

logger = logging.getLogger(__name__)

_PENNY = Decimal("0.01")


def tax_year_for(day: date) -> str:
    """
    UK tax year containing ``day``.

    Tax years run 6 April to 5 April: 5 April 2025 is in "2024-25",
    6 April 2025 is in "2025-26".
    """
    start = day.year if (day.month, day.day) >= (4, 6) else day.year - 1
    return f"{start}-{(start + 1) % 100:02d}"


def vat_included(gross: Decimal) -> Decimal:
    """VAT portion of a VAT-inclusive amount (gross / 6 at the 20% rate)."""
    denominator = Decimal(getattr(settings, "VAT_FRACTION_DENOMINATOR", 6))
    return (Decimal(gross) / denominator).quantize(_PENNY, rounding=ROUND_HALF_UP)


def _short_id(order_id: uuid.UUID | str) -> str:
    return str(order_id)[:8].upper()


class LedgerService:
    """
    Service class for ledger operations.

    Key features:
    - Idempotency via unique keys (safe to redeliver)
    - Daily sequential entry numbers per entry type
    - VAT and tax year derived at booking time

    All methods are static - no instance state is maintained.
    """

    @staticmethod
    def _next_entry_number(entry_type: str, day: date) -> str:
        prefix = ENTRY_NUMBER_PREFIXES[entry_type]
        stem = f"{prefix}-{day:%Y%m%d}-"
        count = LedgerEntry.objects.filter(entry_number__startswith=stem).count()
        return f"{stem}{count + 1:04d}"

    @staticmethod
    def record_entry(params: RecordEntryParams) -> LedgerEntry:
        """
        Record a single ledger entry.

        Idempotent - safe to call multiple times with the same idempotency_key.
        If an entry with the same key already exists, returns that entry.

        Raises:
            LedgerOrderNotFound: If the order doesn't exist
        """
        existing = LedgerEntry.objects.filter(
            idempotency_key=params.idempotency_key
        ).first()
        if existing:
            logger.info(
                "Ledger entry already recorded",
                extra={
                    "idempotency_key": params.idempotency_key,
                    "entry_number": existing.entry_number,
                },
            )
            return existing

        if not Order.objects.filter(id=params.order_id).exists():
            raise LedgerOrderNotFound(
                f"Order {params.order_id} not found",
                details={"order_id": str(params.order_id)},
            )

        now = timezone.now()
        today = timezone.localdate(now)
        gross = params.gross_amount.quantize(_PENNY)

        with transaction.atomic():
            try:
                # Savepoint so a lost race does not poison the outer transaction
                with transaction.atomic():
                    entry = LedgerEntry.objects.create(
                        entry_number=LedgerService._next_entry_number(
                            params.entry_type, today
                        ),
                        entry_type=params.entry_type,
                        category=params.category,
                        order_id=params.order_id,
                        related_order_id=params.related_order_id,
                        description=params.description,
                        gross_amount=gross,
                        vat_amount=vat_included(gross),
                        currency=getattr(settings, "CURRENCY", "gbp"),
                        tax_year=tax_year_for(today),
                        notes=params.notes,
                        idempotency_key=params.idempotency_key,
                    )
            except IntegrityError:
                # Race condition: another worker booked the same key
                entry = LedgerEntry.objects.get(idempotency_key=params.idempotency_key)

        logger.info(
            "Ledger entry recorded",
            extra={
                "entry_number": entry.entry_number,
                "category": entry.category,
                "order_id": str(params.order_id),
                "gross_amount": str(entry.gross_amount),
            },
        )
        return entry

    @staticmethod
    def create_sale_entry(order_id: uuid.UUID, idempotency_key: str | None = None) -> LedgerEntry:
        """Book the income from a paid order."""
        order = Order.objects.filter(id=order_id).first()
        if order is None:
            raise LedgerOrderNotFound(
                f"Order {order_id} not found",
                details={"order_id": str(order_id)},
            )

        vat = vat_included(order.total_price)
        return LedgerService.record_entry(
            RecordEntryParams(
                entry_type=EntryType.INCOME,
                category=LedgerCategory.SALES,
                order_id=order.id,
                gross_amount=order.total_price,
                idempotency_key=idempotency_key or f"ledger_sale:{order.id}",
                description=f"Order #{_short_id(order.id)} - Online Sale",
                notes=f"Net: {order.total_price - vat:.2f}, VAT: {vat:.2f}",
            )
        )

    @staticmethod
    def create_refund_entry(
        order_id: uuid.UUID,
        amount: Decimal,
        memo: str,
        idempotency_key: str,
        full_refund: bool = True,
    ) -> LedgerEntry:
        """
        Book money returned to a customer.

        Records a negative INCOME/refund entry. For full refunds the order's
        original sales entry is marked REVERSED.

        Raises:
            InvalidLedgerAmount: If amount is not positive
            LedgerOrderNotFound: If the order doesn't exist
        """
        amount = Decimal(amount)
        if amount <= 0:
            raise InvalidLedgerAmount(
                "Refund amount must be positive",
                details={"amount": str(amount), "order_id": str(order_id)},
            )

        with transaction.atomic():
            entry = LedgerService.record_entry(
                RecordEntryParams(
                    entry_type=EntryType.INCOME,
                    category=LedgerCategory.REFUND,
                    order_id=order_id,
                    gross_amount=-amount,
                    idempotency_key=idempotency_key,
                    description=f"REFUND - Order #{_short_id(order_id)} - {memo}",
                    notes=f"Auto-generated refund entry. Reason: {memo}",
                )
            )

            if full_refund:
                reversed_count = LedgerEntry.objects.filter(
                    order_id=order_id,
                    category=LedgerCategory.SALES,
                    gross_amount__gt=0,
                    status=EntryStatus.CONFIRMED,
                ).update(status=EntryStatus.REVERSED, updated_at=timezone.now())
                if reversed_count:
                    logger.info(
                        "Sales entry reversed after full refund",
                        extra={"order_id": str(order_id)},
                    )

        return entry

    @staticmethod
    def create_reprint_expense(
        original_order_id: uuid.UUID,
        reprint_order_id: uuid.UUID,
        reason_code: str,
        idempotency_key: str | None = None,
    ) -> LedgerEntry:
        """
        Book the production cost of a reprint.

        The cost is the value of the original items that were reprinted,
        falling back to the original order's subtotal.

        Raises:
            LedgerOrderNotFound: If either order doesn't exist
        """
        reprint = (
            Order.objects.filter(id=reprint_order_id)
            .prefetch_related("items__original_item")
            .first()
        )
        if reprint is None:
            raise LedgerOrderNotFound(
                f"Order {reprint_order_id} not found",
                details={"order_id": str(reprint_order_id)},
            )

        cost = sum(
            (
                item.original_item.total_price
                for item in reprint.items.all()
                if item.original_item is not None
            ),
            Decimal("0"),
        )
        if not cost:
            original = Order.objects.filter(id=original_order_id).first()
            cost = original.subtotal if original else Decimal("0")

        return LedgerService.record_entry(
            RecordEntryParams(
                entry_type=EntryType.EXPENSE,
                category=LedgerCategory.REPRINT,
                order_id=original_order_id,
                related_order_id=reprint_order_id,
                gross_amount=cost,
                idempotency_key=idempotency_key or f"ledger_reprint:{reprint_order_id}",
                description=(
                    f"Reprint - Order #{_short_id(reprint_order_id)} "
                    f"for #{_short_id(original_order_id)} - {reason_code}"
                ),
                notes=f"Reprint reason: {reason_code}",
            )
        )
