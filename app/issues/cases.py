"""
Resolvable cases.

Issues (one order item) and Resolutions (a whole order) are resolved the
same way: reprint inside one transaction, or refund through Stripe with a
lock-call-lock sequence. ResolvableCase is the seam that lets
CaseProcessor implement that once; IssueCase and ResolutionCase adapt
each model to it.

Usage:
    from issues.cases import IssueCase
    from issues.services.processing import CaseProcessor

    result = CaseProcessor.process_refund(
        IssueCase(issue, actor=admin),
        ResolutionType.FULL_REFUND,
    )
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING

from orders.models import Order
from payments.adapters import IdempotencyKeyGenerator
from payments.exceptions import RefundNotAllowedError
from payments.services import resolve_refund_amount

from issues.models import Issue, IssueMessage, Resolution
from issues.state_machines import (
    IssueStatus,
    MessageSender,
    ResolutionStatus,
    ResolutionType,
)

if TYPE_CHECKING:
    from orders.models import OrderItem
    from payments.services import RefundOutcome


_PENNY = Decimal("0.01")


class ResolvableCase(ABC):
    """
    Something that can be resolved by a reprint or a refund.

    Subclasses wrap a model instance; ``lock()`` replaces it with a fresh
    row-locked copy, so callers must always read ``case.instance`` after
    locking rather than holding on to the original object.
    """

    key_prefix: str
    entity_type: str

    def __init__(self, instance, actor=None, message: str = ""):
        self.instance = instance
        self.actor = actor
        self.message = message

    @property
    def pk(self):
        return self.instance.pk

    @property
    def idempotency_key(self) -> str:
        """Stable across retries of this case, unique across cases."""
        return IdempotencyKeyGenerator.for_case(self.key_prefix, self.pk)

    def lock(self) -> ResolvableCase:
        """Re-fetch the instance with a row lock. Call inside a transaction."""
        self.instance = type(self.instance).objects.select_for_update().get(pk=self.pk)
        return self

    @property
    @abstractmethod
    def paying_order(self) -> Order:
        """The order whose Payment a refund is charged against."""

    @property
    @abstractmethod
    def source_order(self) -> Order:
        """The order a reprint copies its print job and address from."""

    @property
    @abstractmethod
    def reason_code(self) -> str:
        """Short reason recorded on ledger entries."""

    @abstractmethod
    def refund_amount(self, kind: str) -> Decimal: ...

    @abstractmethod
    def is_full_refund(self, kind: str) -> bool: ...

    @abstractmethod
    def reprint_items(self) -> list[OrderItem]: ...

    @abstractmethod
    def refund_kind(self) -> str:
        """Refund kind of a case already in processing (used on recovery)."""

    def reprint_lineage(self) -> dict:
        """Keyword arguments identifying this case on reprinted items."""
        return {}

    # ==========================================================================
    # State hooks
    # ==========================================================================

    @abstractmethod
    def can_process(self, kind: str) -> bool: ...

    @abstractmethod
    def is_processing(self) -> bool: ...

    @abstractmethod
    def already_completed(self) -> bool: ...

    @abstractmethod
    def begin_processing(self, kind: str) -> None: ...

    @abstractmethod
    def complete_refund(self, outcome: RefundOutcome, kind: str, amount: Decimal) -> None: ...

    @abstractmethod
    def fail_refund(self, error: str) -> None: ...

    @abstractmethod
    def complete_reprint(self, reprint_order: Order) -> None: ...

    @abstractmethod
    def note(self, content: str) -> None:
        """Record a human-readable note about what just happened."""


class IssueCase(ResolvableCase):
    """Item-scoped case backed by an Issue."""

    key_prefix = "issue"
    entity_type = "issue"

    instance: Issue

    @property
    def paying_order(self) -> Order:
        return Order.objects.get(id=self.instance.order_item.paying_order_id)

    @property
    def source_order(self) -> Order:
        return self.instance.order_item.order

    @property
    def reason_code(self) -> str:
        return self.instance.reason

    def refund_amount(self, kind: str) -> Decimal:
        item = self.instance.order_item
        # Reprint items are free; price a partial refund off the item they replace
        if item.is_reprint and item.original_item_id:
            item = item.original_item
        return resolve_refund_amount(
            self.paying_order,
            full=kind == ResolutionType.FULL_REFUND,
            item=item,
        )

    def is_full_refund(self, kind: str) -> bool:
        return kind == ResolutionType.FULL_REFUND

    def reprint_items(self) -> list[OrderItem]:
        return [self.instance.order_item]

    def reprint_lineage(self) -> dict:
        return {"issue_id": self.pk}

    def refund_kind(self) -> str:
        return self.instance.resolved_type or ResolutionType.FULL_REFUND

    def can_process(self, kind: str) -> bool:
        if kind == ResolutionType.REPRINT:
            return self.instance.status == IssueStatus.APPROVED_REPRINT
        return self.instance.status == IssueStatus.APPROVED_REFUND

    def is_processing(self) -> bool:
        return self.instance.status == IssueStatus.PROCESSING

    def already_completed(self) -> bool:
        return self.instance.status == IssueStatus.COMPLETED

    def begin_processing(self, kind: str) -> None:
        self.instance.begin_processing()
        self.instance.resolved_type = kind
        self.instance.save()

    def complete_refund(self, outcome: RefundOutcome, kind: str, amount: Decimal) -> None:
        self.instance.complete_refund(
            resolution_type=kind,
            refund_id=outcome.refund_id,
            amount=amount,
            by=self.actor,
        )
        self.instance.save()
        self.note(
            self.message
            or f"Your refund of £{amount:.2f} has been processed. "
            "It may take 5-10 business days to appear in your account."
        )

    def fail_refund(self, error: str) -> None:
        self.instance.fail_refund()
        self.instance.save()
        self.note(f"Refund processing failed: {error or 'Unknown error'}. Please try again.")

    def complete_reprint(self, reprint_order: Order) -> None:
        self.instance.complete_reprint(reprint_order, by=self.actor)
        self.instance.save()
        self.note(
            self.message or "Your reprint order has been created and will be processed shortly."
        )

    def note(self, content: str) -> None:
        IssueMessage.objects.create(
            issue=self.instance,
            sender_type=MessageSender.ADMIN,
            sender=self.actor if self.actor is not None and self.actor.is_staff else None,
            content=content,
        )


class ResolutionCase(ResolvableCase):
    """Order-scoped case backed by a Resolution."""

    key_prefix = "resolution"
    entity_type = "resolution"

    instance: Resolution

    @property
    def paying_order(self) -> Order:
        order = self.instance.order
        first_item = order.items.first()
        if first_item is not None and first_item.paying_order_id != order.id:
            return Order.objects.get(id=first_item.paying_order_id)
        return order

    @property
    def source_order(self) -> Order:
        return self.instance.order

    @property
    def reason_code(self) -> str:
        return self.instance.reason or "ORDER_RESOLUTION"

    def refund_amount(self, kind: str) -> Decimal:
        if kind == ResolutionType.FULL_REFUND:
            return resolve_refund_amount(self.paying_order, full=True)

        amount = Decimal(self.instance.refund_amount or 0).quantize(_PENNY)
        if amount <= 0:
            raise RefundNotAllowedError(
                "Cannot process refund: refund amount is 0",
                error_code="REFUND_AMOUNT_ZERO",
                details={"resolution_id": str(self.pk)},
            )
        return amount

    def is_full_refund(self, kind: str) -> bool:
        return kind == ResolutionType.FULL_REFUND

    def reprint_items(self) -> list[OrderItem]:
        return list(self.instance.order.items.all())

    def reprint_lineage(self) -> dict:
        return {"extra_metadata": {"resolutionId": str(self.pk)}}

    def refund_kind(self) -> str:
        """A requested amount below the captured payment makes it partial."""
        requested = self.instance.refund_amount
        if requested is None:
            return ResolutionType.FULL_REFUND

        payment = getattr(self.paying_order, "payment", None)
        if payment is not None and requested < payment.amount:
            return ResolutionType.PARTIAL_REFUND
        return ResolutionType.FULL_REFUND

    def can_process(self, kind: str) -> bool:
        if self.instance.status == ResolutionStatus.PENDING:
            return True
        # A failed refund may be retried
        return (
            self.instance.status == ResolutionStatus.FAILED
            and kind != ResolutionType.REPRINT
        )

    def is_processing(self) -> bool:
        return self.instance.status == ResolutionStatus.PROCESSING

    def already_completed(self) -> bool:
        return self.instance.status == ResolutionStatus.COMPLETED

    def begin_processing(self, kind: str) -> None:
        self.instance.begin_processing()
        self.instance.save()

    def complete_refund(self, outcome: RefundOutcome, kind: str, amount: Decimal) -> None:
        self.instance.complete_refund(refund_id=outcome.refund_id, amount=amount)
        self.instance.save()
        self.note(f"Refunded £{amount:.2f} ({outcome.refund_id}).")

    def fail_refund(self, error: str) -> None:
        self.instance.fail(reason=error or "Unknown error")
        self.instance.save()

    def complete_reprint(self, reprint_order: Order) -> None:
        self.instance.complete_reprint(reprint_order)
        self.instance.save()

    def note(self, content: str) -> None:
        notes = self.instance.notes
        self.instance.notes = f"{notes}\n{content}" if notes else content
        self.instance.save(update_fields=["notes", "updated_at"])


class DirectRefundCase(ResolutionCase):
    """
    Admin full refund of an order.

    Keyed by the order rather than the resolution row, so repeating the
    request for the same order can never produce a second Stripe refund.
    """

    key_prefix = "refund"

    @property
    def idempotency_key(self) -> str:
        return IdempotencyKeyGenerator.for_case(self.key_prefix, self.instance.order_id)

    def refund_kind(self) -> str:
        return ResolutionType.FULL_REFUND

    def can_process(self, kind: str) -> bool:
        return kind == ResolutionType.FULL_REFUND and super().can_process(kind)


def case_for_resolution(resolution: Resolution, actor=None, message: str = "") -> ResolutionCase:
    if resolution.direct_refund:
        return DirectRefundCase(resolution, actor=actor, message=message)
    return ResolutionCase(resolution, actor=actor, message=message)
