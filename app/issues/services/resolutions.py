"""
Order-level resolutions and direct refunds.

Usage:
    from issues.services import ResolutionService

    result = ResolutionService.create_resolution(
        admin, order, ResolutionKind.REFUND, reason="Print faded", refund_amount=Decimal("10.00")
    )
    ResolutionService.process_resolution(admin, result.data)

    # Full refund straight from the order page
    ResolutionService.refund_order(admin, order, reason="Customer goodwill")
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from django.db import transaction

from core.services import BaseService, ServiceResult

from orders.models import Order
from payments.exceptions import RefundNotAllowedError
from payments.models import Payment
from payments.services import RefundEligibility

from issues.cases import DirectRefundCase, case_for_resolution
from issues.models import Resolution
from issues.services.processing import CaseProcessor
from issues.state_machines import ResolutionKind, ResolutionStatus, ResolutionType


class ResolutionService(BaseService):
    """Admin-initiated reprints and refunds of whole orders."""

    @classmethod
    def create_resolution(
        cls,
        admin,
        order: Order,
        type: str,
        reason: str = "",
        notes: str = "",
        refund_amount: Decimal | str | None = None,
    ) -> ServiceResult[Resolution]:
        """
        Record a PENDING resolution for ``order``.

        ``refund_amount`` is only meaningful for refunds; leaving it empty
        refunds the whole payment.
        """
        if type not in ResolutionKind.values:
            return ServiceResult.failure("Invalid resolution type", error_code="VALIDATION_ERROR")

        if refund_amount is not None and refund_amount != "":
            try:
                refund_amount = Decimal(str(refund_amount))
            except InvalidOperation:
                return ServiceResult.failure(
                    "Invalid refund amount",
                    error_code="VALIDATION_ERROR",
                )
            if refund_amount <= 0:
                return ServiceResult.failure(
                    "Refund amount must be greater than zero",
                    error_code="VALIDATION_ERROR",
                )
        else:
            refund_amount = None

        if type == ResolutionKind.REPRINT:
            if not order.items.exists():
                return ServiceResult.failure(
                    "Order has no items to reprint",
                    error_code="ORDER_HAS_NO_ITEMS",
                    status_code=409,
                )
            refund_amount = None

        resolution = Resolution.objects.create(
            order=order,
            type=type,
            reason=(reason or "").strip(),
            notes=(notes or "").strip(),
            refund_amount=refund_amount,
            created_by=admin,
        )

        cls.get_logger().info(
            "Resolution created",
            extra={
                "resolution_id": str(resolution.id),
                "order_id": str(order.id),
                "type": type,
            },
        )
        return ServiceResult.success(resolution)

    @classmethod
    def process_resolution(cls, admin, resolution: Resolution) -> ServiceResult[Resolution]:
        """
        Run a PENDING resolution, or retry a FAILED refund.

        Refunds are FULL when no amount was requested (or the requested
        amount covers the payment) and PARTIAL otherwise.
        """
        case = case_for_resolution(resolution, actor=admin)
        if resolution.type == ResolutionKind.REPRINT:
            return CaseProcessor.process_reprint(case)
        return CaseProcessor.process_refund(case, case.refund_kind())

    @classmethod
    def refund_order(
        cls,
        admin,
        order: Order,
        reason: str = "",
        notes: str = "",
    ) -> ServiceResult[Resolution]:
        """
        Fully refund an order outside the issue flow.

        Repeating the request for the same order reuses the same
        resolution and idempotency key; once it completed, the completed
        resolution is returned.
        """
        logger = cls.get_logger()

        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order.pk)

            existing = (
                Resolution.objects.filter(order=order, direct_refund=True)
                .order_by("-created_at")
                .first()
            )
            if existing is not None and existing.status == ResolutionStatus.COMPLETED:
                return ServiceResult.success(existing)

            if existing is None:
                payment = Payment.objects.filter(order_id=order.id).first()
                try:
                    RefundEligibility.check(payment, allow_unconfirmed_session=True)
                except RefundNotAllowedError as e:
                    logger.warning(
                        "Direct refund rejected",
                        extra={"order_id": str(order.id), "error_code": e.error_code},
                    )
                    return ServiceResult.from_exception(e)

                existing = Resolution.objects.create(
                    order=order,
                    type=ResolutionKind.REFUND,
                    reason=(reason or "").strip() or "Admin refund",
                    notes=(notes or "").strip(),
                    direct_refund=True,
                    created_by=admin,
                )

        case = DirectRefundCase(existing, actor=admin)
        if existing.status == ResolutionStatus.PROCESSING:
            return CaseProcessor.resume_refund(case)
        return CaseProcessor.process_refund(case, ResolutionType.FULL_REFUND)
