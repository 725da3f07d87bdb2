"""
Order cancellation.

Customers ask for cancellation while an order is still pre-production;
an admin then approves (optionally refunding in full) or rejects, which
puts the order back to the status it had before the request.

Approval with a refund follows the same lock-call-lock sequence as issue
refunds: preconditions and reference reconciliation in one transaction,
the Stripe call outside any transaction, then the outcome persisted in a
second transaction. Nothing changes locally if Stripe refuses.

Usage:
    from orders.services import CancellationService

    result = CancellationService.request_cancellation(customer, order, reason="Ordered twice")
    CancellationService.review(admin, result.data, action="APPROVE", review_notes="Done")
"""

from __future__ import annotations

from decimal import Decimal

from django.db import transaction

from django_fsm import can_proceed

from core.exceptions import PermissionDeniedError, ValidationError
from core.services import BaseService, ServiceResult

from audit.services import audit_cancellation_review
from audit.types import ActorContext
from notifications.models import SideEffectKind
from notifications.services import SideEffectService
from payments.adapters import IdempotencyKeyGenerator
from payments.exceptions import PaymentReferenceError, RefundNotAllowedError
from payments.models import Payment
from payments.services import (
    RefundEligibility,
    RefundExecutor,
    reconcile_pending_payment,
    resolve_refundable_charge,
)

from orders.exceptions import CancellationNotAllowedError, CancellationStateError
from orders.models import (
    CANCELLABLE_STATUSES,
    CancellationRequest,
    CancellationRequestStatus,
    Order,
    OrderStatus,
)

APPROVE = "APPROVE"
REJECT = "REJECT"
REVIEW_ACTIONS = (APPROVE, REJECT)

_NOT_CANCELLABLE_MESSAGES = {
    OrderStatus.PRINTING: (
        "Your order has already started production and cannot be cancelled. "
        "Please contact us if you have concerns."
    ),
    OrderStatus.SHIPPED: (
        "Your order has already been shipped. Please use the returns process if needed."
    ),
    OrderStatus.DELIVERED: (
        "Your order has already been shipped. Please use the returns process if needed."
    ),
    OrderStatus.CANCELLED: "This order has already been cancelled or refunded.",
    OrderStatus.REFUNDED: "This order has already been cancelled or refunded.",
    OrderStatus.CANCELLATION_REQUESTED: (
        "A cancellation request is already pending for this order."
    ),
}


def _refund_due(payment: Payment | None) -> bool:
    """Whether approving should refund: the payment is COMPLETED and not refunded."""
    try:
        RefundEligibility.check(payment)
    except RefundNotAllowedError:
        return False
    return True


class CancellationService(BaseService):
    """Cancellation requests and their review."""

    @classmethod
    def request_cancellation(
        cls,
        customer,
        order: Order,
        reason: str,
    ) -> ServiceResult[CancellationRequest]:
        reason = (reason or "").strip()
        if not reason:
            return ServiceResult.from_exception(
                ValidationError("Please give a reason for the cancellation")
            )

        if order.customer_id != customer.pk:
            return ServiceResult.from_exception(
                PermissionDeniedError("You do not have permission to cancel this order")
            )

        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order.pk)

            if order.status not in CANCELLABLE_STATUSES:
                message = _NOT_CANCELLABLE_MESSAGES.get(
                    order.status,
                    f"Cannot request cancellation for order with status: {order.status}",
                )
                return ServiceResult.from_exception(
                    CancellationNotAllowedError(message, details={"status": order.status})
                )

            request = CancellationRequest.objects.create(
                order=order,
                requested_by=customer,
                reason=reason,
                previous_status=order.status,
            )
            order.request_cancellation()
            order.save()

        cls.get_logger().info(
            "Cancellation requested",
            extra={"order_id": str(order.id), "request_id": str(request.id)},
        )
        return ServiceResult.success(request)

    @classmethod
    def review(
        cls,
        admin,
        request: CancellationRequest,
        action: str,
        review_notes: str = "",
        process_refund: bool = True,
    ) -> ServiceResult[CancellationRequest]:
        """
        Approve or reject a pending cancellation request.

        Approving refunds the full payment (key ``cancel_request_<orderId>``)
        when ``process_refund`` is set and the payment is COMPLETED. A PENDING
        checkout session is first confirmed against Stripe; if it was never
        paid the order is cancelled without a refund. A failed refund leaves
        the request pending and the order untouched.
        """
        if action not in REVIEW_ACTIONS:
            return ServiceResult.failure(
                "Invalid action. Must be APPROVE or REJECT.",
                error_code="VALIDATION_ERROR",
            )
        review_notes = (review_notes or "").strip()

        if action == REJECT:
            return cls._reject(admin, request, review_notes)
        return cls._approve(admin, request, review_notes, process_refund)

    @staticmethod
    def _lock(request: CancellationRequest) -> tuple[CancellationRequest, Order]:
        request = CancellationRequest.objects.select_for_update().get(pk=request.pk)
        order = Order.objects.select_for_update().get(pk=request.order_id)
        return request, order

    @staticmethod
    def _check_reviewable(request: CancellationRequest, order: Order) -> None:
        if request.status != CancellationRequestStatus.PENDING:
            raise CancellationStateError(
                f"Cancellation request has already been {request.status}",
                details={"status": request.status},
            )
        if order.status != OrderStatus.CANCELLATION_REQUESTED:
            raise CancellationStateError(
                f"Order status is {order.status}, not cancellation_requested. "
                "Cannot process this request.",
                error_code="ORDER_NOT_CANCELLATION_REQUESTED",
                details={"order_status": order.status},
            )

    @classmethod
    def _approve(
        cls,
        admin,
        request: CancellationRequest,
        review_notes: str,
        process_refund: bool,
    ) -> ServiceResult[CancellationRequest]:
        logger = cls.get_logger()
        idempotency_key = IdempotencyKeyGenerator.for_case("cancel_request", request.order_id)
        charge_id = None

        with transaction.atomic():
            request, order = cls._lock(request)
            try:
                cls._check_reviewable(request, order)
            except CancellationStateError as e:
                return ServiceResult.from_exception(e)

            payment = Payment.objects.select_for_update().filter(order_id=order.id).first()
            if process_refund:
                # An abandoned checkout stays PENDING and is cancelled without a refund
                reconcile_pending_payment(payment)
            if process_refund and _refund_due(payment):
                try:
                    charge_id = resolve_refundable_charge(payment)
                except (RefundNotAllowedError, PaymentReferenceError) as e:
                    logger.warning(
                        "Cancellation refund preconditions failed",
                        extra={"order_id": str(order.id), "error_code": e.error_code},
                    )
                    return ServiceResult.from_exception(e)

        outcome = None
        if charge_id is not None:
            outcome = RefundExecutor.refund(
                charge_id=charge_id,
                idempotency_key=idempotency_key,
                amount=None,
                metadata={"order_id": str(request.order_id), "cancellation_request_id": str(request.id)},
            )
            if not outcome.success:
                return ServiceResult.failure(
                    f"Refund failed: {outcome.error}. Request not approved.",
                    error_code="REFUND_FAILED",
                    status_code=502,
                )

        with transaction.atomic():
            request, order = cls._lock(request)
            if request.status == CancellationRequestStatus.APPROVED:
                # A concurrent approval finished first
                return ServiceResult.success(request)
            try:
                cls._check_reviewable(request, order)
            except CancellationStateError as e:
                return ServiceResult.from_exception(e)

            refund_amount: Decimal | None = None
            if outcome is not None:
                refund_amount = outcome.amount
                payment = Payment.objects.select_for_update().get(order_id=order.id)
                if can_proceed(payment.mark_refunded):
                    payment.mark_refunded(refund_id=outcome.refund_id)
                    payment.save()
                order.refund_reference = outcome.refund_id
                order.refund_amount = refund_amount

            request.approve(admin, review_notes)
            request.save()
            order.cancel(cancelled_by=admin, reason=request.reason)
            order.save()

            SideEffectService.enqueue(
                SideEffectKind.CANCELLATION_EMAIL,
                {
                    "order_id": str(order.id),
                    "approved": True,
                    "refund_amount": str(refund_amount) if refund_amount is not None else None,
                    "review_notes": review_notes,
                },
            )
            if refund_amount is not None:
                SideEffectService.enqueue(
                    SideEffectKind.LEDGER_REFUND_ENTRY,
                    {
                        "order_id": str(order.id),
                        "amount": str(refund_amount),
                        "memo": f"Cancellation request approved - {request.reason}",
                        "idempotency_key": f"ledger_refund:{idempotency_key}",
                        "full_refund": True,
                    },
                )
            audit_cancellation_review(
                ActorContext.from_user(admin),
                request_id=request.id,
                order_id=order.id,
                approved=True,
                refund_amount=refund_amount,
                review_notes=review_notes,
            )

        logger.info(
            "Cancellation approved",
            extra={
                "order_id": str(order.id),
                "request_id": str(request.id),
                "refund_id": outcome.refund_id if outcome else None,
                "refund_amount": str(refund_amount) if refund_amount is not None else None,
            },
        )
        return ServiceResult.success(request)

    @classmethod
    def _reject(
        cls,
        admin,
        request: CancellationRequest,
        review_notes: str,
    ) -> ServiceResult[CancellationRequest]:
        review_notes = review_notes or "Cancellation request rejected"

        with transaction.atomic():
            request, order = cls._lock(request)
            try:
                cls._check_reviewable(request, order)
            except CancellationStateError as e:
                return ServiceResult.from_exception(e)

            request.reject(admin, review_notes)
            request.save()
            order.restore_status(request.previous_status)
            order.save()

            SideEffectService.enqueue(
                SideEffectKind.CANCELLATION_EMAIL,
                {
                    "order_id": str(order.id),
                    "approved": False,
                    "refund_amount": None,
                    "review_notes": review_notes,
                },
            )
            audit_cancellation_review(
                ActorContext.from_user(admin),
                request_id=request.id,
                order_id=order.id,
                approved=False,
                review_notes=review_notes,
            )

        cls.get_logger().info(
            "Cancellation rejected",
            extra={
                "order_id": str(order.id),
                "request_id": str(request.id),
                "restored_status": order.status,
            },
        )
        return ServiceResult.success(request)
