"""
Resolution processing: reprints and refunds for any resolvable case.

Refund sequence (one logical action, three steps):

    1. Transaction: lock the case, check it may be processed, lock the
       Payment, resolve/reconcile the Stripe reference, move the case to
       PROCESSING. Commit.
    2. No transaction: ask Stripe for the refund with the case's
       idempotency key.
    3. Transaction: lock the case again and persist the answer. Success
       completes the case and (for full refunds) marks the payment and
       order refunded. Failure puts the case back into its approved state.
       Side effects are enqueued here and dispatched after commit.

Running step 1 and step 3 as guarded transitions means a concurrent or
repeated request either finds the case COMPLETED (and returns it) or
finds it in a state it cannot process (and is rejected); it never reaches
Stripe a second time with a different key.

Reprints need no network call and run as one transaction.

Usage:
    from issues.cases import IssueCase
    from issues.services.processing import CaseProcessor

    result = CaseProcessor.process_refund(IssueCase(issue, actor=admin), "FULL_REFUND")
    if not result.success:
        return Response(result.to_response(), status=result.status_code)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import transaction

from django_fsm import can_proceed

from core.services import BaseService, ServiceResult

from audit.services import (
    audit_issue_resolution,
    audit_refund,
    audit_reprint_creation,
)
from audit.types import ActorContext
from notifications.models import SideEffectKind
from notifications.services import SideEffectService
from orders.models import Order
from payments.exceptions import PaymentReferenceError, RefundNotAllowedError
from payments.models import Payment
from payments.services import RefundExecutor, resolve_refundable_charge

from issues.exceptions import IssueStateError
from issues.services.reprint import ReprintOrderFactory
from issues.state_machines import REFUND_RESOLUTION_TYPES, ResolutionType

if TYPE_CHECKING:
    from uuid import UUID

    from issues.cases import ResolvableCase
    from payments.services import RefundOutcome


@dataclass
class PreparedRefund:
    """Everything step 2 needs, captured while the case was locked."""

    charge_id: str
    amount: Decimal
    full: bool
    paying_order_id: UUID


class CaseProcessor(BaseService):
    """
    Carries out approved resolutions.

    Expected failures (wrong state, failed preconditions, gateway errors)
    come back as ServiceResult failures; a refund failure's result carries
    the case in its reverted state as ``data``.
    """

    # ==========================================================================
    # Refunds
    # ==========================================================================

    @classmethod
    def process_refund(cls, case: ResolvableCase, kind: str) -> ServiceResult:
        """
        Refund an approved case.

        Calling this again for a case that already completed returns the
        stored result without contacting Stripe.
        """
        logger = cls.get_logger()

        if kind not in REFUND_RESOLUTION_TYPES:
            return ServiceResult.failure(
                f"Invalid refund type: {kind}",
                error_code="VALIDATION_ERROR",
            )

        with transaction.atomic():
            case.lock()

            if case.already_completed():
                logger.info(
                    "Refund already processed; returning stored result",
                    extra={"case": case.entity_type, "case_id": str(case.pk)},
                )
                return ServiceResult.success(case.instance)

            if not case.can_process(kind):
                return ServiceResult.from_exception(
                    IssueStateError(
                        f"This {case.entity_type} cannot be processed in its current "
                        f"status: {case.instance.status}",
                        details={"status": case.instance.status, "resolution_type": kind},
                    )
                )

            try:
                prepared = cls._prepare_refund(case, kind)
            except (RefundNotAllowedError, PaymentReferenceError) as e:
                logger.warning(
                    "Refund preconditions failed",
                    extra={
                        "case": case.entity_type,
                        "case_id": str(case.pk),
                        "error_code": e.error_code,
                    },
                )
                return ServiceResult.from_exception(e)

            case.begin_processing(kind)

        return cls._execute_refund(case, kind, prepared)

    @classmethod
    def resume_refund(cls, case: ResolvableCase) -> ServiceResult:
        """
        Drive a case left in PROCESSING to completion.

        Uses the same idempotency key as the original attempt, so if Stripe
        already refunded, it returns that refund instead of issuing another.
        If the preconditions no longer hold, the case goes back to its
        approved state for an admin to look at.
        """
        with transaction.atomic():
            case.lock()
            if not case.is_processing():
                return ServiceResult.success(case.instance)

            kind = case.refund_kind()
            try:
                prepared = cls._prepare_refund(case, kind)
            except (RefundNotAllowedError, PaymentReferenceError) as e:
                case.fail_refund(e.message)
                return ServiceResult.from_exception(e)

        return cls._execute_refund(case, kind, prepared)

    @classmethod
    def _prepare_refund(cls, case: ResolvableCase, kind: str) -> PreparedRefund:
        paying_order = case.paying_order
        payment = (
            Payment.objects.select_for_update().filter(order_id=paying_order.id).first()
        )
        charge_id = resolve_refundable_charge(payment)

        return PreparedRefund(
            charge_id=charge_id,
            amount=case.refund_amount(kind),
            full=case.is_full_refund(kind),
            paying_order_id=paying_order.id,
        )

    @classmethod
    def _execute_refund(
        cls,
        case: ResolvableCase,
        kind: str,
        prepared: PreparedRefund,
    ) -> ServiceResult:
        logger = cls.get_logger()

        # Full refunds let Stripe refund the whole charge
        outcome = RefundExecutor.refund(
            charge_id=prepared.charge_id,
            idempotency_key=case.idempotency_key,
            amount=None if prepared.full else prepared.amount,
            metadata={
                "case_type": case.entity_type,
                "case_id": str(case.pk),
                "order_id": str(prepared.paying_order_id),
            },
        )

        with transaction.atomic():
            case.lock()

            if not case.is_processing():
                # Another worker persisted an answer while Stripe was called
                logger.warning(
                    "Case left PROCESSING during refund call",
                    extra={
                        "case": case.entity_type,
                        "case_id": str(case.pk),
                        "status": case.instance.status,
                    },
                )
                if case.already_completed():
                    return ServiceResult.success(case.instance)
                return ServiceResult.failure(
                    "Refund state changed while processing; please retry",
                    error_code="CONCURRENT_UPDATE",
                    status_code=409,
                    data=case.instance,
                )

            if not outcome.success:
                case.fail_refund(outcome.error)
                logger.warning(
                    "Refund failed; case reverted for retry",
                    extra={
                        "case": case.entity_type,
                        "case_id": str(case.pk),
                        "is_retryable": outcome.is_retryable,
                    },
                )
                return ServiceResult.failure(
                    f"Refund failed: {outcome.error}",
                    error_code="REFUND_FAILED",
                    status_code=502,
                    data=case.instance,
                )

            amount = outcome.amount if outcome.amount is not None else prepared.amount
            case.complete_refund(outcome, kind, amount)

            if prepared.full:
                mark_order_refunded(prepared.paying_order_id, outcome.refund_id)

            cls._enqueue_refund_side_effects(case, kind, amount, outcome, prepared)

        logger.info(
            "Refund processed",
            extra={
                "case": case.entity_type,
                "case_id": str(case.pk),
                "refund_id": outcome.refund_id,
                "amount": str(amount),
                "full_refund": prepared.full,
            },
        )
        return ServiceResult.success(case.instance)

    @classmethod
    def _enqueue_refund_side_effects(
        cls,
        case: ResolvableCase,
        kind: str,
        amount: Decimal,
        outcome: RefundOutcome,
        prepared: PreparedRefund,
    ) -> None:
        actor = ActorContext.from_user(case.actor)
        order_id = str(prepared.paying_order_id)

        SideEffectService.enqueue(
            SideEffectKind.REFUND_CONFIRMATION_EMAIL,
            {
                "order_id": order_id,
                "amount": str(amount),
                "refund_id": outcome.refund_id,
                "full_refund": prepared.full,
            },
        )
        SideEffectService.enqueue(
            SideEffectKind.LEDGER_REFUND_ENTRY,
            {
                "order_id": order_id,
                "amount": str(amount),
                "memo": f"{case.entity_type.title()} refund - {case.reason_code}",
                "idempotency_key": f"ledger_refund:{case.idempotency_key}",
                "full_refund": prepared.full,
            },
        )
        audit_issue_resolution(
            actor,
            case.pk,
            kind,
            {"refund_id": outcome.refund_id, "amount": str(amount), "order_id": order_id},
            entity_type=case.entity_type,
        )
        audit_refund(
            actor,
            order_id=order_id,
            amount=amount,
            refund_id=outcome.refund_id,
            idempotency_key=case.idempotency_key,
            full_refund=prepared.full,
        )

    # ==========================================================================
    # Reprints
    # ==========================================================================

    @classmethod
    def process_reprint(cls, case: ResolvableCase) -> ServiceResult:
        """
        Create the reprint order and complete the case in one transaction.

        Any failure rolls back the order, its items and the case change.
        """
        with transaction.atomic():
            case.lock()

            if case.already_completed():
                return ServiceResult.success(case.instance)

            if not case.can_process(ResolutionType.REPRINT):
                return ServiceResult.from_exception(
                    IssueStateError(
                        f"This {case.entity_type} cannot be processed in its current "
                        f"status: {case.instance.status}",
                        details={"status": case.instance.status},
                    )
                )

            case.begin_processing(ResolutionType.REPRINT)
            paying_order = case.paying_order
            reprint = ReprintOrderFactory.create_reprint(
                original_order=case.source_order,
                items=case.reprint_items(),
                **case.reprint_lineage(),
            )
            case.complete_reprint(reprint)

            actor = ActorContext.from_user(case.actor)
            SideEffectService.enqueue(
                SideEffectKind.REPRINT_CONFIRMATION_EMAIL,
                {
                    "original_order_id": str(case.source_order.id),
                    "reprint_order_id": str(reprint.id),
                },
            )
            SideEffectService.enqueue(
                SideEffectKind.LEDGER_REPRINT_EXPENSE,
                {
                    "original_order_id": str(paying_order.id),
                    "reprint_order_id": str(reprint.id),
                    "reason_code": case.reason_code,
                    "idempotency_key": f"ledger_reprint:{reprint.id}",
                },
            )
            audit_issue_resolution(
                actor,
                case.pk,
                ResolutionType.REPRINT,
                {"reprint_order_id": str(reprint.id)},
                entity_type=case.entity_type,
            )
            audit_reprint_creation(
                actor,
                original_order_id=paying_order.id,
                reprint_order_id=reprint.id,
                source_id=case.pk,
            )

        cls.get_logger().info(
            "Reprint processed",
            extra={
                "case": case.entity_type,
                "case_id": str(case.pk),
                "reprint_order_id": str(reprint.id),
            },
        )
        return ServiceResult.success(case.instance)


def mark_order_refunded(order_id, refund_id: str) -> None:
    """
    Record a full refund on the paying order and its payment.

    Must run inside the caller's transaction. Both rows are locked; a
    payment that somehow already carries ``refunded_at`` is left alone.
    """
    payment = Payment.objects.select_for_update().filter(order_id=order_id).first()
    if payment is not None and can_proceed(payment.mark_refunded):
        payment.mark_refunded(refund_id=refund_id)
        payment.save()
    elif payment is not None:
        CaseProcessor.get_logger().warning(
            "Payment not marked refunded",
            extra={"payment_id": str(payment.id), "status": payment.status},
        )

    order = Order.objects.select_for_update().get(id=order_id)
    if can_proceed(order.mark_refunded):
        order.mark_refunded()
        order.save()
