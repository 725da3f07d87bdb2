"""
Issue lifecycle service.

Creation, review, processing and the administrative moves around them
(appeal, conclude, reopen, carrier claims). Every status change goes
through a django-fsm transition on a row-locked Issue, together with the
thread message that tells the customer about it.

Usage:
    from issues.services import IssueService

    result = IssueService.create_issue(
        customer=request.user,
        order_item=item,
        reason=IssueReason.DAMAGED_IN_TRANSIT,
        notes="Frame arrived cracked",
    )
    if not result.success:
        return Response(result.to_response(), status=result.status_code)

    IssueService.review_issue(admin, result.data, ReviewAction.APPROVE_REPRINT)
    IssueService.process_issue(admin, result.data, ResolutionType.REPRINT)
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import OuterRef, Subquery
from django.utils import timezone

from core.exceptions import PermissionDeniedError, ValidationError
from core.services import BaseService, ServiceResult

from audit.services import audit_issue_reported
from audit.types import ActorContext
from orders.models import ISSUE_REPORTABLE_STATUSES

from issues.cases import IssueCase, case_for_resolution
from issues.exceptions import (
    IssueAlreadyExistsError,
    IssueConcludedError,
    IssueStateError,
    OrderNotEligibleError,
    ReportingWindowExpiredError,
)
from issues.models import Issue, IssueMessage, Resolution
from issues.services.messaging import add_admin_message, clean_image_urls
from issues.services.processing import CaseProcessor
from issues.state_machines import (
    REVIEWABLE_STATUSES,
    WITHDRAWABLE_STATUSES,
    CarrierFault,
    ClaimStatus,
    IssueReason,
    IssueStatus,
    MessageSender,
    ResolutionKind,
    ResolutionStatus,
    ResolutionType,
    ReviewAction,
)

if TYPE_CHECKING:
    from orders.models import OrderItem


ACKNOWLEDGEMENT_MESSAGE = (
    "Your issue has been reported. Our team will review it and respond within "
    "1-2 business days."
)
DEFAULT_APPROVAL_MESSAGES = {
    ReviewAction.APPROVE_REPRINT.value: (
        "Your issue has been approved for a free reprint. We will process this shortly."
    ),
    ReviewAction.APPROVE_REFUND.value: (
        "Your issue has been approved for a refund. We will process this shortly."
    ),
}
CONCLUDED_MESSAGE = "This issue has been concluded. No further action is required."
REOPENED_MESSAGE = "This issue has been reopened for further review."
AUTO_CLOSE_MESSAGE = (
    "This issue has been automatically closed due to no response within {days} days. "
    "If you still need assistance, please report a new issue or contact support."
)


class IssueService(BaseService):
    """
    Service for the issue lifecycle.

    Customer-facing operations check ownership; admin-facing operations
    trust the caller (views restrict them to staff).
    """

    # ==========================================================================
    # Reporting
    # ==========================================================================

    @classmethod
    def create_issue(
        cls,
        customer,
        order_item: OrderItem,
        reason: str,
        notes: str = "",
        image_urls: list[str] | None = None,
    ) -> ServiceResult[Issue]:
        """
        Report a problem with one order item.

        The issue is created SUBMITTED and moved straight to
        AWAITING_REVIEW. An item that is itself a reprint links the new
        issue to the issue that produced it.

        Returns:
            ServiceResult with the Issue, or a failure with one of
            ORDER_NOT_ELIGIBLE, REPORTING_WINDOW_EXPIRED,
            ISSUE_ALREADY_EXISTS, PERMISSION_DENIED, VALIDATION_ERROR
        """
        logger = cls.get_logger()

        if reason not in IssueReason.values:
            return ServiceResult.from_exception(
                ValidationError(
                    "Invalid issue reason",
                    details={"errors": {"reason": [f'"{reason}" is not a valid reason.']}},
                )
            )

        order = order_item.order
        if order.customer_id != customer.pk:
            return ServiceResult.from_exception(
                PermissionDeniedError("You do not have access to this order")
            )

        try:
            cls._check_reportable(order_item)
        except (OrderNotEligibleError, ReportingWindowExpiredError, IssueAlreadyExistsError) as e:
            return ServiceResult.from_exception(e)

        original_issue = cls._find_original_issue(order_item)
        notes = (notes or "").strip()

        try:
            with transaction.atomic():
                issue = Issue.objects.create(
                    order_item=order_item,
                    customer=customer,
                    original_issue=original_issue,
                    reason=reason,
                    notes=notes,
                    image_urls=clean_image_urls(image_urls),
                    carrier_fault=(
                        CarrierFault.CARRIER_FAULT
                        if reason == IssueReason.DAMAGED_IN_TRANSIT
                        else CarrierFault.UNKNOWN
                    ),
                )
                issue.submit_for_review()
                issue.save()

                if notes:
                    IssueMessage.objects.create(
                        issue=issue,
                        sender_type=MessageSender.CUSTOMER,
                        sender=customer,
                        content=notes,
                        image_urls=issue.image_urls,
                    )
                add_admin_message(issue, ACKNOWLEDGEMENT_MESSAGE, notify=False)

                audit_issue_reported(
                    ActorContext.from_user(customer),
                    issue_id=issue.id,
                    order_id=order.id,
                    reason=reason,
                )
        except IntegrityError:
            # Lost a race with a concurrent report on the same item
            return ServiceResult.from_exception(
                IssueAlreadyExistsError(
                    "This item already has a reported issue",
                    details={"order_item_id": str(order_item.id)},
                )
            )

        logger.info(
            "Issue reported",
            extra={
                "issue_id": str(issue.id),
                "order_id": str(order.id),
                "order_item_id": str(order_item.id),
                "reason": reason,
                "original_issue_id": str(original_issue.id) if original_issue else None,
            },
        )
        return ServiceResult.success(issue)

    @classmethod
    def _check_reportable(cls, order_item: OrderItem) -> None:
        order = order_item.order
        if order.status not in ISSUE_REPORTABLE_STATUSES:
            raise OrderNotEligibleError(
                "You can only report issues for orders that have been shipped or delivered",
                details={"order_id": str(order.id), "status": order.status},
            )

        window_days = settings.ISSUE_REPORTING_WINDOW_DAYS
        if (timezone.now() - order.updated_at).days > window_days:
            raise ReportingWindowExpiredError(
                f"Issues must be reported within {window_days} days of delivery",
                details={"order_id": str(order.id)},
            )

        existing = Issue.objects.filter(order_item=order_item).only("id").first()
        if existing is not None:
            raise IssueAlreadyExistsError(
                "This item already has a reported issue. "
                "Please view the existing issue instead.",
                details={"order_item_id": str(order_item.id), "issue_id": str(existing.id)},
            )

    @staticmethod
    def _find_original_issue(order_item: OrderItem) -> Issue | None:
        source_item_id = order_item.lineage_source_item_id
        if not source_item_id:
            return None
        return Issue.objects.filter(order_item_id=source_item_id).first()

    @classmethod
    def withdraw_issue(cls, customer, issue: Issue) -> ServiceResult[None]:
        """Delete an issue (and its thread) before review has started."""
        if issue.customer_id != customer.pk:
            return ServiceResult.from_exception(
                PermissionDeniedError("You do not have access to this issue")
            )

        with transaction.atomic():
            issue = Issue.objects.select_for_update().get(pk=issue.pk)
            if issue.status not in WITHDRAWABLE_STATUSES:
                return ServiceResult.from_exception(
                    IssueStateError(
                        "This issue can no longer be withdrawn",
                        details={"status": issue.status},
                    )
                )
            issue_id = issue.id
            issue.delete()

        cls.get_logger().info("Issue withdrawn", extra={"issue_id": str(issue_id)})
        return ServiceResult.success(None)

    # ==========================================================================
    # Review & Processing
    # ==========================================================================

    @classmethod
    def review_issue(
        cls,
        admin,
        issue: Issue,
        action: str,
        message: str = "",
        is_final_rejection: bool = False,
    ) -> ServiceResult[Issue]:
        """
        Approve, reject or ask the customer for more information.

        A final rejection concludes the issue and cannot be appealed.
        """
        message = (message or "").strip()

        if action not in ReviewAction.values:
            return ServiceResult.failure("Invalid action", error_code="VALIDATION_ERROR")
        if action == ReviewAction.REQUEST_INFO and not message:
            return ServiceResult.failure(
                "A message is required when requesting more information",
                error_code="VALIDATION_ERROR",
            )
        if action == ReviewAction.REJECT and not message:
            return ServiceResult.failure(
                "A reason is required when rejecting an issue",
                error_code="VALIDATION_ERROR",
            )

        with transaction.atomic():
            issue = Issue.objects.select_for_update().get(pk=issue.pk)

            if issue.status not in REVIEWABLE_STATUSES:
                return ServiceResult.from_exception(
                    IssueStateError(
                        f"This issue cannot be reviewed in its current status: {issue.status}",
                        details={"status": issue.status},
                    )
                )

            if action == ReviewAction.APPROVE_REPRINT:
                issue.approve_reprint()
            elif action == ReviewAction.APPROVE_REFUND:
                issue.approve_refund()
            elif action == ReviewAction.REQUEST_INFO:
                issue.request_info()
            else:
                issue.reject(reason=message, final=is_final_rejection)
                if is_final_rejection:
                    issue.conclude(by=admin, reason=message)
            issue.save()

            add_admin_message(
                issue,
                message or DEFAULT_APPROVAL_MESSAGES[str(action)],
                admin=admin,
            )

        cls.get_logger().info(
            "Issue reviewed",
            extra={
                "issue_id": str(issue.id),
                "action": action,
                "status": issue.status,
                "final": is_final_rejection,
            },
        )
        return ServiceResult.success(issue)

    @classmethod
    def process_issue(
        cls,
        admin,
        issue: Issue,
        resolution_type: str,
        message: str = "",
    ) -> ServiceResult[Issue]:
        """
        Carry out an approved resolution.

        REPRINT needs APPROVED_REPRINT; FULL_REFUND and PARTIAL_REFUND need
        APPROVED_REFUND. A failed refund leaves the issue APPROVED_REFUND
        and returns a REFUND_FAILED result carrying the issue.
        """
        if resolution_type not in ResolutionType.values:
            return ServiceResult.failure(
                "Invalid resolution type",
                error_code="VALIDATION_ERROR",
            )

        case = IssueCase(issue, actor=admin, message=(message or "").strip())
        if resolution_type == ResolutionType.REPRINT:
            return CaseProcessor.process_reprint(case)
        return CaseProcessor.process_refund(case, resolution_type)

    # ==========================================================================
    # Appeal / Conclude / Reopen
    # ==========================================================================

    @classmethod
    def appeal_rejection(cls, customer, issue: Issue, content: str) -> ServiceResult[Issue]:
        if issue.customer_id != customer.pk:
            return ServiceResult.from_exception(
                PermissionDeniedError("You do not have access to this issue")
            )

        content = (content or "").strip()
        if not content:
            return ServiceResult.failure(
                "Please explain why you are appealing",
                error_code="VALIDATION_ERROR",
            )

        with transaction.atomic():
            issue = Issue.objects.select_for_update().get(pk=issue.pk)

            if issue.status != IssueStatus.REJECTED:
                return ServiceResult.from_exception(
                    IssueStateError("Only rejected issues can be appealed")
                )
            if issue.is_concluded:
                return ServiceResult.from_exception(
                    IssueConcludedError("This issue has been concluded and cannot be appealed")
                )
            if issue.rejection_final:
                return ServiceResult.from_exception(
                    IssueStateError(
                        "This rejection is final and cannot be appealed",
                        error_code="REJECTION_FINAL",
                    )
                )

            issue.appeal()
            issue.save()
            IssueMessage.objects.create(
                issue=issue,
                sender_type=MessageSender.CUSTOMER,
                sender=customer,
                content=f"**Appeal:** {content}",
            )

        cls.get_logger().info("Issue appealed", extra={"issue_id": str(issue.id)})
        return ServiceResult.success(issue)

    @classmethod
    def conclude_issue(cls, admin, issue: Issue, reason: str = "") -> ServiceResult[Issue]:
        with transaction.atomic():
            issue = Issue.objects.select_for_update().get(pk=issue.pk)
            if issue.is_concluded:
                return ServiceResult.from_exception(
                    IssueConcludedError("This issue has already been concluded")
                )

            issue.conclude(by=admin, reason=(reason or "").strip())
            issue.save()
            add_admin_message(issue, CONCLUDED_MESSAGE, admin=admin)

        cls.get_logger().info("Issue concluded", extra={"issue_id": str(issue.id)})
        return ServiceResult.success(issue)

    @classmethod
    def reopen_issue(cls, admin, issue: Issue) -> ServiceResult[Issue]:
        with transaction.atomic():
            issue = Issue.objects.select_for_update().get(pk=issue.pk)
            if not issue.is_concluded:
                return ServiceResult.from_exception(
                    IssueConcludedError(
                        "Only concluded issues can be reopened",
                        error_code="ISSUE_NOT_CONCLUDED",
                    )
                )

            issue.reopen()
            issue.save()
            add_admin_message(issue, REOPENED_MESSAGE, admin=admin, notify=False)

        cls.get_logger().info("Issue reopened", extra={"issue_id": str(issue.id)})
        return ServiceResult.success(issue)

    # ==========================================================================
    # Carrier Claims
    # ==========================================================================

    @classmethod
    def update_carrier_fault(cls, admin, issue: Issue, carrier_fault: str) -> ServiceResult[Issue]:
        if carrier_fault not in CarrierFault.values:
            return ServiceResult.failure(
                "Invalid carrier fault value",
                error_code="VALIDATION_ERROR",
            )

        Issue.objects.filter(pk=issue.pk).update(
            carrier_fault=carrier_fault,
            updated_at=timezone.now(),
        )
        issue = Issue.objects.get(pk=issue.pk)

        cls.get_logger().info(
            "Carrier fault updated",
            extra={
                "issue_id": str(issue.id),
                "carrier_fault": carrier_fault,
                "admin_id": str(admin.pk) if admin else None,
            },
        )
        return ServiceResult.success(issue)

    @classmethod
    def update_claim(
        cls,
        admin,
        issue: Issue,
        reference: str | None = None,
        status: str | None = None,
        payout_amount: Decimal | None = None,
        notes: str | None = None,
    ) -> ServiceResult[Issue]:
        """
        Record progress of an insurance claim against the carrier.

        Only issues flagged CARRIER_FAULT carry claims. Fields left as None
        are unchanged.
        """
        if status is not None and status not in ClaimStatus.values:
            return ServiceResult.failure("Invalid claim status", error_code="VALIDATION_ERROR")

        with transaction.atomic():
            issue = Issue.objects.select_for_update().get(pk=issue.pk)

            if issue.carrier_fault != CarrierFault.CARRIER_FAULT:
                return ServiceResult.from_exception(
                    IssueStateError(
                        "Claims can only be recorded for carrier-fault issues",
                        error_code="NOT_CARRIER_FAULT",
                    )
                )

            now = timezone.now()
            update_fields = ["updated_at"]

            if reference is not None:
                issue.claim_reference = reference.strip()
                update_fields.append("claim_reference")

            if status is not None:
                issue.claim_status = status
                update_fields.append("claim_status")
                if status == ClaimStatus.SUBMITTED and issue.claim_submitted_at is None:
                    issue.claim_submitted_at = now
                    update_fields.append("claim_submitted_at")
                if status == ClaimStatus.PAID:
                    issue.claim_paid_at = now
                    update_fields.append("claim_paid_at")

            if payout_amount is not None:
                payout_amount = Decimal(payout_amount)
                issue.claim_payout_amount = payout_amount if payout_amount > 0 else None
                update_fields.append("claim_payout_amount")

            if notes is not None:
                issue.claim_notes = notes
                update_fields.append("claim_notes")

            issue.save(update_fields=update_fields)

        cls.get_logger().info(
            "Carrier claim updated",
            extra={
                "issue_id": str(issue.id),
                "claim_status": issue.claim_status,
                "admin_id": str(admin.pk) if admin else None,
            },
        )
        return ServiceResult.success(issue)

    # ==========================================================================
    # Maintenance
    # ==========================================================================

    @classmethod
    def auto_close_stale_issues(cls, now=None) -> int:
        """
        Close INFO_REQUESTED issues the customer never answered.

        An issue is stale when it was reviewed at least ISSUE_AUTO_CLOSE_DAYS
        ago and its latest message is an admin message at least that old.

        Returns:
            Number of issues closed
        """
        now = now or timezone.now()
        days = settings.ISSUE_AUTO_CLOSE_DAYS
        cutoff = now - timedelta(days=days)

        latest = IssueMessage.objects.filter(issue=OuterRef("pk")).order_by("-created_at")
        candidates = (
            Issue.objects.filter(
                status=IssueStatus.INFO_REQUESTED,
                reviewed_at__lte=cutoff,
            )
            .annotate(
                last_sender=Subquery(latest.values("sender_type")[:1]),
                last_message_at=Subquery(latest.values("created_at")[:1]),
            )
            .filter(last_sender=MessageSender.ADMIN, last_message_at__lte=cutoff)
            .values_list("pk", flat=True)
        )

        closed = 0
        for issue_id in list(candidates):
            with transaction.atomic():
                issue = Issue.objects.select_for_update().get(pk=issue_id)
                if issue.status != IssueStatus.INFO_REQUESTED:
                    continue
                issue.close()
                issue.save()
                add_admin_message(issue, AUTO_CLOSE_MESSAGE.format(days=days), notify=False)
            closed += 1

        cls.get_logger().info("Stale issues closed", extra={"closed": closed})
        return closed

    @classmethod
    def recover_stuck_processing(cls, older_than: timedelta | None = None) -> dict[str, int]:
        """
        Re-drive refunds left in PROCESSING by a crashed worker.

        The retry reuses the case's idempotency key, so a refund Stripe
        already made is returned rather than repeated.
        """
        older_than = older_than or timedelta(minutes=settings.ISSUE_STUCK_PROCESSING_MINUTES)
        cutoff = timezone.now() - older_than
        logger = cls.get_logger()

        cases = [
            IssueCase(issue)
            for issue in Issue.objects.filter(
                status=IssueStatus.PROCESSING,
                processing_started_at__lte=cutoff,
            ).exclude(resolved_type=ResolutionType.REPRINT)
        ] + [
            case_for_resolution(resolution)
            for resolution in Resolution.objects.filter(
                status=ResolutionStatus.PROCESSING,
                type=ResolutionKind.REFUND,
                processing_started_at__lte=cutoff,
            )
        ]

        counts = {"recovered": 0, "failed": 0}
        for case in cases:
            result = CaseProcessor.resume_refund(case)
            if result.success:
                counts["recovered"] += 1
            else:
                counts["failed"] += 1
                logger.warning(
                    "Stuck refund could not be completed",
                    extra={
                        "case": case.entity_type,
                        "case_id": str(case.pk),
                        "error_code": result.error_code,
                    },
                )

        logger.info("Stuck processing recovery finished", extra=counts)
        return counts
