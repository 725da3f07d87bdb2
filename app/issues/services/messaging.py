"""
Issue thread messaging.

The thread is shared by the customer and the support team. Admin messages
are emailed to the customer through the side-effect outbox; status-change
notes written by other services go through add_admin_message() too.

Usage:
    from issues.services import IssueMessageService

    result = IssueMessageService.post_customer_message(
        customer=request.user,
        issue=issue,
        content="Photo of the damage attached",
        image_urls=["https://cdn.example.com/damage.jpg"],
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import transaction
from django.utils import timezone

from core.exceptions import PermissionDeniedError
from core.services import BaseService, ServiceResult

from notifications.models import SideEffectKind
from notifications.services import SideEffectService

from issues.exceptions import IssueConcludedError, IssueStateError
from issues.models import Issue, IssueMessage
from issues.state_machines import CLOSED_STATUSES, IssueStatus, MessageSender

if TYPE_CHECKING:
    from django.db.models import QuerySet


def clean_image_urls(image_urls) -> list[str]:
    """Keep only non-empty string URLs."""
    if not isinstance(image_urls, (list, tuple)):
        return []
    return [url for url in image_urls if isinstance(url, str) and url]


def add_admin_message(
    issue: Issue,
    content: str,
    admin=None,
    image_urls: list[str] | None = None,
    notify: bool = True,
) -> IssueMessage:
    """
    Append an ADMIN message and (optionally) email it to the customer.

    Call inside the transaction that made the change being described.
    """
    message = IssueMessage.objects.create(
        issue=issue,
        sender_type=MessageSender.ADMIN,
        sender=admin,
        content=content,
        image_urls=image_urls or [],
    )
    if notify:
        SideEffectService.enqueue(
            SideEffectKind.ISSUE_MESSAGE_EMAIL,
            {"message_id": str(message.id)},
        )
    return message


class IssueMessageService(BaseService):
    """Posting and reading issue threads."""

    @classmethod
    def post_customer_message(
        cls,
        customer,
        issue: Issue,
        content: str,
        image_urls: list[str] | None = None,
    ) -> ServiceResult[IssueMessage]:
        """
        Post a customer reply.

        A reply to an INFO_REQUESTED issue sends it back for review.
        """
        if issue.customer_id != customer.pk:
            return ServiceResult.from_exception(
                PermissionDeniedError("You do not have access to this issue")
            )

        image_urls = clean_image_urls(image_urls)
        content = (content or "").strip()
        if not content and not image_urls:
            return ServiceResult.failure(
                "Message content or images are required",
                error_code="VALIDATION_ERROR",
            )

        with transaction.atomic():
            issue = Issue.objects.select_for_update().get(pk=issue.pk)

            if issue.is_concluded:
                return ServiceResult.from_exception(
                    IssueConcludedError("This issue has been concluded")
                )
            if issue.status in CLOSED_STATUSES:
                return ServiceResult.from_exception(
                    IssueStateError("Cannot send messages on a closed issue")
                )

            message = IssueMessage.objects.create(
                issue=issue,
                sender_type=MessageSender.CUSTOMER,
                sender=customer,
                content=content,
                image_urls=image_urls,
            )

            if issue.status == IssueStatus.INFO_REQUESTED:
                issue.receive_customer_reply()
                issue.save()

        cls.get_logger().info(
            "Customer message posted",
            extra={"issue_id": str(issue.id), "status": issue.status},
        )
        return ServiceResult.success(message)

    @classmethod
    def post_admin_message(
        cls,
        admin,
        issue: Issue,
        content: str,
        image_urls: list[str] | None = None,
    ) -> ServiceResult[IssueMessage]:
        image_urls = clean_image_urls(image_urls)
        content = (content or "").strip()
        if not content and not image_urls:
            return ServiceResult.failure(
                "Message content or images are required",
                error_code="VALIDATION_ERROR",
            )

        with transaction.atomic():
            issue = Issue.objects.select_for_update().get(pk=issue.pk)

            if issue.status in CLOSED_STATUSES:
                return ServiceResult.from_exception(
                    IssueStateError("Cannot send messages on a closed issue")
                )

            message = add_admin_message(issue, content, admin=admin, image_urls=image_urls)

        cls.get_logger().info(
            "Admin message posted",
            extra={"issue_id": str(issue.id), "message_id": str(message.id)},
        )
        return ServiceResult.success(message)

    @classmethod
    def list_messages(cls, viewer, issue: Issue, as_admin: bool = False) -> QuerySet:
        """
        Return the thread oldest first, marking the other side's messages read.

        Customers reading mark ADMIN messages; admins mark CUSTOMER messages.
        """
        counterpart = MessageSender.CUSTOMER if as_admin else MessageSender.ADMIN
        IssueMessage.objects.filter(
            issue=issue,
            sender_type=counterpart,
            read_at__isnull=True,
        ).update(read_at=timezone.now())

        return IssueMessage.objects.filter(issue=issue).order_by("created_at")
