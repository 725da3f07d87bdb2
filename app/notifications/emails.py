"""
Customer emails sent by the side-effect dispatcher.

Bodies are plain text built in code; every method loads what it needs by
id so it can run long after the originating request. A customer without
an email address is skipped, not failed. Delivery errors from the mail
backend propagate so the dispatcher retries.

Usage:
    from notifications.emails import EmailNotifier

    EmailNotifier.send_refund_confirmation_email(
        order_id=order.id,
        amount=Decimal("25.00"),
        refund_id="re_123",
    )
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

if TYPE_CHECKING:
    from uuid import UUID

logger = logging.getLogger(__name__)


def _short_ref(value) -> str:
    return str(value)[:8].upper()


class EmailNotifier:
    """
    Plain-text transactional emails.

    All methods are class methods and return True when an email was handed
    to the backend, False when it was skipped.
    """

    @classmethod
    def _send(cls, recipient: str, subject: str, body: str) -> bool:
        if not recipient:
            logger.info("Email skipped: recipient has no email", extra={"subject": subject})
            return False

        send_mail(
            subject=subject,
            message=body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient],
            fail_silently=False,
        )
        logger.info("Email sent", extra={"subject": subject})
        return True

    @classmethod
    def send_issue_message_email(cls, message_id: UUID | str) -> bool:
        """
        Tell the customer an admin replied on their issue.

        Stamps ``email_sent``/``email_sent_at`` on the message once sent;
        an already-stamped message is not emailed twice.
        """
        from issues.models import IssueMessage

        message = IssueMessage.objects.select_related(
            "issue__order_item__order__customer"
        ).get(id=message_id)
        if message.email_sent:
            return False

        issue = message.issue
        order = issue.order_item.order
        body = (
            f"Hello,\n\n"
            f"We have replied to the issue you reported on order "
            f"#{_short_ref(order.id)}:\n\n"
            f"{message.content}\n\n"
            f"You can reply from your account.\n\n"
            f"If you need anything else, contact us at {settings.SUPPORT_EMAIL}."
        )
        sent = cls._send(
            order.customer.email,
            f"Update on your issue for order #{_short_ref(order.id)}",
            body,
        )
        if sent:
            message.email_sent = True
            message.email_sent_at = timezone.now()
            message.save(update_fields=["email_sent", "email_sent_at", "updated_at"])
        return sent

    @classmethod
    def send_refund_confirmation_email(
        cls,
        order_id: UUID | str,
        amount: Decimal,
        refund_id: str = "",
        full_refund: bool = True,
    ) -> bool:
        from orders.models import Order

        order = Order.objects.select_related("customer").get(id=order_id)
        kind = "full" if full_refund else "partial"
        body = (
            f"Hello,\n\n"
            f"We have processed a {kind} refund of £{amount:.2f} for order "
            f"#{_short_ref(order.id)}.\n"
            f"Refund reference: {refund_id or 'n/a'}\n\n"
            f"Refunds usually reach your account within 5-10 business days."
        )
        return cls._send(
            order.customer.email,
            f"Your refund for order #{_short_ref(order.id)}",
            body,
        )

    @classmethod
    def send_reprint_confirmation_email(
        cls,
        original_order_id: UUID | str,
        reprint_order_id: UUID | str,
    ) -> bool:
        from orders.models import Order

        original = Order.objects.select_related("customer").get(id=original_order_id)
        body = (
            f"Hello,\n\n"
            f"We are sorry about the problem with order #{_short_ref(original.id)}. "
            f"A free replacement has been created as order "
            f"#{_short_ref(reprint_order_id)} and will ship to the same address.\n\n"
            f"You will receive tracking details once it is on its way."
        )
        return cls._send(
            original.customer.email,
            f"Your replacement for order #{_short_ref(original.id)}",
            body,
        )

    @classmethod
    def send_cancellation_email(
        cls,
        order_id: UUID | str,
        approved: bool,
        refund_amount: Decimal | None = None,
        review_notes: str = "",
    ) -> bool:
        from orders.models import Order

        order = Order.objects.select_related("customer").get(id=order_id)
        ref = _short_ref(order.id)

        if approved:
            subject = f"Order #{ref} has been cancelled"
            body = f"Hello,\n\nYour cancellation request for order #{ref} was approved."
            if refund_amount:
                body += f" A refund of £{refund_amount:.2f} is on its way."
        else:
            subject = f"Cancellation request for order #{ref}"
            body = (
                f"Hello,\n\nWe could not cancel order #{ref}; "
                f"it will continue to be processed."
            )
        if review_notes:
            body += f"\n\nNote from our team: {review_notes}"

        return cls._send(order.customer.email, subject, body)
