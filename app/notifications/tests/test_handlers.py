"""
Tests for the side-effect handlers and the emails they send.
"""

from decimal import Decimal

import pytest

from issues.models import IssueMessage
from issues.state_machines import MessageSender
from issues.tests.factories import IssueMessageFactory
from notifications.handlers import get_handler
from notifications.models import SideEffectKind
from orders.tests.factories import OrderFactory
from payments.ledger import LedgerCategory, LedgerEntry


@pytest.mark.django_db
class TestEmailHandlers:
    def test_issue_message_email(self, mailoutbox, order_item):
        message = IssueMessageFactory(
            issue__order_item=order_item,
            sender_type=MessageSender.ADMIN,
            sender=None,
            content="Could you send a photo of the damage?",
        )

        get_handler(SideEffectKind.ISSUE_MESSAGE_EMAIL)({"message_id": str(message.id)})

        (email,) = mailoutbox
        assert email.to == [order_item.order.customer.email]
        assert "Could you send a photo of the damage?" in email.body
        message = IssueMessage.objects.get(pk=message.pk)
        assert message.email_sent is True
        assert message.email_sent_at is not None

    def test_issue_message_email_sent_once(self, mailoutbox, order_item):
        message = IssueMessageFactory(
            issue__order_item=order_item, sender_type=MessageSender.ADMIN, sender=None
        )
        handler = get_handler(SideEffectKind.ISSUE_MESSAGE_EMAIL)

        handler({"message_id": str(message.id)})
        handler({"message_id": str(message.id)})

        assert len(mailoutbox) == 1

    def test_refund_confirmation_email(self, mailoutbox, delivered_order):
        get_handler(SideEffectKind.REFUND_CONFIRMATION_EMAIL)(
            {
                "order_id": str(delivered_order.id),
                "amount": "7.50",
                "refund_id": "re_123",
                "full_refund": False,
            }
        )

        (email,) = mailoutbox
        assert "partial refund of £7.50" in email.body
        assert "re_123" in email.body

    def test_reprint_confirmation_email(self, mailoutbox, delivered_order):
        reprint = OrderFactory(customer=delivered_order.customer)

        get_handler(SideEffectKind.REPRINT_CONFIRMATION_EMAIL)(
            {
                "original_order_id": str(delivered_order.id),
                "reprint_order_id": str(reprint.id),
            }
        )

        (email,) = mailoutbox
        assert str(reprint.id)[:8].upper() in email.body

    def test_cancellation_approved_email(self, mailoutbox, delivered_order):
        get_handler(SideEffectKind.CANCELLATION_EMAIL)(
            {
                "order_id": str(delivered_order.id),
                "approved": True,
                "refund_amount": "25.00",
                "review_notes": "",
            }
        )

        (email,) = mailoutbox
        assert email.subject.endswith("has been cancelled")
        assert "A refund of £25.00 is on its way." in email.body

    def test_cancellation_rejected_email(self, mailoutbox, delivered_order):
        get_handler(SideEffectKind.CANCELLATION_EMAIL)(
            {
                "order_id": str(delivered_order.id),
                "approved": False,
                "refund_amount": None,
                "review_notes": "Already printing",
            }
        )

        (email,) = mailoutbox
        assert "could not cancel" in email.body
        assert "Note from our team: Already printing" in email.body

    def test_customer_without_email_is_skipped(self, mailoutbox, delivered_order):
        delivered_order.customer.email = ""
        delivered_order.customer.save()

        get_handler(SideEffectKind.REFUND_CONFIRMATION_EMAIL)(
            {"order_id": str(delivered_order.id), "amount": "25.00"}
        )

        assert mailoutbox == []


@pytest.mark.django_db
class TestLedgerHandlers:
    def test_refund_entry(self, delivered_order):
        payload = {
            "order_id": str(delivered_order.id),
            "amount": "25.00",
            "memo": "Issue refund",
            "idempotency_key": "ledger_refund:issue_1",
            "full_refund": True,
        }
        handler = get_handler(SideEffectKind.LEDGER_REFUND_ENTRY)

        handler(payload)
        handler(payload)

        entry = LedgerEntry.objects.get(category=LedgerCategory.REFUND)
        assert entry.gross_amount == Decimal("-25.00")

    def test_reprint_expense(self, delivered_order):
        reprint = OrderFactory(customer=delivered_order.customer)

        get_handler(SideEffectKind.LEDGER_REPRINT_EXPENSE)(
            {
                "original_order_id": str(delivered_order.id),
                "reprint_order_id": str(reprint.id),
                "reason_code": "PRINT_QUALITY",
                "idempotency_key": f"ledger_reprint:{reprint.id}",
            }
        )

        entry = LedgerEntry.objects.get(category=LedgerCategory.REPRINT)
        assert entry.related_order_id == reprint.id
