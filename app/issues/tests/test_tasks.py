"""
Tests for the issue maintenance tasks.
"""

from datetime import timedelta

import pytest
from django.utils import timezone
from freezegun import freeze_time

from orders.tests.factories import OrderFactory, OrderItemFactory
from payments.tests.factories import PaymentFactory

from issues.models import Issue, Resolution
from issues.services.lifecycle import AUTO_CLOSE_MESSAGE
from issues.state_machines import (
    IssueStatus,
    MessageSender,
    ResolutionStatus,
    ResolutionType,
)
from issues.tasks import auto_close_stale_issues, recover_stuck_processing
from issues.tests.factories import IssueFactory, IssueMessageFactory, ResolutionFactory


@pytest.mark.django_db
class TestAutoCloseStaleIssues:
    @pytest.fixture
    def stale_issue(self, order_item):
        with freeze_time("2024-03-01 09:00:00"):
            issue = IssueFactory(
                order_item=order_item,
                status=IssueStatus.INFO_REQUESTED,
                reviewed_at=timezone.now(),
            )
            IssueMessageFactory(issue=issue, sender_type=MessageSender.ADMIN, sender=None)
        return issue

    def test_closes_unanswered_info_requests(self, stale_issue):
        with freeze_time("2024-03-16 09:00:00"):
            result = auto_close_stale_issues()

        assert result == {"closed": 1}
        issue = Issue.objects.get(pk=stale_issue.pk)
        assert issue.status == IssueStatus.CLOSED
        assert issue.closed_at is not None
        last = issue.messages.order_by("-created_at").first()
        assert last.content == AUTO_CLOSE_MESSAGE.format(days=14)

    def test_customer_reply_keeps_issue_open(self, stale_issue):
        with freeze_time("2024-03-02 09:00:00"):
            IssueMessageFactory(issue=stale_issue)

        with freeze_time("2024-03-16 09:00:00"):
            result = auto_close_stale_issues()

        assert result == {"closed": 0}
        assert Issue.objects.get(pk=stale_issue.pk).status == IssueStatus.INFO_REQUESTED

    def test_recent_requests_are_left_alone(self, stale_issue):
        with freeze_time("2024-03-10 09:00:00"):
            result = auto_close_stale_issues()

        assert result == {"closed": 0}


@pytest.mark.django_db
class TestRecoverStuckProcessing:
    @pytest.fixture
    def stuck_issue(self, order_item):
        return IssueFactory(
            order_item=order_item,
            status=IssueStatus.PROCESSING,
            resolved_type=ResolutionType.FULL_REFUND,
            processing_started_at=timezone.now() - timedelta(hours=1),
        )

    def test_completes_stuck_refund(self, stuck_issue, stripe_gateway):
        result = recover_stuck_processing()

        assert result == {"recovered": 1, "failed": 0}
        issue = Issue.objects.get(pk=stuck_issue.pk)
        assert issue.status == IssueStatus.COMPLETED
        assert stripe_gateway.refund_calls[0]["idempotency_key"] == f"issue_{issue.id}"

    def test_refund_stripe_already_made_is_not_repeated(self, stuck_issue, stripe_gateway):
        # The crashed worker reached Stripe before dying
        earlier = stripe_gateway.create_refund(
            payment_intent_id=stuck_issue.order_item.order.payment.stripe_reference,
            idempotency_key=f"issue_{stuck_issue.id}",
        )

        recover_stuck_processing()

        issue = Issue.objects.get(pk=stuck_issue.pk)
        assert issue.stripe_refund_id == earlier.id
        assert len(stripe_gateway.issued_refunds) == 1

    def test_recent_processing_is_left_alone(self, order_item, stripe_gateway):
        IssueFactory(
            order_item=order_item,
            status=IssueStatus.PROCESSING,
            resolved_type=ResolutionType.FULL_REFUND,
            processing_started_at=timezone.now(),
        )

        result = recover_stuck_processing()

        assert result == {"recovered": 0, "failed": 0}
        assert stripe_gateway.refund_calls == []

    def test_failed_preconditions_revert_the_issue(self, customer, stripe_gateway):
        order = OrderFactory(customer=customer)
        PaymentFactory(order=order, refunded=True)
        issue = IssueFactory(
            order_item=OrderItemFactory(order=order),
            status=IssueStatus.PROCESSING,
            resolved_type=ResolutionType.FULL_REFUND,
            processing_started_at=timezone.now() - timedelta(hours=1),
        )

        result = recover_stuck_processing()

        assert result == {"recovered": 0, "failed": 1}
        assert Issue.objects.get(pk=issue.pk).status == IssueStatus.APPROVED_REFUND
        assert stripe_gateway.refund_calls == []

    def test_recovers_stuck_resolutions(self, delivered_order, stripe_gateway):
        resolution = ResolutionFactory(
            order=delivered_order,
            status=ResolutionStatus.PROCESSING,
            processing_started_at=timezone.now() - timedelta(hours=1),
        )

        result = recover_stuck_processing(older_than_minutes=30)

        assert result == {"recovered": 1, "failed": 0}
        assert Resolution.objects.get(pk=resolution.pk).status == ResolutionStatus.COMPLETED
