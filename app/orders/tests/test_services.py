"""
Tests for CancellationService.
"""

from decimal import Decimal

import pytest

from audit.models import AuditAction
from notifications.models import SideEffect, SideEffectKind
from orders.models import CancellationRequest, CancellationRequestStatus, Order, OrderStatus
from orders.services import CancellationService
from orders.tests.factories import CancellationRequestFactory, OrderFactory
from payments.exceptions import StripeAPIUnavailableError
from payments.models import Payment
from payments.state_machines import PaymentStatus
from payments.tests.factories import PaymentFactory


@pytest.mark.django_db
class TestRequestCancellation:
    def test_creates_pending_request(self, customer, confirmed_order):
        result = CancellationService.request_cancellation(
            customer, confirmed_order, reason="Ordered the wrong size"
        )

        request = result.data
        assert request.status == CancellationRequestStatus.PENDING
        assert request.previous_status == OrderStatus.CONFIRMED
        assert request.requested_by == customer
        order = Order.objects.get(pk=confirmed_order.pk)
        assert order.status == OrderStatus.CANCELLATION_REQUESTED

    def test_reason_is_required(self, customer, confirmed_order):
        result = CancellationService.request_cancellation(customer, confirmed_order, reason=" ")

        assert result.error_code == "VALIDATION_ERROR"

    def test_only_the_customer_may_ask(self, other_customer, confirmed_order):
        result = CancellationService.request_cancellation(
            other_customer, confirmed_order, reason="Not mine"
        )

        assert result.error_code == "PERMISSION_DENIED"

    @pytest.mark.parametrize(
        "status, message",
        [
            (OrderStatus.PRINTING, "Your order has already started production"),
            (OrderStatus.SHIPPED, "Your order has already been shipped"),
            (OrderStatus.REFUNDED, "This order has already been cancelled or refunded."),
            (OrderStatus.CANCELLATION_REQUESTED, "A cancellation request is already pending"),
        ],
    )
    def test_orders_past_production_cannot_be_cancelled(self, customer, status, message):
        order = OrderFactory(customer=customer, status=status)

        result = CancellationService.request_cancellation(customer, order, reason="Changed my mind")

        assert result.error_code == "CANCELLATION_NOT_ALLOWED"
        assert result.error.startswith(message)
        assert not CancellationRequest.objects.exists()


@pytest.mark.django_db
class TestApproveCancellation:
    def test_approve_refunds_and_cancels(self, admin_user, pending_request, stripe_gateway):
        result = CancellationService.review(
            admin_user, pending_request, "APPROVE", review_notes="Refunded"
        )

        assert result.data.status == CancellationRequestStatus.APPROVED
        assert result.data.reviewed_by == admin_user

        order = Order.objects.get(pk=pending_request.order_id)
        assert order.status == OrderStatus.CANCELLED
        assert order.cancelled_by == admin_user
        assert order.refund_amount == Decimal("25.00")
        assert order.refund_reference == "re_fake_1"

        payment = Payment.objects.get(order=order)
        assert payment.status == PaymentStatus.REFUNDED

        (call,) = stripe_gateway.refund_calls
        assert call["idempotency_key"] == f"cancel_request_{order.id}"
        assert call["amount_cents"] is None

    def test_approve_queues_email_ledger_and_audits(
        self, admin_user, pending_request, stripe_gateway
    ):
        CancellationService.review(admin_user, pending_request, "APPROVE")

        email = SideEffect.objects.get(kind=SideEffectKind.CANCELLATION_EMAIL)
        assert email.payload["approved"] is True
        assert email.payload["refund_amount"] == "25.00"
        ledger = SideEffect.objects.get(kind=SideEffectKind.LEDGER_REFUND_ENTRY)
        assert ledger.payload["idempotency_key"] == (
            f"ledger_refund:cancel_request_{pending_request.order_id}"
        )
        actions = sorted(
            row.payload["action"] for row in SideEffect.objects.filter(kind=SideEffectKind.AUDIT)
        )
        assert actions == sorted([AuditAction.CANCELLATION_APPROVED, AuditAction.ORDER_CANCELLED])

    def test_approve_without_refund(self, admin_user, pending_request, stripe_gateway):
        result = CancellationService.review(
            admin_user, pending_request, "APPROVE", process_refund=False
        )

        assert result.success
        assert stripe_gateway.refund_calls == []
        assert Payment.objects.get(order_id=pending_request.order_id).status == (
            PaymentStatus.COMPLETED
        )
        assert not SideEffect.objects.filter(kind=SideEffectKind.LEDGER_REFUND_ENTRY).exists()

    def test_unpaid_order_is_cancelled_without_refund(self, admin_user, stripe_gateway):
        request = CancellationRequestFactory(previous_status=OrderStatus.PENDING)

        result = CancellationService.review(admin_user, request, "APPROVE")

        assert result.success
        assert stripe_gateway.refund_calls == []
        assert Order.objects.get(pk=request.order_id).status == OrderStatus.CANCELLED

    @pytest.mark.parametrize("payment_intent_id", [None, "pi_abandoned"])
    def test_abandoned_checkout_is_cancelled_without_refund(
        self, admin_user, stripe_gateway, payment_intent_id
    ):
        request = CancellationRequestFactory(previous_status=OrderStatus.PENDING)
        payment = PaymentFactory(order=request.order, pending_session=True)
        stripe_gateway.add_session(
            payment.stripe_reference, payment_intent_id, payment_status="unpaid"
        )

        result = CancellationService.review(admin_user, request, "APPROVE")

        assert result.data.status == CancellationRequestStatus.APPROVED
        assert stripe_gateway.refund_calls == []
        order = Order.objects.get(pk=request.order_id)
        assert order.status == OrderStatus.CANCELLED
        assert order.refund_amount is None
        payment = Payment.objects.get(pk=payment.pk)
        assert payment.status == PaymentStatus.PENDING
        assert payment.stripe_reference.startswith("cs_")
        assert not SideEffect.objects.filter(kind=SideEffectKind.LEDGER_REFUND_ENTRY).exists()

    def test_paid_checkout_is_confirmed_then_refunded(self, admin_user, stripe_gateway):
        request = CancellationRequestFactory(previous_status=OrderStatus.PAYMENT_CONFIRMED)
        payment = PaymentFactory(order=request.order, pending_session=True)
        stripe_gateway.add_session(payment.stripe_reference, "pi_from_session")

        result = CancellationService.review(admin_user, request, "APPROVE")

        assert result.data.status == CancellationRequestStatus.APPROVED
        (call,) = stripe_gateway.refund_calls
        assert call["payment_intent_id"] == "pi_from_session"
        assert call["idempotency_key"] == f"cancel_request_{request.order_id}"
        payment = Payment.objects.get(pk=payment.pk)
        assert payment.stripe_reference == "pi_from_session"
        assert payment.status == PaymentStatus.REFUNDED
        assert Order.objects.get(pk=request.order_id).status == OrderStatus.CANCELLED

    def test_failed_refund_leaves_request_pending(
        self, admin_user, pending_request, stripe_gateway
    ):
        stripe_gateway.fail_refunds_with(StripeAPIUnavailableError("Stripe is down"))

        result = CancellationService.review(admin_user, pending_request, "APPROVE")

        assert result.error_code == "REFUND_FAILED"
        assert result.error == "Refund failed: Stripe is down. Request not approved."
        request = CancellationRequest.objects.get(pk=pending_request.pk)
        assert request.status == CancellationRequestStatus.PENDING
        assert Order.objects.get(pk=pending_request.order_id).status == (
            OrderStatus.CANCELLATION_REQUESTED
        )
        assert not SideEffect.objects.exists()

    def test_retry_after_failure_refunds_once(self, admin_user, pending_request, stripe_gateway):
        stripe_gateway.fail_refunds_with(StripeAPIUnavailableError("Stripe is down"))
        CancellationService.review(admin_user, pending_request, "APPROVE")
        stripe_gateway.fail_refunds_with(None)

        result = CancellationService.review(admin_user, pending_request, "APPROVE")

        assert result.data.status == CancellationRequestStatus.APPROVED
        assert len(stripe_gateway.issued_refunds) == 1

    def test_reviewed_request_cannot_be_reviewed_again(
        self, admin_user, pending_request, stripe_gateway
    ):
        CancellationService.review(admin_user, pending_request, "APPROVE")

        result = CancellationService.review(admin_user, pending_request, "REJECT")

        assert result.error_code == "CANCELLATION_ALREADY_REVIEWED"
        assert len(stripe_gateway.refund_calls) == 1

    def test_order_moved_on_conflicts(self, admin_user, pending_request):
        Order.objects.filter(pk=pending_request.order_id).update(status=OrderStatus.PRINTING)

        result = CancellationService.review(admin_user, pending_request, "APPROVE")

        assert result.error_code == "ORDER_NOT_CANCELLATION_REQUESTED"

    def test_invalid_action(self, admin_user, pending_request):
        result = CancellationService.review(admin_user, pending_request, "MAYBE")

        assert result.error_code == "VALIDATION_ERROR"


@pytest.mark.django_db
class TestRejectCancellation:
    def test_reject_restores_previous_status(self, admin_user, pending_request, stripe_gateway):
        result = CancellationService.review(admin_user, pending_request, "REJECT")

        assert result.data.status == CancellationRequestStatus.REJECTED
        assert result.data.review_notes == "Cancellation request rejected"
        assert Order.objects.get(pk=pending_request.order_id).status == OrderStatus.CONFIRMED
        assert stripe_gateway.refund_calls == []

    def test_reject_notifies_customer(self, admin_user, pending_request):
        CancellationService.review(
            admin_user, pending_request, "REJECT", review_notes="Already printing"
        )

        email = SideEffect.objects.get(kind=SideEffectKind.CANCELLATION_EMAIL)
        assert email.payload["approved"] is False
        assert email.payload["review_notes"] == "Already printing"
        audit = SideEffect.objects.get(kind=SideEffectKind.AUDIT)
        assert audit.payload["action"] == AuditAction.CANCELLATION_REJECTED

    def test_unknown_previous_status_falls_back_to_confirmed(self, admin_user):
        request = CancellationRequestFactory(previous_status=OrderStatus.SHIPPED)
        PaymentFactory(order=request.order)

        CancellationService.review(admin_user, request, "REJECT")

        assert Order.objects.get(pk=request.order_id).status == OrderStatus.CONFIRMED
