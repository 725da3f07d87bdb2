"""
Tests for ResolutionService: order-level resolutions and direct refunds.
"""

from decimal import Decimal

import pytest

from notifications.models import SideEffect, SideEffectKind
from orders.models import Order, OrderStatus
from orders.tests.factories import OrderFactory, OrderItemFactory
from payments.exceptions import StripeRateLimitError
from payments.models import Payment
from payments.state_machines import PaymentStatus
from payments.tests.factories import PaymentFactory

from issues.models import Resolution
from issues.services import ResolutionService
from issues.state_machines import ResolutionKind, ResolutionStatus
from issues.tests.factories import ResolutionFactory


@pytest.mark.django_db
class TestCreateResolution:
    def test_refund_with_amount(self, admin_user, delivered_order):
        result = ResolutionService.create_resolution(
            admin_user, delivered_order, ResolutionKind.REFUND, reason=" Faded ", refund_amount="10"
        )

        resolution = result.data
        assert resolution.status == ResolutionStatus.PENDING
        assert resolution.refund_amount == Decimal("10")
        assert resolution.reason == "Faded"
        assert resolution.created_by == admin_user

    @pytest.mark.parametrize("amount", ["abc", "0", "-5"])
    def test_invalid_refund_amount(self, admin_user, delivered_order, amount):
        result = ResolutionService.create_resolution(
            admin_user, delivered_order, ResolutionKind.REFUND, refund_amount=amount
        )

        assert result.error_code == "VALIDATION_ERROR"
        assert not Resolution.objects.exists()

    def test_invalid_type(self, admin_user, delivered_order):
        result = ResolutionService.create_resolution(admin_user, delivered_order, "CREDIT")

        assert result.error_code == "VALIDATION_ERROR"

    def test_reprint_needs_items(self, admin_user, delivered_order):
        result = ResolutionService.create_resolution(
            admin_user, delivered_order, ResolutionKind.REPRINT
        )

        assert result.error_code == "ORDER_HAS_NO_ITEMS"
        assert result.status_code == 409

    def test_reprint_ignores_refund_amount(self, admin_user, order_item):
        result = ResolutionService.create_resolution(
            admin_user, order_item.order, ResolutionKind.REPRINT, refund_amount="5.00"
        )

        assert result.data.refund_amount is None


@pytest.mark.django_db
class TestProcessResolution:
    def test_full_refund_when_no_amount_requested(
        self, admin_user, delivered_order, stripe_gateway
    ):
        resolution = ResolutionFactory(order=delivered_order)

        result = ResolutionService.process_resolution(admin_user, resolution)

        resolution = result.data
        assert resolution.status == ResolutionStatus.COMPLETED
        assert resolution.refund_amount == Decimal("25.00")
        assert resolution.notes.endswith("Refunded £25.00 (re_fake_1).")
        (call,) = stripe_gateway.refund_calls
        assert call["amount_cents"] is None
        assert call["idempotency_key"] == f"resolution_{resolution.id}"
        assert Payment.objects.get(order=delivered_order).status == PaymentStatus.REFUNDED
        assert Order.objects.get(pk=delivered_order.pk).status == OrderStatus.REFUNDED

    def test_partial_refund_below_payment(self, admin_user, delivered_order, stripe_gateway):
        resolution = ResolutionFactory(order=delivered_order, refund_amount=Decimal("7.50"))

        result = ResolutionService.process_resolution(admin_user, resolution)

        assert result.data.refund_amount == Decimal("7.50")
        assert stripe_gateway.refund_calls[0]["amount_cents"] == 750
        assert Payment.objects.get(order=delivered_order).refunded_at is None
        assert Order.objects.get(pk=delivered_order.pk).status == OrderStatus.DELIVERED

    def test_failed_refund_can_be_retried(self, admin_user, delivered_order, stripe_gateway):
        resolution = ResolutionFactory(order=delivered_order)
        stripe_gateway.fail_refunds_with(StripeRateLimitError("Too many requests"))

        failed = ResolutionService.process_resolution(admin_user, resolution)

        assert failed.error_code == "REFUND_FAILED"
        assert failed.data.status == ResolutionStatus.FAILED
        assert failed.data.failure_reason == "Too many requests"

        stripe_gateway.fail_refunds_with(None)
        retried = ResolutionService.process_resolution(admin_user, resolution)

        assert retried.data.status == ResolutionStatus.COMPLETED
        assert len(stripe_gateway.issued_refunds) == 1
        assert {c["idempotency_key"] for c in stripe_gateway.refund_calls} == {
            f"resolution_{resolution.id}"
        }

    def test_completed_resolution_is_returned_as_is(
        self, admin_user, delivered_order, stripe_gateway
    ):
        resolution = ResolutionFactory(order=delivered_order)
        ResolutionService.process_resolution(admin_user, resolution)

        result = ResolutionService.process_resolution(admin_user, resolution)

        assert result.success
        assert len(stripe_gateway.refund_calls) == 1

    def test_reprint_copies_every_item(self, admin_user, delivered_order):
        OrderItemFactory.create_batch(2, order=delivered_order)
        resolution = ResolutionFactory(order=delivered_order, type=ResolutionKind.REPRINT)

        result = ResolutionService.process_resolution(admin_user, resolution)

        reprint = result.data.reprint_order
        assert result.data.status == ResolutionStatus.COMPLETED
        assert reprint.items.count() == 2
        for item in reprint.items.all():
            assert item.get_meta("resolutionId") == str(resolution.id)
            assert item.original_order_id == delivered_order.id
        assert SideEffect.objects.filter(kind=SideEffectKind.LEDGER_REPRINT_EXPENSE).exists()

    def test_refund_of_reprint_order_charges_the_paying_order(
        self, admin_user, customer, order_item, stripe_gateway
    ):
        reprint_order = OrderFactory(
            customer=customer, subtotal=Decimal("0.00"), total_price=Decimal("0.00")
        )
        OrderItemFactory(
            order=reprint_order,
            total_price=Decimal("0.00"),
            original_order=order_item.order,
            original_item=order_item,
        )
        resolution = ResolutionFactory(order=reprint_order)

        result = ResolutionService.process_resolution(admin_user, resolution)

        assert result.success
        (call,) = stripe_gateway.refund_calls
        assert call["payment_intent_id"] == order_item.order.payment.stripe_reference


@pytest.mark.django_db
class TestRefundOrder:
    def test_refunds_order_in_full(self, admin_user, delivered_order, stripe_gateway):
        result = ResolutionService.refund_order(admin_user, delivered_order)

        resolution = result.data
        assert resolution.direct_refund is True
        assert resolution.status == ResolutionStatus.COMPLETED
        assert resolution.reason == "Admin refund"
        (call,) = stripe_gateway.refund_calls
        assert call["idempotency_key"] == f"refund_{delivered_order.id}"
        assert Payment.objects.get(order=delivered_order).status == PaymentStatus.REFUNDED

    def test_repeat_request_returns_completed_refund(
        self, admin_user, delivered_order, stripe_gateway
    ):
        first = ResolutionService.refund_order(admin_user, delivered_order)

        second = ResolutionService.refund_order(admin_user, delivered_order)

        assert second.data.pk == first.data.pk
        assert Resolution.objects.count() == 1
        assert len(stripe_gateway.refund_calls) == 1

    def test_retry_after_failure_reuses_resolution(
        self, admin_user, delivered_order, stripe_gateway
    ):
        stripe_gateway.fail_refunds_with(StripeRateLimitError("Too many requests"))
        ResolutionService.refund_order(admin_user, delivered_order)
        stripe_gateway.fail_refunds_with(None)

        result = ResolutionService.refund_order(admin_user, delivered_order)

        assert result.data.status == ResolutionStatus.COMPLETED
        assert Resolution.objects.count() == 1
        assert len(stripe_gateway.issued_refunds) == 1

    def test_already_refunded_payment(self, admin_user, customer, stripe_gateway):
        order = OrderFactory(customer=customer)
        PaymentFactory(order=order, refunded=True)

        result = ResolutionService.refund_order(admin_user, order)

        assert result.error_code == "ALREADY_REFUNDED"
        assert not Resolution.objects.exists()
        assert stripe_gateway.refund_calls == []

    def test_unconfirmed_session_payment_is_healed(self, admin_user, customer, stripe_gateway):
        order = OrderFactory(customer=customer, status=OrderStatus.PAYMENT_CONFIRMED)
        payment = PaymentFactory(order=order, pending_session=True)
        stripe_gateway.add_session(payment.stripe_reference, "pi_from_session")

        result = ResolutionService.refund_order(admin_user, order)

        assert result.success
        payment = Payment.objects.get(pk=payment.pk)
        assert payment.stripe_reference == "pi_from_session"
        assert payment.status == PaymentStatus.REFUNDED
