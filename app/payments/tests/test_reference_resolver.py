"""
Tests for PaymentReferenceResolver.
"""

import pytest

from payments.exceptions import StripeAPIUnavailableError
from payments.models import Payment
from payments.services import PaymentReferenceResolver, ResolvedPayment
from payments.state_machines import PaymentStatus
from payments.tests.factories import PaymentFactory


class TestResolve:
    def test_payment_intent_is_looked_up(self, stripe_gateway):
        resolved = PaymentReferenceResolver.resolve("pi_abc")

        assert resolved.charge_id == "pi_abc"
        assert resolved.is_paid is True
        assert resolved.healed_from_session is False
        assert stripe_gateway.lookups == ["pi_abc"]

    def test_unpaid_payment_intent(self, stripe_gateway):
        stripe_gateway.add_intent("pi_abc", status="requires_payment_method")

        resolved = PaymentReferenceResolver.resolve("pi_abc")

        assert resolved.resolved is True
        assert resolved.is_paid is False

    def test_paid_session_resolves_to_its_intent(self, stripe_gateway):
        stripe_gateway.add_session("cs_abc", payment_intent_id="pi_from_session")

        resolved = PaymentReferenceResolver.resolve("cs_abc")

        assert resolved.charge_id == "pi_from_session"
        assert resolved.is_paid is True
        assert resolved.healed_from_session is True

    def test_unpaid_session(self, stripe_gateway):
        stripe_gateway.add_session("cs_abc", "pi_abc", payment_status="unpaid")

        resolved = PaymentReferenceResolver.resolve("cs_abc")

        assert resolved.charge_id == "pi_abc"
        assert resolved.is_paid is False

    def test_session_without_intent(self, stripe_gateway):
        stripe_gateway.add_session("cs_abc", payment_intent_id=None)

        resolved = PaymentReferenceResolver.resolve("cs_abc")

        assert resolved.resolved is False
        assert resolved.error == "Checkout session has no payment intent"

    def test_unknown_session(self, stripe_gateway):
        resolved = PaymentReferenceResolver.resolve("cs_missing")

        assert resolved.resolved is False
        assert "No such checkout.session" in resolved.error

    def test_unknown_format_never_reaches_stripe(self, stripe_gateway):
        resolved = PaymentReferenceResolver.resolve("ch_legacy")

        assert resolved.resolved is False
        assert resolved.error == "Unknown payment ID format"
        assert stripe_gateway.lookups == []

    def test_gateway_outage_is_reported(self, stripe_gateway, mocker):
        mocker.patch.object(
            stripe_gateway,
            "retrieve_payment_intent",
            side_effect=StripeAPIUnavailableError("Could not connect to Stripe. Please retry."),
        )

        resolved = PaymentReferenceResolver.resolve("pi_abc")

        assert resolved.resolved is False
        assert resolved.error == "Could not connect to Stripe. Please retry."


@pytest.mark.django_db
class TestReconcile:
    def test_pending_session_payment_is_completed(self, session_payment):
        resolved = ResolvedPayment(
            charge_id="pi_healed", is_paid=True, healed_from_session=True
        )

        assert PaymentReferenceResolver.reconcile(session_payment, resolved) is True

        payment = Payment.objects.get(pk=session_payment.pk)
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.stripe_reference == "pi_healed"
        assert payment.paid_at is not None

    def test_completed_payment_only_gets_its_reference(self):
        payment = PaymentFactory(stripe_reference="cs_completed", paid_at=None)
        resolved = ResolvedPayment(
            charge_id="pi_healed", is_paid=True, healed_from_session=True
        )

        PaymentReferenceResolver.reconcile(payment, resolved)

        payment = Payment.objects.get(pk=payment.pk)
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.stripe_reference == "pi_healed"
        assert payment.paid_at is not None

    @pytest.mark.parametrize(
        "resolved",
        [
            ResolvedPayment(charge_id="pi_abc", is_paid=True),
            ResolvedPayment(charge_id="pi_abc", is_paid=False, healed_from_session=True),
            ResolvedPayment(charge_id=None, error="lookup failed"),
        ],
    )
    def test_nothing_to_repair(self, session_payment, resolved):
        reference = session_payment.stripe_reference

        assert PaymentReferenceResolver.reconcile(session_payment, resolved) is False

        payment = Payment.objects.get(pk=session_payment.pk)
        assert payment.status == PaymentStatus.PENDING
        assert payment.stripe_reference == reference
