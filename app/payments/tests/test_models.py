"""
Tests for the Payment model and its state transitions.
"""

import pytest
from django_fsm import TransitionNotAllowed

from payments.models import Payment
from payments.state_machines import PaymentStatus


@pytest.mark.django_db
class TestPaymentTransitions:
    def test_mark_completed_from_session(self, session_payment):
        session_payment.mark_completed(stripe_reference="pi_learned")
        session_payment.save()

        payment = Payment.objects.get(pk=session_payment.pk)
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.stripe_reference == "pi_learned"
        assert payment.paid_at is not None

    def test_mark_completed_keeps_reference_when_none_given(self, session_payment):
        reference = session_payment.stripe_reference

        session_payment.mark_completed()

        assert session_payment.stripe_reference == reference

    def test_mark_completed_keeps_first_paid_at(self, completed_payment):
        paid_at = completed_payment.paid_at
        completed_payment.mark_refunded("re_1")

        with pytest.raises(TransitionNotAllowed):
            completed_payment.mark_completed()

        assert completed_payment.paid_at == paid_at

    def test_mark_refunded(self, completed_payment):
        completed_payment.mark_refunded(refund_id="re_123")
        completed_payment.save()

        payment = Payment.objects.get(pk=completed_payment.pk)
        assert payment.status == PaymentStatus.REFUNDED
        assert payment.stripe_refund_id == "re_123"
        assert payment.refunded_at is not None

    def test_refunded_payment_cannot_be_refunded_again(self, refunded_payment):
        with pytest.raises(TransitionNotAllowed):
            refunded_payment.mark_refunded("re_again")

        assert refunded_payment.stripe_refund_id == "re_previous"

    def test_pending_payment_cannot_be_refunded(self, session_payment):
        with pytest.raises(TransitionNotAllowed):
            session_payment.mark_refunded("re_123")

    def test_mark_failed(self, session_payment):
        session_payment.mark_failed(reason="Card expired")

        assert session_payment.status == PaymentStatus.FAILED
        assert session_payment.failure_reason == "Card expired"

    def test_status_is_protected(self, completed_payment):
        with pytest.raises(AttributeError):
            completed_payment.status = PaymentStatus.PENDING

    def test_str(self, completed_payment):
        assert str(completed_payment).endswith("25.00 GBP)")
