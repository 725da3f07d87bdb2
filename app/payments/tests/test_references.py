"""
Tests for PaymentReference parsing.
"""

import pytest

from payments.exceptions import PaymentReferenceError
from payments.references import PaymentReference, ReferenceKind


class TestPaymentReferenceParse:
    def test_payment_intent(self):
        ref = PaymentReference.parse("pi_3abc")

        assert ref.kind == ReferenceKind.CHARGE
        assert ref.value == "pi_3abc"
        assert ref.is_session is False

    def test_checkout_session(self):
        ref = PaymentReference.parse("cs_test_a1b2")

        assert ref.kind == ReferenceKind.SESSION
        assert ref.is_session is True

    def test_surrounding_whitespace_is_ignored(self):
        assert str(PaymentReference.parse("  pi_3abc\n")) == "pi_3abc"

    @pytest.mark.parametrize("raw", [None, "", "   ", "pi_", "cs_", "ch_3abc", "re_123", "PI_3abc"])
    def test_unknown_shapes_are_rejected(self, raw):
        with pytest.raises(PaymentReferenceError) as exc_info:
            PaymentReference.parse(raw)

        assert exc_info.value.message == "Unknown payment ID format"
        assert exc_info.value.error_code == "UNKNOWN_PAYMENT_REFERENCE"

    def test_error_details_truncate_reference(self):
        with pytest.raises(PaymentReferenceError) as exc_info:
            PaymentReference.parse("sub_" + "x" * 40)

        assert len(exc_info.value.details["reference"]) == 15

    def test_charge_constructor(self):
        ref = PaymentReference.charge("pi_healed")

        assert ref == PaymentReference.parse("pi_healed")
