"""
Tests for Stripe adapter.

Tests cover:
- Idempotency key generation
- Error translation for each exception type
- PaymentIntent and Checkout Session lookups
- Refund creation
- Configuration from settings
"""

import uuid

import pytest
import stripe
from django.test import override_settings

from payments.adapters import (
    CheckoutSessionResult,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    RefundResult,
    StripeAdapter,
    is_retryable_stripe_error,
)
from payments.adapters.tests.conftest import MockStripeObject
from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeAuthenticationError,
    StripeCardDeclinedError,
    StripeInsufficientFundsError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)


# =============================================================================
# IdempotencyKeyGenerator Tests
# =============================================================================


class TestIdempotencyKeyGenerator:
    """Tests for IdempotencyKeyGenerator."""

    def test_key_format(self):
        entity_id = uuid.UUID("550e8400-e29b-41d4-a716-446655440000")

        key = IdempotencyKeyGenerator.for_case("issue", entity_id)

        assert key == "issue_550e8400-e29b-41d4-a716-446655440000"

    def test_same_action_produces_same_key(self):
        entity_id = uuid.uuid4()

        assert IdempotencyKeyGenerator.for_case(
            "resolution", entity_id
        ) == IdempotencyKeyGenerator.for_case("resolution", str(entity_id))

    def test_prefix_separates_actions_on_one_order(self):
        order_id = uuid.uuid4()

        assert IdempotencyKeyGenerator.for_case(
            "refund", order_id
        ) != IdempotencyKeyGenerator.for_case("cancel_request", order_id)

    def test_prefix_required(self):
        with pytest.raises(ValueError, match="prefix is required"):
            IdempotencyKeyGenerator.for_case("", uuid.uuid4())


# =============================================================================
# is_retryable_stripe_error Tests
# =============================================================================


class TestIsRetryableStripeError:
    @pytest.mark.parametrize(
        "error_class",
        [StripeRateLimitError, StripeAPIUnavailableError, StripeTimeoutError],
    )
    def test_transient_errors(self, error_class):
        assert is_retryable_stripe_error(error_class("transient")) is True

    @pytest.mark.parametrize(
        "error_class",
        [
            StripeCardDeclinedError,
            StripeInsufficientFundsError,
            StripeInvalidRequestError,
            StripeAuthenticationError,
        ],
    )
    def test_permanent_errors(self, error_class):
        assert is_retryable_stripe_error(error_class("permanent")) is False

    def test_non_stripe_errors(self):
        assert is_retryable_stripe_error(ValueError("boom")) is False


# =============================================================================
# Error Translation Tests
# =============================================================================


class TestStripeAdapterErrorTranslation:
    """Tests for Stripe error translation to domain exceptions."""

    def _refund(self):
        return StripeAdapter.create_refund(
            payment_intent_id="pi_test", idempotency_key="issue_test"
        )

    def test_card_declined_error(self, mock_stripe_refund, card_error):
        mock_stripe_refund.create.side_effect = card_error()

        with pytest.raises(StripeCardDeclinedError) as exc_info:
            self._refund()

        assert exc_info.value.decline_code == "generic_decline"
        assert exc_info.value.is_retryable is False

    def test_insufficient_funds_error(self, mock_stripe_refund, card_error):
        mock_stripe_refund.create.side_effect = card_error(decline_code="insufficient_funds")

        with pytest.raises(StripeInsufficientFundsError):
            self._refund()

    def test_invalid_request_error(self, mock_stripe_refund, invalid_request_error):
        mock_stripe_refund.create.side_effect = invalid_request_error(
            message="Charge pi_test has already been refunded.",
            code="charge_already_refunded",
        )

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            self._refund()

        assert exc_info.value.stripe_code == "charge_already_refunded"
        assert exc_info.value.is_retryable is False

    def test_rate_limit_error(self, mock_stripe_refund, rate_limit_error):
        mock_stripe_refund.create.side_effect = rate_limit_error

        with pytest.raises(StripeRateLimitError) as exc_info:
            self._refund()

        assert exc_info.value.is_retryable is True

    def test_api_connection_error(self, mock_stripe_refund, api_connection_error):
        mock_stripe_refund.create.side_effect = api_connection_error

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            self._refund()

        assert exc_info.value.is_retryable is True

    def test_connection_timeout(self, mock_stripe_refund):
        mock_stripe_refund.create.side_effect = stripe.APIConnectionError(
            message="Request timed out"
        )

        with pytest.raises(StripeTimeoutError):
            self._refund()

    def test_api_error(self, mock_stripe_refund, api_error):
        mock_stripe_refund.create.side_effect = api_error

        with pytest.raises(StripeAPIUnavailableError):
            self._refund()

    def test_authentication_error(self, mock_stripe_refund, authentication_error):
        mock_stripe_refund.create.side_effect = authentication_error

        with pytest.raises(StripeAuthenticationError) as exc_info:
            self._refund()

        assert exc_info.value.is_retryable is False

    def test_unknown_error(self, mock_stripe_refund):
        mock_stripe_refund.create.side_effect = RuntimeError("Unexpected")

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            self._refund()

        assert "Unexpected" in str(exc_info.value)

    def test_domain_errors_pass_through(self, mock_stripe_refund):
        error = StripeTimeoutError("already translated")
        mock_stripe_refund.create.side_effect = error

        with pytest.raises(StripeTimeoutError) as exc_info:
            self._refund()

        assert exc_info.value is error


# =============================================================================
# StripeAdapter API Operation Tests
# =============================================================================


class TestStripeAdapterCreateRefund:
    """Tests for StripeAdapter.create_refund."""

    def test_full_refund_omits_amount(self, mock_stripe_refund, mock_refund):
        mock_stripe_refund.create.return_value = mock_refund(
            id="re_test123", amount=2500, payment_intent="pi_original"
        )

        result = StripeAdapter.create_refund(
            payment_intent_id="pi_original",
            idempotency_key="resolution_abc",
        )

        assert isinstance(result, RefundResult)
        assert result.id == "re_test123"
        assert result.amount_cents == 2500
        assert result.payment_intent_id == "pi_original"
        call_kwargs = mock_stripe_refund.create.call_args.kwargs
        assert "amount" not in call_kwargs
        assert call_kwargs["idempotency_key"] == "resolution_abc"

    def test_partial_refund(self, mock_stripe_refund, mock_refund):
        mock_stripe_refund.create.return_value = mock_refund(amount=750)

        StripeAdapter.create_refund(
            payment_intent_id="pi_test",
            idempotency_key="issue_abc",
            amount_cents=750,
            reason="requested_by_customer",
            metadata={"issueId": "abc"},
        )

        call_kwargs = mock_stripe_refund.create.call_args.kwargs
        assert call_kwargs["amount"] == 750
        assert call_kwargs["reason"] == "requested_by_customer"
        assert call_kwargs["metadata"] == {"issueId": "abc"}
        assert call_kwargs["payment_intent"] == "pi_test"

    def test_expanded_payment_intent(self, mock_stripe_refund, mock_refund):
        refund = mock_refund()
        refund.data["payment_intent"] = MockStripeObject({"id": "pi_expanded"})
        mock_stripe_refund.create.return_value = refund

        result = StripeAdapter.create_refund(
            payment_intent_id="pi_test", idempotency_key="issue_abc"
        )

        assert result.payment_intent_id == "pi_expanded"


class TestStripeAdapterLookups:
    def test_retrieve_payment_intent(self, mock_stripe_payment_intent, mock_payment_intent):
        mock_stripe_payment_intent.retrieve.return_value = mock_payment_intent(
            id="pi_test123", status="succeeded"
        )

        result = StripeAdapter.retrieve_payment_intent("pi_test123")

        assert isinstance(result, PaymentIntentResult)
        assert result.is_paid is True
        mock_stripe_payment_intent.retrieve.assert_called_once_with("pi_test123")

    def test_unpaid_payment_intent(self, mock_stripe_payment_intent, mock_payment_intent):
        mock_stripe_payment_intent.retrieve.return_value = mock_payment_intent(
            status="requires_payment_method"
        )

        assert StripeAdapter.retrieve_payment_intent("pi_test123").is_paid is False

    def test_retrieve_payment_intent_not_found(
        self, mock_stripe_payment_intent, invalid_request_error
    ):
        mock_stripe_payment_intent.retrieve.side_effect = invalid_request_error()

        with pytest.raises(StripeInvalidRequestError):
            StripeAdapter.retrieve_payment_intent("pi_missing")

    def test_retrieve_checkout_session(self, mock_stripe_checkout_session):
        result = StripeAdapter.retrieve_checkout_session("cs_test123456")

        assert isinstance(result, CheckoutSessionResult)
        assert result.is_paid is True
        assert result.payment_intent_id == "pi_test123456"
        assert result.amount_total_cents == 2500

    def test_checkout_session_with_expanded_intent(
        self, mock_stripe_checkout_session, mock_checkout_session
    ):
        mock_stripe_checkout_session.retrieve.return_value = mock_checkout_session(
            payment_intent=MockStripeObject({"id": "pi_expanded"})
        )

        result = StripeAdapter.retrieve_checkout_session("cs_test123456")

        assert result.payment_intent_id == "pi_expanded"

    def test_checkout_session_without_intent(
        self, mock_stripe_checkout_session, mock_checkout_session
    ):
        mock_stripe_checkout_session.retrieve.return_value = mock_checkout_session(
            payment_status="unpaid", payment_intent=None
        )

        result = StripeAdapter.retrieve_checkout_session("cs_test123456")

        assert result.payment_intent_id is None
        assert result.is_paid is False


class TestStripeAdapterConfiguration:
    """Tests for Stripe adapter configuration."""

    @override_settings(STRIPE_SECRET_KEY="sk_test_custom")
    def test_uses_settings_api_key(self, mock_stripe_payment_intent):
        StripeAdapter.retrieve_payment_intent("pi_test123456")

        assert stripe.api_key == "sk_test_custom"

    @override_settings(STRIPE_API_TIMEOUT_SECONDS=30)
    def test_uses_settings_timeout(self, mock_stripe_payment_intent, mock_stripe_http_client):
        StripeAdapter.retrieve_payment_intent("pi_test123456")

        mock_stripe_http_client.assert_called_with(timeout=30)
