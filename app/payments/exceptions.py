"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentReferenceError - Stored reference unparseable or unresolvable
    ├── RefundNotAllowedError - Refund preconditions not met
    └── PaymentProcessingError - Gateway call failed
        └── StripeError - Base for all Stripe errors
            ├── StripeCardDeclinedError - Card declined (permanent)
            ├── StripeInsufficientFundsError - Insufficient funds (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeAuthenticationError - Bad API key (permanent)
            ├── StripeRateLimitError - Rate limited (transient, retry)
            ├── StripeAPIUnavailableError - API unavailable (transient, retry)
            └── StripeTimeoutError - Request timeout (transient, retry)

    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)

Gateway messages (``message``) are surfaced to admins; ``user_message``
is the wording safe to show customers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """Base exception for all payment operations."""

    default_error_code: str = "PAYMENT_ERROR"
    status_code = 400


class PaymentReferenceError(PaymentError):
    """
    Raised when a stored gateway reference cannot be turned into a charge.

    Covers unknown reference shapes, gateway lookup failures, sessions with
    no linked payment intent, and charges that were never paid. Terminal
    for the refund attempt: no gateway refund may be issued.

    Example:
        raise PaymentReferenceError(
            "Unknown payment ID format",
            details={"reference": raw},
        )
    """

    default_error_code: str = "PAYMENT_REFERENCE_UNRESOLVED"
    status_code = 409


class RefundNotAllowedError(PaymentError):
    """
    Raised when refund preconditions fail before the gateway is called.

    Use for:
    - No payment (or no gateway reference) for the order
    - Payment not COMPLETED
    - Payment already refunded (refunded_at set)
    - Refund amount not positive
    """

    default_error_code: str = "REFUND_NOT_ALLOWED"
    status_code = 409


class PaymentProcessingError(PaymentError):
    """Raised when a gateway operation fails."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"
    status_code = 502


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        decline_code: Card decline code (if applicable)
        is_retryable: Whether the same request may succeed later

    Because every refund carries a deterministic idempotency key,
    retrying after a retryable error never creates a second refund.
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False
    user_message: str = "The payment provider could not process the request."

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """Card was declined by the issuing bank."""

    default_error_code: str = "CARD_DECLINED"
    is_retryable: bool = False
    user_message = "The card was declined."


class StripeInsufficientFundsError(StripeError):
    default_error_code: str = "INSUFFICIENT_FUNDS"
    is_retryable: bool = False
    user_message = "The card has insufficient funds."


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Possible causes:
    - Unknown payment intent or session ID
    - Charge already fully refunded at the gateway
    - Refund amount greater than the captured amount
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False
    user_message = "The payment could not be found or is not refundable."


class StripeAuthenticationError(StripeError):
    """API key missing or rejected. Needs operator attention."""

    default_error_code: str = "STRIPE_AUTHENTICATION_ERROR"
    is_retryable: bool = False
    user_message = "The payment provider is misconfigured. Please contact support."


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with the same idempotency key)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True
    user_message = "The payment provider is busy. Please try again shortly."


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable.

    This covers network connectivity issues and Stripe server errors (5xx).
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True
    user_message = "The payment provider is temporarily unavailable. Please try again."


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out.

    The operation may have succeeded on Stripe's side. Retrying with the
    same idempotency key returns the original result.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True
    user_message = "The payment provider did not respond in time. Please try again."


# =============================================================================
# State Machine Exceptions
# =============================================================================


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a django-fsm transition is not allowed from the current state.

    Example:
        raise InvalidStateTransitionError(
            "Cannot refund payment from 'pending' state",
            details={"current_state": "pending", "target_state": "refunded"},
        )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


__all__ = [
    "PaymentError",
    "PaymentReferenceError",
    "RefundNotAllowedError",
    "PaymentProcessingError",
    "StripeError",
    "StripeCardDeclinedError",
    "StripeInsufficientFundsError",
    "StripeInvalidRequestError",
    "StripeAuthenticationError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
    "InvalidStateTransitionError",
]
