"""
Parsed Stripe payment references.

A Payment's stored reference is either a Checkout Session ID (written when
the customer is sent to Stripe) or a PaymentIntent ID (written once the
webhook, or the refund-path reconciliation, learns it). This module is the
only place raw reference strings are inspected; everything downstream works
with a PaymentReference.

Usage:
    from payments.references import PaymentReference, ReferenceKind

    ref = PaymentReference.parse(payment.stripe_reference)
    if ref.kind == ReferenceKind.SESSION:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from payments.exceptions import PaymentReferenceError


class ReferenceKind(str, Enum):
    """Shape of a stored Stripe reference, keyed by its ID prefix."""

    CHARGE = "pi_"
    SESSION = "cs_"


@dataclass(frozen=True)
class PaymentReference:
    """
    A Stripe reference tagged with its kind.

    Attributes:
        kind: CHARGE for PaymentIntents, SESSION for Checkout Sessions
        value: The full Stripe ID
    """

    kind: ReferenceKind
    value: str

    @classmethod
    def parse(cls, raw: str | None) -> PaymentReference:
        """
        Parse a raw stored reference.

        Raises:
            PaymentReferenceError: Empty value or unknown prefix
        """
        value = (raw or "").strip()
        for kind in ReferenceKind:
            if value.startswith(kind.value) and len(value) > len(kind.value):
                return cls(kind=kind, value=value)

        raise PaymentReferenceError(
            "Unknown payment ID format",
            error_code="UNKNOWN_PAYMENT_REFERENCE",
            details={"reference": value[:15]},
        )

    @classmethod
    def charge(cls, value: str) -> PaymentReference:
        return cls(kind=ReferenceKind.CHARGE, value=value)

    @property
    def is_session(self) -> bool:
        return self.kind == ReferenceKind.SESSION

    def __str__(self) -> str:
        return self.value
