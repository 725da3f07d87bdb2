"""
Order-specific exceptions.

Exception Hierarchy:
    ConflictError
    ├── CancellationNotAllowedError - Order can't be (or already is being) cancelled
    └── CancellationStateError - Request was already reviewed
"""

from __future__ import annotations

from core.exceptions import ConflictError


class CancellationNotAllowedError(ConflictError):
    default_error_code: str = "CANCELLATION_NOT_ALLOWED"


class CancellationStateError(ConflictError):
    """Raised when reviewing a request that is no longer pending."""

    default_error_code: str = "CANCELLATION_ALREADY_REVIEWED"


__all__ = [
    "CancellationNotAllowedError",
    "CancellationStateError",
]
