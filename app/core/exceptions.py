"""
Base exception classes for application-wide error handling.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed input, rejected before any mutation
    ├── NotFoundError - Resource not found
    ├── PermissionDeniedError - Ownership or role failures
    ├── ConflictError - Precondition/state conflicts (wrong status, duplicates)
    └── ExternalServiceError - Third-party failures (payment gateway)

Each class carries the HTTP status the API layer answers with, so views
can translate a failed ServiceResult or a raised error without a lookup
table of their own.

Usage:
    from core.exceptions import ConflictError

    raise ConflictError(
        "This item already has an issue reported",
        error_code="ISSUE_ALREADY_EXISTS",
        details={"order_item_id": str(item.id)},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Issue not found",
                "error_code": "ISSUE_NOT_FOUND",
                "details": {"issue_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """Invalid or missing input (unknown reason, malformed identifier)."""

    default_error_code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(BaseApplicationError):
    """Requested resource does not exist or is not visible to the actor."""

    default_error_code = "NOT_FOUND"
    status_code = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Actor lacks permission for the operation.

    Raised for ownership failures (a customer acting on another customer's
    order) and for role failures (a customer attempting an admin action).
    """

    default_error_code = "PERMISSION_DENIED"
    status_code = 403


class ConflictError(BaseApplicationError):
    """
    Operation conflicts with current state.

    Examples:
        - Item already has an issue
        - Issue is not in a status that allows the requested action
        - Payment has already been refunded
    """

    default_error_code = "CONFLICT"
    status_code = 409


class ExternalServiceError(BaseApplicationError):
    """
    External dependency failure.

    Raised when the payment gateway (or another collaborator) is
    unreachable or returns an error. The resolution is left in its
    pre-attempt state so it can be retried.
    """

    default_error_code = "EXTERNAL_SERVICE_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        service_name: str | None = None,
    ):
        super().__init__(message, error_code, details)
        self.service_name = service_name
        if service_name:
            self.details["service"] = service_name


__all__ = [
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
    "ExternalServiceError",
]
