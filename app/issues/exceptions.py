"""
Issue-specific exceptions.

Exception Hierarchy:
    ConflictError
    ├── IssueAlreadyExistsError - Item already has an active issue
    ├── ReportingWindowExpiredError - Order is too old to report on
    ├── OrderNotEligibleError - Order not shipped/delivered
    ├── IssueStateError - Action not allowed in the issue's current status
    └── IssueConcludedError - Issue is concluded (or not, for reopen)

All are precondition failures: raised before any state mutation and
answered with HTTP 409.
"""

from __future__ import annotations

from core.exceptions import ConflictError


class IssueAlreadyExistsError(ConflictError):
    """
    Raised when reporting an issue on an item that already has one.

    Example:
        raise IssueAlreadyExistsError(
            "An issue has already been reported for this item",
            details={"order_item_id": str(item.id), "issue_id": str(existing.id)},
        )
    """

    default_error_code: str = "ISSUE_ALREADY_EXISTS"


class ReportingWindowExpiredError(ConflictError):
    default_error_code: str = "REPORTING_WINDOW_EXPIRED"


class OrderNotEligibleError(ConflictError):
    """Raised when the order's fulfillment status does not allow reporting."""

    default_error_code: str = "ORDER_NOT_ELIGIBLE"


class IssueStateError(ConflictError):
    """
    Raised when an action is not legal in the issue's current status.

    Covers withdrawing after review has started, reviewing a processed
    issue, processing an issue that was never approved, and messaging on
    a closed issue.
    """

    default_error_code: str = "INVALID_ISSUE_STATE"


class IssueConcludedError(ConflictError):
    default_error_code: str = "ISSUE_CONCLUDED"


__all__ = [
    "IssueAlreadyExistsError",
    "IssueConcludedError",
    "IssueStateError",
    "OrderNotEligibleError",
    "ReportingWindowExpiredError",
]
