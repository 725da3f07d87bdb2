"""
State and choice enums for issues and order-level resolutions.

Usage:
    from issues.state_machines import IssueStatus, PROCESSABLE_STATUSES
"""

from django.db import models


class IssueStatus(models.TextChoices):
    """
    Lifecycle of a customer-reported issue.

    State Flow:
        SUBMITTED -> AWAITING_REVIEW
        AWAITING_REVIEW <-> INFO_REQUESTED
        AWAITING_REVIEW/INFO_REQUESTED -> APPROVED_REPRINT | APPROVED_REFUND | REJECTED
        APPROVED_* -> PROCESSING -> COMPLETED
        PROCESSING -> APPROVED_REFUND (refund failed, retryable)
        REJECTED -> AWAITING_REVIEW (appeal)
        INFO_REQUESTED -> CLOSED (no customer reply)

    Withdrawal is a physical delete and has no status.
    """

    SUBMITTED = "SUBMITTED", "Submitted"
    AWAITING_REVIEW = "AWAITING_REVIEW", "Awaiting Review"
    INFO_REQUESTED = "INFO_REQUESTED", "Info Requested"
    APPROVED_REPRINT = "APPROVED_REPRINT", "Approved for Reprint"
    APPROVED_REFUND = "APPROVED_REFUND", "Approved for Refund"
    PROCESSING = "PROCESSING", "Processing"
    COMPLETED = "COMPLETED", "Completed"
    REJECTED = "REJECTED", "Rejected"
    CLOSED = "CLOSED", "Closed"


# Customer may delete the issue
WITHDRAWABLE_STATUSES = [IssueStatus.SUBMITTED, IssueStatus.AWAITING_REVIEW]

# Admin may approve, reject or ask for information
REVIEWABLE_STATUSES = [IssueStatus.AWAITING_REVIEW, IssueStatus.INFO_REQUESTED]

# Admin may run the approved resolution
PROCESSABLE_STATUSES = [IssueStatus.APPROVED_REPRINT, IssueStatus.APPROVED_REFUND]

# Nobody may post messages
CLOSED_STATUSES = [IssueStatus.COMPLETED, IssueStatus.CLOSED]


class IssueReason(models.TextChoices):
    DAMAGED_IN_TRANSIT = "DAMAGED_IN_TRANSIT", "Damaged in Transit"
    QUALITY_ISSUE = "QUALITY_ISSUE", "Quality Issue"
    WRONG_ITEM = "WRONG_ITEM", "Wrong Item"
    PRINTING_ERROR = "PRINTING_ERROR", "Printing Error"
    NEVER_ARRIVED = "NEVER_ARRIVED", "Never Arrived"
    OTHER = "OTHER", "Other"


class CarrierFault(models.TextChoices):
    UNKNOWN = "UNKNOWN", "Unknown"
    CARRIER_FAULT = "CARRIER_FAULT", "Carrier Fault"
    NOT_CARRIER_FAULT = "NOT_CARRIER_FAULT", "Not Carrier Fault"


class ClaimStatus(models.TextChoices):
    """Status of an insurance claim filed with the carrier."""

    NOT_FILED = "NOT_FILED", "Not Filed"
    SUBMITTED = "SUBMITTED", "Submitted"
    UNDER_REVIEW = "UNDER_REVIEW", "Under Review"
    APPROVED = "APPROVED", "Approved"
    REJECTED = "REJECTED", "Rejected"
    PAID = "PAID", "Paid"


class ReviewAction(models.TextChoices):
    APPROVE_REPRINT = "APPROVE_REPRINT", "Approve Reprint"
    APPROVE_REFUND = "APPROVE_REFUND", "Approve Refund"
    REQUEST_INFO = "REQUEST_INFO", "Request Info"
    REJECT = "REJECT", "Reject"


class ResolutionType(models.TextChoices):
    """How an issue was (or is to be) resolved."""

    REPRINT = "REPRINT", "Reprint"
    FULL_REFUND = "FULL_REFUND", "Full Refund"
    PARTIAL_REFUND = "PARTIAL_REFUND", "Partial Refund"


REFUND_RESOLUTION_TYPES = [ResolutionType.FULL_REFUND, ResolutionType.PARTIAL_REFUND]


class MessageSender(models.TextChoices):
    CUSTOMER = "CUSTOMER", "Customer"
    ADMIN = "ADMIN", "Admin"


class ResolutionKind(models.TextChoices):
    """Type of an order-level Resolution."""

    REPRINT = "REPRINT", "Reprint"
    REFUND = "REFUND", "Refund"


class ResolutionStatus(models.TextChoices):
    """
    Lifecycle of an order-level Resolution.

    State Flow:
        PENDING -> PROCESSING -> COMPLETED
        PROCESSING -> FAILED -> PROCESSING (retry)
    """

    PENDING = "PENDING", "Pending"
    PROCESSING = "PROCESSING", "Processing"
    COMPLETED = "COMPLETED", "Completed"
    FAILED = "FAILED", "Failed"
