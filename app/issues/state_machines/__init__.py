"""
State machine enums for issue models.

This module defines the state enums used by issue models with django-fsm.
"""

from issues.state_machines.states import (
    CLOSED_STATUSES,
    PROCESSABLE_STATUSES,
    REFUND_RESOLUTION_TYPES,
    REVIEWABLE_STATUSES,
    WITHDRAWABLE_STATUSES,
    CarrierFault,
    ClaimStatus,
    IssueReason,
    IssueStatus,
    MessageSender,
    ResolutionKind,
    ResolutionStatus,
    ResolutionType,
    ReviewAction,
)

__all__ = [
    "CLOSED_STATUSES",
    "PROCESSABLE_STATUSES",
    "REFUND_RESOLUTION_TYPES",
    "REVIEWABLE_STATUSES",
    "WITHDRAWABLE_STATUSES",
    "CarrierFault",
    "ClaimStatus",
    "IssueReason",
    "IssueStatus",
    "MessageSender",
    "ResolutionKind",
    "ResolutionStatus",
    "ResolutionType",
    "ReviewAction",
]
