"""
Issue models.

This module exports the models used to report and resolve problems with
orders:
- Issue: item-scoped customer report
- IssueMessage: message thread on an Issue
- Resolution: order-scoped admin resolution
"""

from issues.models.issue import Issue, IssueMessage
from issues.models.resolution import Resolution

__all__ = [
    "Issue",
    "IssueMessage",
    "Resolution",
]
