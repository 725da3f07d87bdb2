"""
Issue services.

This module provides:
- IssueService: Reporting, review, processing, appeal/conclude/reopen, claims
- IssueMessageService: Issue thread messaging
- ResolutionService: Order-level resolutions and direct refunds
- CaseProcessor: Reprint and refund execution shared by issues and resolutions
- ReprintOrderFactory: Zero-cost replacement orders
"""

from issues.services.lifecycle import IssueService
from issues.services.messaging import IssueMessageService, add_admin_message
from issues.services.processing import CaseProcessor, mark_order_refunded
from issues.services.reprint import ReprintOrderFactory
from issues.services.resolutions import ResolutionService

__all__ = [
    "CaseProcessor",
    "IssueMessageService",
    "IssueService",
    "ReprintOrderFactory",
    "ResolutionService",
    "add_admin_message",
    "mark_order_refunded",
]
