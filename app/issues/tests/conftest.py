"""
Pytest fixtures for issue tests.

Issues are built with IssueFactory directly in the state under test, so
each test exercises a single transition rather than the whole lifecycle.
"""

import pytest

from issues.state_machines import IssueStatus
from issues.tests.factories import IssueFactory


@pytest.fixture
def awaiting_issue(order_item):
    return IssueFactory(order_item=order_item, status=IssueStatus.AWAITING_REVIEW)


@pytest.fixture
def info_requested_issue(order_item):
    return IssueFactory(order_item=order_item, status=IssueStatus.INFO_REQUESTED)


@pytest.fixture
def approved_refund_issue(order_item):
    return IssueFactory(order_item=order_item, status=IssueStatus.APPROVED_REFUND)


@pytest.fixture
def approved_reprint_issue(order_item):
    return IssueFactory(order_item=order_item, status=IssueStatus.APPROVED_REPRINT)


@pytest.fixture
def rejected_issue(order_item):
    return IssueFactory(
        order_item=order_item,
        status=IssueStatus.REJECTED,
        rejection_reason="Damage not visible in photos",
    )
