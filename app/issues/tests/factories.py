"""
Factory Boy factories for issue test data.

Usage:
    from issues.tests.factories import IssueFactory

    issue = IssueFactory(status=IssueStatus.APPROVED_REFUND)
    assert issue.customer == issue.order_item.order.customer
"""

import factory

from orders.tests.factories import OrderFactory, OrderItemFactory

from issues.models import Issue, IssueMessage, Resolution
from issues.state_machines import (
    IssueReason,
    IssueStatus,
    MessageSender,
    ResolutionKind,
    ResolutionStatus,
)


class IssueFactory(factory.django.DjangoModelFactory):
    """
    An issue awaiting review, owned by the customer of its order.

    ``status`` is set at construction, which the protected FSM field
    allows; later changes must go through transitions.
    """

    class Meta:
        model = Issue

    order_item = factory.SubFactory(OrderItemFactory)
    customer = factory.LazyAttribute(lambda o: o.order_item.order.customer)
    reason = IssueReason.QUALITY_ISSUE
    notes = "The print colours are washed out"
    status = IssueStatus.AWAITING_REVIEW


class IssueMessageFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = IssueMessage

    issue = factory.SubFactory(IssueFactory)
    sender_type = MessageSender.CUSTOMER
    sender = factory.LazyAttribute(lambda o: o.issue.customer)
    content = "Any update?"


class ResolutionFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Resolution

    order = factory.SubFactory(OrderFactory)
    type = ResolutionKind.REFUND
    status = ResolutionStatus.PENDING
    reason = "Faded print"
