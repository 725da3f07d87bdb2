"""
Issues app: order-issue resolution.

A customer reports a problem with an order item, an admin reviews it and
approves a reprint or a refund, and the approved resolution is carried out
atomically. Order-level resolutions and direct refunds share the same
processing path.

Usage:
    from issues.services import IssueService

    result = IssueService.create_issue(
        customer=user,
        order_item=item,
        reason="DAMAGED_IN_TRANSIT",
    )
"""
