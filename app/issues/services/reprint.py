"""
Reprint order creation.

A reprint is a new, free Order that duplicates the disputed item(s). It
never gets a Payment; each of its items points back at the item it
replaces and at the order that paid for it, so refunds, accounting and
later issue reports can treat the reprint item as a proxy for the
original.

Usage:
    from issues.services.reprint import ReprintOrderFactory

    with transaction.atomic():
        reprint = ReprintOrderFactory.create_reprint(
            original_order=item.order,
            items=[item],
            issue_id=issue.id,
        )
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import transaction

from core.services import BaseService

from orders.models import Order, OrderItem, OrderStatus

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any
    from uuid import UUID


ZERO = Decimal("0.00")


class ReprintOrderFactory(BaseService):
    """
    Builds zero-cost replacement orders.

    Must run inside the caller's transaction together with the state change
    that justifies the reprint, so either both persist or neither does.
    """

    @classmethod
    def create_reprint(
        cls,
        original_order: Order,
        items: Iterable[OrderItem],
        issue_id: UUID | str | None = None,
        extra_metadata: dict[str, Any] | None = None,
    ) -> Order:
        """
        Create a confirmed, zero-priced copy of ``items``.

        Args:
            original_order: Order the print job and address are copied from
            items: Items to reprint (may belong to a reprint order themselves)
            issue_id: Issue the reprint resolves, recorded on each item
            extra_metadata: Additional lineage keys (e.g. a resolution id)

        Returns:
            The new reprint Order
        """
        if not transaction.get_connection().in_atomic_block:
            raise RuntimeError("create_reprint must be called inside a transaction")

        items = list(items)
        if not items:
            raise ValueError("A reprint needs at least one item")

        reprint = Order.objects.create(
            customer_id=original_order.customer_id,
            status=OrderStatus.CONFIRMED,
            subtotal=ZERO,
            shipping_cost=ZERO,
            total_price=ZERO,
            design_ref=original_order.design_ref,
            print_config=original_order.print_config,
            preview_url=original_order.preview_url,
            shipping_address=original_order.shipping_address,
        )

        for item in items:
            paying_order_id = item.paying_order_id
            metadata = {
                **(item.metadata or {}),
                "isReprint": True,
                "originalOrderId": str(paying_order_id),
                "originalItemId": str(item.id),
                "issueId": str(issue_id) if issue_id else None,
                **(extra_metadata or {}),
            }
            OrderItem.objects.create(
                order=reprint,
                product_ref=item.product_ref,
                product_name=item.product_name,
                variant_ref=item.variant_ref,
                design_ref=item.design_ref,
                customization=item.customization,
                quantity=item.quantity,
                unit_price=ZERO,
                total_price=ZERO,
                original_order_id=paying_order_id,
                original_item=item,
                metadata=metadata,
            )

        cls.get_logger().info(
            "Reprint order created",
            extra={
                "reprint_order_id": str(reprint.id),
                "original_order_id": str(original_order.id),
                "issue_id": str(issue_id) if issue_id else None,
                "item_count": len(items),
            },
        )
        return reprint
