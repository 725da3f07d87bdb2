"""
Order, OrderItem and CancellationRequest models.

Order fulfillment runs as its own state machine:

    pending -> payment_confirmed -> confirmed -> printing -> shipped -> delivered

with side branches:

    payment_confirmed/confirmed -> cancellation_requested -> cancelled
    cancellation_requested -> <previous status>   (request rejected)
    payment_confirmed..delivered -> refunded     (full refund)

Usage:
    from orders.models import Order, OrderItem, OrderStatus

    order = Order.objects.create(customer=user, total_price=Decimal("25.00"))
    order.confirm()
    order.save()
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import RETURN_VALUE, FSMField, transition

from core.models import BaseModel
from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin


class OrderStatus(models.TextChoices):
    """Fulfillment status of an order."""

    PENDING = "pending", "Pending Payment"
    PAYMENT_CONFIRMED = "payment_confirmed", "Payment Confirmed"
    CONFIRMED = "confirmed", "Confirmed"
    PRINTING = "printing", "Printing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLATION_REQUESTED = "cancellation_requested", "Cancellation Requested"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"


# Customers can only report issues on orders that have left the building
ISSUE_REPORTABLE_STATUSES = [OrderStatus.SHIPPED, OrderStatus.DELIVERED]

# Statuses from which a customer may ask for cancellation
CANCELLABLE_STATUSES = [
    OrderStatus.PENDING,
    OrderStatus.PAYMENT_CONFIRMED,
    OrderStatus.CONFIRMED,
]

REFUNDABLE_STATUSES = [
    OrderStatus.PAYMENT_CONFIRMED,
    OrderStatus.CONFIRMED,
    OrderStatus.PRINTING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLATION_REQUESTED,
]


class CancellationRequestStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class Order(UUIDPrimaryKeyMixin, BaseModel):
    """
    A customer purchase.

    Reprint orders are Orders with zero totals and no Payment of their own;
    their items carry ``original_order``/``original_item`` links to the
    paying order.

    Fields:
        customer: Purchasing user
        status: Fulfillment FSM state
        subtotal/shipping_cost/total_price: Monetary totals (pounds)
        shipping_address: Address snapshot taken at checkout
        design_ref/print_config/preview_url: Print job definition
        tracking_number/carrier: Shipment details (used for carrier claims)
        cancelled_*: Set when a cancellation request is approved
        refund_reference/refund_amount: Set when a cancellation refunds
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
        help_text="Customer who placed the order",
    )

    # ==========================================================================
    # Status
    # ==========================================================================

    status = FSMField(
        max_length=30,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True,
        help_text="Fulfillment status",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    subtotal = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Sum of item totals",
    )
    shipping_cost = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Shipping charged to the customer",
    )
    total_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Amount charged for the order (zero for reprints)",
    )

    # ==========================================================================
    # Print Job & Shipping
    # ==========================================================================

    design_ref = models.CharField(
        max_length=100,
        blank=True,
        help_text="Identifier of the design printed for this order",
    )
    print_config = models.JSONField(
        default=dict,
        blank=True,
        help_text="Print size, material, orientation and dimensions",
    )
    preview_url = models.URLField(
        max_length=500,
        blank=True,
        help_text="Rendered preview of the print",
    )
    shipping_address = models.JSONField(
        default=dict,
        blank=True,
        help_text="Shipping address snapshot",
    )
    tracking_number = models.CharField(
        max_length=100,
        blank=True,
        help_text="Carrier tracking number",
    )
    carrier = models.CharField(
        max_length=50,
        blank=True,
        help_text="Shipping carrier name",
    )

    # ==========================================================================
    # Cancellation & Refund
    # ==========================================================================

    cancelled_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the order was cancelled",
    )
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Admin who approved the cancellation",
    )
    cancellation_reason = models.TextField(
        blank=True,
        help_text="Reason given for the cancellation",
    )
    refund_reference = models.CharField(
        max_length=255,
        blank=True,
        help_text="Gateway refund ID issued on cancellation",
    )
    refund_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Amount refunded on cancellation",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["customer", "status"], name="order_customer_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_price__gte=0),
                name="order_total_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Order({self.id}, {self.status}, £{self.total_price})"

    @property
    def is_reprint(self) -> bool:
        """A reprint order is free and has no payment of its own."""
        return self.total_price == 0 and not hasattr(self, "payment")

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=OrderStatus.PENDING,
        target=OrderStatus.PAYMENT_CONFIRMED,
    )
    def confirm_payment(self):
        pass

    @transition(
        field=status,
        source=OrderStatus.PAYMENT_CONFIRMED,
        target=OrderStatus.CONFIRMED,
    )
    def confirm(self):
        pass

    @transition(field=status, source=OrderStatus.CONFIRMED, target=OrderStatus.PRINTING)
    def start_printing(self):
        pass

    @transition(field=status, source=OrderStatus.PRINTING, target=OrderStatus.SHIPPED)
    def ship(self):
        pass

    @transition(field=status, source=OrderStatus.SHIPPED, target=OrderStatus.DELIVERED)
    def deliver(self):
        pass

    @transition(
        field=status,
        source=CANCELLABLE_STATUSES,
        target=OrderStatus.CANCELLATION_REQUESTED,
    )
    def request_cancellation(self):
        pass

    @transition(
        field=status,
        source=OrderStatus.CANCELLATION_REQUESTED,
        target=OrderStatus.CANCELLED,
    )
    def cancel(self, cancelled_by=None, reason: str = ""):
        """Transition: CANCELLATION_REQUESTED -> CANCELLED."""
        self.cancelled_at = timezone.now()
        self.cancelled_by = cancelled_by
        self.cancellation_reason = reason

    @transition(
        field=status,
        source=OrderStatus.CANCELLATION_REQUESTED,
        target=RETURN_VALUE(*CANCELLABLE_STATUSES),
    )
    def restore_status(self, previous_status: str):
        """
        Return to the status held before cancellation was requested.

        Transition: CANCELLATION_REQUESTED -> previous status
        """
        if previous_status not in CANCELLABLE_STATUSES:
            return OrderStatus.CONFIRMED
        return previous_status

    @transition(field=status, source=REFUNDABLE_STATUSES, target=OrderStatus.REFUNDED)
    def mark_refunded(self):
        """Transition: any paid, unrefunded status -> REFUNDED (full refund)."""
        pass


class OrderItem(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    One line of an order.

    Reprint lineage is held both as explicit foreign keys
    (``original_order``/``original_item``) and in ``metadata``
    (``isReprint``, ``originalOrderId``, ``originalItemId``, ``issueId``)
    for readers that only see the serialized item.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
        help_text="Order this line belongs to",
    )

    # ==========================================================================
    # Product
    # ==========================================================================

    product_ref = models.CharField(
        max_length=100,
        help_text="Identifier of the catalog product",
    )
    product_name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Product name at time of purchase",
    )
    variant_ref = models.CharField(
        max_length=100,
        blank=True,
        help_text="Identifier of the product variant",
    )
    design_ref = models.CharField(
        max_length=100,
        blank=True,
        help_text="Identifier of the design printed on this item",
    )
    customization = models.JSONField(
        default=dict,
        blank=True,
        help_text="Customer customization options",
    )

    # ==========================================================================
    # Pricing
    # ==========================================================================

    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    total_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Line total; used as the amount of an item-level partial refund",
    )

    # ==========================================================================
    # Reprint Lineage
    # ==========================================================================

    original_order = models.ForeignKey(
        Order,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reprint_items",
        help_text="Paying order this reprint item replaces",
    )
    original_item = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reprints",
        help_text="Item this reprint item replaces",
    )

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"OrderItem({self.id}, {self.product_ref} x{self.quantity})"

    @property
    def is_reprint(self) -> bool:
        return self.original_item_id is not None or bool(self.get_meta("isReprint"))

    @property
    def lineage_source_item_id(self):
        """ID of the item this reprint replaces, or None for an original item."""
        if self.original_item_id:
            return self.original_item_id
        if self.get_meta("isReprint"):
            return self.get_meta("originalItemId")
        return None

    @property
    def paying_order_id(self):
        """ID of the order whose payment covers this item."""
        if self.original_order_id:
            return self.original_order_id
        if self.get_meta("isReprint") and self.get_meta("originalOrderId"):
            return self.get_meta("originalOrderId")
        return self.order_id


class CancellationRequest(UUIDPrimaryKeyMixin, BaseModel):
    """
    A customer's request to cancel an order before it ships.

    ``previous_status`` records the order status at request time so a
    rejected request can put the order back where it was.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="cancellation_requests",
    )
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="cancellation_requests",
    )
    status = FSMField(
        max_length=20,
        choices=CancellationRequestStatus.choices,
        default=CancellationRequestStatus.PENDING,
        db_index=True,
    )
    reason = models.TextField(blank=True)
    previous_status = models.CharField(
        max_length=30,
        choices=OrderStatus.choices,
        help_text="Order status when the request was made",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    review_notes = models.TextField(blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"CancellationRequest({self.id}, {self.status})"

    @transition(
        field=status,
        source=CancellationRequestStatus.PENDING,
        target=CancellationRequestStatus.APPROVED,
    )
    def approve(self, reviewer, notes: str = ""):
        self.reviewed_at = timezone.now()
        self.reviewed_by = reviewer
        self.review_notes = notes

    @transition(
        field=status,
        source=CancellationRequestStatus.PENDING,
        target=CancellationRequestStatus.REJECTED,
    )
    def reject(self, reviewer, notes: str = ""):
        self.reviewed_at = timezone.now()
        self.reviewed_by = reviewer
        self.review_notes = notes
