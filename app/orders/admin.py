"""Django admin for orders and cancellation requests."""

from django.contrib import admin

from orders.models import CancellationRequest, Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    fk_name = "order"
    extra = 0
    fields = [
        "product_ref",
        "product_name",
        "quantity",
        "unit_price",
        "total_price",
        "original_order",
        "original_item",
    ]
    readonly_fields = ["original_order", "original_item"]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["id", "customer", "status", "total_price", "created_at"]
    list_filter = ["status"]
    search_fields = ["id", "customer__email", "tracking_number"]
    # Status moves only through services
    readonly_fields = [
        "status",
        "cancelled_at",
        "cancelled_by",
        "refund_reference",
        "refund_amount",
        "created_at",
        "updated_at",
    ]
    inlines = [OrderItemInline]


@admin.register(CancellationRequest)
class CancellationRequestAdmin(admin.ModelAdmin):
    list_display = ["id", "order", "status", "previous_status", "created_at", "reviewed_at"]
    list_filter = ["status"]
    search_fields = ["id", "order__id", "requested_by__email"]
    readonly_fields = [
        "order",
        "requested_by",
        "status",
        "previous_status",
        "reviewed_at",
        "reviewed_by",
        "created_at",
        "updated_at",
    ]
