"""
Django admin for issues and resolutions.

Status fields are read-only: every status change must go through the
services (and their django-fsm transitions), never a form save.
"""

from django.contrib import admin

from issues.models import Issue, IssueMessage, Resolution


class IssueMessageInline(admin.TabularInline):
    model = IssueMessage
    extra = 0
    fields = ["sender_type", "sender", "content", "read_at", "email_sent", "created_at"]
    readonly_fields = fields
    can_delete = False


@admin.register(Issue)
class IssueAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "reason",
        "status",
        "carrier_fault",
        "claim_status",
        "is_concluded",
        "created_at",
    ]
    list_filter = ["status", "reason", "carrier_fault", "claim_status", "is_concluded"]
    search_fields = ["id", "customer__email", "order_item__order__id", "claim_reference"]
    readonly_fields = [
        "status",
        "order_item",
        "customer",
        "original_issue",
        "resolved_type",
        "refund_amount",
        "stripe_refund_id",
        "reprint_order",
        "processing_started_at",
        "processed_at",
        "closed_at",
        "is_concluded",
        "concluded_at",
        "concluded_by",
        "created_at",
        "updated_at",
    ]
    inlines = [IssueMessageInline]


@admin.register(Resolution)
class ResolutionAdmin(admin.ModelAdmin):
    list_display = ["id", "order", "type", "status", "direct_refund", "refund_amount", "created_at"]
    list_filter = ["type", "status", "direct_refund"]
    search_fields = ["id", "order__id", "stripe_refund_id"]
    readonly_fields = [
        "status",
        "order",
        "reprint_order",
        "refund_amount",
        "stripe_refund_id",
        "failure_reason",
        "processing_started_at",
        "processed_at",
        "created_by",
        "created_at",
        "updated_at",
    ]
