"""
Serializers for the issues API.

Serializer Hierarchy:
    IssueSerializer: Customer view of an issue
    AdminIssueSerializer: Adds claim, review and conclusion fields
    IssueMessageSerializer: One thread message

    IssueCreateSerializer / MessageCreateSerializer / AppealSerializer:
        Customer input
    ReviewSerializer / ProcessSerializer / ConcludeSerializer /
    ClaimUpdateSerializer / CarrierFaultSerializer:
        Admin input

    ResolutionSerializer / ResolutionCreateSerializer / OrderRefundSerializer:
        Order-level resolutions

Design Decisions:
    - Read and write serializers are separate; writes only validate shape,
      the services own every business rule
    - Monetary values are rendered as strings (DRF DecimalField default)
"""

from __future__ import annotations

from rest_framework import serializers

from issues.models import Issue, IssueMessage, Resolution
from issues.state_machines import (
    CarrierFault,
    ClaimStatus,
    IssueReason,
    ResolutionKind,
    ResolutionType,
    ReviewAction,
)


# =============================================================================
# Messages
# =============================================================================


class IssueMessageSerializer(serializers.ModelSerializer):
    sender_name = serializers.SerializerMethodField()

    class Meta:
        model = IssueMessage
        fields = [
            "id",
            "sender_type",
            "sender_name",
            "content",
            "image_urls",
            "read_at",
            "created_at",
        ]
        read_only_fields = fields

    def get_sender_name(self, obj: IssueMessage) -> str | None:
        """Sender's display name; None for system notes."""
        if obj.sender is None:
            return None
        return obj.sender.get_full_name() or obj.sender.email


class MessageCreateSerializer(serializers.Serializer):
    content = serializers.CharField(required=False, allow_blank=True, default="")
    image_urls = serializers.ListField(
        child=serializers.CharField(allow_blank=True),
        required=False,
        default=list,
    )


# =============================================================================
# Issues
# =============================================================================


class IssueSerializer(serializers.ModelSerializer):
    """Customer-facing representation of an issue."""

    order_id = serializers.UUIDField(source="order_item.order_id", read_only=True)
    product_name = serializers.CharField(source="order_item.product_name", read_only=True)
    reprint_order_id = serializers.UUIDField(read_only=True, allow_null=True)
    original_issue_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = Issue
        fields = [
            "id",
            "order_id",
            "order_item",
            "product_name",
            "reason",
            "notes",
            "image_urls",
            "status",
            "resolved_type",
            "refund_amount",
            "reprint_order_id",
            "original_issue_id",
            "rejection_reason",
            "rejection_final",
            "is_concluded",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AdminIssueSerializer(IssueSerializer):
    """Adds the fields only staff see."""

    customer_email = serializers.EmailField(source="customer.email", read_only=True)

    class Meta(IssueSerializer.Meta):
        fields = IssueSerializer.Meta.fields + [
            "customer",
            "customer_email",
            "carrier_fault",
            "claim_reference",
            "claim_status",
            "claim_submitted_at",
            "claim_payout_amount",
            "claim_paid_at",
            "claim_notes",
            "reviewed_at",
            "stripe_refund_id",
            "processing_started_at",
            "processed_at",
            "closed_at",
            "concluded_at",
            "concluded_by",
            "conclusion_reason",
        ]
        read_only_fields = fields


class IssueCreateSerializer(serializers.Serializer):
    order_item_id = serializers.UUIDField()
    reason = serializers.ChoiceField(choices=IssueReason.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    image_urls = serializers.ListField(
        child=serializers.CharField(allow_blank=True),
        required=False,
        default=list,
    )


class AppealSerializer(serializers.Serializer):
    content = serializers.CharField()


class ReviewSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=ReviewAction.choices)
    message = serializers.CharField(required=False, allow_blank=True, default="")
    is_final_rejection = serializers.BooleanField(required=False, default=False)


class ProcessSerializer(serializers.Serializer):
    resolution_type = serializers.ChoiceField(choices=ResolutionType.choices)
    message = serializers.CharField(required=False, allow_blank=True, default="")


class ConcludeSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class CarrierFaultSerializer(serializers.Serializer):
    carrier_fault = serializers.ChoiceField(choices=CarrierFault.choices)


class ClaimUpdateSerializer(serializers.Serializer):
    """All fields optional; omitted fields are left unchanged."""

    claim_reference = serializers.CharField(required=False, allow_blank=True)
    claim_status = serializers.ChoiceField(choices=ClaimStatus.choices, required=False)
    claim_payout_amount = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        required=False,
        allow_null=True,
    )
    claim_notes = serializers.CharField(required=False, allow_blank=True)


# =============================================================================
# Resolutions
# =============================================================================


class ResolutionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Resolution
        fields = [
            "id",
            "order",
            "type",
            "status",
            "reason",
            "notes",
            "direct_refund",
            "reprint_order",
            "refund_amount",
            "stripe_refund_id",
            "failure_reason",
            "processing_started_at",
            "processed_at",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields


class ResolutionCreateSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=ResolutionKind.choices)
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    refund_amount = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        required=False,
        allow_null=True,
        default=None,
    )


class OrderRefundSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
