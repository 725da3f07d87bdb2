"""
Serializers for the orders API (cancellation requests).
"""

from __future__ import annotations

from rest_framework import serializers

from orders.models import CancellationRequest


class CancellationRequestSerializer(serializers.ModelSerializer):
    order_status = serializers.CharField(source="order.status", read_only=True)
    refund_amount = serializers.DecimalField(
        source="order.refund_amount",
        max_digits=10,
        decimal_places=2,
        read_only=True,
        allow_null=True,
    )

    class Meta:
        model = CancellationRequest
        fields = [
            "id",
            "order",
            "order_status",
            "status",
            "reason",
            "previous_status",
            "reviewed_at",
            "reviewed_by",
            "review_notes",
            "refund_amount",
            "created_at",
        ]
        read_only_fields = fields


class CancellationRequestCreateSerializer(serializers.Serializer):
    reason = serializers.CharField()


class CancellationReviewSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=["APPROVE", "REJECT"])
    review_notes = serializers.CharField(required=False, allow_blank=True, default="")
    process_refund = serializers.BooleanField(required=False, default=True)
