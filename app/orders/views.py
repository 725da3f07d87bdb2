"""
Views for order cancellation.

Endpoints:
    POST /api/v1/orders/{id}/cancel-request/                   - Customer asks to cancel
    GET  /api/v1/admin/cancellation-requests/                  - Pending requests
    POST /api/v1/admin/cancellation-requests/{id}/review/      - Approve or reject
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from issues.permissions import IsStaffUser

from orders.models import CancellationRequest, CancellationRequestStatus, Order
from orders.serializers import (
    CancellationRequestCreateSerializer,
    CancellationRequestSerializer,
    CancellationReviewSerializer,
)
from orders.services import CancellationService


class CancellationRequestCreateView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Request cancellation of an order",
        tags=["Orders"],
        request=CancellationRequestCreateSerializer,
        responses={201: CancellationRequestSerializer},
    )
    def post(self, request, order_id):
        order = get_object_or_404(Order, id=order_id, customer=request.user)
        serializer = CancellationRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = CancellationService.request_cancellation(
            customer=request.user,
            order=order,
            reason=serializer.validated_data["reason"],
        )
        if not result.success:
            return Response(result.to_response(), status=result.status_code)
        return Response(
            CancellationRequestSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )


class PendingCancellationRequestsView(APIView):
    permission_classes = [IsAuthenticated, IsStaffUser]

    @extend_schema(
        summary="List pending cancellation requests",
        tags=["Admin - Orders"],
        responses={200: CancellationRequestSerializer(many=True)},
    )
    def get(self, request):
        requests = (
            CancellationRequest.objects.filter(status=CancellationRequestStatus.PENDING)
            .select_related("order")
            .order_by("created_at")
        )
        return Response(CancellationRequestSerializer(requests, many=True).data)


class CancellationReviewView(APIView):
    """
    Approve or reject a cancellation request.

    Approval refunds the payment in full unless ``process_refund`` is
    false. If Stripe refuses the refund the request stays pending.
    """

    permission_classes = [IsAuthenticated, IsStaffUser]

    @extend_schema(
        summary="Review a cancellation request",
        tags=["Admin - Orders"],
        request=CancellationReviewSerializer,
        responses={200: CancellationRequestSerializer},
    )
    def post(self, request, request_id):
        cancellation = get_object_or_404(CancellationRequest, id=request_id)
        serializer = CancellationReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = CancellationService.review(
            admin=request.user,
            request=cancellation,
            **serializer.validated_data,
        )
        if not result.success:
            return Response(result.to_response(), status=result.status_code)
        return Response(CancellationRequestSerializer(result.data).data)
