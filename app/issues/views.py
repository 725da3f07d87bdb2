"""
Views for the issues API.

URL Structure:
    Customer:
        /api/v1/issues/                               GET, POST
        /api/v1/issues/{id}/                          GET, DELETE
        /api/v1/issues/{id}/messages/                 GET, POST
        /api/v1/issues/{id}/appeal/                   POST

    Admin:
        /api/v1/admin/issues/                         GET (?status=&carrier_fault=)
        /api/v1/admin/issues/{id}/                    GET
        /api/v1/admin/issues/{id}/review/             POST
        /api/v1/admin/issues/{id}/process/            POST
        /api/v1/admin/issues/{id}/messages/           GET, POST
        /api/v1/admin/issues/{id}/conclude/           POST
        /api/v1/admin/issues/{id}/reopen/             POST
        /api/v1/admin/issues/{id}/claim/              PUT
        /api/v1/admin/issues/{id}/carrier-fault/      POST
        /api/v1/admin/orders/{id}/resolutions/        GET, POST
        /api/v1/admin/orders/{id}/refund/             POST
        /api/v1/admin/resolutions/{id}/process/       POST

Design Decisions:
    - All business rules live in issues.services; views validate input
      shape, load objects and translate ServiceResult into responses
    - Failures answer with the status carried by the result and the body
      {"error", "error_code"}; a failed refund also returns the issue in
      its reverted state under "data"
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.services import ServiceResult

from orders.models import Order, OrderItem

from issues.models import Issue, Resolution
from issues.permissions import IsIssueOwner, IsStaffUser
from issues.serializers import (
    AdminIssueSerializer,
    AppealSerializer,
    CarrierFaultSerializer,
    ClaimUpdateSerializer,
    ConcludeSerializer,
    IssueCreateSerializer,
    IssueMessageSerializer,
    IssueSerializer,
    MessageCreateSerializer,
    OrderRefundSerializer,
    ProcessSerializer,
    ResolutionCreateSerializer,
    ResolutionSerializer,
    ReviewSerializer,
)
from issues.services import IssueMessageService, IssueService, ResolutionService


def failure_response(result: ServiceResult, serializer_class=None) -> Response:
    body = result.to_response()
    if result.data is not None and serializer_class is not None:
        body["data"] = serializer_class(result.data).data
    return Response(body, status=result.status_code)


# =============================================================================
# Customer
# =============================================================================


@extend_schema_view(
    list=extend_schema(summary="List my issues", tags=["Issues"]),
    retrieve=extend_schema(summary="Get an issue", tags=["Issues"]),
    create=extend_schema(
        summary="Report an issue with an order item",
        tags=["Issues"],
        request=IssueCreateSerializer,
        responses={201: IssueSerializer},
    ),
    destroy=extend_schema(summary="Withdraw an issue", tags=["Issues"]),
)
class IssueViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Issues reported by the signed-in customer."""

    serializer_class = IssueSerializer
    permission_classes = [IsAuthenticated, IsIssueOwner]

    def get_queryset(self):
        return (
            Issue.objects.filter(customer=self.request.user)
            .select_related("order_item")
            .order_by("-created_at")
        )

    def create(self, request):
        serializer = IssueCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order_item = get_object_or_404(
            OrderItem.objects.select_related("order"),
            id=data["order_item_id"],
            order__customer=request.user,
        )
        result = IssueService.create_issue(
            customer=request.user,
            order_item=order_item,
            reason=data["reason"],
            notes=data["notes"],
            image_urls=data["image_urls"],
        )
        if not result.success:
            return failure_response(result)

        return Response(IssueSerializer(result.data).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        issue = self.get_object()
        result = IssueService.withdraw_issue(customer=request.user, issue=issue)
        if not result.success:
            return failure_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        summary="Issue thread",
        tags=["Issues"],
        request=MessageCreateSerializer,
        responses={200: IssueMessageSerializer(many=True), 201: IssueMessageSerializer},
    )
    @action(detail=True, methods=["get", "post"])
    def messages(self, request, pk=None):
        issue = self.get_object()

        if request.method == "GET":
            thread = IssueMessageService.list_messages(request.user, issue, as_admin=False)
            return Response(IssueMessageSerializer(thread, many=True).data)

        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = IssueMessageService.post_customer_message(
            customer=request.user,
            issue=issue,
            content=serializer.validated_data["content"],
            image_urls=serializer.validated_data["image_urls"],
        )
        if not result.success:
            return failure_response(result)
        return Response(IssueMessageSerializer(result.data).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Appeal a rejection",
        tags=["Issues"],
        request=AppealSerializer,
        responses={200: IssueSerializer},
    )
    @action(detail=True, methods=["post"])
    def appeal(self, request, pk=None):
        issue = self.get_object()
        serializer = AppealSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = IssueService.appeal_rejection(
            customer=request.user,
            issue=issue,
            content=serializer.validated_data["content"],
        )
        if not result.success:
            return failure_response(result)
        return Response(IssueSerializer(result.data).data)


# =============================================================================
# Admin
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        summary="List issues",
        tags=["Admin - Issues"],
        parameters=[
            OpenApiParameter("status", str, description="Filter by issue status"),
            OpenApiParameter("carrier_fault", str, description="Filter by carrier fault"),
        ],
    ),
    retrieve=extend_schema(summary="Get an issue", tags=["Admin - Issues"]),
)
class AdminIssueViewSet(viewsets.ReadOnlyModelViewSet):
    """Issue review and resolution for the support team."""

    serializer_class = AdminIssueSerializer
    permission_classes = [IsAuthenticated, IsStaffUser]

    def get_queryset(self):
        queryset = Issue.objects.select_related("order_item", "customer").order_by("-created_at")
        params = self.request.query_params
        if params.get("status"):
            queryset = queryset.filter(status=params["status"])
        if params.get("carrier_fault"):
            queryset = queryset.filter(carrier_fault=params["carrier_fault"])
        return queryset

    def _respond(self, result: ServiceResult) -> Response:
        if not result.success:
            return failure_response(result, AdminIssueSerializer)
        return Response(AdminIssueSerializer(result.data).data)

    @extend_schema(
        summary="Review an issue",
        tags=["Admin - Issues"],
        request=ReviewSerializer,
        responses={200: AdminIssueSerializer},
    )
    @action(detail=True, methods=["post"])
    def review(self, request, pk=None):
        issue = self.get_object()
        serializer = ReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        return self._respond(
            IssueService.review_issue(
                admin=request.user,
                issue=issue,
                action=data["action"],
                message=data["message"],
                is_final_rejection=data["is_final_rejection"],
            )
        )

    @extend_schema(
        summary="Process an approved issue",
        description="Creates the reprint order or issues the Stripe refund.",
        tags=["Admin - Issues"],
        request=ProcessSerializer,
        responses={200: AdminIssueSerializer},
    )
    @action(detail=True, methods=["post"])
    def process(self, request, pk=None):
        issue = self.get_object()
        serializer = ProcessSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        return self._respond(
            IssueService.process_issue(
                admin=request.user,
                issue=issue,
                resolution_type=serializer.validated_data["resolution_type"],
                message=serializer.validated_data["message"],
            )
        )

    @extend_schema(
        summary="Issue thread",
        tags=["Admin - Issues"],
        request=MessageCreateSerializer,
        responses={200: IssueMessageSerializer(many=True), 201: IssueMessageSerializer},
    )
    @action(detail=True, methods=["get", "post"])
    def messages(self, request, pk=None):
        issue = self.get_object()

        if request.method == "GET":
            thread = IssueMessageService.list_messages(request.user, issue, as_admin=True)
            return Response(IssueMessageSerializer(thread, many=True).data)

        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = IssueMessageService.post_admin_message(
            admin=request.user,
            issue=issue,
            content=serializer.validated_data["content"],
            image_urls=serializer.validated_data["image_urls"],
        )
        if not result.success:
            return failure_response(result)
        return Response(IssueMessageSerializer(result.data).data, status=status.HTTP_201_CREATED)

    @extend_schema(summary="Conclude an issue", tags=["Admin - Issues"], request=ConcludeSerializer)
    @action(detail=True, methods=["post"])
    def conclude(self, request, pk=None):
        issue = self.get_object()
        serializer = ConcludeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._respond(
            IssueService.conclude_issue(request.user, issue, serializer.validated_data["reason"])
        )

    @extend_schema(summary="Reopen a concluded issue", tags=["Admin - Issues"], request=None)
    @action(detail=True, methods=["post"])
    def reopen(self, request, pk=None):
        return self._respond(IssueService.reopen_issue(request.user, self.get_object()))

    @extend_schema(
        summary="Update the carrier claim",
        tags=["Admin - Issues"],
        request=ClaimUpdateSerializer,
    )
    @action(detail=True, methods=["put"])
    def claim(self, request, pk=None):
        issue = self.get_object()
        serializer = ClaimUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        return self._respond(
            IssueService.update_claim(
                admin=request.user,
                issue=issue,
                reference=data.get("claim_reference"),
                status=data.get("claim_status"),
                payout_amount=data.get("claim_payout_amount"),
                notes=data.get("claim_notes"),
            )
        )

    @extend_schema(
        summary="Set the carrier fault flag",
        tags=["Admin - Issues"],
        request=CarrierFaultSerializer,
    )
    @action(detail=True, methods=["post"], url_path="carrier-fault")
    def carrier_fault(self, request, pk=None):
        issue = self.get_object()
        serializer = CarrierFaultSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._respond(
            IssueService.update_carrier_fault(
                request.user,
                issue,
                serializer.validated_data["carrier_fault"],
            )
        )


class OrderResolutionsView(APIView):
    """
    Order-level resolutions.

    GET  /api/v1/admin/orders/{id}/resolutions/
    POST /api/v1/admin/orders/{id}/resolutions/
    """

    permission_classes = [IsAuthenticated, IsStaffUser]

    @extend_schema(
        summary="List resolutions for an order",
        tags=["Admin - Resolutions"],
        responses={200: ResolutionSerializer(many=True)},
    )
    def get(self, request, order_id):
        order = get_object_or_404(Order, id=order_id)
        resolutions = Resolution.objects.filter(order=order).order_by("-created_at")
        return Response(ResolutionSerializer(resolutions, many=True).data)

    @extend_schema(
        summary="Create a resolution for an order",
        tags=["Admin - Resolutions"],
        request=ResolutionCreateSerializer,
        responses={201: ResolutionSerializer},
    )
    def post(self, request, order_id):
        order = get_object_or_404(Order, id=order_id)
        serializer = ResolutionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ResolutionService.create_resolution(
            admin=request.user,
            order=order,
            **serializer.validated_data,
        )
        if not result.success:
            return failure_response(result)
        return Response(ResolutionSerializer(result.data).data, status=status.HTTP_201_CREATED)


class ProcessResolutionView(APIView):
    """POST /api/v1/admin/resolutions/{id}/process/"""

    permission_classes = [IsAuthenticated, IsStaffUser]

    @extend_schema(
        summary="Process a resolution",
        tags=["Admin - Resolutions"],
        request=None,
        responses={200: ResolutionSerializer},
    )
    def post(self, request, resolution_id):
        resolution = get_object_or_404(Resolution, id=resolution_id)
        result = ResolutionService.process_resolution(request.user, resolution)
        if not result.success:
            return failure_response(result, ResolutionSerializer)
        return Response(ResolutionSerializer(result.data).data)


class OrderRefundView(APIView):
    """POST /api/v1/admin/orders/{id}/refund/ - full refund outside the issue flow."""

    permission_classes = [IsAuthenticated, IsStaffUser]

    @extend_schema(
        summary="Fully refund an order",
        tags=["Admin - Resolutions"],
        request=OrderRefundSerializer,
        responses={200: ResolutionSerializer},
    )
    def post(self, request, order_id):
        order = get_object_or_404(Order, id=order_id)
        serializer = OrderRefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ResolutionService.refund_order(
            admin=request.user,
            order=order,
            reason=serializer.validated_data["reason"],
            notes=serializer.validated_data["notes"],
        )
        if not result.success:
            return failure_response(result, ResolutionSerializer)
        return Response(ResolutionSerializer(result.data).data)
