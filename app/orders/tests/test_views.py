"""
Tests for the cancellation API.
"""

import pytest
from django.urls import reverse
from rest_framework import status

from orders.models import CancellationRequestStatus, OrderStatus
from orders.tests.factories import CancellationRequestFactory


@pytest.mark.django_db
class TestCancellationRequestCreateView:
    def test_request_cancellation(self, customer_client, confirmed_order):
        response = customer_client.post(
            reverse("orders:cancel-request", kwargs={"order_id": confirmed_order.pk}),
            {"reason": "Ordered twice"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["status"] == CancellationRequestStatus.PENDING
        assert response.data["order_status"] == OrderStatus.CANCELLATION_REQUESTED

    def test_reason_required(self, customer_client, confirmed_order):
        response = customer_client.post(
            reverse("orders:cancel-request", kwargs={"order_id": confirmed_order.pk}),
            {},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_other_customers_order_is_not_found(self, other_customer_client, confirmed_order):
        response = other_customer_client.post(
            reverse("orders:cancel-request", kwargs={"order_id": confirmed_order.pk}),
            {"reason": "Not mine"},
            format="json",
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delivered_order_conflicts(self, customer_client, delivered_order):
        response = customer_client.post(
            reverse("orders:cancel-request", kwargs={"order_id": delivered_order.pk}),
            {"reason": "Too late"},
            format="json",
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "CANCELLATION_NOT_ALLOWED"


@pytest.mark.django_db
class TestCancellationAdminViews:
    def test_pending_list(self, admin_client, pending_request):
        CancellationRequestFactory(status=CancellationRequestStatus.REJECTED)

        response = admin_client.get(reverse("staff:admin-cancellation-requests"))

        assert [row["id"] for row in response.data] == [str(pending_request.id)]

    def test_customers_cannot_list(self, customer_client, pending_request):
        response = customer_client.get(reverse("staff:admin-cancellation-requests"))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_approve(self, admin_client, pending_request, stripe_gateway):
        response = admin_client.post(
            reverse("staff:admin-cancellation-review", kwargs={"request_id": pending_request.pk}),
            {"action": "APPROVE", "review_notes": "Refund issued"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == CancellationRequestStatus.APPROVED
        assert response.data["order_status"] == OrderStatus.CANCELLED
        assert response.data["refund_amount"] == "25.00"

    def test_refund_failure_is_a_bad_gateway(self, admin_client, pending_request, stripe_gateway):
        stripe_gateway.decline_refunds()

        response = admin_client.post(
            reverse("staff:admin-cancellation-review", kwargs={"request_id": pending_request.pk}),
            {"action": "APPROVE"},
            format="json",
        )

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.data["error_code"] == "REFUND_FAILED"

    def test_reject(self, admin_client, pending_request):
        response = admin_client.post(
            reverse("staff:admin-cancellation-review", kwargs={"request_id": pending_request.pk}),
            {"action": "REJECT"},
            format="json",
        )

        assert response.data["status"] == CancellationRequestStatus.REJECTED
        assert response.data["order_status"] == OrderStatus.CONFIRMED
