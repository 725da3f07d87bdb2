"""
URL configuration for the orders API.

Customer routes are mounted at /api/v1/, admin routes at /api/v1/admin/.
"""

from django.urls import path

from orders.views import (
    CancellationRequestCreateView,
    CancellationReviewView,
    PendingCancellationRequestsView,
)

app_name = "orders"

urlpatterns = [
    path(
        "orders/<uuid:order_id>/cancel-request/",
        CancellationRequestCreateView.as_view(),
        name="cancel-request",
    ),
]

admin_urlpatterns = [
    path(
        "cancellation-requests/",
        PendingCancellationRequestsView.as_view(),
        name="admin-cancellation-requests",
    ),
    path(
        "cancellation-requests/<uuid:request_id>/review/",
        CancellationReviewView.as_view(),
        name="admin-cancellation-review",
    ),
]
