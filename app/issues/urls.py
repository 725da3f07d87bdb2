"""
URL configuration for the issues API.

Customer routes are mounted at /api/v1/ and admin routes at
/api/v1/admin/ in the main URL configuration (see issues.views for the
full list).
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from issues.views import (
    AdminIssueViewSet,
    IssueViewSet,
    OrderRefundView,
    OrderResolutionsView,
    ProcessResolutionView,
)

app_name = "issues"

router = DefaultRouter()
router.register(r"issues", IssueViewSet, basename="issue")

admin_router = DefaultRouter()
admin_router.register(r"issues", AdminIssueViewSet, basename="admin-issue")

urlpatterns = [
    path("", include(router.urls)),
]

admin_urlpatterns = [
    path("", include(admin_router.urls)),
    path(
        "orders/<uuid:order_id>/resolutions/",
        OrderResolutionsView.as_view(),
        name="admin-order-resolutions",
    ),
    path(
        "orders/<uuid:order_id>/refund/",
        OrderRefundView.as_view(),
        name="admin-order-refund",
    ),
    path(
        "resolutions/<uuid:resolution_id>/process/",
        ProcessResolutionView.as_view(),
        name="admin-resolution-process",
    ),
]
