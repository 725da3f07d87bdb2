"""
URL configuration for the Django application.

URL Structure:
    /                              - ReDoc API documentation
    /schema/                       - OpenAPI schema (YAML)
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint
    /api/v1/auth/token/            - Obtain JWT pair (simplejwt)
    /api/v1/auth/token/refresh/    - Refresh JWT
    /api/v1/issues/                - Customer issue endpoints
        {id}/                      - Retrieve / withdraw
        {id}/messages/             - Thread (list marks admin messages read)
        {id}/appeal/               - Appeal a rejection
    /api/v1/admin/                 - Staff endpoints
        issues/                    - List (filter by status, carrier_fault)
        issues/{id}/review/        - Approve reprint/refund, request info, reject
        issues/{id}/process/       - Execute the approved resolution
        issues/{id}/messages/      - Thread (list marks customer messages read)
        issues/{id}/conclude/      - Conclude
        issues/{id}/reopen/        - Reopen
        issues/{id}/claim/         - Carrier claim tracking
        issues/{id}/carrier-fault/ - Carrier fault flag
        orders/{id}/resolutions/   - Order-level resolutions
        orders/{id}/refund/        - Direct full refund
        resolutions/{id}/process/  - Process an order-level resolution
        cancellation-requests/{id}/review/ - Approve/reject cancellation
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.views import health_check
from issues.urls import admin_urlpatterns as issues_admin_urlpatterns
from orders.urls import admin_urlpatterns as orders_admin_urlpatterns

# =============================================================================
# API v1 Routes
# =============================================================================
admin_api_patterns = issues_admin_urlpatterns + orders_admin_urlpatterns

api_v1_patterns = [
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("admin/", include((admin_api_patterns, "staff"))),
    path("", include("issues.urls")),
    path("", include("orders.urls")),
]

urlpatterns = [
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

admin.site.site_header = "Order Issues Admin"
admin.site.site_title = "Order Issues Admin"
admin.site.index_title = "Issue resolution and refunds"
