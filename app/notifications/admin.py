"""Django admin configuration for the side-effect outbox."""

from django.contrib import admin

from notifications.models import SideEffect


@admin.register(SideEffect)
class SideEffectAdmin(admin.ModelAdmin):
    """
    Admin for SideEffect.

    Rows are written by services only; the admin is for inspecting
    failures.
    """

    list_display = [
        "id",
        "kind",
        "status",
        "attempt_count",
        "created_at",
        "delivered_at",
    ]
    list_filter = ["status", "kind"]
    search_fields = ["id", "last_error"]
    readonly_fields = [
        "id",
        "kind",
        "payload",
        "status",
        "attempt_count",
        "last_error",
        "delivered_at",
        "next_attempt_at",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    def has_add_permission(self, request):
        return False
