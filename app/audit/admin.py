"""Read-only Django admin for the audit trail."""

from django.contrib import admin

from audit.models import AuditLogEntry


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    list_display = ["created_at", "action", "entity_type", "entity_id", "actor_email", "actor_type"]
    list_filter = ["action", "actor_type", "entity_type"]
    search_fields = ["entity_id", "actor_email", "actor_id"]
    readonly_fields = [field.name for field in AuditLogEntry._meta.fields]
    ordering = ["-created_at"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
