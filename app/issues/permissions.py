"""
Permission classes for the issues API.

- IsStaffUser: Support team members (``is_staff``)
- IsIssueOwner: The customer who reported the issue

Services repeat the ownership check, so these guard the HTTP surface
rather than being the only line of defence.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView

    from issues.models import Issue


class IsStaffUser(permissions.BasePermission):
    message = "Only staff members can perform this action."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and user.is_staff)


class IsIssueOwner(permissions.BasePermission):
    """Allows access only to the customer who reported the issue."""

    message = "You do not have access to this issue."

    def has_object_permission(self, request: Request, view: APIView, obj: Issue) -> bool:
        if not request.user.is_authenticated:
            return False
        return obj.customer_id == request.user.pk
