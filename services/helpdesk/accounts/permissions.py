"""DRF permissions keyed on the helpdesk role."""
from __future__ import annotations

from rest_framework import permissions

from .models import User


class IsAdminOrReadOnly(permissions.BasePermission):
    """Directory data is maintained by administrators only."""

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.role == User.ADMIN)
