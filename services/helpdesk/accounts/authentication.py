"""Resolve the acting user from headers set by the upstream gateway."""
from __future__ import annotations

from rest_framework import authentication, exceptions

from .models import User

USER_ID_HEADER = "X-User-Id"


class GatewayHeaderAuthentication(authentication.BaseAuthentication):
    """Token checks happen at the gateway; the service trusts ``X-User-Id``."""

    def authenticate(self, request):  # type: ignore[override]
        raw_id = request.headers.get(USER_ID_HEADER)
        if not raw_id:
            return None
        try:
            user_id = int(raw_id)
        except ValueError:
            raise exceptions.AuthenticationFailed(f"{USER_ID_HEADER} must be an integer.")

        user = User.objects.select_related("unit", "department").filter(
            id=user_id, is_active=True
        ).first()
        if user is None:
            raise exceptions.AuthenticationFailed("Unknown or inactive user.")
        return user, None

    def authenticate_header(self, request) -> str:  # type: ignore[override]
        return USER_ID_HEADER
