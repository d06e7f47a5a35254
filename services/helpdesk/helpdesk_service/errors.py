"""Error kinds shared by the helpdesk apps and their REST rendering."""
from __future__ import annotations

from typing import Any, Dict, Optional

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler


class HelpdeskError(exceptions.APIException):
    """Base class for errors raised by the ticket core."""

    kind = "UpdateFailed"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed."

    def __init__(
        self,
        message: Optional[str] = None,
        field_errors: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or str(self.default_detail)
        self.field_errors = field_errors
        super().__init__(detail=self.message)

    def __str__(self) -> str:
        return self.message

    def as_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.field_errors:
            payload["fieldErrors"] = self.field_errors
        return payload


class ValidationFailed(HelpdeskError):
    kind = "ValidationFailed"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Validation failed."


class InvalidTransition(HelpdeskError):
    kind = "InvalidTransition"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Status transition is not allowed."

    def __init__(self, current: str, requested: str, message: Optional[str] = None) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            message or f'Cannot change status from "{current}" to "{requested}".'
        )


class Forbidden(HelpdeskError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not authorized to perform this action."


class NotFound(HelpdeskError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found."


class Busy(HelpdeskError):
    """The ticket is locked by another update; the caller should retry."""

    kind = "Busy"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "The ticket is being updated by another request. Retry shortly."
    retry_after = 1


class UpdateFailed(HelpdeskError):
    kind = "UpdateFailed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Failed to update ticket."

    def __init__(self, message: Optional[str] = None, error: Optional[str] = None) -> None:
        # Only populated outside production (DEBUG).
        self.error = error
        super().__init__(message)

    def as_payload(self) -> Dict[str, Any]:
        payload = super().as_payload()
        if self.error:
            payload["error"] = self.error
        return payload


class NotificationFailed(HelpdeskError):
    """Raised inside notification delivery; never surfaced to API callers."""

    kind = "NotificationFailed"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Notification delivery failed."


_DRF_KINDS = {
    exceptions.ValidationError: ValidationFailed.kind,
    exceptions.ParseError: ValidationFailed.kind,
    exceptions.NotAuthenticated: Forbidden.kind,
    exceptions.AuthenticationFailed: Forbidden.kind,
    exceptions.PermissionDenied: Forbidden.kind,
    exceptions.NotFound: NotFound.kind,
    exceptions.MethodNotAllowed: ValidationFailed.kind,
}


def _first_message(detail: Any) -> str:
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return "Invalid input."
    if isinstance(detail, list):
        return _first_message(detail[0]) if detail else "Invalid input."
    return str(detail)


def exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    """Render every API error as ``{kind, message, fieldErrors?}``."""

    if isinstance(exc, HelpdeskError):
        headers = {}
        if isinstance(exc, Busy):
            headers["Retry-After"] = str(exc.retry_after)
        return Response(exc.as_payload(), status=exc.status_code, headers=headers)

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    kind = next(
        (value for klass, value in _DRF_KINDS.items() if isinstance(exc, klass)),
        UpdateFailed.kind,
    )
    payload: Dict[str, Any] = {"kind": kind, "message": _first_message(response.data)}
    if isinstance(exc, exceptions.ValidationError) and isinstance(exc.detail, dict):
        payload["fieldErrors"] = exc.detail
    response.data = payload
    return response
