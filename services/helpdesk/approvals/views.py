"""API views for approval queues."""
from __future__ import annotations

from rest_framework import viewsets
from rest_framework.filters import OrderingFilter

from accounts.models import User

from .models import BusinessApproval
from .serializers import BusinessApprovalSerializer


class BusinessApprovalViewSet(viewsets.ReadOnlyModelViewSet):
    """Approvals assigned to the caller; administrators see all of them."""

    serializer_class = BusinessApprovalSerializer
    filter_backends = [OrderingFilter]
    ordering_fields = ["created_at", "decided_at"]
    ordering = ["-created_at"]

    def get_queryset(self):  # type: ignore[override]
        queryset = BusinessApproval.objects.select_related("ticket", "reviewer")
        if self.request.user.role != User.ADMIN:
            queryset = queryset.filter(reviewer=self.request.user)
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset
