"""API views for managing tickets."""
from __future__ import annotations

from django.db.models import Q
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response

from accounts.models import User

from . import lifecycle
from .lifecycle import Actor, UpdateResult
from .models import Ticket
from .serializers import (
    ApprovalDecisionSerializer,
    BulkCategorizeSerializer,
    CategorizeSerializer,
    ClassificationAuditSerializer,
    ClassificationLockSerializer,
    TicketCreateSerializer,
    TicketSerializer,
    TicketUpdateSerializer,
)

FULL_VISIBILITY_ROLES = {User.ADMIN, User.MANAGER, User.TECHNICIAN}


class TicketViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Tickets; every write goes through :mod:`tickets.lifecycle`."""

    serializer_class = TicketSerializer
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["title", "description", "status", "priority"]
    ordering_fields = ["created_at", "updated_at", "priority", "sla_due_at"]
    ordering = ["-created_at"]
    lookup_value_regex = r"\d+"

    def get_queryset(self):  # type: ignore[override]
        queryset = Ticket.objects.select_related(
            "created_by", "assigned_to", "business_approval"
        ).prefetch_related("custom_values__field_definition")
        user = self.request.user
        if user.role not in FULL_VISIBILITY_ROLES:
            queryset = queryset.filter(
                Q(created_by=user) | Q(business_approval__reviewer=user)
            ).distinct()
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    def _actor(self) -> Actor:
        return Actor.from_user(self.request.user)

    def _ticket_id(self) -> int:
        return int(self.kwargs[self.lookup_field])

    def _render(self, ticket_id: int, code: int = status.HTTP_200_OK) -> Response:
        ticket = Ticket.objects.select_related("business_approval").prefetch_related(
            "custom_values__field_definition"
        ).get(pk=ticket_id)
        return Response(self.get_serializer(ticket).data, status=code)

    def _render_result(self, result: UpdateResult) -> Response:
        if result.changed:
            return self._render(result.ticket.id)
        ticket_data = self._render(result.ticket.id).data
        return Response({"message": result.message, "ticket": ticket_data})

    def create(self, request: Request, *args, **kwargs):  # type: ignore[override]
        payload = TicketCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        ticket = lifecycle.create_ticket(self._actor(), payload.to_new_ticket())
        return self._render(ticket.id, status.HTTP_201_CREATED)

    def partial_update(self, request: Request, *args, **kwargs):  # type: ignore[override]
        payload = TicketUpdateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        result = lifecycle.apply_update(self._ticket_id(), self._actor(), payload.to_changes())
        return self._render_result(result)

    def destroy(self, request: Request, *args, **kwargs):  # type: ignore[override]
        lifecycle.delete_ticket(self._ticket_id(), self._actor())
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="approval")
    def approval(self, request: Request, *args, **kwargs):  # type: ignore[override]
        """Approve, reject or request changes as the ticket's reviewer."""

        payload = ApprovalDecisionSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        result = lifecycle.decide_approval(
            self._ticket_id(),
            self._actor(),
            payload.validated_data["action"],
            payload.validated_data["comments"],
        )
        return self._render_result(result)

    @action(detail=True, methods=["post"], url_path="categorize")
    def categorize(self, request: Request, *args, **kwargs):  # type: ignore[override]
        payload = CategorizeSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data
        result = lifecycle.categorize_ticket(
            self._ticket_id(),
            self._actor(),
            root_cause=data.get("root_cause"),
            issue_category=data.get("issue_category"),
            reason=data["reason"],
        )
        return self._render_result(result)

    @action(detail=True, methods=["post"], url_path="classification-lock")
    def classification_lock(self, request: Request, *args, **kwargs):  # type: ignore[override]
        payload = ClassificationLockSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        result = lifecycle.set_classification_lock(
            self._ticket_id(), self._actor(), payload.validated_data["locked"]
        )
        return self._render_result(result)

    @action(detail=True, methods=["get"], url_path="classification-history")
    def classification_history(self, request: Request, *args, **kwargs):  # type: ignore[override]
        ticket = self.get_object()
        entries = ticket.classification_audit.all()
        return Response(ClassificationAuditSerializer(entries, many=True).data)

    @action(detail=False, methods=["post"], url_path="bulk-categorize")
    def bulk_categorize(self, request: Request, *args, **kwargs):  # type: ignore[override]
        """Apply one technician classification to many tickets."""

        payload = BulkCategorizeSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data
        result = lifecycle.bulk_categorize(
            data["ticket_ids"],
            self._actor(),
            root_cause=data.get("root_cause"),
            issue_category=data.get("issue_category"),
            reason=data["reason"],
        )
        return Response(
            {
                "processed": result.processed,
                "unchanged": result.unchanged,
                "failures": {str(key): value for key, value in result.failures.items()},
            }
        )


@api_view(["GET"])
@permission_classes([AllowAny])
def health(request: Request):  # type: ignore[override]
    """Readiness endpoint for orchestration tooling."""

    return Response({"status": "ok"})
