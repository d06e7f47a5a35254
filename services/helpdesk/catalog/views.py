"""API views for templates and the service catalog."""
from __future__ import annotations

from rest_framework import viewsets
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import IsAuthenticated

from accounts.permissions import IsAdminOrReadOnly

from .models import ServiceItem, TicketTemplate
from .serializers import ServiceItemSerializer, TicketTemplateSerializer


class TicketTemplateViewSet(viewsets.ModelViewSet):
    queryset = TicketTemplate.objects.prefetch_related("field_definitions").all()
    serializer_class = TicketTemplateSerializer
    permission_classes = [IsAuthenticated, IsAdminOrReadOnly]
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["name", "description"]
    ordering_fields = ["name", "updated_at"]
    ordering = ["name"]


class ServiceItemViewSet(viewsets.ModelViewSet):
    queryset = ServiceItem.objects.select_related("template").all()
    serializer_class = ServiceItemSerializer
    permission_classes = [IsAuthenticated, IsAdminOrReadOnly]
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["name", "description"]
    ordering_fields = ["name"]
    ordering = ["name"]
