"""API views for identities and the organisational hierarchy."""
from __future__ import annotations

from rest_framework import viewsets
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import IsAuthenticated

from .models import Department, Unit, User
from .permissions import IsAdminOrReadOnly
from .serializers import DepartmentSerializer, UnitSerializer, UserSerializer


class UserViewSet(viewsets.ModelViewSet):
    queryset = User.objects.select_related("unit", "department").all()
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated, IsAdminOrReadOnly]
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["email", "display_name"]
    ordering_fields = ["display_name", "created_at"]
    ordering = ["display_name"]


class DepartmentViewSet(viewsets.ModelViewSet):
    queryset = Department.objects.all()
    serializer_class = DepartmentSerializer
    permission_classes = [IsAuthenticated, IsAdminOrReadOnly]


class UnitViewSet(viewsets.ModelViewSet):
    queryset = Unit.objects.select_related("department").all()
    serializer_class = UnitSerializer
    permission_classes = [IsAuthenticated, IsAdminOrReadOnly]
