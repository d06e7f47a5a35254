"""Route registration for approval endpoints."""
from __future__ import annotations

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import BusinessApprovalViewSet

router = DefaultRouter()
router.register("approvals", BusinessApprovalViewSet, basename="approval")

urlpatterns = [
    path("", include(router.urls)),
]
