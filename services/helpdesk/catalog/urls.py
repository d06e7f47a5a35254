"""Route registration for the catalog endpoints."""
from __future__ import annotations

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import ServiceItemViewSet, TicketTemplateViewSet

router = DefaultRouter()
router.register("templates", TicketTemplateViewSet, basename="template")
router.register("service-items", ServiceItemViewSet, basename="service-item")

urlpatterns = [
    path("", include(router.urls)),
]
