"""URL configuration for the helpdesk service."""
from django.urls import include, path

urlpatterns = [
    path("api/", include("accounts.urls")),
    path("api/", include("catalog.urls")),
    path("api/", include("approvals.urls")),
    path("api/", include("tickets.urls")),
]
