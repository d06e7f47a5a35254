"""Serializers for approval records."""
from __future__ import annotations

from rest_framework import serializers

from .models import BusinessApproval


class BusinessApprovalSerializer(serializers.ModelSerializer):
    ticket_title = serializers.CharField(source="ticket.title", read_only=True)
    ticket_status = serializers.CharField(source="ticket.status", read_only=True)

    class Meta:
        model = BusinessApproval
        fields = [
            "id",
            "ticket",
            "ticket_title",
            "ticket_status",
            "reviewer",
            "status",
            "comments",
            "decided_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
