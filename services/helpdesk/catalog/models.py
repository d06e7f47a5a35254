"""Database models for ticket templates and the service catalog."""
from __future__ import annotations

from django.db import models


class TicketTemplate(models.Model):
    """An administrator-defined set of custom fields attached to tickets."""

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    requires_approval = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return self.name


class TemplateFieldDefinition(models.Model):
    """A custom field that belongs to a template."""

    TEXT = "text"
    TEXTAREA = "textarea"
    DROPDOWN = "dropdown"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DATE = "date"
    NUMBER = "number"

    FIELD_TYPES = [
        (TEXT, "Text"),
        (TEXTAREA, "Text Area"),
        (DROPDOWN, "Dropdown"),
        (CHECKBOX, "Checkbox"),
        (RADIO, "Radio"),
        (DATE, "Date"),
        (NUMBER, "Number"),
    ]

    # Types whose definitions must carry a non-empty option list.
    CHOICE_TYPES = frozenset({DROPDOWN, RADIO})

    template = models.ForeignKey(
        TicketTemplate, related_name="field_definitions", on_delete=models.CASCADE
    )
    name = models.CharField(max_length=255)
    label = models.CharField(max_length=255, blank=True)
    field_type = models.CharField(max_length=32, choices=FIELD_TYPES)
    options = models.JSONField(default=list, blank=True)
    is_required = models.BooleanField(default=False)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]
        unique_together = ("template", "name")

    def __str__(self) -> str:
        return f"{self.display_label} ({self.field_type})"

    @property
    def display_label(self) -> str:
        return self.label or self.name


class ServiceItem(models.Model):
    """A catalog entry a ticket can be raised against."""

    INCIDENT = "incident"
    SERVICE_REQUEST = "service_request"
    CHANGE = "change"
    PROBLEM = "problem"

    REQUEST_TYPE_CHOICES = [
        (INCIDENT, "Incident"),
        (SERVICE_REQUEST, "Service Request"),
        (CHANGE, "Change"),
        (PROBLEM, "Problem"),
    ]

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    request_type = models.CharField(
        max_length=32, choices=REQUEST_TYPE_CHOICES, default=SERVICE_REQUEST
    )
    is_kasda_related = models.BooleanField(default=False)
    requires_approval = models.BooleanField(default=False)
    template = models.ForeignKey(
        TicketTemplate,
        related_name="service_items",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return self.name
