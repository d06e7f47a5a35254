"""Database models for the ticket service."""
from __future__ import annotations

from django.db import models

from catalog.models import ServiceItem


class Ticket(models.Model):
    """A helpdesk ticket raised against the service catalog."""

    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    PENDING = "pending"
    RESOLVED = "resolved"
    CLOSED = "closed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    DUPLICATE = "duplicate"
    AWAITING_CHANGES = "awaiting-changes"

    STATUS_CHOICES = [
        (PENDING_APPROVAL, "Pending Approval"),
        (APPROVED, "Approved"),
        (OPEN, "Open"),
        (ASSIGNED, "Assigned"),
        (IN_PROGRESS, "In Progress"),
        (PENDING, "Pending"),
        (RESOLVED, "Resolved"),
        (CLOSED, "Closed"),
        (REJECTED, "Rejected"),
        (CANCELLED, "Cancelled"),
        (DUPLICATE, "Duplicate"),
        (AWAITING_CHANGES, "Awaiting Changes"),
    ]

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"
    CRITICAL = "critical"

    PRIORITY_CHOICES = [
        (LOW, "Low"),
        (MEDIUM, "Medium"),
        (HIGH, "High"),
        (URGENT, "Urgent"),
    ]

    IMPACT_CHOICES = [
        (LOW, "Low"),
        (MEDIUM, "Medium"),
        (HIGH, "High"),
        (CRITICAL, "Critical"),
    ]

    ROOT_CAUSE_CHOICES = [
        ("human_error", "User/Process Error"),
        ("system_error", "Technical/System Error"),
        ("external_factor", "External Issue"),
        ("undetermined", "Needs Investigation"),
    ]

    ISSUE_CATEGORY_CHOICES = [
        ("request", "Service Request"),
        ("complaint", "Service Complaint"),
        ("problem", "Technical Problem"),
    ]

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=OPEN)
    priority = models.CharField(max_length=16, choices=PRIORITY_CHOICES, default=MEDIUM)
    business_impact = models.CharField(max_length=16, choices=IMPACT_CHOICES, default=MEDIUM)
    request_type = models.CharField(
        max_length=32, choices=ServiceItem.REQUEST_TYPE_CHOICES, default=ServiceItem.INCIDENT
    )
    created_by = models.ForeignKey(
        "accounts.User", related_name="created_tickets", on_delete=models.PROTECT
    )
    assigned_to = models.ForeignKey(
        "accounts.User",
        related_name="assigned_tickets",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    template = models.ForeignKey(
        "catalog.TicketTemplate",
        related_name="tickets",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    service_item = models.ForeignKey(
        "catalog.ServiceItem",
        related_name="tickets",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    is_kasda_ticket = models.BooleanField(default=False)
    requires_business_approval = models.BooleanField(default=False)
    is_classification_locked = models.BooleanField(default=False)
    user_root_cause = models.CharField(max_length=32, choices=ROOT_CAUSE_CHOICES, blank=True)
    user_issue_category = models.CharField(max_length=32, choices=ISSUE_CATEGORY_CHOICES, blank=True)
    tech_root_cause = models.CharField(max_length=32, choices=ROOT_CAUSE_CHOICES, blank=True)
    tech_issue_category = models.CharField(max_length=32, choices=ISSUE_CATEGORY_CHOICES, blank=True)
    reviewer_comments = models.TextField(blank=True)
    sla_due_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "id"]
        indexes = [
            models.Index(fields=["status"], name="tickets_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.status})"

    @property
    def confirmed_root_cause(self) -> str:
        return self.tech_root_cause or self.user_root_cause

    @property
    def confirmed_issue_category(self) -> str:
        return self.tech_issue_category or self.user_issue_category


class CustomFieldValue(models.Model):
    """A submitted value for one of the template's custom fields."""

    ticket = models.ForeignKey(Ticket, related_name="custom_values", on_delete=models.CASCADE)
    field_definition = models.ForeignKey(
        "catalog.TemplateFieldDefinition",
        related_name="values",
        on_delete=models.CASCADE,
    )
    value = models.TextField(blank=True)

    class Meta:
        ordering = ["field_definition__sort_order", "id"]
        unique_together = ("ticket", "field_definition")

    def __str__(self) -> str:
        return f"{self.ticket_id} / {self.field_definition_id}"


class TicketAttachment(models.Model):
    """Metadata for a file kept by the attachment store."""

    ticket = models.ForeignKey(Ticket, related_name="attachments", on_delete=models.CASCADE)
    file_name = models.CharField(max_length=255)
    file_path = models.CharField(max_length=512)
    file_size = models.PositiveIntegerField(default=0)
    content_type = models.CharField(max_length=128, blank=True)
    uploaded_by = models.ForeignKey(
        "accounts.User",
        related_name="uploaded_attachments",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return self.file_name


class ClassificationAudit(models.Model):
    """One changed classification field, with who changed it and why."""

    ticket = models.ForeignKey(Ticket, related_name="classification_audit", on_delete=models.CASCADE)
    changed_by = models.ForeignKey(
        "accounts.User", related_name="classification_changes", on_delete=models.PROTECT
    )
    field_name = models.CharField(max_length=64)
    old_value = models.CharField(max_length=32, blank=True)
    new_value = models.CharField(max_length=32, blank=True)
    reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "id"]

    def __str__(self) -> str:
        return f"{self.ticket_id}: {self.field_name} {self.old_value!r} -> {self.new_value!r}"
