"""Database models for business approvals."""
from __future__ import annotations

from django.db import models
from django.utils import timezone


class BusinessApproval(models.Model):
    """The approval record gating a ticket's progress past ``pending_approval``."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVIEW_REQUIRED = "review_required"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (APPROVED, "Approved"),
        (REJECTED, "Rejected"),
        (REVIEW_REQUIRED, "Review Required"),
    ]

    ticket = models.OneToOneField(
        "tickets.Ticket", related_name="business_approval", on_delete=models.CASCADE
    )
    reviewer = models.ForeignKey(
        "accounts.User", related_name="business_approvals", on_delete=models.PROTECT
    )
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=PENDING)
    comments = models.TextField(blank=True)
    decided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "id"]
        indexes = [
            models.Index(fields=["reviewer", "status"], name="approvals_reviewer_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Approval for ticket {self.ticket_id} ({self.status})"

    @property
    def is_pending(self) -> bool:
        return self.status == self.PENDING

    def mark_decided(self, status: str, comments: str = "") -> None:
        self.status = status
        self.comments = comments
        self.decided_at = timezone.now()
        self.save(update_fields=["status", "comments", "decided_at", "updated_at"])

    def reopen(self) -> None:
        self.status = self.PENDING
        self.decided_at = None
        self.save(update_fields=["status", "decided_at", "updated_at"])
