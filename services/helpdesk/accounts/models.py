"""Database models for helpdesk identities and the organisational hierarchy."""
from __future__ import annotations

from django.db import models


class Department(models.Model):
    """A department; business departments handle regulated requests."""

    BUSINESS = "business"
    TECHNICAL = "technical"

    TYPE_CHOICES = [
        (BUSINESS, "Business"),
        (TECHNICAL, "Technical"),
    ]

    name = models.CharField(max_length=255, unique=True)
    department_type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=TECHNICAL)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return self.name


class Unit(models.Model):
    """An organisational unit (branch, office) optionally inside a department."""

    name = models.CharField(max_length=255)
    department = models.ForeignKey(
        Department,
        related_name="units",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )

    class Meta:
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return self.name


class User(models.Model):
    """A lightweight identity record; credentials live in the auth provider."""

    ADMIN = "admin"
    MANAGER = "manager"
    TECHNICIAN = "technician"
    REQUESTER = "requester"

    ROLE_CHOICES = [
        (ADMIN, "Administrator"),
        (MANAGER, "Manager"),
        (TECHNICIAN, "Technician"),
        (REQUESTER, "Requester"),
    ]

    email = models.EmailField(unique=True)
    display_name = models.CharField(max_length=255)
    role = models.CharField(max_length=32, choices=ROLE_CHOICES, default=REQUESTER)
    unit = models.ForeignKey(
        Unit, related_name="members", on_delete=models.SET_NULL, null=True, blank=True
    )
    department = models.ForeignKey(
        Department, related_name="members", on_delete=models.SET_NULL, null=True, blank=True
    )
    is_business_reviewer = models.BooleanField(default=False)
    is_available = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["display_name", "email"]

    def __str__(self) -> str:
        return f"{self.display_name} <{self.email}>"

    @property
    def is_authenticated(self) -> bool:
        # Instances only reach request.user after the gateway header resolved.
        return True

    @property
    def is_staff_role(self) -> bool:
        return self.role in {self.ADMIN, self.TECHNICIAN}

    @property
    def effective_department_id(self) -> int | None:
        """The user's department, falling back to the department of their unit."""

        if self.department_id is not None:
            return self.department_id
        if self.unit_id is not None:
            return self.unit.department_id
        return None
