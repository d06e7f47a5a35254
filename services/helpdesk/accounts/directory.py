"""Read-only queries over the organisational hierarchy."""
from __future__ import annotations

from typing import List

from django.db.models import Case, IntegerField, Q, QuerySet, Value, When

from .models import User

UNIT = "unit"
DEPARTMENT = "department"
GLOBAL = "global"

REVIEWER_ROLES = (User.ADMIN, User.MANAGER)


def reviewer_candidates() -> QuerySet:
    """Available business reviewers, admins first, then by id."""

    return (
        User.objects.filter(
            role__in=REVIEWER_ROLES,
            is_available=True,
            is_business_reviewer=True,
            is_active=True,
        )
        .annotate(
            role_rank=Case(
                When(role=User.ADMIN, then=Value(0)),
                default=Value(1),
                output_field=IntegerField(),
            )
        )
        .order_by("role_rank", "id")
    )


def find_reviewers(scope: str, user: User) -> List[User]:
    """Return ordered reviewer candidates for ``user`` within ``scope``."""

    queryset = reviewer_candidates().exclude(id=user.id)
    if scope == UNIT:
        if user.unit_id is None:
            return []
        queryset = queryset.filter(unit_id=user.unit_id)
    elif scope == DEPARTMENT:
        department_id = user.effective_department_id
        if department_id is None:
            return []
        queryset = queryset.filter(
            Q(department_id=department_id) | Q(unit__department_id=department_id)
        )
    elif scope != GLOBAL:
        raise ValueError(f"Unknown reviewer scope: {scope}")
    return list(queryset)
