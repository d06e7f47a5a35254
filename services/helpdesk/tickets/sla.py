"""SLA due-date calculation.

Two tables coexist. Tickets raised against the service catalog are keyed on
business impact and on whether they belong to the regulated (KASDA/business)
class; every other ticket is keyed on priority.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Mapping, Optional

from accounts.models import Department

PRIORITY_WINDOWS: Mapping[str, timedelta] = {
    "urgent": timedelta(hours=4),
    "high": timedelta(days=1),
    "medium": timedelta(days=3),
    "low": timedelta(days=7),
}

REGULATED_IMPACT_WINDOWS: Mapping[str, timedelta] = {
    "critical": timedelta(hours=4),
    "high": timedelta(hours=24),
    "medium": timedelta(hours=24),
    "low": timedelta(hours=72),
}

TECHNICAL_IMPACT_WINDOWS: Mapping[str, timedelta] = {
    "critical": timedelta(hours=2),
    "high": timedelta(hours=4),
    "medium": timedelta(hours=8),
    "low": timedelta(hours=24),
}

DEFAULT_LEVEL = "medium"


def due_date_for_priority(priority: Optional[str], now: datetime) -> datetime:
    window = PRIORITY_WINDOWS.get(priority or "", PRIORITY_WINDOWS[DEFAULT_LEVEL])
    return now + window


def due_date_for_impact(
    business_impact: Optional[str], is_regulated: bool, now: datetime
) -> datetime:
    table = REGULATED_IMPACT_WINDOWS if is_regulated else TECHNICAL_IMPACT_WINDOWS
    window = table.get(business_impact or "", table[DEFAULT_LEVEL])
    return now + window


def is_regulated(ticket) -> bool:
    """KASDA tickets and tickets raised from business departments."""

    if ticket.is_kasda_ticket:
        return True
    creator = ticket.created_by
    department = creator.department
    if department is None and creator.unit_id is not None:
        department = creator.unit.department
    return department is not None and department.department_type == Department.BUSINESS


def due_date_for_ticket(ticket, now: datetime) -> datetime:
    if ticket.service_item_id is not None:
        return due_date_for_impact(ticket.business_impact, is_regulated(ticket), now)
    return due_date_for_priority(ticket.priority, now)
