"""Ticket status transitions and the role preconditions attached to them."""
from __future__ import annotations

from typing import Dict, FrozenSet

from accounts.models import User
from helpdesk_service.errors import InvalidTransition

from .models import Ticket

TRANSITIONS: Dict[str, FrozenSet[str]] = {
    Ticket.PENDING_APPROVAL: frozenset(
        {Ticket.APPROVED, Ticket.REJECTED, Ticket.AWAITING_CHANGES}
    ),
    Ticket.APPROVED: frozenset({Ticket.ASSIGNED, Ticket.IN_PROGRESS, Ticket.CANCELLED}),
    Ticket.ASSIGNED: frozenset(
        {Ticket.IN_PROGRESS, Ticket.PENDING, Ticket.CANCELLED, Ticket.DUPLICATE}
    ),
    Ticket.OPEN: frozenset(
        {Ticket.ASSIGNED, Ticket.IN_PROGRESS, Ticket.PENDING, Ticket.CANCELLED, Ticket.DUPLICATE}
    ),
    Ticket.IN_PROGRESS: frozenset(
        {
            Ticket.PENDING,
            Ticket.RESOLVED,
            Ticket.CLOSED,
            Ticket.ASSIGNED,
            Ticket.CANCELLED,
            Ticket.DUPLICATE,
        }
    ),
    Ticket.PENDING: frozenset({Ticket.IN_PROGRESS, Ticket.ASSIGNED, Ticket.CANCELLED}),
    Ticket.RESOLVED: frozenset({Ticket.CLOSED, Ticket.IN_PROGRESS}),
    Ticket.CLOSED: frozenset({Ticket.IN_PROGRESS}),
    Ticket.REJECTED: frozenset({Ticket.PENDING_APPROVAL}),
    Ticket.AWAITING_CHANGES: frozenset({Ticket.PENDING_APPROVAL}),
    Ticket.CANCELLED: frozenset(),
    Ticket.DUPLICATE: frozenset(),
}

TERMINAL_STATES = frozenset({Ticket.CANCELLED, Ticket.DUPLICATE})

# Entering one of these starts the SLA clock.
ACTIVE_STATES = frozenset({Ticket.APPROVED, Ticket.OPEN})

OWNER_EDITABLE_STATES = frozenset({Ticket.OPEN, Ticket.AWAITING_CHANGES})

REVIEW_DECISIONS = TRANSITIONS[Ticket.PENDING_APPROVAL]


def initial_status(requires_approval: bool) -> str:
    return Ticket.PENDING_APPROVAL if requires_approval else Ticket.OPEN


def is_allowed(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def owner_can_edit(status: str) -> bool:
    return status in OWNER_EDITABLE_STATES


def check_transition(current: str, target: str, *, role: str, is_reviewer: bool = False) -> None:
    """Raise :class:`InvalidTransition` unless ``current -> target`` is legal for the actor."""

    if current in TERMINAL_STATES:
        raise InvalidTransition(
            current, target, f'Ticket is "{current}" and accepts no further status changes.'
        )
    if not is_allowed(current, target):
        raise InvalidTransition(current, target)
    if current == Ticket.PENDING_APPROVAL and not is_reviewer:
        raise InvalidTransition(
            current, target, "Only the assigned reviewer can decide a ticket pending approval."
        )
    if current == Ticket.CLOSED and target == Ticket.IN_PROGRESS and role != User.ADMIN:
        raise InvalidTransition(
            current, target, "Only administrators can reopen a closed ticket."
        )
