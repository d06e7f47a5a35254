"""Ticket lifecycle orchestration.

Every mutation runs inside one transaction that starts by locking the ticket
row, so concurrent requests against the same ticket are applied one after the
other and each sees the previous one's committed state. All checks
(authorisation, custom field validation, status transition) happen before the
first write; any error rolls the whole transaction back. Notifications are
queued only after commit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set

from django.conf import settings
from django.db import DatabaseError, OperationalError, connection, transaction
from django.utils import timezone

from accounts.models import User
from approvals import routing
from approvals.models import BusinessApproval
from catalog import store, validation
from catalog.models import ServiceItem, TicketTemplate
from catalog.validation import FieldValue
from helpdesk_service.errors import (
    Busy,
    Forbidden,
    HelpdeskError,
    NotFound,
    UpdateFailed,
    ValidationFailed,
)

from . import sla, state_machine
from .models import ClassificationAudit, CustomFieldValue, Ticket
from .notifications import notify_on_commit, ticket_context

logger = logging.getLogger(__name__)

NO_CHANGES_MESSAGE = "No changes detected."

STAFF_ROLES = frozenset({User.TECHNICIAN, User.ADMIN})
CATEGORIZER_ROLES = frozenset({User.TECHNICIAN, User.MANAGER, User.ADMIN})

OWNER_FIELDS = frozenset(
    {
        "title",
        "description",
        "priority",
        "business_impact",
        "service_item_id",
        "template_id",
        "custom_field_values",
    }
)
STAFF_FIELDS = OWNER_FIELDS | {"status", "assigned_to_id", "request_type"}
REVIEWER_FIELDS = frozenset({"status", "comments"})

DECISION_APPROVAL_STATUS = {
    Ticket.APPROVED: BusinessApproval.APPROVED,
    Ticket.REJECTED: BusinessApproval.REJECTED,
    Ticket.AWAITING_CHANGES: BusinessApproval.REVIEW_REQUIRED,
}

DECISION_NOTIFICATIONS = {
    Ticket.APPROVED: "approved",
    Ticket.REJECTED: "rejected",
    Ticket.AWAITING_CHANGES: "changes_requested",
}

APPROVAL_ACTIONS = {
    "approve": Ticket.APPROVED,
    "reject": Ticket.REJECTED,
    "request_changes": Ticket.AWAITING_CHANGES,
}


@dataclass(frozen=True)
class Actor:
    id: int
    role: str
    unit_id: Optional[int] = None
    department_id: Optional[int] = None

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(
            id=user.id,
            role=user.role,
            unit_id=user.unit_id,
            department_id=user.department_id,
        )

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


@dataclass
class TicketChanges:
    """Requested changes; ``fields`` is keyed by model attribute name."""

    fields: Dict[str, Any] = field(default_factory=dict)
    status: Optional[str] = None
    custom_field_values: Optional[List[FieldValue]] = None
    comments: Optional[str] = None

    def requested_names(self) -> Set[str]:
        names = set(self.fields)
        if self.status is not None:
            names.add("status")
        if self.custom_field_values is not None:
            names.add("custom_field_values")
        if self.comments is not None:
            names.add("comments")
        return names


@dataclass
class NewTicket:
    title: str
    description: str = ""
    priority: str = Ticket.MEDIUM
    business_impact: str = Ticket.MEDIUM
    request_type: Optional[str] = None
    template_id: Optional[int] = None
    service_item_id: Optional[int] = None
    custom_field_values: List[FieldValue] = field(default_factory=list)
    requires_approval: Optional[bool] = None


@dataclass
class UpdateResult:
    ticket: Ticket
    changed: bool
    message: str = ""


@dataclass
class BulkResult:
    processed: List[int] = field(default_factory=list)
    unchanged: List[int] = field(default_factory=list)
    failures: Dict[int, Dict[str, str]] = field(default_factory=dict)


# ----------------------------------------------------------------------
# Transaction helpers
# ----------------------------------------------------------------------


def _set_lock_timeout() -> None:
    if connection.vendor != "postgresql":
        return
    timeout_ms = int(settings.HELPDESK_LOCK_TIMEOUT_MS)
    with connection.cursor() as cursor:
        cursor.execute(f"SET LOCAL lock_timeout = {timeout_ms}")


def lock_ticket(ticket_id: int) -> Ticket:
    """Load the ticket with an exclusive row lock. Must run inside ``atomic``."""

    _set_lock_timeout()
    try:
        return Ticket.objects.select_for_update().get(pk=ticket_id)
    except Ticket.DoesNotExist:
        raise NotFound(f"Ticket {ticket_id} not found.")
    except OperationalError as exc:
        logger.warning("Timed out waiting for the lock on ticket %s: %s", ticket_id, exc)
        raise Busy() from exc


def _update_failed(ticket_id: Optional[int], exc: Exception) -> UpdateFailed:
    logger.exception("Database error while changing ticket %s", ticket_id)
    return UpdateFailed(error=str(exc) if settings.DEBUG else None)


def _run(ticket_id: Optional[int], operation, *args):
    try:
        with transaction.atomic():
            return operation(*args)
    except HelpdeskError:
        raise
    except DatabaseError as exc:
        raise _update_failed(ticket_id, exc) from exc


# ----------------------------------------------------------------------
# Shared checks
# ----------------------------------------------------------------------


def _check_references(fields: Dict[str, Any]) -> None:
    template_id = fields.get("template_id")
    if template_id is not None and not store.template_exists(template_id):
        raise NotFound(f"Template {template_id} not found.")
    item_id = fields.get("service_item_id")
    if item_id is not None and not ServiceItem.objects.filter(pk=item_id).exists():
        raise NotFound(f"Service item {item_id} not found.")
    assignee_id = fields.get("assigned_to_id")
    if assignee_id is not None and not User.objects.filter(pk=assignee_id, is_active=True).exists():
        raise NotFound(f"User {assignee_id} not found.")


def _service_item_columns(
    ticket: Ticket, column_diff: Dict[str, Any], requested: Dict[str, Any]
) -> Dict[str, Any]:
    """Columns derived from the service item, recomputed when the item changes.

    An explicitly requested ``request_type`` wins over the item's.
    """

    item_id = column_diff["service_item_id"]
    item = ServiceItem.objects.filter(pk=item_id).first() if item_id is not None else None
    derived: Dict[str, Any] = {"is_kasda_ticket": bool(item and item.is_kasda_related)}
    if item is not None and "request_type" not in requested:
        derived["request_type"] = item.request_type
    return {name: value for name, value in derived.items() if getattr(ticket, name) != value}


def _validate_values(template_id: Optional[int], values: Sequence[FieldValue]) -> None:
    result = validation.validate(template_id, values)
    if not result.ok:
        raise ValidationFailed(result.reason, field_errors=result.field_errors or None)


def _approval_for(ticket: Ticket) -> Optional[BusinessApproval]:
    return BusinessApproval.objects.filter(ticket_id=ticket.id).select_related("reviewer").first()


def _allowed_fields(actor: Actor, is_owner: bool, is_reviewer: bool) -> frozenset:
    allowed: frozenset = frozenset()
    if actor.is_staff:
        allowed = allowed | STAFF_FIELDS
    if is_owner:
        allowed = allowed | OWNER_FIELDS
    if is_reviewer:
        allowed = allowed | REVIEWER_FIELDS
    if not allowed:
        raise Forbidden("You are not authorized to update this ticket.")
    return allowed


def _current_values(ticket: Ticket) -> Dict[int, str]:
    return dict(
        CustomFieldValue.objects.filter(ticket=ticket).values_list("field_definition_id", "value")
    )


def _values_differ(current: Dict[int, str], submitted: Sequence[FieldValue]) -> bool:
    proposed = {item.field_definition_id: item.value for item in submitted}
    return len(proposed) != len(submitted) or proposed != current


def _replace_values(ticket: Ticket, values: Sequence[FieldValue]) -> None:
    CustomFieldValue.objects.filter(ticket=ticket).delete()
    CustomFieldValue.objects.bulk_create(
        CustomFieldValue(ticket=ticket, field_definition_id=item.field_definition_id, value=item.value)
        for item in values
    )


def _drop_orphaned_values(ticket: Ticket) -> None:
    orphans = CustomFieldValue.objects.filter(ticket=ticket)
    if ticket.template_id is not None:
        orphans = orphans.exclude(field_definition__template_id=ticket.template_id)
    deleted, _ = orphans.delete()
    if deleted:
        logger.info("Dropped %s custom values orphaned on ticket %s", deleted, ticket.id)


def _enter_status(
    ticket: Ticket, previous: str, target: str, comments: str, approval: Optional[BusinessApproval]
) -> List[str]:
    """Apply the side columns of a status change; returns extra columns to save."""

    now = timezone.now()
    touched = ["status"]
    ticket.status = target

    if target == Ticket.PENDING_APPROVAL:
        ticket.sla_due_at = None
        ticket.requires_business_approval = True
        touched += ["sla_due_at", "requires_business_approval"]
    elif target in state_machine.ACTIVE_STATES:
        ticket.sla_due_at = sla.due_date_for_ticket(ticket, now)
        touched.append("sla_due_at")

    if target == Ticket.RESOLVED:
        ticket.resolved_at = now
        touched.append("resolved_at")
    elif previous in {Ticket.RESOLVED, Ticket.CLOSED} and target == Ticket.IN_PROGRESS:
        ticket.resolved_at = None
        touched.append("resolved_at")

    if previous == Ticket.PENDING_APPROVAL and approval is not None:
        approval.mark_decided(DECISION_APPROVAL_STATUS[target], comments)
        ticket.reviewer_comments = comments
        touched.append("reviewer_comments")
    return touched


# ----------------------------------------------------------------------
# Update
# ----------------------------------------------------------------------


def apply_update(ticket_id: int, actor: Actor, changes: TicketChanges) -> UpdateResult:
    """Apply ``changes`` to a ticket on behalf of ``actor``."""

    return _run(ticket_id, _apply_update, ticket_id, actor, changes)


def _apply_update(ticket_id: int, actor: Actor, changes: TicketChanges) -> UpdateResult:
    ticket = lock_ticket(ticket_id)
    approval = _approval_for(ticket)
    is_owner = ticket.created_by_id == actor.id
    is_reviewer = approval is not None and approval.reviewer_id == actor.id

    allowed = _allowed_fields(actor, is_owner, is_reviewer)
    outside = changes.requested_names() - allowed
    if outside:
        raise Forbidden(
            "You are attempting to update fields you are not authorized to change: "
            + ", ".join(sorted(outside))
            + "."
        )
    if (
        changes.status is not None
        and not actor.is_staff
        and changes.status != ticket.status
        and changes.status not in state_machine.REVIEW_DECISIONS
    ):
        raise Forbidden("Reviewers can only approve, reject or request changes.")

    column_diff = {
        name: value for name, value in changes.fields.items() if getattr(ticket, name) != value
    }
    template_changed = "template_id" in column_diff
    current_values = _current_values(ticket)
    values_changed = changes.custom_field_values is not None and _values_differ(
        current_values, changes.custom_field_values
    )

    target: Optional[str] = None
    resubmission = False
    if changes.status is not None and changes.status != ticket.status:
        target = changes.status
    elif changes.status is None and is_owner and ticket.status == Ticket.AWAITING_CHANGES:
        target = Ticket.PENDING_APPROVAL
        resubmission = True

    has_changes = bool(column_diff) or values_changed or target is not None
    if (
        has_changes
        and is_owner
        and not actor.is_staff
        and not is_reviewer
        and not state_machine.owner_can_edit(ticket.status)
    ):
        raise Forbidden(
            "As a requester, you can only update tickets that are in 'open' or "
            "'awaiting-changes' status."
        )

    _check_references(column_diff)
    if "service_item_id" in column_diff:
        column_diff.update(_service_item_columns(ticket, column_diff, changes.fields))
    effective_template_id = (
        column_diff["template_id"] if template_changed else ticket.template_id
    )
    template_cleared = template_changed and effective_template_id is None
    if changes.custom_field_values is not None or template_cleared:
        _validate_values(effective_template_id, changes.custom_field_values or [])

    if target is not None:
        state_machine.check_transition(
            ticket.status, target, role=actor.role, is_reviewer=is_reviewer
        )
        if (
            ticket.status == Ticket.PENDING_APPROVAL
            and target in (Ticket.REJECTED, Ticket.AWAITING_CHANGES)
            and not (changes.comments or "").strip()
        ):
            raise ValidationFailed(
                "Comments are required when rejecting or requesting changes.",
                field_errors={"comments": "This field is required."},
            )

    if not has_changes:
        logger.info("No changes for ticket %s requested by user %s", ticket.id, actor.id)
        return UpdateResult(ticket=ticket, changed=False, message=NO_CHANGES_MESSAGE)

    previous_status = ticket.status
    for name, value in column_diff.items():
        setattr(ticket, name, value)
    update_fields = list(column_diff)

    new_approval: Optional[BusinessApproval] = None
    if target is not None:
        update_fields += _enter_status(
            ticket, previous_status, target, (changes.comments or "").strip(), approval
        )
        if target == Ticket.PENDING_APPROVAL:
            new_approval = routing.ensure_approval(ticket)

    ticket.save(update_fields=sorted(set(update_fields)) + ["updated_at"])

    if values_changed:
        _replace_values(ticket, changes.custom_field_values or [])
    elif template_changed:
        _drop_orphaned_values(ticket)

    logger.info(
        "Ticket %s updated by user %s: fields=%s status=%s->%s",
        ticket.id,
        actor.id,
        sorted(column_diff),
        previous_status,
        ticket.status,
    )
    _queue_update_notifications(ticket, previous_status, target, resubmission, approval, new_approval)
    return UpdateResult(ticket=ticket, changed=True)


def _queue_update_notifications(
    ticket: Ticket,
    previous_status: str,
    target: Optional[str],
    resubmission: bool,
    previous_approval: Optional[BusinessApproval],
    approval: Optional[BusinessApproval],
) -> None:
    if target is None:
        return
    context = ticket_context(ticket, comments=ticket.reviewer_comments)
    if target == Ticket.PENDING_APPROVAL:
        if approval is None:
            return
        if resubmission and previous_approval is not None:
            notify_on_commit(approval.reviewer, "resubmitted", context)
        else:
            notify_on_commit(
                approval.reviewer,
                "approval_requested",
                {**context, "requester": ticket.created_by.display_name},
            )
        return
    if previous_status == Ticket.PENDING_APPROVAL:
        notify_on_commit(ticket.created_by, DECISION_NOTIFICATIONS[target], context)
        return
    notify_on_commit(ticket.created_by, "status_changed", context)


def decide_approval(ticket_id: int, actor: Actor, action: str, comments: str = "") -> UpdateResult:
    """Approve, reject or request changes on a ticket pending approval."""

    target = APPROVAL_ACTIONS.get(action)
    if target is None:
        raise ValidationFailed(
            'Action must be "approve", "reject", or "request_changes".',
            field_errors={"action": "Invalid choice."},
        )
    return apply_update(
        ticket_id, actor, TicketChanges(status=target, comments=comments or None)
    )


# ----------------------------------------------------------------------
# Create / delete
# ----------------------------------------------------------------------


def create_ticket(actor: Actor, data: NewTicket) -> Ticket:
    """Validate and persist a new ticket, routing it for approval when needed."""

    try:
        creator = User.objects.select_related("unit__department", "department").get(
            pk=actor.id, is_active=True
        )
    except User.DoesNotExist:
        raise NotFound(f"User {actor.id} not found.")

    item: Optional[ServiceItem] = None
    if data.service_item_id is not None:
        item = ServiceItem.objects.filter(pk=data.service_item_id, is_active=True).first()
        if item is None:
            raise NotFound(f"Service item {data.service_item_id} not found.")

    template_id = data.template_id
    if template_id is None and item is not None:
        template_id = item.template_id
    template: Optional[TicketTemplate] = None
    if template_id is not None:
        template = TicketTemplate.objects.filter(pk=template_id).first()
        if template is None:
            raise NotFound(f"Template {template_id} not found.")

    _validate_values(template_id, data.custom_field_values)

    is_kasda = bool(item and item.is_kasda_related)
    flags = routing.ApprovalFlags(
        is_kasda=is_kasda,
        business_impact=data.business_impact,
        template_requires_approval=bool(
            (template and template.requires_approval) or (item and item.requires_approval)
        ),
        override=data.requires_approval,
    )
    requires_approval = routing.requires_approval_for(actor.role, flags)
    status = state_machine.initial_status(requires_approval)

    ticket = Ticket(
        title=data.title,
        description=data.description,
        priority=data.priority,
        business_impact=data.business_impact,
        request_type=data.request_type or (item.request_type if item else ServiceItem.INCIDENT),
        created_by=creator,
        template_id=template_id,
        service_item=item,
        is_kasda_ticket=is_kasda,
        requires_business_approval=requires_approval,
        status=status,
    )
    if status in state_machine.ACTIVE_STATES:
        ticket.sla_due_at = sla.due_date_for_ticket(ticket, timezone.now())

    return _run(None, _insert_ticket, ticket, data.custom_field_values)


def _insert_ticket(ticket: Ticket, values: Sequence[FieldValue]) -> Ticket:
    ticket.save()
    _replace_values(ticket, values)
    logger.info(
        "Ticket %s created by user %s with status %s", ticket.id, ticket.created_by_id, ticket.status
    )
    if ticket.status == Ticket.PENDING_APPROVAL:
        approval = routing.ensure_approval(ticket)
        if approval is not None:
            notify_on_commit(
                approval.reviewer,
                "approval_requested",
                ticket_context(ticket, requester=ticket.created_by.display_name),
            )
    return ticket


def delete_ticket(ticket_id: int, actor: Actor) -> None:
    """Physically delete a ticket with its values, attachments and approval."""

    if actor.role != User.ADMIN:
        raise Forbidden("Only administrators can delete tickets.")
    _run(ticket_id, _delete_ticket, ticket_id, actor)


def _delete_ticket(ticket_id: int, actor: Actor) -> None:
    ticket = lock_ticket(ticket_id)
    attachment_paths = list(ticket.attachments.values_list("file_path", flat=True))
    ticket.delete()
    logger.info(
        "Ticket %s deleted by admin %s (%s attachment records removed)",
        ticket_id,
        actor.id,
        len(attachment_paths),
    )


# ----------------------------------------------------------------------
# Classification
# ----------------------------------------------------------------------


def _check_choice(value: Optional[str], choices, label: str) -> None:
    if value is not None and value not in {key for key, _ in choices}:
        raise ValidationFailed(
            f"Invalid {label}: '{value}'.", field_errors={label: "Invalid choice."}
        )


def categorize_ticket(
    ticket_id: int,
    actor: Actor,
    root_cause: Optional[str] = None,
    issue_category: Optional[str] = None,
    reason: str = "",
) -> UpdateResult:
    """Record a requester or technician classification for a ticket."""

    _check_choice(root_cause, Ticket.ROOT_CAUSE_CHOICES, "root_cause")
    _check_choice(issue_category, Ticket.ISSUE_CATEGORY_CHOICES, "issue_category")
    return _run(ticket_id, _categorize, ticket_id, actor, root_cause, issue_category, reason)


def _categorize(
    ticket_id: int,
    actor: Actor,
    root_cause: Optional[str],
    issue_category: Optional[str],
    reason: str,
) -> UpdateResult:
    ticket = lock_ticket(ticket_id)
    if ticket.is_classification_locked and actor.role != User.ADMIN:
        raise Forbidden("Classification of this ticket is locked. Contact an administrator.")

    if actor.role in CATEGORIZER_ROLES:
        prefix = "tech"
    elif (
        ticket.created_by_id == actor.id
        or User.objects.filter(pk=actor.id, is_business_reviewer=True).exists()
    ):
        prefix = "user"
    else:
        raise Forbidden("You can only categorize your own tickets.")

    requested = {"root_cause": root_cause, "issue_category": issue_category}
    changed: List[str] = []
    for suffix, value in requested.items():
        if value is None:
            continue
        name = f"{prefix}_{suffix}"
        old_value = getattr(ticket, name)
        if old_value == value:
            continue
        setattr(ticket, name, value)
        changed.append(name)
        ClassificationAudit.objects.create(
            ticket=ticket,
            changed_by_id=actor.id,
            field_name=name,
            old_value=old_value,
            new_value=value,
            reason=reason,
        )

    if not changed:
        return UpdateResult(ticket=ticket, changed=False, message=NO_CHANGES_MESSAGE)
    ticket.save(update_fields=changed + ["updated_at"])
    logger.info("Ticket %s classification changed by user %s: %s", ticket.id, actor.id, changed)
    return UpdateResult(ticket=ticket, changed=True)


def bulk_categorize(
    ticket_ids: Sequence[int],
    actor: Actor,
    root_cause: Optional[str] = None,
    issue_category: Optional[str] = None,
    reason: str = "",
) -> BulkResult:
    """Categorize tickets one transaction at a time, collecting failures."""

    if actor.role not in CATEGORIZER_ROLES:
        raise Forbidden(
            "Only technicians, managers, and admins can perform bulk categorization."
        )
    result = BulkResult()
    for ticket_id in ticket_ids:
        try:
            outcome = categorize_ticket(
                ticket_id, actor, root_cause, issue_category, f"BULK: {reason}"
            )
        except HelpdeskError as exc:
            logger.warning("Bulk categorization skipped ticket %s: %s", ticket_id, exc)
            result.failures[ticket_id] = {"kind": exc.kind, "message": exc.message}
            continue
        if outcome.changed:
            result.processed.append(ticket_id)
        else:
            result.unchanged.append(ticket_id)
    return result


def set_classification_lock(ticket_id: int, actor: Actor, locked: bool) -> UpdateResult:
    if actor.role != User.ADMIN:
        raise Forbidden("Only administrators can lock or unlock classification.")
    return _run(ticket_id, _set_lock, ticket_id, actor, locked)


def _set_lock(ticket_id: int, actor: Actor, locked: bool) -> UpdateResult:
    ticket = lock_ticket(ticket_id)
    if ticket.is_classification_locked == locked:
        return UpdateResult(ticket=ticket, changed=False, message=NO_CHANGES_MESSAGE)
    ticket.is_classification_locked = locked
    ticket.save(update_fields=["is_classification_locked", "updated_at"])
    logger.info(
        "Ticket %s classification %s by admin %s",
        ticket.id,
        "locked" if locked else "unlocked",
        actor.id,
    )
    return UpdateResult(ticket=ticket, changed=True)
