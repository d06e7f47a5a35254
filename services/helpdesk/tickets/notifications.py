"""Best-effort ticket notifications.

Messages are queued only after the surrounding transaction commits and any
failure to queue them is logged; a notification never changes the outcome
of the request that caused it.
"""
from __future__ import annotations

import logging
from functools import partial
from typing import Any, Mapping, Union

from django.db import transaction

from accounts.models import User
from helpdesk_service.errors import NotificationFailed

from . import tasks

logger = logging.getLogger(__name__)

SIGNATURE = "\n\nThank you,\nThe Ticketing System Team"

TEMPLATES: Mapping[str, Mapping[str, str]] = {
    "approval_requested": {
        "subject": "Approval Required: Ticket #{ticket_id}",
        "body": (
            "Hi {name},\n\nTicket \"{title}\" (#{ticket_id}) raised by {requester} "
            "is waiting for your approval."
        ),
    },
    "resubmitted": {
        "subject": "Ticket Resubmitted for Approval: #{ticket_id}",
        "body": (
            "Hi {name},\n\nTicket \"{title}\" (#{ticket_id}), which you previously requested "
            "changes for, has been updated by the requester and is now pending your approval "
            "again.\n\nPlease review the changes."
        ),
    },
    "status_changed": {
        "subject": "[Ticket #{ticket_id}] Status Updated: {status}",
        "body": (
            "Hi {name},\n\nThe status of your ticket \"{title}\" (#{ticket_id}) has been "
            "updated to {status}."
        ),
    },
    "approved": {
        "subject": "Ticket Approved: #{ticket_id}",
        "body": (
            "Hi {name},\n\nYour ticket \"{title}\" (#{ticket_id}) has been approved. "
            "It will now proceed to the next stage."
        ),
    },
    "rejected": {
        "subject": "Ticket Rejected: #{ticket_id}",
        "body": "Hi {name},\n\nYour ticket \"{title}\" (#{ticket_id}) has been rejected.\nReason: {comments}",
    },
    "changes_requested": {
        "subject": "Action Required: Changes Requested for Ticket #{ticket_id}",
        "body": (
            "Hi {name},\n\nChanges have been requested for your ticket \"{title}\" "
            "(#{ticket_id}).\nReviewer comments: {comments}\nPlease review and update your ticket."
        ),
    },
}

Recipient = Union[User, str]


class Notifier:
    """Queues notification e-mails through Celery."""

    def notify(self, recipient: Recipient, template: str, context: Mapping[str, Any]) -> bool:
        try:
            self._deliver(recipient, template, context)
        except Exception as exc:
            failure = NotificationFailed(f"Notification {template!r} could not be queued: {exc}")
            logger.warning("%s", failure, exc_info=True)
            return False
        return True

    def _deliver(self, recipient: Recipient, template: str, context: Mapping[str, Any]) -> None:
        if isinstance(recipient, User):
            address = recipient.email
            context = {"name": recipient.display_name, **context}
        else:
            address = recipient
            context = {"name": "User", **context}
        if not address:
            raise NotificationFailed("Recipient has no e-mail address.")

        parts = TEMPLATES[template]
        subject = parts["subject"].format(**context)
        body = parts["body"].format(**context) + SIGNATURE
        tasks.send_notification.delay(address, subject, body)


notifier = Notifier()


def ticket_context(ticket, **extra: Any) -> dict:
    return {
        "ticket_id": ticket.id,
        "title": ticket.title,
        "status": ticket.status,
        **extra,
    }


def notify_on_commit(recipient: Recipient, template: str, context: Mapping[str, Any]) -> None:
    """Send once the current transaction commits; dropped on rollback."""

    transaction.on_commit(partial(notifier.notify, recipient, template, dict(context)))
