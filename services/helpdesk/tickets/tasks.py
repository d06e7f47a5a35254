"""Background tasks for the ticket service."""
from __future__ import annotations

import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=5)
def send_notification(self, recipient: str, subject: str, body: str) -> None:
    """Deliver a ticket notification e-mail, retrying transient failures."""

    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [recipient], fail_silently=False)
        logger.info("Notification %r sent to %s", subject, recipient)
    except Exception as exc:  # pragma: no cover - retries exercised in production
        if self.request.retries >= self.max_retries:
            logger.error("Giving up on notification %r to %s: %s", subject, recipient, exc)
            return
        logger.warning("Notification %r to %s failed, retrying", subject, recipient)
        raise self.retry(exc=exc, countdown=min(60, 2 ** self.request.retries))
