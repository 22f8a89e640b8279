from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from app.core.metrics import record_email_queued
from app.crud.email_queue import create_email_queue
from app.notifications.emails import render_email
from app.notifications.senders.base import NotificationSender


logger = logging.getLogger(__name__)


class EmailSender(NotificationSender):
    """Renders a template and queues one row per recipient.

    Delivery happens later in app.jobs.email_delivery, so a slow or broken
    mail server never holds a ledger request open.
    """

    def send(
        self,
        db: Session,
        *,
        to_emails: list[str],
        template_key: str,
        context: dict[str, Any],
        dedupe_key: str,
        user_id: int | None = None,
    ) -> int:
        rendered = render_email(template_key, context)
        queued = 0
        for to_email in sorted({email.strip().lower() for email in to_emails if email and email.strip()}):
            record = create_email_queue(
                db,
                user_id=user_id,
                to_email=to_email,
                template_key=rendered.template_key,
                dedupe_key=dedupe_key,
                subject=rendered.subject,
                body=rendered.body,
                metadata={"context": {k: str(v) for k, v in context.items()}},
            )
            if record is None:
                logger.info(
                    "Email already queued: template=%s to=%s dedupe_key=%s",
                    template_key,
                    to_email,
                    dedupe_key,
                )
                continue
            record_email_queued(template_key)
            queued += 1
        return queued
