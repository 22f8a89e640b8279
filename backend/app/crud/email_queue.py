from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.time import utcnow
from app.models.email_queue import EmailQueue
from app.models.enums import EmailStatusEnum


def find_email(db: Session, *, to_email: str, dedupe_key: str) -> EmailQueue | None:
    return (
        db.query(EmailQueue)
        .filter(EmailQueue.to_email == to_email, EmailQueue.dedupe_key == dedupe_key)
        .first()
    )


def create_email_queue(
    db: Session,
    *,
    user_id: int | None,
    to_email: str,
    template_key: str,
    dedupe_key: str,
    subject: str,
    body: str,
    metadata: dict | None = None,
) -> EmailQueue | None:
    """Queue one message; None when this recipient already has the dedupe key."""
    if find_email(db, to_email=to_email, dedupe_key=dedupe_key) is not None:
        return None
    record = EmailQueue(
        user_id=user_id,
        to_email=to_email,
        template_key=template_key,
        dedupe_key=dedupe_key,
        subject=subject,
        body=body,
        status=EmailStatusEnum.QUEUED.value,
        attempt_count=0,
        metadata_json=metadata or None,
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent sender for the same key.
        db.rollback()
        return None
    db.refresh(record)
    return record


def list_queued_emails(db: Session, *, limit: int = 100) -> list[EmailQueue]:
    return (
        db.query(EmailQueue)
        .filter(EmailQueue.status == EmailStatusEnum.QUEUED.value)
        .order_by(EmailQueue.created_at.asc(), EmailQueue.id.asc())
        .limit(limit)
        .all()
    )


def list_emails_for_template(db: Session, template_key: str) -> list[EmailQueue]:
    return (
        db.query(EmailQueue)
        .filter(EmailQueue.template_key == template_key)
        .order_by(EmailQueue.id.asc())
        .all()
    )


def _record_attempt(record: EmailQueue) -> None:
    record.attempt_count = (record.attempt_count or 0) + 1
    record.last_attempt_at = utcnow()


def mark_email_sent(db: Session, *, record: EmailQueue) -> EmailQueue:
    _record_attempt(record)
    record.status = EmailStatusEnum.SENT.value
    record.sent_at = record.last_attempt_at
    record.error_message = None
    db.commit()
    db.refresh(record)
    return record


def mark_email_failed(db: Session, *, record: EmailQueue, error_message: str, max_attempts: int) -> EmailQueue:
    _record_attempt(record)
    record.error_message = error_message[:1000]
    if record.attempt_count >= max_attempts:
        record.status = EmailStatusEnum.FAILED.value
    db.commit()
    db.refresh(record)
    return record
