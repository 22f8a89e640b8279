from __future__ import annotations

import argparse
import logging

from sqlalchemy.orm import Session

from app.core.db import SessionLocal
from app.core.metrics import record_email_delivery, record_job_run
from app.crud.email_queue import list_queued_emails, mark_email_failed, mark_email_sent
from app.notifications.senders import SmtpTransport


logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100
# Rows still failing after this many sends are parked as failed for good.
DEFAULT_MAX_ATTEMPTS = 5


def run_email_delivery(
    db: Session,
    *,
    transport: SmtpTransport | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> int:
    transport = transport or SmtpTransport()
    processed = 0
    for record in list_queued_emails(db, limit=batch_size):
        try:
            transport.deliver(to_email=record.to_email, subject=record.subject, body=record.body)
        except Exception as exc:
            logger.warning("Email %s delivery failed: %s", record.id, exc)
            mark_email_failed(db, record=record, error_message=str(exc), max_attempts=max_attempts)
            record_email_delivery(record.template_key, success=False)
            processed += 1
            continue
        mark_email_sent(db, record=record)
        record_email_delivery(record.template_key, success=True)
        processed += 1
    return processed


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deliver queued ledger emails.")
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    parser.add_argument("--max-attempts", type=int, default=DEFAULT_MAX_ATTEMPTS)
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    success = True
    try:
        with SessionLocal() as db:
            processed = run_email_delivery(db, batch_size=args.batch_size, max_attempts=args.max_attempts)
        logger.info("Email delivery run complete. processed=%s", processed)
    except Exception:
        success = False
        logger.exception("Email delivery failed")
        raise
    finally:
        record_job_run(job_name="email_delivery", success=success)


if __name__ == "__main__":
    main()
