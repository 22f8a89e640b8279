"""
In-process scheduler for the ledger's recurring jobs.

The nightly commission approval run fires on a cron trigger in the
configured timezone; queued email delivery drains every few minutes. Both
jobs open their own sessions and never raise into the scheduler thread.
"""

import logging

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import settings
from app.core.db import SessionLocal


logger = logging.getLogger(__name__)

COMMISSION_APPROVAL_JOB_ID = "commission_approval"
EMAIL_DELIVERY_JOB_ID = "email_delivery"

job_defaults = {
    "coalesce": True,
    "max_instances": 1,
    "misfire_grace_time": 3600,
}

scheduler = BackgroundScheduler(
    jobstores={"default": MemoryJobStore()},
    executors={"default": ThreadPoolExecutor(2)},
    job_defaults=job_defaults,
    timezone=settings.SCHEDULER_TIMEZONE,
)


def run_scheduled_email_delivery() -> None:
    from app.jobs.email_delivery import run_email_delivery

    try:
        with SessionLocal() as db:
            run_email_delivery(db)
    except Exception:
        logger.exception("Scheduled email delivery failed")


def register_jobs(target: BackgroundScheduler = scheduler) -> None:
    from app.jobs.commission_approval import run_scheduled_commission_approval

    target.add_job(
        run_scheduled_commission_approval,
        CronTrigger(
            hour=settings.COMMISSION_APPROVAL_HOUR,
            minute=settings.COMMISSION_APPROVAL_MINUTE,
            timezone=settings.SCHEDULER_TIMEZONE,
        ),
        id=COMMISSION_APPROVAL_JOB_ID,
        name="Nightly commission approval",
        replace_existing=True,
    )
    target.add_job(
        run_scheduled_email_delivery,
        "interval",
        minutes=5,
        id=EMAIL_DELIVERY_JOB_ID,
        name="Queued email delivery",
        replace_existing=True,
    )


def start_scheduler() -> None:
    if scheduler.running:
        return
    register_jobs()
    scheduler.start()
    logger.info(
        "Scheduler started: commission approval at %02d:%02d %s",
        settings.COMMISSION_APPROVAL_HOUR,
        settings.COMMISSION_APPROVAL_MINUTE,
        settings.SCHEDULER_TIMEZONE,
    )


def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
