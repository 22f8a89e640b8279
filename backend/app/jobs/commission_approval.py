from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from time import monotonic
from typing import Any

from sqlalchemy.orm import Session

from app.core.db import SessionLocal, transaction
from app.core.errors import LedgerPreconditionFailed
from app.core.ledger import (
    ZERO,
    LedgerConfig,
    apply_commission_transition,
    quantize_money,
    resolve_config,
)
from app.core.metrics import record_batch_duration, record_batch_skip
from app.core.time import normalize_ts, utcnow
from app.crud.commissions import list_awaiting_approval
from app.crud.users import list_admin_emails
from app.crud.wallets import get_wallet_for_user
from app.models.commissions import CommissionReferral
from app.models.enums import CommissionStatusEnum, ShipmentStatusEnum
from app.notifications.emails import TEMPLATE_APPROVAL_REPORT, build_approval_report_context
from app.notifications.senders import NotificationSender, get_default_sender


logger = logging.getLogger(__name__)

REASON_NOT_DELIVERED = "Order not delivered"
REASON_NO_AMOUNT = "No valid commission amount"
REASON_NO_WALLET = "User has no wallet"


def not_matured_reason(maturity_days: int) -> str:
    return f"Order not {maturity_days} days old"


@dataclass
class CommissionApprovalReport:
    run_at: datetime
    dry_run: bool = False
    processed: int = 0
    approved: int = 0
    skipped: int = 0
    failed: int = 0
    total_amount_approved: Decimal = ZERO
    approved_items: list[dict[str, Any]] = field(default_factory=list)
    skipped_items: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "run_at": self.run_at,
            "dry_run": self.dry_run,
            "processed": self.processed,
            "approved": self.approved,
            "skipped": self.skipped,
            "failed": self.failed,
            "total_amount_approved": float(self.total_amount_approved),
            "approved_items": self.approved_items,
            "skipped_items": self.skipped_items,
        }


def _skip_reason(db: Session, commission: CommissionReferral, *, now: datetime, config: LedgerConfig) -> str | None:
    order = commission.order
    if order is None or order.shipment_status != ShipmentStatusEnum.DELIVERED.value:
        return REASON_NOT_DELIVERED
    cutoff = now - timedelta(days=config.maturity_days)
    if normalize_ts(order.created_at) > cutoff:
        return not_matured_reason(config.maturity_days)
    if commission.amount is None or quantize_money(commission.amount) <= ZERO:
        return REASON_NO_AMOUNT
    if get_wallet_for_user(db, commission.user_id) is None:
        return REASON_NO_WALLET
    return None


def _owner_name(commission: CommissionReferral) -> str:
    owner = commission.user
    if owner is None:
        return "Unknown"
    return owner.full_name or owner.email


def _skipped_item(commission: CommissionReferral, reason: str) -> dict[str, Any]:
    order = commission.order
    return {
        "commission_id": commission.id,
        "order_id": commission.order_id,
        "order_number": order.order_number if order is not None else "N/A",
        "reason": reason,
        "owner_id": commission.user_id,
        "owner_name": _owner_name(commission),
        "order_total": float(quantize_money(commission.total_purchase_amount)),
        "commission_amount": float(quantize_money(commission.amount)),
        "order_created_at": order.created_at.isoformat() if order is not None else None,
        "order_status": order.shipment_status if order is not None else "Unknown",
    }


def _approved_item(commission: CommissionReferral, *, now: datetime) -> dict[str, Any]:
    order = commission.order
    buyer = order.user
    owner = commission.user
    delivered_at = normalize_ts(order.updated_at)
    return {
        "commission_id": commission.id,
        "order_id": commission.order_id,
        "order_number": order.order_number,
        "owner_id": commission.user_id,
        "owner_name": _owner_name(commission),
        "owner_email": owner.email if owner is not None else "",
        "purchaser_id": order.user_id,
        "purchaser_name": buyer.full_name if buyer is not None else "Unknown",
        "purchaser_email": buyer.email if buyer is not None else "",
        "product_id": commission.product_id,
        "product_name": commission.product.name if commission.product else "Unknown Product",
        "order_total": float(quantize_money(commission.total_purchase_amount)),
        "commission_amount": float(quantize_money(commission.amount)),
        "commission_percentage": commission.commission_percentage or "0",
        "order_created_at": order.created_at.isoformat(),
        "order_delivered_at": delivered_at.isoformat() if delivered_at else None,
        "days_since_delivery": (now - delivered_at).days if delivered_at else None,
    }


def _record_skip(report: CommissionApprovalReport, commission: CommissionReferral, reason: str) -> None:
    logger.info("Skipping commission %s: %s", commission.id, reason)
    report.skipped += 1
    report.skipped_items.append(_skipped_item(commission, reason))
    record_batch_skip(reason)


def run_commission_approval(
    db: Session,
    *,
    now: datetime | None = None,
    config: LedgerConfig | None = None,
    sender: NotificationSender | None = None,
    dry_run: bool = False,
) -> CommissionApprovalReport:
    """Approve every awaiting_approval commission whose order has matured.

    A commission matures once its order is delivered and at least
    ``maturity_days`` old. Each approval commits on its own, so a failure on
    one commission leaves the others untouched; commissions already moved out
    of awaiting_approval are never picked up again.
    """
    config = resolve_config(config)
    now = normalize_ts(now) or utcnow()
    report = CommissionApprovalReport(run_at=now, dry_run=dry_run)
    started = monotonic()
    approved_status = CommissionStatusEnum.APPROVED.value

    try:
        commissions = list_awaiting_approval(db)
        logger.info("Found %s commissions awaiting approval", len(commissions))

        for commission in commissions:
            report.processed += 1
            try:
                reason = _skip_reason(db, commission, now=now, config=config)
                if reason:
                    _record_skip(report, commission, reason)
                    continue
                item = _approved_item(commission, now=now)
                if not dry_run:
                    with transaction(db, timeout_seconds=config.transaction_timeout_seconds):
                        result = apply_commission_transition(db, commission, approved_status, source="batch")
                    item["wallet_after"] = result.wallet_after.as_dict()
                report.approved += 1
                report.total_amount_approved += quantize_money(item["commission_amount"])
                report.approved_items.append(item)
            except LedgerPreconditionFailed as exc:
                _record_skip(report, commission, exc.message)
            except Exception:
                db.rollback()
                report.failed += 1
                logger.exception("Error processing commission %s", commission.id)
    except Exception:
        logger.exception("Commission approval run aborted")
        raise
    finally:
        record_batch_duration(monotonic() - started)

    logger.info(
        "Commission approval run completed",
        extra={
            "processed": report.processed,
            "approved": report.approved,
            "skipped": report.skipped,
            "failed": report.failed,
            "total_amount_approved": str(report.total_amount_approved),
            "dry_run": dry_run,
        },
    )
    if not dry_run:
        send_approval_report(db, report, config=config, sender=sender)
    return report


def send_approval_report(
    db: Session,
    report: CommissionApprovalReport,
    *,
    config: LedgerConfig,
    sender: NotificationSender | None = None,
) -> int:
    try:
        recipients = sorted(set(list_admin_emails(db)) | set(config.admin_emails))
        if not recipients:
            logger.warning("No admin recipients for commission approval report")
            return 0
        queued = (sender or get_default_sender()).send(
            db,
            to_emails=recipients,
            template_key=TEMPLATE_APPROVAL_REPORT,
            context=build_approval_report_context(report, config.currency),
            dedupe_key=f"commission_approval_report:{report.run_at.isoformat()}",
        )
        logger.info("Commission approval report queued for %s admin(s)", queued)
        return queued
    except Exception:
        db.rollback()
        logger.exception("Error sending commission approval report")
        return 0


def run_scheduled_commission_approval() -> None:
    # Entry point for the in-process scheduler; a failed run waits for the next tick.
    try:
        with SessionLocal() as db:
            run_commission_approval(db)
    except Exception:
        logger.exception("Scheduled commission approval failed")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Approve matured affiliate commissions.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be approved without writing.",
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    with SessionLocal() as db:
        run_commission_approval(db, dry_run=args.dry_run)


if __name__ == "__main__":
    main()
