from __future__ import annotations

import logging
import secrets
import time

from sqlalchemy.orm import Session

from app.core.db import transaction
from app.core.errors import (
    DuplicateWithdrawalRequest,
    LedgerNotFound,
    LedgerPreconditionFailed,
    LedgerValidationError,
)
from app.core.ledger import quantize_money
from app.core.metrics import record_withdrawal_request
from app.core.time import utcnow
from app.crud.affiliates import get_affiliate_for_user
from app.crud.banks import get_bank_for_user
from app.crud.commissions import get_commission_for_order_and_user
from app.crud.orders import get_order, set_withdrawal_status
from app.crud.users import get_user
from app.crud.withdrawals import get_withdrawal, get_withdrawal_for_order_and_user, payout_id_exists
from app.models.enums import (
    AFFILIATE_ENABLED_STATUSES,
    CommissionStatusEnum,
    OrderWithdrawalStatusEnum,
    WithdrawalStatusEnum,
    enum_values,
)
from app.models.withdrawals import WithdrawalRequest


logger = logging.getLogger(__name__)

PAYOUT_METHOD = "bank_transfer"

# Affiliates see the payout lifecycle in plainer words than the admin console.
USER_STATUS_LABELS = {
    WithdrawalStatusEnum.PAID.value: "completed",
    WithdrawalStatusEnum.CANCELLED.value: "rejected",
}


def display_status(payout_status: str) -> str:
    return USER_STATUS_LABELS.get(payout_status, payout_status)


def generate_payout_id(db: Session) -> str:
    while True:
        candidate = f"po-{secrets.token_hex(4)[:7]}"
        if not payout_id_exists(db, candidate):
            return candidate


def generate_reference() -> str:
    return f"acc-withdraw-{int(time.time() * 1000)}-{secrets.randbelow(10000)}"


def _rejected(outcome: str, error: Exception) -> Exception:
    record_withdrawal_request(outcome)
    logger.info("Withdrawal request rejected: %s", error)
    return error


def request_withdrawal(db: Session, *, user_id: int, order_id: int, bank_code: str) -> WithdrawalRequest:
    """Open a payout request for the commission one order earned.

    Checks run in a fixed order and the first failure is raised with nothing
    written. Only an enabled affiliate may withdraw, and only a commission
    that has been approved. A (order, user) pair can only ever be requested
    once. The request snapshots buyer and amounts; the wallet itself is
    untouched until an admin settles the payout.
    """
    user = get_user(db, user_id)
    if user is None:
        raise _rejected("user_not_found", LedgerNotFound("User not found", details={"user_id": user_id}))
    affiliate = get_affiliate_for_user(db, user_id)
    if affiliate is None or affiliate.status not in AFFILIATE_ENABLED_STATUSES:
        raise _rejected(
            "affiliate_inactive",
            LedgerPreconditionFailed(
                "Your affiliate status has been suspended or terminated, contact support to reactivate your account",
                details={"user_id": user_id, "affiliate_status": affiliate.status if affiliate else None},
            ),
        )
    order = get_order(db, order_id)
    if order is None:
        raise _rejected("order_not_found", LedgerNotFound("Order not found", details={"order_id": order_id}))
    commission = get_commission_for_order_and_user(db, order_id=order_id, user_id=user_id)
    if commission is None:
        raise _rejected(
            "commission_not_found",
            LedgerNotFound(
                "Commission not found for this order",
                details={"order_id": order_id, "user_id": user_id},
            ),
        )
    if commission.status != CommissionStatusEnum.APPROVED.value:
        raise _rejected(
            "commission_not_approved",
            LedgerPreconditionFailed(
                f"Only approved commissions can be withdrawn (current status: {commission.status})",
                details={"commission_id": commission.id, "status": commission.status},
            ),
        )
    bank = get_bank_for_user(db, user_id=user_id, bank_code=(bank_code or "").strip())
    if bank is None:
        raise _rejected(
            "bank_not_found",
            LedgerNotFound("Bank not found or does not belong to user", details={"bank_code": bank_code}),
        )
    if get_withdrawal_for_order_and_user(db, order_id=order_id, user_id=user_id):
        raise _rejected(
            "duplicate",
            DuplicateWithdrawalRequest(
                "Withdrawal request already exists for this order",
                details={"order_id": order_id},
            ),
        )

    buyer = order.user
    with transaction(db):
        withdrawal = WithdrawalRequest(
            payout_id=generate_payout_id(db),
            reference=generate_reference(),
            user_id=user_id,
            order_id=order_id,
            commission_id=commission.id,
            bank_id=bank.id,
            buyer_name=buyer.full_name if buyer else None,
            buyer_email=buyer.email if buyer else None,
            total_purchase_amount=quantize_money(commission.total_purchase_amount),
            commission_amount=quantize_money(commission.amount),
            commission_percentage=commission.commission_percentage,
            payout_method=PAYOUT_METHOD,
            payout_status=WithdrawalStatusEnum.PENDING.value,
            requested_at=utcnow(),
        )
        db.add(withdrawal)
        set_withdrawal_status(db, order=order, status=OrderWithdrawalStatusEnum.PROCESSING.value)
    db.refresh(withdrawal)

    record_withdrawal_request("created")
    logger.info(
        "Withdrawal request %s created",
        withdrawal.payout_id,
        extra={
            "withdrawal_id": withdrawal.id,
            "user_id": user_id,
            "order_id": order_id,
            "amount": str(withdrawal.commission_amount),
        },
    )
    return withdrawal


def update_withdrawal_status(
    db: Session,
    *,
    withdrawal_id: int,
    status: str,
    processed_by: str,
    notes: str | None = None,
) -> WithdrawalRequest:
    normalized = (status or "").strip().lower()
    allowed = enum_values(WithdrawalStatusEnum)
    if normalized not in allowed:
        raise LedgerValidationError(
            f"Invalid status. Allowed statuses: {', '.join(allowed)}",
            details={"status": status},
        )
    withdrawal = get_withdrawal(db, withdrawal_id)
    if withdrawal is None:
        raise LedgerNotFound("Withdrawal request not found", details={"withdrawal_id": withdrawal_id})

    with transaction(db):
        withdrawal.payout_status = normalized
        withdrawal.processed_at = utcnow()
        withdrawal.processed_by = processed_by
        # Earlier notes survive an update that carries none.
        if notes:
            withdrawal.notes = notes
            if normalized == WithdrawalStatusEnum.CANCELLED.value:
                withdrawal.rejection_reason = notes
    db.refresh(withdrawal)
    logger.info(
        "Withdrawal request %s moved to %s",
        withdrawal.payout_id,
        normalized,
        extra={"withdrawal_id": withdrawal.id, "processed_by": processed_by},
    )
    return withdrawal
