"""
Shared pieces of the commission ledger.

`LedgerConfig` carries every tunable the ledger rules read, so services take
it as an argument instead of reaching for process-wide settings. The
guarded transition below is the only code path that moves a commission out
of ``awaiting_approval``; manual review and the nightly run both use it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import LedgerPreconditionFailed
from app.core.metrics import record_commission_transition
from app.crud.commissions import set_status_if_current
from app.crud.wallets import get_wallet_for_user, release_awaiting_approval
from app.models.commissions import CommissionReferral
from app.models.enums import CommissionStatusEnum
from app.models.wallets import Wallet


logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")


@dataclass(frozen=True)
class LedgerConfig:
    flat_commission_percent: Decimal = Decimal("20")
    maturity_days: int = 30
    currency: str = "NGN"
    admin_emails: tuple[str, ...] = field(default_factory=tuple)
    base_url: str = "http://localhost:3000"
    transaction_timeout_seconds: int = 30

    @classmethod
    def from_settings(cls) -> "LedgerConfig":
        base = settings.APP_BASE_URL or settings.FRONTEND_BASE_URL or "http://localhost:3000"
        return cls(
            flat_commission_percent=Decimal(str(settings.AFFILIATE_COMMISSION_PERCENT)),
            maturity_days=settings.COMMISSION_MATURITY_DAYS,
            currency=settings.CURRENCY,
            admin_emails=tuple(settings.ADMIN_NOTIFICATION_EMAILS),
            base_url=base.rstrip("/"),
            transaction_timeout_seconds=settings.LEDGER_TRANSACTION_TIMEOUT_SECONDS,
        )


def resolve_config(config: LedgerConfig | None) -> LedgerConfig:
    return config if config is not None else LedgerConfig.from_settings()


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO


def quantize_money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_percentage(value) -> Decimal | None:
    """Parse a stored percentage such as "12.5" or "12.5%"; None when unusable."""
    if value is None:
        return None
    text = str(value).strip().rstrip("%").strip()
    if not text:
        return None
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return None
    if not parsed.is_finite() or parsed < 0 or parsed > 100:
        return None
    return parsed


def format_percentage(value: Decimal) -> str:
    return format(value.normalize(), "f")


def commission_amount(total, percentage: Decimal) -> Decimal:
    return quantize_money(to_decimal(total) * percentage / Decimal("100"))


@dataclass(frozen=True)
class WalletSnapshot:
    total_earned: Decimal
    awaiting_approval: Decimal
    available_for_withdrawal: Decimal
    total_withdrawn: Decimal

    @classmethod
    def of(cls, wallet: Wallet) -> "WalletSnapshot":
        return cls(
            total_earned=quantize_money(wallet.total_earned),
            awaiting_approval=quantize_money(wallet.awaiting_approval),
            available_for_withdrawal=quantize_money(wallet.available_for_withdrawal),
            total_withdrawn=quantize_money(wallet.total_withdrawn),
        )

    def as_dict(self) -> dict[str, float]:
        return {
            "total_earned": float(self.total_earned),
            "awaiting_approval": float(self.awaiting_approval),
            "available_for_withdrawal": float(self.available_for_withdrawal),
            "total_withdrawn": float(self.total_withdrawn),
        }


@dataclass(frozen=True)
class CommissionTransition:
    commission: CommissionReferral
    status: str
    amount: Decimal
    wallet_before: WalletSnapshot
    wallet_after: WalletSnapshot


def apply_commission_transition(
    db: Session,
    commission: CommissionReferral,
    new_status: str,
    *,
    source: str,
) -> CommissionTransition:
    """Move one commission out of awaiting_approval and adjust its wallet.

    Must run inside ``transaction(db)``. The status UPDATE is conditional on
    the row still being ``awaiting_approval``; if another writer got there
    first nothing is applied and LedgerPreconditionFailed is raised, which
    rolls the surrounding transaction back.
    """
    awaiting = CommissionStatusEnum.AWAITING_APPROVAL.value
    if commission.status != awaiting:
        raise LedgerPreconditionFailed(
            f"Only awaiting_approval referrals can be changed (current status: {commission.status})",
            details={"commission_id": commission.id, "status": commission.status},
        )
    wallet = get_wallet_for_user(db, commission.user_id)
    if wallet is None:
        raise LedgerPreconditionFailed(
            "Commission owner has no wallet",
            details={"commission_id": commission.id, "user_id": commission.user_id},
        )
    before = WalletSnapshot.of(wallet)
    amount = quantize_money(commission.amount)

    updated = set_status_if_current(db, commission_id=commission.id, current=awaiting, new=new_status)
    if updated != 1:
        db.refresh(commission)
        raise LedgerPreconditionFailed(
            f"Only awaiting_approval referrals can be changed (current status: {commission.status})",
            details={"commission_id": commission.id, "status": commission.status},
        )

    release_awaiting_approval(
        db,
        user_id=commission.user_id,
        amount=amount,
        credit_available=new_status == CommissionStatusEnum.APPROVED.value,
    )
    db.flush()
    db.refresh(wallet)
    db.refresh(commission)
    after = WalletSnapshot.of(wallet)

    record_commission_transition(new_status, source)
    logger.info(
        "Commission %s moved to %s",
        commission.id,
        new_status,
        extra={
            "commission_id": commission.id,
            "user_id": commission.user_id,
            "amount": str(amount),
            "status": new_status,
            "source": source,
            "awaiting_approval": str(after.awaiting_approval),
            "available_for_withdrawal": str(after.available_for_withdrawal),
        },
    )
    return CommissionTransition(
        commission=commission,
        status=new_status,
        amount=amount,
        wallet_before=before,
        wallet_after=after,
    )
