from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from app.models.wallets import Wallet


ZERO = Decimal("0")


def get_wallet_for_user(db: Session, user_id: int) -> Wallet | None:
    return db.query(Wallet).filter(Wallet.user_id == user_id).first()


def get_or_create_wallet(db: Session, user_id: int) -> Wallet:
    wallet = get_wallet_for_user(db, user_id)
    if wallet:
        return wallet
    wallet = Wallet(
        user_id=user_id,
        total_earned=ZERO,
        awaiting_approval=ZERO,
        available_for_withdrawal=ZERO,
        total_withdrawn=ZERO,
        balance_before=ZERO,
        balance_after=ZERO,
    )
    db.add(wallet)
    db.flush()
    return wallet


def credit_awaiting_approval(db: Session, *, user_id: int, amount: Decimal) -> int:
    return (
        db.query(Wallet)
        .filter(Wallet.user_id == user_id)
        .update(
            {
                Wallet.total_earned: Wallet.total_earned + amount,
                Wallet.awaiting_approval: Wallet.awaiting_approval + amount,
            },
            synchronize_session=False,
        )
    )


def release_awaiting_approval(db: Session, *, user_id: int, amount: Decimal, credit_available: bool) -> int:
    """Move `amount` out of awaiting_approval.

    With credit_available the amount lands in available_for_withdrawal and the
    balance_before/balance_after pair records the move; otherwise it is
    forfeited.
    """
    values = {Wallet.awaiting_approval: Wallet.awaiting_approval - amount}
    if credit_available:
        values[Wallet.balance_before] = Wallet.available_for_withdrawal
        values[Wallet.balance_after] = Wallet.available_for_withdrawal + amount
        values[Wallet.available_for_withdrawal] = Wallet.available_for_withdrawal + amount
    return (
        db.query(Wallet)
        .filter(Wallet.user_id == user_id)
        .update(values, synchronize_session=False)
    )


def list_top_wallets(db: Session, *, limit: int = 10) -> list[Wallet]:
    return (
        db.query(Wallet)
        .order_by(Wallet.total_earned.desc(), Wallet.id.asc())
        .limit(limit)
        .all()
    )
