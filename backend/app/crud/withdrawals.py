from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.withdrawals import WithdrawalRequest


def get_withdrawal(db: Session, withdrawal_id: int) -> WithdrawalRequest | None:
    return db.query(WithdrawalRequest).filter(WithdrawalRequest.id == withdrawal_id).first()


def get_withdrawal_for_order_and_user(db: Session, *, order_id: int, user_id: int) -> WithdrawalRequest | None:
    return (
        db.query(WithdrawalRequest)
        .filter(
            WithdrawalRequest.order_id == order_id,
            WithdrawalRequest.user_id == user_id,
        )
        .first()
    )


def payout_id_exists(db: Session, payout_id: str) -> bool:
    return db.query(WithdrawalRequest.id).filter(WithdrawalRequest.payout_id == payout_id).first() is not None


def list_withdrawals(db: Session, *, status: str | None = None) -> list[WithdrawalRequest]:
    query = db.query(WithdrawalRequest)
    if status:
        query = query.filter(WithdrawalRequest.payout_status == status)
    return query.order_by(WithdrawalRequest.requested_at.desc(), WithdrawalRequest.id.desc()).all()


def list_withdrawals_for_user(db: Session, user_id: int) -> list[WithdrawalRequest]:
    return (
        db.query(WithdrawalRequest)
        .filter(WithdrawalRequest.user_id == user_id)
        .order_by(WithdrawalRequest.requested_at.desc(), WithdrawalRequest.id.desc())
        .all()
    )
