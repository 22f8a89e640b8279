from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.commissions import CommissionReferral


def create_commission(
    db: Session,
    *,
    user_id: int,
    order_id: int,
    product_id: int | None,
    commission_type: str,
    total_purchase_amount: Decimal,
    commission_percentage: str,
    amount: Decimal,
    status: str,
) -> CommissionReferral:
    commission = CommissionReferral(
        user_id=user_id,
        order_id=order_id,
        product_id=product_id,
        type=commission_type,
        total_purchase_amount=total_purchase_amount,
        commission_percentage=commission_percentage,
        amount=amount,
        status=status,
    )
    db.add(commission)
    db.flush()
    return commission


def get_commission(db: Session, commission_id: int) -> CommissionReferral | None:
    return db.query(CommissionReferral).filter(CommissionReferral.id == commission_id).first()


def get_commission_for_order(db: Session, order_id: int) -> CommissionReferral | None:
    return db.query(CommissionReferral).filter(CommissionReferral.order_id == order_id).first()


def get_commission_for_order_and_user(db: Session, *, order_id: int, user_id: int) -> CommissionReferral | None:
    return (
        db.query(CommissionReferral)
        .filter(
            CommissionReferral.order_id == order_id,
            CommissionReferral.user_id == user_id,
        )
        .first()
    )


def list_commissions(db: Session, *, status: str | None = None) -> list[CommissionReferral]:
    query = db.query(CommissionReferral)
    if status:
        query = query.filter(CommissionReferral.status == status)
    return query.order_by(CommissionReferral.created_at.desc(), CommissionReferral.id.desc()).all()


def list_commissions_for_user(db: Session, user_id: int) -> list[CommissionReferral]:
    return (
        db.query(CommissionReferral)
        .filter(CommissionReferral.user_id == user_id)
        .order_by(CommissionReferral.created_at.desc(), CommissionReferral.id.desc())
        .all()
    )


def list_awaiting_approval(db: Session) -> list[CommissionReferral]:
    return (
        db.query(CommissionReferral)
        .filter(CommissionReferral.status == "awaiting_approval")
        .order_by(CommissionReferral.id.asc())
        .all()
    )


def set_status_if_current(db: Session, *, commission_id: int, current: str, new: str) -> int:
    # Zero rows means another writer moved the commission first.
    return (
        db.query(CommissionReferral)
        .filter(
            CommissionReferral.id == commission_id,
            CommissionReferral.status == current,
        )
        .update({CommissionReferral.status: new}, synchronize_session=False)
    )


def sum_commissions_by_status(db: Session) -> dict[str, Decimal]:
    rows = (
        db.query(CommissionReferral.status, func.coalesce(func.sum(CommissionReferral.amount), 0))
        .group_by(CommissionReferral.status)
        .all()
    )
    return {status: Decimal(str(total or 0)) for status, total in rows}
