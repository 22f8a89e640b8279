from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.orders import Order


def get_order(db: Session, order_id: int) -> Order | None:
    return db.query(Order).filter(Order.id == order_id).first()


def get_order_by_reference(db: Session, reference: str) -> Order | None:
    return db.query(Order).filter(Order.payment_reference == reference).first()


def set_withdrawal_status(db: Session, *, order: Order, status: str) -> Order:
    order.withdrawal_status = status
    db.flush()
    return order
