from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.banks import Bank


def create_bank(
    db: Session,
    *,
    user_id: int,
    bank_name: str,
    bank_code: str,
    account_number: str,
    account_name: str,
) -> Bank:
    bank = Bank(
        user_id=user_id,
        bank_name=bank_name,
        bank_code=bank_code,
        account_number=account_number,
        account_name=account_name,
    )
    db.add(bank)
    db.commit()
    db.refresh(bank)
    return bank


def get_bank_for_user(db: Session, *, user_id: int, bank_code: str) -> Bank | None:
    return db.query(Bank).filter(Bank.user_id == user_id, Bank.bank_code == bank_code).first()


def get_bank_by_id_for_user(db: Session, *, user_id: int, bank_id: int) -> Bank | None:
    return db.query(Bank).filter(Bank.user_id == user_id, Bank.id == bank_id).first()


def list_banks_for_user(db: Session, user_id: int) -> list[Bank]:
    return db.query(Bank).filter(Bank.user_id == user_id).order_by(Bank.created_at.asc(), Bank.id.asc()).all()


def delete_bank(db: Session, *, bank: Bank) -> None:
    db.delete(bank)
    db.commit()
