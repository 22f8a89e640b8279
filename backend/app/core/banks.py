from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.core.errors import LedgerNotFound, LedgerPreconditionFailed, LedgerValidationError
from app.crud.banks import create_bank, delete_bank, get_bank_by_id_for_user, get_bank_for_user, list_banks_for_user
from app.crud.users import get_user
from app.models.banks import Bank


logger = logging.getLogger(__name__)


def add_bank(
    db: Session,
    *,
    user_id: int,
    bank_name: str,
    bank_code: str,
    account_number: str,
    account_name: str,
) -> Bank:
    fields = {
        "bank_name": (bank_name or "").strip(),
        "bank_code": (bank_code or "").strip(),
        "account_number": (account_number or "").strip(),
        "account_name": (account_name or "").strip(),
    }
    missing = sorted(name for name, value in fields.items() if not value)
    if missing:
        raise LedgerValidationError("Missing bank details", details={"missing": missing})
    if get_user(db, user_id) is None:
        raise LedgerNotFound("User not found", details={"user_id": user_id})
    if get_bank_for_user(db, user_id=user_id, bank_code=fields["bank_code"]) is not None:
        raise LedgerPreconditionFailed(
            "Bank with this bank code already exists",
            details={"bank_code": fields["bank_code"]},
        )
    bank = create_bank(db, user_id=user_id, **fields)
    logger.info("Bank %s added for user %s", bank.id, user_id)
    return bank


def list_banks(db: Session, *, user_id: int) -> list[Bank]:
    return list_banks_for_user(db, user_id)


def remove_bank(db: Session, *, user_id: int, bank_id: int) -> None:
    bank = get_bank_by_id_for_user(db, user_id=user_id, bank_id=bank_id)
    if bank is None:
        raise LedgerNotFound("Bank not found or does not belong to user", details={"bank_id": bank_id})
    delete_bank(db, bank=bank)
    logger.info("Bank %s removed for user %s", bank_id, user_id)
