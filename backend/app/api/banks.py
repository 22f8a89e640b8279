from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user
from app.api.serializers import bank_read
from app.core.banks import add_bank, list_banks, remove_bank
from app.core.db import get_db
from app.schemas.banks import BankCreate, BankRead


router = APIRouter(prefix="/banks", tags=["banks"])


@router.post("", response_model=BankRead, status_code=status.HTTP_201_CREATED)
def create_bank_account(
    payload: BankCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    bank = add_bank(db, user_id=current_user.id, **payload.model_dump())
    return bank_read(bank)


@router.get("", response_model=list[BankRead])
def list_bank_accounts(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return [bank_read(bank) for bank in list_banks(db, user_id=current_user.id)]


@router.delete("/{bank_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_bank_account(
    bank_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    remove_bank(db, user_id=current_user.id, bank_id=bank_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
