from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user
from app.api.serializers import withdrawal_read
from app.core.db import get_db
from app.core.withdrawals import request_withdrawal
from app.crud.withdrawals import list_withdrawals_for_user
from app.schemas.withdrawals import WithdrawalCreate, WithdrawalRead


router = APIRouter(prefix="/withdrawals", tags=["withdrawals"])


@router.post("", response_model=WithdrawalRead, status_code=status.HTTP_201_CREATED)
def create_withdrawal_request(
    payload: WithdrawalCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    withdrawal = request_withdrawal(
        db,
        user_id=current_user.id,
        order_id=payload.order_id,
        bank_code=payload.bank_code,
    )
    return withdrawal_read(withdrawal)


@router.get("", response_model=list[WithdrawalRead])
def list_my_withdrawal_requests(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return [withdrawal_read(withdrawal) for withdrawal in list_withdrawals_for_user(db, current_user.id)]
