from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.dependencies import require_admin
from app.api.serializers import withdrawal_read
from app.core.db import get_db
from app.core.errors import LedgerValidationError
from app.core.withdrawals import update_withdrawal_status
from app.crud.withdrawals import list_withdrawals
from app.models.enums import WithdrawalStatusEnum, enum_values
from app.schemas.withdrawals import WithdrawalRead, WithdrawalStatusUpdate


router = APIRouter(prefix="/admin/withdrawals", tags=["admin"])


@router.get("", response_model=list[WithdrawalRead])
def list_withdrawal_requests(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    _current_user=Depends(require_admin()),
):
    if status and status not in enum_values(WithdrawalStatusEnum):
        raise LedgerValidationError("Invalid withdrawal status filter", details={"status": status})
    return [withdrawal_read(withdrawal) for withdrawal in list_withdrawals(db, status=status)]


@router.patch("/{withdrawal_id}", response_model=WithdrawalRead)
def update_withdrawal_request(
    withdrawal_id: int,
    payload: WithdrawalStatusUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(require_admin()),
):
    withdrawal = update_withdrawal_status(
        db,
        withdrawal_id=withdrawal_id,
        status=payload.status,
        processed_by=current_user.email,
        notes=payload.notes,
    )
    return withdrawal_read(withdrawal)
