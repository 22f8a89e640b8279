from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.dependencies import require_admin
from app.api.serializers import commission_read
from app.core.commissions import change_commission_status
from app.core.db import get_db
from app.core.errors import LedgerValidationError
from app.crud.commissions import list_commissions
from app.jobs.commission_approval import run_commission_approval
from app.models.enums import CommissionStatusEnum, enum_values
from app.schemas.commissions import (
    ApprovalRunRead,
    ApprovalRunRequest,
    CommissionRead,
    CommissionStatusResult,
    CommissionStatusUpdate,
    WalletFigures,
)


router = APIRouter(prefix="/admin/commissions", tags=["admin"])


@router.get("", response_model=list[CommissionRead])
def list_commission_referrals(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    _current_user=Depends(require_admin()),
):
    if status and status not in enum_values(CommissionStatusEnum):
        raise LedgerValidationError("Invalid commission status filter", details={"status": status})
    return [commission_read(commission) for commission in list_commissions(db, status=status)]


@router.post("/{commission_id}/status", response_model=CommissionStatusResult)
def update_commission_referral_status(
    commission_id: int,
    payload: CommissionStatusUpdate,
    db: Session = Depends(get_db),
    _current_user=Depends(require_admin()),
):
    result = change_commission_status(db, commission_id, payload.status)
    return CommissionStatusResult(
        commission=commission_read(result.commission),
        wallet_before=WalletFigures(**result.wallet_before.as_dict()),
        wallet_after=WalletFigures(**result.wallet_after.as_dict()),
    )


@router.post("/approval-runs", response_model=ApprovalRunRead)
def trigger_commission_approval_run(
    payload: ApprovalRunRequest | None = None,
    db: Session = Depends(get_db),
    _current_user=Depends(require_admin()),
):
    report = run_commission_approval(db, dry_run=bool(payload and payload.dry_run))
    return ApprovalRunRead(**report.as_dict())
