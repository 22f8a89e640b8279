from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.dependencies import require_admin
from app.api.serializers import affiliate_read
from app.core.affiliates import build_affiliate_overview, list_affiliates, update_affiliate_status
from app.core.db import get_db
from app.schemas.affiliates import AffiliateRead, AffiliateStatusUpdate
from app.schemas.wallets import AffiliateOverview


router = APIRouter(prefix="/admin/affiliates", tags=["admin"])


@router.get("", response_model=list[AffiliateRead])
def list_affiliate_members(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    _current_user=Depends(require_admin()),
):
    return [affiliate_read(affiliate) for affiliate in list_affiliates(db, status=status)]


@router.get("/overview", response_model=AffiliateOverview)
def affiliate_overview(
    db: Session = Depends(get_db),
    _current_user=Depends(require_admin()),
):
    return AffiliateOverview(**build_affiliate_overview(db))


@router.patch("/{affiliate_id}", response_model=AffiliateRead)
def update_affiliate_member(
    affiliate_id: int,
    payload: AffiliateStatusUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(require_admin()),
):
    affiliate = update_affiliate_status(
        db,
        affiliate_id=affiliate_id,
        status=payload.status,
        reviewer=current_user,
        notes=payload.notes,
    )
    return affiliate_read(affiliate)
