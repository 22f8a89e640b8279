from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user
from app.api.serializers import affiliate_link_read, affiliate_read
from app.core.affiliates import (
    build_wallet_summary,
    generate_affiliate_link,
    get_or_create_referral_code,
    list_affiliate_links,
    request_affiliate_membership,
)
from app.core.db import get_db
from app.schemas.affiliates import (
    AffiliateLinkCreate,
    AffiliateLinkRead,
    AffiliateRead,
    AffiliateRequestCreate,
    ReferralCodeRead,
)
from app.schemas.wallets import WalletSummary


router = APIRouter(prefix="/affiliates", tags=["affiliates"])


@router.post("/requests", response_model=AffiliateRead, status_code=status.HTTP_201_CREATED)
def request_membership(
    payload: AffiliateRequestCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    affiliate = request_affiliate_membership(
        db,
        user_id=current_user.id,
        category=payload.category,
        reason=payload.reason,
    )
    return affiliate_read(affiliate)


@router.get("/me/wallet", response_model=WalletSummary)
def my_wallet(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return WalletSummary(**build_wallet_summary(db, user_id=current_user.id))


@router.post("/links", response_model=AffiliateLinkRead)
def create_link(
    payload: AffiliateLinkCreate,
    response: Response,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    link, created = generate_affiliate_link(db, user_id=current_user.id, product_id=payload.product_id)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return affiliate_link_read(link)


@router.get("/links", response_model=list[AffiliateLinkRead])
def my_links(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return [affiliate_link_read(link) for link in list_affiliate_links(db, user_id=current_user.id)]


@router.get("/referral-code", response_model=ReferralCodeRead)
def my_referral_code(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    record = get_or_create_referral_code(db, user_id=current_user.id)
    return ReferralCodeRead(code=record.code, user_id=record.user_id)
