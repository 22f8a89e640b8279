from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.affiliates import Affiliate, AffiliateLink, ReferralCode


def create_affiliate(
    db: Session,
    *,
    user_id: int,
    status: str,
    category: str | None,
    reason: str | None,
) -> Affiliate:
    affiliate = Affiliate(
        user_id=user_id,
        status=status,
        category=category,
        reason=reason,
    )
    db.add(affiliate)
    db.flush()
    return affiliate


def get_affiliate(db: Session, affiliate_id: int) -> Affiliate | None:
    return db.query(Affiliate).filter(Affiliate.id == affiliate_id).first()


def get_affiliate_for_user(db: Session, user_id: int) -> Affiliate | None:
    return db.query(Affiliate).filter(Affiliate.user_id == user_id).first()


def list_affiliates(db: Session, *, statuses: list[str] | None = None) -> list[Affiliate]:
    query = db.query(Affiliate)
    if statuses:
        query = query.filter(Affiliate.status.in_(statuses))
    return query.order_by(Affiliate.created_at.desc(), Affiliate.id.desc()).all()


def count_affiliates_by_status(db: Session) -> dict[str, int]:
    rows = db.query(Affiliate.status, func.count(Affiliate.id)).group_by(Affiliate.status).all()
    return {status: int(count) for status, count in rows}


def create_affiliate_link(db: Session, *, user_id: int, product_id: int, slug: str) -> AffiliateLink:
    link = AffiliateLink(
        user_id=user_id,
        product_id=product_id,
        slug=slug,
        clicks=0,
        orders=0,
        commission=Decimal("0"),
    )
    db.add(link)
    db.commit()
    db.refresh(link)
    return link


def get_link_by_slug(db: Session, slug: str) -> AffiliateLink | None:
    return db.query(AffiliateLink).filter(AffiliateLink.slug == slug).first()


def get_link_for_user_and_product(db: Session, *, user_id: int, product_id: int) -> AffiliateLink | None:
    return (
        db.query(AffiliateLink)
        .filter(AffiliateLink.user_id == user_id, AffiliateLink.product_id == product_id)
        .first()
    )


def list_links_for_user(db: Session, user_id: int) -> list[AffiliateLink]:
    return (
        db.query(AffiliateLink)
        .filter(AffiliateLink.user_id == user_id)
        .order_by(AffiliateLink.created_at.desc(), AffiliateLink.id.desc())
        .all()
    )


def increment_link_clicks(db: Session, *, link_id: int) -> int:
    return (
        db.query(AffiliateLink)
        .filter(AffiliateLink.id == link_id)
        .update({AffiliateLink.clicks: AffiliateLink.clicks + 1}, synchronize_session=False)
    )


def record_link_conversion(db: Session, *, link_id: int, amount: Decimal) -> int:
    return (
        db.query(AffiliateLink)
        .filter(AffiliateLink.id == link_id)
        .update(
            {
                AffiliateLink.orders: AffiliateLink.orders + 1,
                AffiliateLink.commission: AffiliateLink.commission + amount,
            },
            synchronize_session=False,
        )
    )


def get_referral_code(db: Session, code: str) -> ReferralCode | None:
    return db.query(ReferralCode).filter(ReferralCode.code == code).first()


def get_referral_code_for_user(db: Session, user_id: int) -> ReferralCode | None:
    return db.query(ReferralCode).filter(ReferralCode.user_id == user_id).first()


def create_referral_code(db: Session, *, user_id: int, code: str) -> ReferralCode:
    record = ReferralCode(user_id=user_id, code=code)
    db.add(record)
    db.commit()
    db.refresh(record)
    return record
