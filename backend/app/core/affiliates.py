from __future__ import annotations

import logging
import secrets
import string
from typing import Any

from sqlalchemy.orm import Session

from app.core.db import transaction
from app.core.errors import LedgerNotFound, LedgerPreconditionFailed, LedgerValidationError
from app.core.ledger import LedgerConfig, ZERO, quantize_money, resolve_config
from app.core.time import utcnow
from app.core.withdrawals import display_status
from app.crud.affiliates import (
    count_affiliates_by_status,
    create_affiliate,
    create_affiliate_link,
    create_referral_code,
    get_affiliate,
    get_affiliate_for_user,
    get_link_by_slug,
    get_link_for_user_and_product,
    get_referral_code,
    get_referral_code_for_user,
    increment_link_clicks,
    list_links_for_user,
)
from app.crud.affiliates import list_affiliates as crud_list_affiliates
from app.crud.commissions import list_commissions_for_user, sum_commissions_by_status
from app.crud.users import get_user
from app.crud.wallets import get_wallet_for_user, list_top_wallets
from app.crud.withdrawals import list_withdrawals_for_user
from app.models.affiliates import Affiliate, AffiliateLink, ReferralCode
from app.models.enums import (
    AFFILIATE_ENABLED_STATUSES,
    AffiliateStatusEnum,
    CommissionStatusEnum,
    enum_values,
)
from app.models.products import Product
from app.models.users import User


logger = logging.getLogger(__name__)

PENDING_REQUEST_STATUSES = {AffiliateStatusEnum.PENDING.value, AffiliateStatusEnum.AWAITING_APPROVAL.value}
_SLUG_ALPHABET = string.ascii_lowercase + string.digits


def _random_token(length: int) -> str:
    return "".join(secrets.choice(_SLUG_ALPHABET) for _ in range(length))


def request_affiliate_membership(
    db: Session,
    *,
    user_id: int,
    category: str | None = None,
    reason: str | None = None,
) -> Affiliate:
    user = get_user(db, user_id)
    if user is None:
        raise LedgerNotFound("User not found", details={"user_id": user_id})
    if user.is_affiliate:
        raise LedgerPreconditionFailed("You are already an affiliate.")
    existing = get_affiliate_for_user(db, user_id)
    if user.affiliate_status in PENDING_REQUEST_STATUSES or (
        existing is not None and existing.status in PENDING_REQUEST_STATUSES
    ):
        raise LedgerPreconditionFailed("You already have a pending affiliate request.")

    with transaction(db):
        if existing is None:
            affiliate = create_affiliate(
                db,
                user_id=user_id,
                status=AffiliateStatusEnum.PENDING.value,
                category=category,
                reason=reason,
            )
        else:
            # Previously rejected or deactivated members re-apply on the same row.
            affiliate = existing
            affiliate.status = AffiliateStatusEnum.PENDING.value
            affiliate.category = category
            affiliate.reason = reason
            affiliate.requested_at = utcnow()
            affiliate.reviewed_at = None
            affiliate.reviewed_by_name = None
            affiliate.reviewed_by_email = None
        user.is_affiliate = False
        user.affiliate_status = AffiliateStatusEnum.AWAITING_APPROVAL.value
    db.refresh(affiliate)
    logger.info("Affiliate request %s submitted by user %s", affiliate.id, user_id)
    return affiliate


def update_affiliate_status(
    db: Session,
    *,
    affiliate_id: int,
    status: str,
    reviewer: User | None = None,
    notes: str | None = None,
) -> Affiliate:
    normalized = (status or "").strip().lower()
    allowed = enum_values(AffiliateStatusEnum)
    if normalized not in allowed:
        raise LedgerValidationError(
            f"Invalid status. Allowed statuses: {', '.join(allowed)}",
            details={"status": status},
        )
    affiliate = get_affiliate(db, affiliate_id)
    if affiliate is None:
        raise LedgerNotFound("Affiliate not found", details={"affiliate_id": affiliate_id})

    with transaction(db):
        affiliate.status = normalized
        affiliate.reviewed_at = utcnow()
        if reviewer is not None:
            affiliate.reviewed_by_name = reviewer.full_name or reviewer.email
            affiliate.reviewed_by_email = reviewer.email
        if notes is not None:
            affiliate.notes = notes
        user = affiliate.user
        user.affiliate_status = normalized
        user.is_affiliate = normalized in AFFILIATE_ENABLED_STATUSES
    db.refresh(affiliate)
    logger.info("Affiliate %s moved to %s", affiliate.id, normalized)
    return affiliate


def list_affiliates(db: Session, *, status: str | None = None) -> list[Affiliate]:
    statuses = [status.strip().lower()] if status else None
    if statuses and statuses[0] not in enum_values(AffiliateStatusEnum):
        raise LedgerValidationError("Invalid affiliate status filter", details={"status": status})
    return crud_list_affiliates(db, statuses=statuses)


def shareable_link(link: AffiliateLink, config: LedgerConfig | None = None) -> str:
    config = resolve_config(config)
    return f"{config.base_url}/products/{link.product_id}?ref={link.slug}"


def _unique_slug(db: Session, *, user_id: int, product_id: int) -> str:
    prefix = f"{str(user_id)[:6]}-{str(product_id)[:6]}"
    slug = f"{prefix}-{_random_token(5)}"
    attempt = 1
    while get_link_by_slug(db, slug) is not None:
        slug = f"{prefix}-{_random_token(5)}-{attempt}"
        attempt += 1
    return slug


def generate_affiliate_link(db: Session, *, user_id: int, product_id: int) -> tuple[AffiliateLink, bool]:
    """Return the user's link for a product, creating it on first request.

    The boolean is True when a new link was created.
    """
    affiliate = get_affiliate_for_user(db, user_id)
    if affiliate is None or affiliate.status not in AFFILIATE_ENABLED_STATUSES:
        raise LedgerPreconditionFailed("User is not an approved or active affiliate.")
    product = db.query(Product).filter(Product.id == product_id).first()
    if product is None:
        raise LedgerNotFound("Product not found", details={"product_id": product_id})

    existing = get_link_for_user_and_product(db, user_id=user_id, product_id=product_id)
    if existing is not None:
        return existing, False

    link = create_affiliate_link(
        db,
        user_id=user_id,
        product_id=product_id,
        slug=_unique_slug(db, user_id=user_id, product_id=product_id),
    )
    logger.info("Affiliate link %s created for user %s", link.slug, user_id)
    return link, True


def list_affiliate_links(db: Session, *, user_id: int) -> list[AffiliateLink]:
    return list_links_for_user(db, user_id)


def track_affiliate_link_click(db: Session, slug: str) -> AffiliateLink:
    link = get_link_by_slug(db, (slug or "").strip())
    if link is None:
        raise LedgerNotFound("Affiliate link not found", details={"slug": slug})
    with transaction(db):
        increment_link_clicks(db, link_id=link.id)
    db.refresh(link)
    return link


def get_or_create_referral_code(db: Session, *, user_id: int) -> ReferralCode:
    if get_user(db, user_id) is None:
        raise LedgerNotFound("User not found", details={"user_id": user_id})
    existing = get_referral_code_for_user(db, user_id)
    if existing is not None:
        return existing
    code = f"ref_{_random_token(8)}"
    while get_referral_code(db, code) is not None:
        code = f"ref_{_random_token(8)}"
    return create_referral_code(db, user_id=user_id, code=code)


def build_wallet_summary(db: Session, *, user_id: int) -> dict[str, Any]:
    wallet = get_wallet_for_user(db, user_id)

    def figure(name: str) -> float:
        return float(quantize_money(getattr(wallet, name) if wallet is not None else ZERO))

    commissions = [
        {
            "id": commission.id,
            "order_id": commission.order_id,
            "order_number": commission.order.order_number if commission.order else None,
            "product_name": commission.product.name if commission.product else None,
            "type": commission.type,
            "commission_percentage": commission.commission_percentage,
            "amount": float(quantize_money(commission.amount)),
            "status": commission.status,
            "created_at": commission.created_at,
        }
        for commission in list_commissions_for_user(db, user_id)
    ]
    withdrawals = [
        {
            "id": withdrawal.id,
            "payout_id": withdrawal.payout_id,
            "order_id": withdrawal.order_id,
            "amount": float(quantize_money(withdrawal.commission_amount)),
            "status": display_status(withdrawal.payout_status),
            "payout_method": withdrawal.payout_method,
            "reference": withdrawal.reference,
            "requested_at": withdrawal.requested_at,
            "processed_at": withdrawal.processed_at,
        }
        for withdrawal in list_withdrawals_for_user(db, user_id)
    ]
    return {
        "total_earned": figure("total_earned"),
        "awaiting_approval": figure("awaiting_approval"),
        "available_for_withdrawal": figure("available_for_withdrawal"),
        "total_withdrawn": figure("total_withdrawn"),
        "commissions": commissions,
        "withdrawals": withdrawals,
    }


def build_affiliate_overview(db: Session, *, top_limit: int = 10) -> dict[str, Any]:
    totals = sum_commissions_by_status(db)
    commission_totals = {
        status: float(quantize_money(totals.get(status, ZERO)))
        for status in enum_values(CommissionStatusEnum)
    }
    top_wallets = [
        {
            "user_id": wallet.user_id,
            "name": wallet.user.full_name if wallet.user else None,
            "email": wallet.user.email if wallet.user else None,
            "total_earned": float(quantize_money(wallet.total_earned)),
            "available_for_withdrawal": float(quantize_money(wallet.available_for_withdrawal)),
        }
        for wallet in list_top_wallets(db, limit=top_limit)
    ]
    return {
        "affiliates_by_status": count_affiliates_by_status(db),
        "commission_totals": commission_totals,
        "top_wallets": top_wallets,
    }
