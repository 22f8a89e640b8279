from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.core.db import transaction
from app.core.errors import LedgerNotFound, LedgerValidationError
from app.core.ledger import (
    CommissionTransition,
    LedgerConfig,
    apply_commission_transition,
    commission_amount,
    format_percentage,
    parse_percentage,
    quantize_money,
    resolve_config,
)
from app.core.metrics import record_commission_created
from app.core.time import utcnow
from app.crud.affiliates import get_link_by_slug, get_referral_code, record_link_conversion
from app.crud.commissions import create_commission, get_commission, get_commission_for_order
from app.crud.wallets import credit_awaiting_approval, get_or_create_wallet
from app.models.affiliates import AffiliateLink
from app.models.commissions import CommissionReferral
from app.models.enums import CommissionStatusEnum, CommissionTypeEnum, PaymentStatusEnum
from app.models.orders import Order, OrderItem
from app.notifications.emails import (
    CHANNEL_LABELS,
    TEMPLATE_COMMISSION_APPROVED,
    TEMPLATE_REFERRAL_USED,
    format_money,
)
from app.notifications.senders import NotificationSender, get_default_sender


logger = logging.getLogger(__name__)

REVIEW_STATUSES = {CommissionStatusEnum.APPROVED.value, CommissionStatusEnum.REJECTED.value}


def _link_order_item(order: Order, link: AffiliateLink) -> OrderItem | None:
    items = list(order.items or [])
    for item in items:
        if item.product_id == link.product_id:
            return item
    return items[0] if items else None


def record_order_commission(
    db: Session,
    order: Order,
    *,
    config: LedgerConfig | None = None,
    sender: NotificationSender | None = None,
) -> CommissionReferral | None:
    """Create the commission earned by a paid, attributed order.

    A referral code wins over a referral slug when both are present; an
    order never produces more than one commission. Returns None when the
    order is not paid, carries no resolvable attribution, or already has
    its commission.
    """
    config = resolve_config(config)
    if order.order_payment_status != PaymentStatusEnum.PAID.value:
        return None
    if get_commission_for_order(db, order.id):
        logger.info("Commission already recorded for order %s", order.id)
        return None

    owner_id: int | None = None
    link: AffiliateLink | None = None
    product_id: int | None = None
    if order.referral_code:
        referral = get_referral_code(db, order.referral_code.strip())
        if referral is None:
            logger.warning("Referral code %s on order %s does not resolve", order.referral_code, order.id)
            return None
        owner_id = referral.user_id
        commission_type = CommissionTypeEnum.REFERRAL_CODE.value
        percentage = config.flat_commission_percent
    elif order.referral_slug:
        link = get_link_by_slug(db, order.referral_slug.strip())
        if link is None:
            logger.warning("Affiliate link %s on order %s does not resolve", order.referral_slug, order.id)
            return None
        owner_id = link.user_id
        commission_type = CommissionTypeEnum.AFFILIATE_LINK.value
        item = _link_order_item(order, link)
        product = item.product if item is not None else link.product
        product_id = product.id if product is not None else link.product_id
        percentage = parse_percentage(product.commission if product is not None else None)
        if percentage is None:
            percentage = config.flat_commission_percent
    else:
        return None

    total = quantize_money(order.total_amount)
    amount = commission_amount(total, percentage)

    with transaction(db):
        commission = create_commission(
            db,
            user_id=owner_id,
            order_id=order.id,
            product_id=product_id,
            commission_type=commission_type,
            total_purchase_amount=total,
            commission_percentage=format_percentage(percentage),
            amount=amount,
            status=CommissionStatusEnum.AWAITING_APPROVAL.value,
        )
        get_or_create_wallet(db, owner_id)
        credit_awaiting_approval(db, user_id=owner_id, amount=amount)
        if link is not None:
            record_link_conversion(db, link_id=link.id, amount=amount)
    db.refresh(commission)

    record_commission_created(commission_type)
    logger.info(
        "Commission %s recorded for order %s",
        commission.id,
        order.id,
        extra={
            "commission_id": commission.id,
            "order_id": order.id,
            "user_id": owner_id,
            "amount": str(amount),
            "commission_type": commission_type,
        },
    )
    _notify_referral_used(db, commission, order, config=config, sender=sender)
    return commission


def process_paid_order_commission(
    db: Session,
    order: Order,
    *,
    config: LedgerConfig | None = None,
    sender: NotificationSender | None = None,
) -> CommissionReferral | None:
    # Commission is a side effect of payment; it must never fail the payment.
    try:
        return record_order_commission(db, order, config=config, sender=sender)
    except Exception:
        db.rollback()
        logger.exception("Failed to record commission for order %s", order.id)
        return None


def _notify_referral_used(
    db: Session,
    commission: CommissionReferral,
    order: Order,
    *,
    config: LedgerConfig,
    sender: NotificationSender | None,
) -> None:
    try:
        owner = commission.user
        buyer = order.user
        (sender or get_default_sender()).send(
            db,
            to_emails=[owner.email],
            template_key=TEMPLATE_REFERRAL_USED,
            context={
                "referrer_name": owner.full_name or owner.email,
                "buyer_name": buyer.full_name if buyer else "A customer",
                "order_number": order.order_number,
                "channel_label": CHANNEL_LABELS.get(commission.type, commission.type),
                "order_total": format_money(commission.total_purchase_amount, config.currency),
                "commission_percentage": commission.commission_percentage,
                "commission_amount": format_money(commission.amount, config.currency),
                "maturity_days": config.maturity_days,
            },
            dedupe_key=f"referral_used:{commission.id}",
            user_id=owner.id,
        )
    except Exception:
        db.rollback()
        logger.exception("Failed to queue referral email for commission %s", commission.id)


def change_commission_status(
    db: Session,
    commission_id: int,
    status: str,
    *,
    config: LedgerConfig | None = None,
    sender: NotificationSender | None = None,
) -> CommissionTransition:
    """Approve or reject one awaiting_approval commission.

    Approval moves the amount from awaiting_approval to
    available_for_withdrawal; rejection removes it from awaiting_approval
    only. Status and wallet change commit together or not at all.
    """
    config = resolve_config(config)
    normalized = (status or "").strip().lower()
    if normalized not in REVIEW_STATUSES:
        raise LedgerValidationError(
            f"Invalid status. Allowed statuses: {', '.join(sorted(REVIEW_STATUSES))}",
            details={"status": status},
        )
    commission = get_commission(db, commission_id)
    if commission is None:
        raise LedgerNotFound("Commission referral not found", details={"commission_id": commission_id})

    with transaction(db):
        result = apply_commission_transition(db, commission, normalized, source="manual")

    if normalized == CommissionStatusEnum.APPROVED.value:
        notify_commission_approved(db, result, config=config, sender=sender)
    return result


def notify_commission_approved(
    db: Session,
    result: CommissionTransition,
    *,
    config: LedgerConfig,
    sender: NotificationSender | None = None,
) -> None:
    commission = result.commission
    try:
        owner = commission.user
        order = commission.order
        buyer = order.user if order is not None else None
        currency = config.currency
        (sender or get_default_sender()).send(
            db,
            to_emails=[owner.email],
            template_key=TEMPLATE_COMMISSION_APPROVED,
            context={
                "affiliate_name": owner.full_name or owner.email,
                "affiliate_email": owner.email,
                "order_number": order.order_number if order is not None else "N/A",
                "buyer_name": buyer.full_name if buyer else "Unknown",
                "buyer_email": buyer.email if buyer else "",
                "product_name": commission.product.name if commission.product else "Unknown Product",
                "commission_amount": format_money(result.amount, currency),
                "wallet_before_available": format_money(result.wallet_before.available_for_withdrawal, currency),
                "wallet_before_pending": format_money(result.wallet_before.awaiting_approval, currency),
                "wallet_before_total": format_money(result.wallet_before.total_earned, currency),
                "wallet_after_available": format_money(result.wallet_after.available_for_withdrawal, currency),
                "wallet_after_pending": format_money(result.wallet_after.awaiting_approval, currency),
                "wallet_after_total": format_money(result.wallet_after.total_earned, currency),
                "approved_at": utcnow().isoformat(timespec="seconds"),
            },
            dedupe_key=f"commission_approved:{commission.id}",
            user_id=owner.id,
        )
    except Exception:
        db.rollback()
        logger.exception("Failed to queue approval email for commission %s", commission.id)
