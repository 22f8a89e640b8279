# Model -> response schema mapping shared by the routers.

from __future__ import annotations

from app.core.affiliates import shareable_link
from app.core.ledger import quantize_money
from app.models.affiliates import Affiliate, AffiliateLink
from app.models.banks import Bank
from app.models.commissions import CommissionReferral
from app.models.withdrawals import WithdrawalRequest
from app.schemas.affiliates import AffiliateLinkRead, AffiliateRead
from app.schemas.banks import BankRead
from app.schemas.commissions import CommissionRead
from app.schemas.withdrawals import WithdrawalRead


def commission_read(commission: CommissionReferral) -> CommissionRead:
    return CommissionRead(
        id=commission.id,
        user_id=commission.user_id,
        order_id=commission.order_id,
        order_number=commission.order.order_number if commission.order else None,
        product_id=commission.product_id,
        product_name=commission.product.name if commission.product else None,
        type=commission.type,
        total_purchase_amount=float(quantize_money(commission.total_purchase_amount)),
        commission_percentage=commission.commission_percentage,
        amount=float(quantize_money(commission.amount)),
        status=commission.status,
        created_at=commission.created_at,
        updated_at=commission.updated_at,
    )


def withdrawal_read(withdrawal: WithdrawalRequest) -> WithdrawalRead:
    return WithdrawalRead(
        id=withdrawal.id,
        payout_id=withdrawal.payout_id,
        reference=withdrawal.reference,
        user_id=withdrawal.user_id,
        order_id=withdrawal.order_id,
        commission_id=withdrawal.commission_id,
        bank_id=withdrawal.bank_id,
        buyer_name=withdrawal.buyer_name,
        buyer_email=withdrawal.buyer_email,
        total_purchase_amount=float(quantize_money(withdrawal.total_purchase_amount)),
        commission_amount=float(quantize_money(withdrawal.commission_amount)),
        commission_percentage=withdrawal.commission_percentage,
        payout_method=withdrawal.payout_method,
        payout_status=withdrawal.payout_status,
        requested_at=withdrawal.requested_at,
        processed_at=withdrawal.processed_at,
        processed_by=withdrawal.processed_by,
        notes=withdrawal.notes,
        rejection_reason=withdrawal.rejection_reason,
    )


def affiliate_read(affiliate: Affiliate) -> AffiliateRead:
    user = affiliate.user
    return AffiliateRead(
        id=affiliate.id,
        user_id=affiliate.user_id,
        user_name=user.full_name if user else "",
        user_email=user.email if user else "",
        status=affiliate.status,
        category=affiliate.category,
        reason=affiliate.reason,
        requested_at=affiliate.requested_at,
        reviewed_at=affiliate.reviewed_at,
        reviewed_by_name=affiliate.reviewed_by_name,
        reviewed_by_email=affiliate.reviewed_by_email,
        notes=affiliate.notes,
    )


def affiliate_link_read(link: AffiliateLink) -> AffiliateLinkRead:
    return AffiliateLinkRead(
        id=link.id,
        product_id=link.product_id,
        product_name=link.product.name if link.product else None,
        slug=link.slug,
        shareable_link=shareable_link(link),
        clicks=link.clicks or 0,
        orders=link.orders or 0,
        commission=float(quantize_money(link.commission)),
        created_at=link.created_at,
    )


def bank_read(bank: Bank) -> BankRead:
    return BankRead(
        id=bank.id,
        bank_name=bank.bank_name,
        bank_code=bank.bank_code,
        account_number=bank.account_number,
        account_name=bank.account_name,
        created_at=bank.created_at,
    )
