from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class WalletCommissionItem(BaseModel):
    id: int
    order_id: int
    order_number: Optional[str] = None
    product_name: Optional[str] = None
    type: str
    commission_percentage: str
    amount: float
    status: str
    created_at: datetime


class WalletWithdrawalItem(BaseModel):
    id: int
    payout_id: str
    order_id: int
    amount: float
    status: str
    payout_method: str
    reference: str
    requested_at: datetime
    processed_at: Optional[datetime] = None


class WalletSummary(BaseModel):
    total_earned: float
    awaiting_approval: float
    available_for_withdrawal: float
    total_withdrawn: float
    commissions: list[WalletCommissionItem]
    withdrawals: list[WalletWithdrawalItem]


class TopWallet(BaseModel):
    user_id: int
    name: Optional[str] = None
    email: Optional[str] = None
    total_earned: float
    available_for_withdrawal: float


class AffiliateOverview(BaseModel):
    affiliates_by_status: dict[str, int]
    commission_totals: dict[str, float]
    top_wallets: list[TopWallet]
