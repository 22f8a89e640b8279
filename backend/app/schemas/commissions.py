from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class CommissionRead(BaseModel):
    id: int
    user_id: int
    order_id: int
    order_number: Optional[str] = None
    product_id: Optional[int] = None
    product_name: Optional[str] = None
    type: str
    total_purchase_amount: float
    commission_percentage: str
    amount: float
    status: str
    created_at: datetime
    updated_at: datetime


class CommissionStatusUpdate(BaseModel):
    status: str


class WalletFigures(BaseModel):
    total_earned: float
    awaiting_approval: float
    available_for_withdrawal: float
    total_withdrawn: float


class CommissionStatusResult(BaseModel):
    commission: CommissionRead
    wallet_before: WalletFigures
    wallet_after: WalletFigures


class ApprovalRunRequest(BaseModel):
    dry_run: bool = False


class ApprovalRunRead(BaseModel):
    run_at: datetime
    dry_run: bool
    processed: int
    approved: int
    skipped: int
    failed: int
    total_amount_approved: float
    approved_items: list[dict[str, Any]]
    skipped_items: list[dict[str, Any]]
