from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class WithdrawalCreate(BaseModel):
    order_id: int
    bank_code: str = Field(min_length=1)


class WithdrawalStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = None


class WithdrawalRead(BaseModel):
    id: int
    payout_id: str
    reference: str
    user_id: int
    order_id: int
    commission_id: int
    bank_id: Optional[int] = None
    buyer_name: Optional[str] = None
    buyer_email: Optional[str] = None
    total_purchase_amount: float
    commission_amount: float
    commission_percentage: Optional[str] = None
    payout_method: str
    payout_status: str
    requested_at: datetime
    processed_at: Optional[datetime] = None
    processed_by: Optional[str] = None
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
