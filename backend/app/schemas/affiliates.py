from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AffiliateRequestCreate(BaseModel):
    category: Optional[str] = None
    reason: Optional[str] = None


class AffiliateStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = None


class AffiliateRead(BaseModel):
    id: int
    user_id: int
    user_name: str
    user_email: str
    status: str
    category: Optional[str] = None
    reason: Optional[str] = None
    requested_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by_name: Optional[str] = None
    reviewed_by_email: Optional[str] = None
    notes: Optional[str] = None


class AffiliateLinkCreate(BaseModel):
    product_id: int


class AffiliateLinkRead(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    slug: str
    shareable_link: str
    clicks: int
    orders: int
    commission: float
    created_at: datetime


class LinkClickRead(BaseModel):
    slug: str
    product_id: int
    clicks: int


class ReferralCodeRead(BaseModel):
    code: str
    user_id: int
