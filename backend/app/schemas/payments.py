from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class PaymentVerificationRead(BaseModel):
    reference: str
    order_id: int
    verified: bool
    message: str
    order_payment_status: str
    commission_id: Optional[int] = None


class WebhookAck(BaseModel):
    status: str
