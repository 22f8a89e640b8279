from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.core.payments import (
    SIGNATURE_HEADER,
    PaystackClient,
    handle_gateway_event,
    verify_order_payment,
    verify_webhook_signature,
)
from app.schemas.payments import PaymentVerificationRead, WebhookAck


router = APIRouter(prefix="/payments", tags=["payments"])


def get_payment_client() -> PaystackClient:
    return PaystackClient()


@router.get("/verify/{reference}", response_model=PaymentVerificationRead)
def verify_payment(
    reference: str,
    db: Session = Depends(get_db),
    client: PaystackClient = Depends(get_payment_client),
):
    result = verify_order_payment(db, reference, client=client)
    return PaymentVerificationRead(
        reference=reference,
        order_id=result.order.id,
        verified=result.verified,
        message=result.message,
        order_payment_status=result.order.order_payment_status,
        commission_id=result.commission.id if result.commission else None,
    )


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(request: Request, db: Session = Depends(get_db)):
    raw_body = await request.body()
    if not verify_webhook_signature(raw_body, request.headers.get(SIGNATURE_HEADER)):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")
    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")
    return WebhookAck(status=handle_gateway_event(db, payload))
