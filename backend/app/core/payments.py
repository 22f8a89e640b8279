"""
Order payment confirmation against the Paystack gateway.

Both the browser-driven verify call and the gateway webhook end in the same
place: the order is marked paid, then the referral commission is recorded as
a best-effort side effect. Amounts on the wire are integer kobo.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from urllib.parse import quote

import requests
from sqlalchemy.orm import Session

from app.core.commissions import process_paid_order_commission
from app.core.config import settings
from app.core.db import transaction
from app.core.errors import LedgerNotFound, LedgerValidationError, PaymentVerificationError
from app.core.ledger import LedgerConfig, quantize_money
from app.crud.orders import get_order_by_reference
from app.models.commissions import CommissionReferral
from app.models.enums import PaymentStatusEnum
from app.models.orders import Order
from app.notifications.senders import NotificationSender


logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-paystack-signature"
EVENT_CHARGE_SUCCESS = "charge.success"


@dataclass(frozen=True)
class GatewayTransaction:
    reference: str
    status: str
    amount_kobo: int


@dataclass
class PaymentVerificationResult:
    order: Order
    verified: bool
    message: str
    commission: CommissionReferral | None = None


class PaystackClient:
    def __init__(
        self,
        *,
        secret_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self.secret_key = secret_key if secret_key is not None else settings.PAYSTACK_SECRET_KEY
        self.base_url = (base_url or settings.PAYSTACK_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.PAYSTACK_TIMEOUT_SECONDS

    def verify(self, reference: str) -> GatewayTransaction:
        if not self.secret_key:
            raise PaymentVerificationError("Payment gateway is not configured")
        url = f"{self.base_url}/transaction/verify/{quote(reference, safe='')}"
        try:
            resp = requests.get(
                url,
                headers={"Authorization": f"Bearer {self.secret_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise PaymentVerificationError(
                "Failed to reach payment gateway",
                details={"reference": reference},
            ) from exc
        if resp.status_code >= 400:
            raise PaymentVerificationError(
                f"Payment gateway returned status {resp.status_code}",
                details={"reference": reference},
            )
        data = (resp.json() or {}).get("data") or {}
        amount_kobo = _parse_kobo(data.get("amount"))
        if amount_kobo is None:
            raise PaymentVerificationError(
                "Payment gateway returned an invalid amount",
                details={"reference": reference},
            )
        return GatewayTransaction(
            reference=reference,
            status=str(data.get("status") or ""),
            amount_kobo=amount_kobo,
        )


def to_kobo(amount) -> int:
    return int((quantize_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def _parse_kobo(value) -> int | None:
    """Whole kobo from a wire amount; None when it is not a finite number."""
    try:
        amount = Decimal(str(value if value is not None else 0))
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return int(amount)


def _mark_paid(db: Session, order: Order) -> None:
    with transaction(db):
        order.order_payment_status = PaymentStatusEnum.PAID.value
    db.refresh(order)
    logger.info("Order %s marked paid", order.id, extra={"order_id": order.id})


def verify_order_payment(
    db: Session,
    reference: str,
    *,
    client: PaystackClient | None = None,
    config: LedgerConfig | None = None,
    sender: NotificationSender | None = None,
) -> PaymentVerificationResult:
    reference = (reference or "").strip()
    if not reference:
        raise LedgerValidationError("Transaction reference is missing")
    order = get_order_by_reference(db, reference)
    if order is None:
        raise LedgerNotFound("Order not found", details={"reference": reference})

    if order.order_payment_status == PaymentStatusEnum.PAID.value:
        commission = process_paid_order_commission(db, order, config=config, sender=sender)
        return PaymentVerificationResult(order, True, "Payment already verified", commission)

    gateway_tx = (client or PaystackClient()).verify(reference)
    if gateway_tx.status != "success":
        logger.info("Payment %s not successful: %s", reference, gateway_tx.status)
        return PaymentVerificationResult(order, False, "Payment was not completed or successful")
    expected = to_kobo(order.total_amount)
    if gateway_tx.amount_kobo != expected:
        logger.warning(
            "Amount mismatch for %s. expected=%s paid=%s",
            reference,
            expected,
            gateway_tx.amount_kobo,
        )
        return PaymentVerificationResult(order, False, "Payment amount does not match transaction amount")

    _mark_paid(db, order)
    commission = process_paid_order_commission(db, order, config=config, sender=sender)
    return PaymentVerificationResult(order, True, "Payment verified", commission)


def verify_webhook_signature(raw_body: bytes, signature: str | None, secret: str | None = None) -> bool:
    secret = secret if secret is not None else settings.PAYSTACK_SECRET_KEY
    if not secret or not signature:
        return False
    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature.strip().lower())


def handle_gateway_event(
    db: Session,
    payload: dict[str, Any],
    *,
    config: LedgerConfig | None = None,
    sender: NotificationSender | None = None,
) -> str:
    """Apply one verified webhook event and return a short outcome label."""
    event = payload.get("event") if isinstance(payload, dict) else None
    data = payload.get("data") if isinstance(payload, dict) else None
    if not event or not isinstance(data, dict):
        raise LedgerValidationError("Invalid webhook payload")
    if event != EVENT_CHARGE_SUCCESS:
        logger.info("Unhandled webhook event: %s", event)
        return "ignored"

    reference = str(data.get("reference") or "").strip()
    if not reference:
        logger.error("No reference found in webhook data")
        return "ignored"
    order = get_order_by_reference(db, reference)
    if order is None:
        logger.error("Order not found for reference: %s", reference)
        return "order_not_found"
    expected = to_kobo(order.total_amount)
    paid = _parse_kobo(data.get("amount"))
    if paid is None or paid != expected:
        logger.error("Amount mismatch. expected=%s paid=%s reference=%s", expected, paid, reference)
        return "amount_mismatch"

    if order.order_payment_status != PaymentStatusEnum.PAID.value:
        _mark_paid(db, order)
    process_paid_order_commission(db, order, config=config, sender=sender)
    return "processed"
