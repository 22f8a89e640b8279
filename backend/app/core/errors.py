"""
Domain errors raised by the ledger services.

Each error knows its HTTP status and renders a stable payload, so routers
never translate failures themselves; app.main installs one handler for the
whole hierarchy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class LedgerError(Exception):
    code: str
    message: str
    status_code: int
    details: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class LedgerValidationError(LedgerError):
    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(code="validation_error", message=message, status_code=422, details=details)


class LedgerNotFound(LedgerError):
    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(code="not_found", message=message, status_code=404, details=details)


class LedgerPreconditionFailed(LedgerError):
    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(code="precondition_failed", message=message, status_code=409, details=details)


class DuplicateWithdrawalRequest(LedgerError):
    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(code="duplicate_request", message=message, status_code=409, details=details)


class PaymentVerificationError(LedgerError):
    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(
            code="payment_verification_failed",
            message=message,
            status_code=502,
            details=details,
        )
