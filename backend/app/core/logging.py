# Structured JSON logging for the ledger service. Every HTTP request gets
# one "request.completed" (or "request.failed") line carrying the route,
# caller and ledger error code; service and job modules log through the
# "app" logger tree with the same formatter.

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from time import monotonic
from typing import Any
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings


REQUEST_ID_HEADER = "X-Request-ID"
SERVICE_NAME = "bookshop-ledger"

# Attributes every LogRecord carries; anything else came in through `extra`.
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

# Request fields emitted even when empty so log queries can rely on them.
_REQUEST_FIELDS = {
    "request_id",
    "user_id",
    "route",
    "method",
    "status_code",
    "duration_ms",
    "error_code",
}


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS:
                continue
            if value is None and key not in _REQUEST_FIELDS:
                continue
            payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        # Decimals (money) and datetimes fall back to their string form.
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=True, default=str)


def get_structured_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not any(isinstance(h.formatter, JsonLogFormatter) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JsonLogFormatter())
        logger.addHandler(handler)
    logger.setLevel(settings.LOG_LEVEL.upper())
    logger.propagate = False
    return logger


def configure_app_logging() -> None:
    get_structured_logger("app")
    get_structured_logger("api_logger")


logger = get_structured_logger("api_logger")


def _request_fields(request: Request, *, started: float) -> dict[str, Any]:
    route = request.scope.get("route")
    return {
        "request_id": getattr(request.state, "request_id", None),
        # Set by get_current_user once the bearer token has been accepted.
        "user_id": getattr(request.state, "user_id", None),
        "route": getattr(route, "path", None) or request.url.path,
        "path": request.url.path,
        "method": request.method,
        "duration_ms": round((monotonic() - started) * 1000.0, 2),
    }


class APILoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = monotonic()
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.failed",
                extra={
                    **_request_fields(request, started=started),
                    "status_code": 500,
                    "error_code": "unhandled_exception",
                },
            )
            raise

        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        logger.info(
            "request.completed",
            extra={
                **_request_fields(request, started=started),
                "status_code": response.status_code,
                "error_code": response.headers.get("X-Error-Code"),
            },
        )
        return response
