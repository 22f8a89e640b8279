# Central place for all configurable settings. We use Pydantic's
# BaseSettings so values can be read from env vars or a .env file.
# This keeps deployment flexible without hardcoding secrets.

import json
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def safe_json_loads(value):
    try:
        return json.loads(value)
    except Exception:
        return value


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_json_loads=safe_json_loads,
    )

    # Core DB connection string, like sqlite:///./app.db or Postgres URL.
    DATABASE_URL: str

    # Toggle SQLAlchemy echo logs. Useful for debugging queries locally.
    DB_ECHO: bool = False

    # Level for the JSON loggers ("app" tree and per-request api_logger).
    LOG_LEVEL: str = "INFO"

    # Secret key used to verify bearer tokens minted by the identity service.
    SECRET_KEY: str

    # JWT algorithm to use. Default HS256 (symmetric HMAC-SHA256).
    ALGORITHM: str = "HS256"

    # How long issued access tokens are valid, in minutes.
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Public URLs used when building shareable affiliate links.
    APP_BASE_URL: Optional[str] = None
    FRONTEND_BASE_URL: Optional[str] = None

    # Flat commission rate for referral codes, and the fallback rate for
    # affiliate links whose product carries no commission of its own.
    AFFILIATE_COMMISSION_PERCENT: Decimal = Field(default=Decimal("20"), ge=0, le=100)

    # Days an order must age (and be delivered) before its commission matures.
    COMMISSION_MATURITY_DAYS: int = Field(default=30, gt=0)
    CURRENCY: str = "NGN"

    # Extra recipients for the nightly approval digest, on top of admin users.
    ADMIN_NOTIFICATION_EMAILS: Annotated[List[str], NoDecode] = Field(default_factory=list)

    # In-process cron for the nightly commission approval run.
    SCHEDULER_ENABLED: bool = False
    SCHEDULER_TIMEZONE: str = "Africa/Lagos"
    COMMISSION_APPROVAL_HOUR: int = Field(default=1, ge=0, le=23)
    COMMISSION_APPROVAL_MINUTE: int = Field(default=0, ge=0, le=59)

    # Statement timeout for each batch ledger transaction (PostgreSQL only).
    LEDGER_TRANSACTION_TIMEOUT_SECONDS: int = Field(default=30, gt=0)

    # Payment gateway credentials for verifying order payments.
    PAYSTACK_SECRET_KEY: Optional[str] = None
    PAYSTACK_BASE_URL: str = "https://api.paystack.co"
    PAYSTACK_TIMEOUT_SECONDS: float = 10.0

    # Outbound mail. When SMTP_HOST is unset queued mail is only logged.
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    EMAIL_FROM: str = "no-reply@bookshop.local"
    EMAIL_FROM_NAME: str = "Bookshop Affiliates"

    @field_validator("ADMIN_NOTIFICATION_EMAILS", mode="before")
    @classmethod
    def _parse_list_values(cls, value):
        if isinstance(value, str):
            parts = [p.strip() for p in value.split(",") if p.strip()]
            return parts
        return value


# Instantiate a single settings object for app-wide import.
# Any module can just `from app.core.config import settings`.
settings = Settings()
