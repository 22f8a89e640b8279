import os
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("SKIP_MIGRATIONS", "1")

import pytest
from pydantic import ValidationError

from app.core.config import Settings
from app.core.ledger import commission_amount, format_percentage, parse_percentage, quantize_money
from app.notifications.emails import (
    TEMPLATE_REFERRAL_USED,
    build_approval_report_context,
    format_money,
    load_email_template,
    render_email,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("20", Decimal("20")),
        ("12.5%", Decimal("12.5")),
        (" 7 % ", Decimal("7")),
        (15, Decimal("15")),
        ("100", Decimal("100")),
    ],
)
def test_parse_percentage_accepts_stored_forms(raw, expected):
    assert parse_percentage(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "%", "abc", "-1", "100.01", "NaN", "Infinity"])
def test_parse_percentage_rejects_unusable_values(raw):
    assert parse_percentage(raw) is None


def test_money_rounds_half_up_to_cents():
    assert quantize_money("2.345") == Decimal("2.35")
    assert quantize_money("2.344") == Decimal("2.34")
    assert quantize_money(None) == Decimal("0.00")
    assert quantize_money("garbage") == Decimal("0.00")
    assert commission_amount("2500.50", Decimal("20")) == Decimal("500.10")
    assert commission_amount("999.99", Decimal("12.5")) == Decimal("125.00")


def test_format_percentage_drops_trailing_zeros():
    assert format_percentage(Decimal("20.00")) == "20"
    assert format_percentage(Decimal("12.50")) == "12.5"


def test_format_money():
    assert format_money(Decimal("2000"), "NGN") == "NGN 2,000.00"
    assert format_money(None, "NGN") == "NGN 0.00"


def test_render_email_fills_known_fields_and_keeps_unknown():
    rendered = render_email(TEMPLATE_REFERRAL_USED, {"order_number": "ORD-9", "referrer_name": None})

    assert rendered.subject == "Your referral just earned a commission on order ORD-9"
    assert rendered.template_key == TEMPLATE_REFERRAL_USED
    assert rendered.body.startswith("Hi ,")
    assert "{buyer_name}" in rendered.body


def test_unknown_template_is_rejected():
    with pytest.raises(ValueError):
        load_email_template("password_reset")


def test_approval_report_context_lists_rows():
    report = SimpleNamespace(
        run_at=datetime(2026, 3, 1, 1, 0, 0),
        processed=2,
        approved=1,
        skipped=1,
        failed=0,
        total_amount_approved=Decimal("2000"),
        approved_items=[
            {
                "commission_id": 7,
                "order_number": "ORD-7",
                "commission_amount": 2000.0,
                "commission_percentage": "20",
                "order_total": 10000.0,
                "owner_name": "Ada Obi",
                "owner_email": "ada@example.com",
                "product_name": "Arrow of God",
            }
        ],
        skipped_items=[
            {
                "commission_id": 8,
                "order_number": "ORD-8",
                "reason": "Order not delivered",
                "commission_amount": 500.0,
                "owner_name": "Tola",
                "order_status": "shipped",
            }
        ],
    )

    context = build_approval_report_context(report, "NGN")

    assert context["report_date"] == "2026-03-01"
    assert context["total_amount_approved"] == "NGN 2,000.00"
    assert "#7 order ORD-7: NGN 2,000.00 (20% of NGN 10,000.00)" in context["approved_rows"]
    assert "Order not delivered" in context["skipped_rows"]


def test_settings_parse_comma_separated_admin_emails():
    cfg = Settings(
        _env_file=None,
        DATABASE_URL="sqlite:///:memory:",
        SECRET_KEY="secret",
        ADMIN_NOTIFICATION_EMAILS="finance@example.com, ops@example.com,",
    )

    assert cfg.ADMIN_NOTIFICATION_EMAILS == ["finance@example.com", "ops@example.com"]
    assert cfg.COMMISSION_MATURITY_DAYS == 30
    assert cfg.AFFILIATE_COMMISSION_PERCENT == Decimal("20")


def test_settings_read_admin_emails_from_env(monkeypatch):
    monkeypatch.setenv("ADMIN_NOTIFICATION_EMAILS", "finance@example.com,ops@example.com")

    cfg = Settings(_env_file=None)

    assert cfg.ADMIN_NOTIFICATION_EMAILS == ["finance@example.com", "ops@example.com"]


def test_settings_reject_out_of_range_values():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, DATABASE_URL="sqlite://", SECRET_KEY="s", AFFILIATE_COMMISSION_PERCENT="120")
    with pytest.raises(ValidationError):
        Settings(_env_file=None, DATABASE_URL="sqlite://", SECRET_KEY="s", COMMISSION_MATURITY_DAYS=0)
