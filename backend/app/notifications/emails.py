from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any


TEMPLATE_REFERRAL_USED = "referral_used"
TEMPLATE_COMMISSION_APPROVED = "commission_approved"
TEMPLATE_APPROVAL_REPORT = "commission_approval_report"

TEMPLATE_FILES = {
    TEMPLATE_REFERRAL_USED,
    TEMPLATE_COMMISSION_APPROVED,
    TEMPLATE_APPROVAL_REPORT,
}

CHANNEL_LABELS = {
    "referral_code": "referral code",
    "affiliate_link": "affiliate link",
}


@dataclass(frozen=True)
class EmailTemplate:
    key: str
    subject: str
    body: str
    preheader: str | None = None


@dataclass(frozen=True)
class RenderedEmail:
    template_key: str
    subject: str
    body: str


class _SafeDict(dict):
    def __missing__(self, key):
        return "{" + key + "}"


def _template_dir() -> Path:
    return Path(__file__).resolve().parent / "templates"


def _parse_front_matter(contents: str) -> tuple[dict[str, str], str]:
    if not contents.startswith("---"):
        return {}, contents
    parts = contents.split("---", 2)
    if len(parts) < 3:
        return {}, contents
    meta_block = parts[1].strip().splitlines()
    body = parts[2].lstrip("\n")
    meta: dict[str, str] = {}
    for line in meta_block:
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        meta[key.strip().lower()] = value.strip()
    return meta, body


def load_email_template(key: str) -> EmailTemplate:
    normalized = key.strip().lower()
    if normalized not in TEMPLATE_FILES:
        raise ValueError(f"Unknown email template: {key}")
    path = _template_dir() / f"{normalized}.md"
    contents = path.read_text(encoding="utf-8")
    meta, body = _parse_front_matter(contents)
    return EmailTemplate(
        key=normalized,
        subject=meta.get("subject", normalized),
        body=body.strip(),
        preheader=meta.get("preheader"),
    )


def render_email(key: str, context: dict[str, Any]) -> RenderedEmail:
    template = load_email_template(key)
    values = _SafeDict({k: "" if v is None else v for k, v in context.items()})
    return RenderedEmail(
        template_key=template.key,
        subject=template.subject.format_map(values),
        body=template.body.format_map(values),
    )


def format_money(amount, currency: str) -> str:
    value = Decimal(str(amount or 0))
    return f"{currency} {value:,.2f}"


def _approved_row(item: dict[str, Any], currency: str) -> str:
    return (
        f"- #{item['commission_id']} order {item['order_number']}: "
        f"{format_money(item['commission_amount'], currency)} "
        f"({item['commission_percentage']}% of {format_money(item['order_total'], currency)}) "
        f"to {item['owner_name']} <{item['owner_email']}>, product {item['product_name']}"
    )


def _skipped_row(item: dict[str, Any], currency: str) -> str:
    return (
        f"- #{item['commission_id']} order {item['order_number']}: {item['reason']} "
        f"({format_money(item['commission_amount'], currency)}, owner {item['owner_name']}, "
        f"order status {item['order_status']})"
    )


def build_approval_report_context(report, currency: str) -> dict[str, Any]:
    approved_rows = [_approved_row(item, currency) for item in report.approved_items]
    skipped_rows = [_skipped_row(item, currency) for item in report.skipped_items]
    return {
        "report_date": report.run_at.date().isoformat(),
        "run_at": report.run_at.isoformat(timespec="seconds"),
        "processed_count": report.processed,
        "approved_count": report.approved,
        "skipped_count": report.skipped,
        "failed_count": report.failed,
        "total_amount_approved": format_money(report.total_amount_approved, currency),
        "approved_rows": "\n".join(approved_rows) or "- none",
        "skipped_rows": "\n".join(skipped_rows) or "- none",
    }
