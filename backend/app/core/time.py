from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    # Columns are naive UTC DateTime; keep every comparison naive.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_ts(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
