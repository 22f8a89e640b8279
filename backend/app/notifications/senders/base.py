from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session


class NotificationSender:
    def send(
        self,
        db: Session,
        *,
        to_emails: list[str],
        template_key: str,
        context: dict[str, Any],
        dedupe_key: str,
        user_id: int | None = None,
    ) -> int:
        raise NotImplementedError
