from sqlalchemy import Column, DateTime

from app.core.time import utcnow


# Naive-UTC audit columns shared by every ledger table. Column onupdate also
# fires for the bulk UPDATE statements issued by the wallet and commission
# crud helpers, so balance and status changes stamp updated_at as well.
class TimestampMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
