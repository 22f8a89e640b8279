from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB

from app.core.db import Base
from app.models.enums import EmailStatusEnum
from app.models.mixins import TimestampMixin


JSON_TYPE = JSONB().with_variant(JSON, "sqlite")


class EmailQueue(TimestampMixin, Base):
    """Outbound ledger mail, one row per recipient.

    Rows are written inside the request or batch that caused them and drained
    by the email delivery job. (to_email, dedupe_key) is unique, so replaying
    a commission event never mails the same person twice.
    """

    __tablename__ = "email_queue"
    __table_args__ = (
        UniqueConstraint("to_email", "dedupe_key", name="uq_email_queue_dedupe"),
        CheckConstraint("status IN ('queued', 'sent', 'failed')", name="ck_email_queue_status"),
        Index("ix_email_queue_status_created", "status", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    to_email = Column(String, nullable=False)
    template_key = Column(String, nullable=False)
    dedupe_key = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    status = Column(String, nullable=False, default=EmailStatusEnum.QUEUED.value)
    attempt_count = Column(Integer, nullable=False, default=0)
    last_attempt_at = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)
    metadata_json = Column(JSON_TYPE, nullable=True)
