from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.core.time import utcnow
from app.models.mixins import TimestampMixin


class WithdrawalRequest(TimestampMixin, Base):
    __tablename__ = "withdrawal_requests"
    __table_args__ = (
        UniqueConstraint("payout_id", name="uq_withdrawal_requests_payout_id"),
        UniqueConstraint("reference", name="uq_withdrawal_requests_reference"),
        Index("ix_withdrawal_requests_user_order", "user_id", "order_id"),
        Index("ix_withdrawal_requests_status", "payout_status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    payout_id = Column(String, nullable=False)
    reference = Column(String, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False)
    commission_id = Column(Integer, ForeignKey("commission_referrals.id", ondelete="RESTRICT"), nullable=False)
    bank_id = Column(Integer, ForeignKey("banks.id", ondelete="SET NULL"), nullable=True)
    buyer_name = Column(String, nullable=True)
    buyer_email = Column(String, nullable=True)
    total_purchase_amount = Column(Numeric(12, 2), nullable=False, default=0)
    commission_amount = Column(Numeric(12, 2), nullable=False, default=0)
    commission_percentage = Column(String, nullable=True)
    payout_method = Column(String, nullable=False, default="bank_transfer")
    payout_status = Column(String, nullable=False, default="pending")
    requested_at = Column(DateTime, nullable=False, default=utcnow)
    processed_at = Column(DateTime, nullable=True)
    processed_by = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    user = relationship("User", lazy="selectin")
    bank = relationship("Bank", lazy="selectin")
    commission = relationship("CommissionReferral", lazy="selectin")
