from sqlalchemy import Column, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.mixins import TimestampMixin


class Wallet(TimestampMixin, Base):
    __tablename__ = "wallets"
    __table_args__ = (UniqueConstraint("user_id", name="uq_wallets_user"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    total_earned = Column(Numeric(12, 2), nullable=False, default=0)
    awaiting_approval = Column(Numeric(12, 2), nullable=False, default=0)
    available_for_withdrawal = Column(Numeric(12, 2), nullable=False, default=0)
    total_withdrawn = Column(Numeric(12, 2), nullable=False, default=0)
    # available_for_withdrawal around its most recent change.
    balance_before = Column(Numeric(12, 2), nullable=False, default=0)
    balance_after = Column(Numeric(12, 2), nullable=False, default=0)

    user = relationship("User", back_populates="wallet")
