from sqlalchemy import Column, ForeignKey, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.mixins import TimestampMixin


class CommissionReferral(TimestampMixin, Base):
    __tablename__ = "commission_referrals"
    __table_args__ = (
        # A paid order carries one attribution path, so it earns one commission.
        UniqueConstraint("order_id", name="uq_commission_referrals_order"),
        Index("ix_commission_referrals_user", "user_id"),
        Index("ix_commission_referrals_status", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    type = Column(String, nullable=False)
    total_purchase_amount = Column(Numeric(12, 2), nullable=False, default=0)
    commission_percentage = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String, nullable=False, default="awaiting_approval")

    user = relationship("User", lazy="selectin")
    order = relationship("Order", lazy="selectin")
    product = relationship("Product", lazy="selectin")
