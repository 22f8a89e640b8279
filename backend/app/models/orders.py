from sqlalchemy import Column, ForeignKey, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.mixins import TimestampMixin


class Order(TimestampMixin, Base):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("order_number", name="uq_orders_order_number"),
        UniqueConstraint("payment_reference", name="uq_orders_payment_reference"),
        Index("ix_orders_user_id", "user_id"),
        Index("ix_orders_payment_shipment", "order_payment_status", "shipment_status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    referral_code = Column(String, nullable=True)
    referral_slug = Column(String, nullable=True)
    payment_reference = Column(String, nullable=True)
    order_payment_status = Column(String, nullable=False, default="pending")
    shipment_status = Column(String, nullable=False, default="pending")
    withdrawal_status = Column(String, nullable=False, default="not_requested")

    user = relationship("User", lazy="selectin")
    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )


class OrderItem(TimestampMixin, Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)

    order = relationship("Order", back_populates="items")
    product = relationship("Product", lazy="selectin")
