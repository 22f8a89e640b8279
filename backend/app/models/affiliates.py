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


class Affiliate(TimestampMixin, Base):
    __tablename__ = "affiliates"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_affiliates_user"),
        Index("ix_affiliates_status", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    status = Column(String, nullable=False, default="pending")
    category = Column(String, nullable=True)
    reason = Column(Text, nullable=True)
    requested_at = Column(DateTime, nullable=False, default=utcnow)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by_name = Column(String, nullable=True)
    reviewed_by_email = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    user = relationship("User", back_populates="affiliate", lazy="selectin")


class AffiliateLink(TimestampMixin, Base):
    __tablename__ = "affiliate_links"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_affiliate_links_user_product"),
        UniqueConstraint("slug", name="uq_affiliate_links_slug"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    slug = Column(String, nullable=False)
    clicks = Column(Integer, nullable=False, default=0)
    orders = Column(Integer, nullable=False, default=0)
    commission = Column(Numeric(12, 2), nullable=False, default=0)

    user = relationship("User", lazy="selectin")
    product = relationship("Product", lazy="selectin")


class ReferralCode(TimestampMixin, Base):
    __tablename__ = "referral_codes"
    __table_args__ = (
        UniqueConstraint("code", name="uq_referral_codes_code"),
        UniqueConstraint("user_id", name="uq_referral_codes_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    code = Column(String, nullable=False)

    user = relationship("User", lazy="selectin")
