from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.mixins import TimestampMixin


class Bank(TimestampMixin, Base):
    __tablename__ = "banks"
    __table_args__ = (UniqueConstraint("user_id", "bank_code", name="uq_banks_user_code"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    bank_name = Column(String, nullable=False)
    bank_code = Column(String, nullable=False)
    account_number = Column(String, nullable=False)
    account_name = Column(String, nullable=False)

    user = relationship("User", back_populates="banks")
