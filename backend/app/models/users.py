from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.mixins import TimestampMixin


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    phone_number = Column(String, nullable=True)
    role = Column(String, nullable=False, default="user", index=True)
    is_affiliate = Column(Boolean, nullable=False, default=False)
    affiliate_status = Column(String, nullable=False, default="not_affiliate")

    wallet = relationship("Wallet", back_populates="user", uselist=False, lazy="selectin")
    banks = relationship("Bank", back_populates="user", lazy="selectin")
    affiliate = relationship("Affiliate", back_populates="user", uselist=False, lazy="selectin")

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
