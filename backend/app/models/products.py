from sqlalchemy import Column, Integer, Numeric, String

from app.core.db import Base
from app.models.mixins import TimestampMixin


class Product(TimestampMixin, Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    # Affiliate commission percentage as entered by merchandisers, e.g. "12.5".
    commission = Column(String, nullable=True)
    display_image_url = Column(String, nullable=True)
