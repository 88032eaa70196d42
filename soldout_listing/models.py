from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Text
from datetime import datetime, UTC
from .database import Base

class Product(Base):
    __tablename__ = "product"

    id = Column(Integer, primary_key=True, index=True)
    product_number = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    category = Column(String, index=True, nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    # A closeout product can no longer be bought once its stock reaches zero
    is_closeout = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))

    @property
    def is_sold_out(self) -> bool:
        return self.stock == 0 and bool(self.is_closeout)
