from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

class ProductBase(BaseModel):
    product_number: str
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    category: Optional[str] = None

class ProductCreate(ProductBase):
    stock: int = Field(default=0, ge=0)
    is_closeout: bool = False
    active: bool = True

class StockUpdate(BaseModel):
    stock: Optional[int] = Field(default=None, ge=0)
    is_closeout: Optional[bool] = None

class Product(ProductBase):
    id: int
    stock: int
    is_closeout: bool
    is_sold_out: bool
    active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProductListingPage(BaseModel):
    elements: List[Product]
    total: int
    page: int
    limit: int
