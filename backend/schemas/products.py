from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

class ProductBase(BaseModel):
    name: str = Field(min_length=1)
    sku: str = Field(min_length=1)
    numeric_price: Decimal = Field(ge=0)
    unit_of_measure: str = "pcs"

class ProductCreate(ProductBase):
    stock: int = Field(default=0, ge=0)

class Product(ProductBase):
    id: int
    stock: int
    company_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProductStockStatus(BaseModel):
    id: int
    name: str
    sku: str
    stock: int
    unit_of_measure: str
    status: str
