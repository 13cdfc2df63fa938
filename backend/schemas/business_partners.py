from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from models.business_partners import PartnerStatus

class BusinessPartnerCreate(BaseModel):
    name: str = Field(min_length=2)
    phone: str = Field(min_length=10)
    address: Optional[str] = None
    email: Optional[str] = None
    is_customer: bool = False
    is_seller: bool = False

class BusinessPartner(BaseModel):
    id: int
    name: str
    phone: str
    address: Optional[str] = None
    email: Optional[str] = None
    status: PartnerStatus
    is_customer: bool
    is_seller: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
