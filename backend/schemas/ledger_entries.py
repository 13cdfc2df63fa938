from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from models.ledger_entries import LedgerEntryType, EntryPurpose, EntityType, PaymentStatus


class LedgerItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    # Defaults to the catalog price; only admins may override it
    unit_price: Optional[Decimal] = Field(default=None, ge=0)


class LedgerEntryCreate(BaseModel):
    date: date
    type: LedgerEntryType
    entry_purpose: EntryPurpose = EntryPurpose.LEDGER_RECORD
    entity_type: EntityType
    entity_id: Optional[int] = None
    entity_name: Optional[str] = None
    items: List[LedgerItemCreate] = []
    apply_gst: bool = False
    payment_status: PaymentStatus = PaymentStatus.PAID
    payment_method: Optional[str] = None
    amount_paid_now: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = None
    # Only for entry_purpose=PaymentRecord
    payment_amount: Optional[Decimal] = Field(default=None, gt=0)
    settle_entry_ids: List[int] = []


class LedgerEntryItem(BaseModel):
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    unit_of_measure: str

    class Config:
        from_attributes = True


class LedgerEntry(BaseModel):
    id: int
    date: date
    type: LedgerEntryType
    entry_purpose: EntryPurpose
    entity_type: EntityType
    entity_id: Optional[int] = None
    entity_name: str
    items: List[LedgerEntryItem] = []
    apply_gst: bool
    sub_total: Decimal
    tax_amount: Decimal
    grand_total: Decimal
    payment_status: PaymentStatus
    payment_method: Optional[str] = None
    amount_paid_now: Decimal
    remaining_amount: Decimal
    associated_payment_record_id: Optional[int] = None
    notes: Optional[str] = None
    company_id: Optional[str] = None
    created_by_uid: Optional[str] = None
    created_by_name: Optional[str] = None
    updated_by_uid: Optional[str] = None
    updated_by_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DailySummary(BaseModel):
    date: date
    sales_count: int = 0
    sales_total: Decimal = Decimal("0")
    sales_outstanding: Decimal = Decimal("0")
    purchases_count: int = 0
    purchases_total: Decimal = Decimal("0")
    purchases_outstanding: Decimal = Decimal("0")
    # money received from customers / paid to sellers that day, at invoice time or as settlements
    amount_received: Decimal = Decimal("0")
    amount_paid_out: Decimal = Decimal("0")
