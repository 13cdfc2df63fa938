from pydantic import BaseModel
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from models.payment_records import PaymentRecordType, PaymentRecordStatus

class PaymentRecord(BaseModel):
    id: int
    type: PaymentRecordType
    related_entity_id: Optional[int] = None
    related_entity_name: str
    payment_date: date
    amount_paid: Decimal
    method: Optional[str] = None
    status: PaymentRecordStatus
    ledger_entry_id: Optional[int] = None
    settled_ledger_entry_ids: List[int] = []
    original_invoice_amount: Optional[Decimal] = None
    remaining_balance_on_invoice: Optional[Decimal] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
