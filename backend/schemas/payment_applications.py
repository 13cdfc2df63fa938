from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date
from decimal import Decimal
from models.ledger_entries import LedgerEntryType, PaymentStatus
from schemas.ledger_entries import LedgerEntry
from schemas.payment_records import PaymentRecord


class PaymentApplicationCreate(BaseModel):
    entity_id: int
    type: LedgerEntryType
    payment_amount: Decimal = Field(gt=0)
    method: str = Field(min_length=1)
    # Applied in the order given
    selected_entry_ids: List[int] = Field(min_length=1)
    payment_date: Optional[date] = None
    notes: Optional[str] = None


class SettledEntry(BaseModel):
    ledger_entry_id: int
    amount_applied: Decimal
    remaining_amount: Decimal
    payment_status: PaymentStatus


class PaymentApplicationResult(BaseModel):
    ledger_entry: LedgerEntry
    payment_record: PaymentRecord
    settled: List[SettledEntry]
