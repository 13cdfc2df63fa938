"""
Payment record store.

A payment record either belongs to one ledger entry (the money paid when the
entry was recorded) or is a standalone settlement whose allocations pay down
earlier pending/partial entries. Functions here only stage changes; the ledger
engine commits them together with the entry.
"""

import logging
from typing import List, Optional, Tuple
from decimal import Decimal
from sqlalchemy.orm import Session, selectinload

from models.ledger_entries import LedgerEntry, LedgerEntryType, PaymentStatus
from models.payment_allocations import PaymentAllocation
from models.payment_records import PaymentRecord, PaymentRecordStatus, PaymentRecordType
from schemas.actor import ActorContext
from utils import local_now
from utils.errors import ValidationError

logger = logging.getLogger("payment_records")

def record_type_for(entry_type: LedgerEntryType) -> PaymentRecordType:
    return PaymentRecordType.CUSTOMER if entry_type == LedgerEntryType.SALE else PaymentRecordType.SUPPLIER

def get_payment_record(db: Session, record_id: int, company_id: str, for_update: bool = False) -> Optional[PaymentRecord]:
    query = db.query(PaymentRecord).filter(PaymentRecord.id == record_id, PaymentRecord.company_id == company_id)
    if for_update:
        query = query.with_for_update()
    return query.first()

def upsert_for_entry(db: Session, entry: LedgerEntry, actor: ActorContext) -> PaymentRecord:
    """Create or update the payment record owned by a paid/partial entry and link it."""
    db_record = None
    if entry.associated_payment_record_id:
        db_record = get_payment_record(db, entry.associated_payment_record_id, entry.company_id, for_update=True)
        if db_record is None:
            logger.warning(f"Ledger entry {entry.id} pointed at missing payment record {entry.associated_payment_record_id}; creating a new one")

    now = local_now()
    if db_record is None:
        db_record = PaymentRecord(
            company_id=entry.company_id,
            created_at=now,
            created_by_uid=actor.uid,
            created_by_name=actor.display_name,
        )
        db.add(db_record)
    else:
        db_record.updated_at = now
        db_record.updated_by_uid = actor.uid
        db_record.updated_by_name = actor.display_name

    db_record.type = record_type_for(entry.type)
    db_record.related_entity_id = entry.entity_id
    db_record.related_entity_name = entry.entity_name
    db_record.payment_date = entry.date
    db_record.amount_paid = entry.amount_paid_now
    db_record.method = entry.payment_method
    db_record.status = PaymentRecordStatus.COMPLETED if entry.payment_status == PaymentStatus.PAID else PaymentRecordStatus.PARTIAL
    db_record.ledger_entry_id = entry.id
    db_record.original_invoice_amount = entry.grand_total
    db_record.remaining_balance_on_invoice = entry.remaining_amount
    db_record.notes = f"From Ledger: {entry.notes or ''}".strip()
    db.flush()

    entry.associated_payment_record_id = db_record.id
    return db_record

def soft_delete(db: Session, db_record: PaymentRecord, actor: ActorContext):
    db_record.deleted_at = local_now()
    db_record.deleted_by = actor.uid

def delete_for_entry(db: Session, entry: LedgerEntry, actor: ActorContext) -> Optional[int]:
    """Remove the entry's own payment record, if any, and clear the link."""
    record_id = entry.associated_payment_record_id
    if not record_id:
        return None
    db_record = get_payment_record(db, record_id, entry.company_id, for_update=True)
    if db_record is not None:
        soft_delete(db, db_record, actor)
    entry.associated_payment_record_id = None
    return record_id

def sync_invoice_balance(db: Session, entry: LedgerEntry):
    """Keep the invoice-time record's remaining balance in step with later settlements."""
    if not entry.associated_payment_record_id:
        return
    db_record = get_payment_record(db, entry.associated_payment_record_id, entry.company_id, for_update=True)
    if db_record is not None and db_record.ledger_entry_id == entry.id:
        db_record.remaining_balance_on_invoice = entry.remaining_amount

def create_settlement(db: Session, payment_entry: LedgerEntry, allocations: List[Tuple[LedgerEntry, Decimal]],
                      actor: ActorContext) -> PaymentRecord:
    """Standalone payment record paying down the given entries."""
    total_allocated = sum((amount for _, amount in allocations), Decimal("0"))
    if total_allocated > payment_entry.amount_paid_now:
        raise ValidationError(
            f"Allocated {total_allocated} exceeds the payment amount {payment_entry.amount_paid_now}"
        )

    record_type = record_type_for(payment_entry.type)
    db_record = PaymentRecord(
        type=record_type,
        related_entity_id=payment_entry.entity_id,
        related_entity_name=payment_entry.entity_name,
        payment_date=payment_entry.date,
        amount_paid=payment_entry.amount_paid_now,
        method=payment_entry.payment_method,
        status=PaymentRecordStatus.RECEIVED if record_type == PaymentRecordType.CUSTOMER else PaymentRecordStatus.SENT,
        ledger_entry_id=payment_entry.id,
        notes=payment_entry.notes,
        company_id=payment_entry.company_id,
        created_at=local_now(),
        created_by_uid=actor.uid,
        created_by_name=actor.display_name,
    )
    db_record.allocations = [
        PaymentAllocation(ledger_entry_id=entry.id, amount=amount, company_id=payment_entry.company_id)
        for entry, amount in allocations
    ]
    db.add(db_record)
    db.flush()
    payment_entry.associated_payment_record_id = db_record.id
    return db_record

def list_for_entity(db: Session, company_id: str, entity_id: Optional[int] = None,
                    record_type: Optional[PaymentRecordType] = None, skip: int = 0, limit: int = 100):
    query = db.query(PaymentRecord).options(selectinload(PaymentRecord.allocations)).filter(
        PaymentRecord.company_id == company_id
    )
    if entity_id is not None:
        query = query.filter(PaymentRecord.related_entity_id == entity_id)
    if record_type is not None:
        query = query.filter(PaymentRecord.type == record_type)
    return query.order_by(PaymentRecord.payment_date.desc(), PaymentRecord.id.desc()).offset(skip).limit(limit).all()

def has_active_allocations(db: Session, ledger_entry_id: int) -> bool:
    """True when a live settlement still pays down this entry."""
    row = db.query(PaymentAllocation.id).join(PaymentRecord).filter(
        PaymentAllocation.ledger_entry_id == ledger_entry_id,
        PaymentRecord.deleted_at.is_(None)
    ).first()
    return row is not None
