"""
Read side of the ledger: the daily list, outstanding balances and the day summary.

Store managers see every sale but only the purchases they recorded themselves.
"""

import logging
from datetime import date
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session, selectinload

from models.ledger_entries import EntryPurpose, LedgerEntry, LedgerEntryType, PaymentStatus
from models.ledger_entry_items import LedgerEntryItem
from models.payment_records import PaymentRecord, PaymentRecordType
from schemas.actor import ActorContext
from schemas.ledger_entries import DailySummary
from utils.errors import IndexRequired, LedgerEntryNotFound, StoreUnavailable, ValidationError
from utils.money import ZERO

logger = logging.getLogger("ledger_reports")

TABS = {
    "all": None,
    "customers": LedgerEntryType.SALE,
    "sellers": LedgerEntryType.PURCHASE,
}


def _run(query_name: str, query):
    """Execute a report query, translating store failures into application errors."""
    try:
        return query.all()
    except (OperationalError, ProgrammingError) as e:
        detail = str(getattr(e, "orig", e))
        if "index" in detail.lower():
            logger.error(f"Query '{query_name}' needs a missing index: {detail}")
            raise IndexRequired(query_name, detail) from e
        if isinstance(e, OperationalError):
            logger.error(f"Query '{query_name}' failed: {detail}")
            raise StoreUnavailable(detail) from e
        raise


def _visible_entries(db: Session, actor: ActorContext):
    query = db.query(LedgerEntry).filter(LedgerEntry.company_id == actor.company_id)
    if not actor.is_privileged:
        query = query.filter(or_(
            LedgerEntry.type == LedgerEntryType.SALE,
            LedgerEntry.created_by_uid == actor.uid
        ))
    return query


def is_visible_to(actor: ActorContext, entry: LedgerEntry) -> bool:
    return actor.is_privileged or entry.type == LedgerEntryType.SALE or entry.created_by_uid == actor.uid


def get_visible_entry(db: Session, actor: ActorContext, entry_id: int) -> LedgerEntry:
    """Load one entry, treating purchases the actor may not see as missing."""
    db_entry = _visible_entries(db, actor).filter(LedgerEntry.id == entry_id).first()
    if db_entry is None:
        raise LedgerEntryNotFound(entry_id)
    return db_entry


def list_entries_for_date(db: Session, actor: ActorContext, entry_date: date, tab: str = "all",
                          search: Optional[str] = None, skip: int = 0, limit: int = 100):
    if tab not in TABS:
        raise ValidationError(f"Unknown tab '{tab}'", details={"allowed": sorted(TABS)})

    query = _visible_entries(db, actor).filter(LedgerEntry.date == entry_date)
    if TABS[tab] is not None:
        query = query.filter(LedgerEntry.type == TABS[tab])
    if search and search.strip():
        term = f"%{search.strip()}%"
        query = query.filter(or_(
            LedgerEntry.entity_name.ilike(term),
            LedgerEntry.notes.ilike(term),
            LedgerEntry.payment_method.ilike(term),
            LedgerEntry.items.any(LedgerEntryItem.product_name.ilike(term)),
        ))
    query = query.options(selectinload(LedgerEntry.items)).order_by(
        LedgerEntry.created_at.desc(), LedgerEntry.id.desc()
    ).offset(skip).limit(limit)
    return _run("ledger_entries_for_date", query)


def list_outstanding_entries(db: Session, actor: ActorContext, entity_id: int, entry_type: LedgerEntryType):
    """Pending and partial invoices of one customer/seller, oldest first."""
    query = _visible_entries(db, actor).filter(
        LedgerEntry.entity_id == entity_id,
        LedgerEntry.type == entry_type,
        LedgerEntry.entry_purpose == EntryPurpose.LEDGER_RECORD,
        LedgerEntry.payment_status.in_([PaymentStatus.PENDING, PaymentStatus.PARTIAL]),
    ).options(selectinload(LedgerEntry.items)).order_by(LedgerEntry.date.asc(), LedgerEntry.id.asc())
    return _run("outstanding_ledger_entries", query)


def _visible_payments(db: Session, actor: ActorContext, payment_date: date):
    query = db.query(PaymentRecord).filter(
        PaymentRecord.company_id == actor.company_id,
        PaymentRecord.payment_date == payment_date
    )
    if not actor.is_privileged:
        query = query.filter(or_(
            PaymentRecord.type == PaymentRecordType.CUSTOMER,
            PaymentRecord.created_by_uid == actor.uid
        ))
    return query


def daily_summary(db: Session, actor: ActorContext, entry_date: date) -> DailySummary:
    """Invoice counts and totals for the day, plus the money that actually moved that day."""
    entries = _run("daily_summary", _visible_entries(db, actor).filter(
        LedgerEntry.date == entry_date,
        LedgerEntry.entry_purpose == EntryPurpose.LEDGER_RECORD
    ))
    payments = _run("daily_payments", _visible_payments(db, actor, entry_date))

    sales = [entry for entry in entries if entry.type == LedgerEntryType.SALE]
    purchases = [entry for entry in entries if entry.type == LedgerEntryType.PURCHASE]
    return DailySummary(
        date=entry_date,
        sales_count=len(sales),
        sales_total=sum((entry.grand_total for entry in sales), ZERO),
        sales_outstanding=sum((entry.remaining_amount for entry in sales), ZERO),
        purchases_count=len(purchases),
        purchases_total=sum((entry.grand_total for entry in purchases), ZERO),
        purchases_outstanding=sum((entry.remaining_amount for entry in purchases), ZERO),
        amount_received=sum((p.amount_paid for p in payments if p.type == PaymentRecordType.CUSTOMER), ZERO),
        amount_paid_out=sum((p.amount_paid for p in payments if p.type == PaymentRecordType.SUPPLIER), ZERO),
    )
