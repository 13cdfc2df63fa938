"""
Payment applications: one payment paying down several earlier pending or
partial ledger entries of the same customer/seller.
"""

import logging
from dataclasses import dataclass, field
from typing import List
from sqlalchemy.orm import Session

from crud.audit_log import create_audit_log
from crud.business_partners import lookup_by_id
from crud import payment_records as crud_payment_records
from crud.ledger_reports import is_visible_to
from database import atomic
from models.ledger_entries import EntityType, EntryPurpose, LedgerEntry, LedgerEntryType, PaymentStatus
from models.payment_records import PaymentRecord
from schemas.actor import ActorContext
from schemas.audit_log import AuditLogCreate
from schemas.payment_applications import PaymentApplicationCreate
from utils import local_now, sqlalchemy_to_dict
from utils.errors import LedgerEntryNotFound, ValidationError
from utils.money import ZERO, to_money

logger = logging.getLogger("payment_applications")

OPEN_STATUSES = (PaymentStatus.PENDING, PaymentStatus.PARTIAL)


@dataclass
class PaymentApplicationOutcome:
    ledger_entry: LedgerEntry
    payment_record: PaymentRecord
    settled: List[dict] = field(default_factory=list)


def _check_partner_role(partner, entry_type: LedgerEntryType):
    if entry_type == LedgerEntryType.SALE and not partner.is_customer:
        raise ValidationError(f"'{partner.name}' is not a customer", details={"entity_id": partner.id})
    if entry_type == LedgerEntryType.PURCHASE and not partner.is_seller:
        raise ValidationError(f"'{partner.name}' is not a seller", details={"entity_id": partner.id})


def _load_open_entries(db: Session, application_in: PaymentApplicationCreate, actor: ActorContext):
    ids = application_in.selected_entry_ids
    if len(set(ids)) != len(ids):
        raise ValidationError("The same ledger entry was selected more than once", details={"selected_entry_ids": ids})

    rows = db.query(LedgerEntry).filter(
        LedgerEntry.id.in_(ids),
        LedgerEntry.company_id == actor.company_id
    ).order_by(LedgerEntry.id).with_for_update().all()
    by_id = {row.id: row for row in rows}

    entries = []
    for entry_id in ids:
        entry = by_id.get(entry_id)
        if entry is None:
            raise LedgerEntryNotFound(entry_id)
        if not is_visible_to(actor, entry):
            # Purchases hidden from the actor are treated as missing
            logger.warning(f"User {actor.uid} tried to settle ledger entry {entry_id} they cannot see")
            raise LedgerEntryNotFound(entry_id)
        if entry.entity_id != application_in.entity_id or entry.type != application_in.type:
            raise ValidationError(
                f"Ledger entry {entry_id} does not belong to this {application_in.type.value} account",
                details={"ledger_entry_id": entry_id}
            )
        if entry.entry_purpose != EntryPurpose.LEDGER_RECORD:
            raise ValidationError(f"Ledger entry {entry_id} is a payment, not an invoice", details={"ledger_entry_id": entry_id})
        if entry.payment_status not in OPEN_STATUSES or entry.remaining_amount <= 0:
            raise ValidationError(f"Ledger entry {entry_id} has nothing left to pay", details={"ledger_entry_id": entry_id})
        entries.append(entry)
    return entries


def stage_payment_application(db: Session, application_in: PaymentApplicationCreate, actor: ActorContext) -> PaymentApplicationOutcome:
    """Apply the payment to the selected entries in the order given. Nothing is committed here."""
    partner = lookup_by_id(db, application_in.entity_id, actor.company_id)
    _check_partner_role(partner, application_in.type)
    entries = _load_open_entries(db, application_in, actor)

    payment_amount = to_money(application_in.payment_amount)
    outstanding = sum((entry.remaining_amount for entry in entries), ZERO)
    if payment_amount > outstanding:
        raise ValidationError(
            f"Payment of {payment_amount} is more than the {outstanding} outstanding on the selected entries",
            details={"payment_amount": str(payment_amount), "outstanding": str(outstanding)}
        )

    now = local_now()
    left_to_apply = payment_amount
    allocations = []
    settled = []
    for entry in entries:
        if left_to_apply <= 0:
            break
        applied = min(left_to_apply, entry.remaining_amount)
        entry.amount_paid_now = entry.amount_paid_now + applied
        entry.remaining_amount = entry.remaining_amount - applied
        entry.payment_status = PaymentStatus.PAID if entry.remaining_amount == 0 else PaymentStatus.PARTIAL
        if not entry.payment_method:
            entry.payment_method = application_in.method
        entry.updated_at = now
        entry.updated_by_uid = actor.uid
        entry.updated_by_name = actor.display_name
        crud_payment_records.sync_invoice_balance(db, entry)

        left_to_apply -= applied
        allocations.append((entry, applied))
        settled.append({
            "ledger_entry_id": entry.id,
            "amount_applied": applied,
            "remaining_amount": entry.remaining_amount,
            "payment_status": entry.payment_status,
        })

    payment_entry = LedgerEntry(
        date=application_in.payment_date or now.date(),
        type=application_in.type,
        entry_purpose=EntryPurpose.PAYMENT_RECORD,
        entity_type=EntityType.CUSTOMER if application_in.type == LedgerEntryType.SALE else EntityType.SELLER,
        entity_id=partner.id,
        entity_name=partner.name,
        apply_gst=False,
        sub_total=payment_amount,
        tax_amount=ZERO,
        grand_total=payment_amount,
        payment_status=PaymentStatus.PAID,
        payment_method=application_in.method,
        amount_paid_now=payment_amount,
        remaining_amount=ZERO,
        notes=application_in.notes,
        company_id=actor.company_id,
        created_at=now,
        created_by_uid=actor.uid,
        created_by_name=actor.display_name,
    )
    db.add(payment_entry)
    db.flush()

    db_record = crud_payment_records.create_settlement(db, payment_entry, allocations, actor)
    create_audit_log(db, AuditLogCreate(
        table_name="ledger_entries",
        record_id=payment_entry.id,
        changed_by=actor.uid,
        action="PAYMENT_APPLIED",
        new_values={**sqlalchemy_to_dict(payment_entry), "settled_ledger_entry_ids": [e.id for e, _ in allocations]},
        company_id=actor.company_id,
    ))
    return PaymentApplicationOutcome(ledger_entry=payment_entry, payment_record=db_record, settled=settled)


def commit_payment_application(db: Session, application_in: PaymentApplicationCreate, actor: ActorContext) -> PaymentApplicationOutcome:
    outcome = atomic(db, stage_payment_application, application_in, actor)
    logger.info(
        f"Payment of {outcome.ledger_entry.grand_total} applied to entries "
        f"{[s['ledger_entry_id'] for s in outcome.settled]} of partner {application_in.entity_id} "
        f"by user {actor.uid} for company {actor.company_id}"
    )
    return outcome


def reverse_settlement(db: Session, payment_entry: LedgerEntry, actor: ActorContext) -> List[int]:
    """Give the settled entries their balance back and remove the settlement record.

    Returns the ids of the entries whose balance was restored.
    """
    record_id = payment_entry.associated_payment_record_id
    db_record = None
    if record_id:
        db_record = crud_payment_records.get_payment_record(db, record_id, payment_entry.company_id, for_update=True)
    if db_record is None:
        logger.warning(f"Payment entry {payment_entry.id} has no live settlement record; nothing to restore")
        payment_entry.associated_payment_record_id = None
        return []

    amounts = {}
    for allocation in db_record.allocations:
        amounts[allocation.ledger_entry_id] = amounts.get(allocation.ledger_entry_id, ZERO) + allocation.amount

    restored = []
    now = local_now()
    if amounts:
        settled_entries = db.query(LedgerEntry).filter(
            LedgerEntry.id.in_(list(amounts)),
            LedgerEntry.company_id == payment_entry.company_id
        ).order_by(LedgerEntry.id).with_for_update().all()
        found = {entry.id for entry in settled_entries}
        for missing_id in sorted(set(amounts) - found):
            logger.warning(f"Settled ledger entry {missing_id} no longer exists; skipping balance restore")
        for entry in settled_entries:
            amount = amounts[entry.id]
            entry.amount_paid_now = to_money(max(entry.amount_paid_now - amount, ZERO))
            entry.remaining_amount = to_money(entry.grand_total - entry.amount_paid_now)
            entry.payment_status = PaymentStatus.PENDING if entry.amount_paid_now == 0 else PaymentStatus.PARTIAL
            entry.updated_at = now
            entry.updated_by_uid = actor.uid
            entry.updated_by_name = actor.display_name
            crud_payment_records.sync_invoice_balance(db, entry)
            restored.append(entry.id)

    crud_payment_records.soft_delete(db, db_record, actor)
    payment_entry.associated_payment_record_id = None
    return restored
