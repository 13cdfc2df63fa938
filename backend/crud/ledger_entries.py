"""
Ledger transaction engine.

Every sale, purchase and payment goes through here. One commit computes the
totals, moves product stock, keeps the paid/pending/partial balance consistent
and links (or unlinks) the entry's payment record, all in a single transaction.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from config import TAX_RATE, UNKNOWN_CUSTOMER_NAME, UNKNOWN_SELLER_NAME
from crud.audit_log import create_audit_log
from crud.business_partners import lookup_by_id
from crud import payment_records as crud_payment_records
from crud.payment_applications import reverse_settlement, stage_payment_application
from crud.products import lock_products, update_stock
from database import atomic
from models.ledger_entries import EntityType, EntryPurpose, LedgerEntry, LedgerEntryType, PaymentStatus
from models.ledger_entry_items import LedgerEntryItem
from models.update_requests import UpdateRequest, UpdateRequestStatus
from schemas.actor import ActorContext
from schemas.audit_log import AuditLogCreate
from schemas.ledger_entries import LedgerEntry as LedgerEntrySchema
from schemas.ledger_entries import LedgerEntryCreate
from schemas.payment_applications import PaymentApplicationCreate
from utils import local_now, sqlalchemy_to_dict
from utils.errors import (
    InsufficientStock, LedgerEntryNotFound, PermissionDenied, ProductNotFound, ValidationError
)
from utils.money import ZERO, to_money

logger = logging.getLogger("ledger_entries")

ENTITY_TYPES_FOR = {
    LedgerEntryType.SALE: (EntityType.CUSTOMER, EntityType.UNKNOWN_CUSTOMER),
    LedgerEntryType.PURCHASE: (EntityType.SELLER, EntityType.UNKNOWN_SELLER),
}


def compute_totals(line_totals: Iterable[Decimal], apply_gst: bool) -> Tuple[Decimal, Decimal, Decimal]:
    """Return (sub_total, tax_amount, grand_total)."""
    sub_total = to_money(sum(line_totals, ZERO))
    tax_amount = to_money(sub_total * TAX_RATE) if apply_gst else ZERO
    return sub_total, tax_amount, sub_total + tax_amount


def compute_payment_split(payment_status: PaymentStatus, grand_total: Decimal,
                          amount_paid_now: Optional[Decimal]) -> Tuple[Decimal, Decimal]:
    """Return (amount_paid_now, remaining_amount) for the requested status."""
    if payment_status == PaymentStatus.PAID:
        return grand_total, ZERO
    if payment_status == PaymentStatus.PENDING:
        return ZERO, grand_total
    paid = to_money(amount_paid_now)
    if not (ZERO < paid < grand_total):
        raise ValidationError(
            "A partial payment must be more than zero and less than the grand total",
            details={"amount_paid_now": str(paid), "grand_total": str(grand_total)}
        )
    return paid, grand_total - paid


def stock_effect(entry_type: LedgerEntryType, quantity: int) -> int:
    """Sales take stock out, purchases put it back."""
    return -quantity if entry_type == LedgerEntryType.SALE else quantity


def can_mutate_directly(actor: ActorContext, entry: LedgerEntry) -> bool:
    """Admins may change anything; store managers only their own still-pending entries."""
    if actor.is_privileged:
        return True
    return entry.created_by_uid == actor.uid and entry.payment_status == PaymentStatus.PENDING


def get_ledger_entry(db: Session, entry_id: int, company_id: str, for_update: bool = False) -> LedgerEntry:
    query = db.query(LedgerEntry).filter(LedgerEntry.id == entry_id, LedgerEntry.company_id == company_id)
    if for_update:
        query = query.with_for_update()
    db_entry = query.first()
    if db_entry is None:
        raise LedgerEntryNotFound(entry_id)
    return db_entry


def ledger_entry_snapshot(entry: LedgerEntry) -> dict:
    return LedgerEntrySchema.model_validate(entry).model_dump(mode="json")


def close_pending_requests(db: Session, entry_id: int, actor: ActorContext, reason: str):
    """Reject any pending change request for an entry that was just changed directly."""
    pending = db.query(UpdateRequest).filter(
        UpdateRequest.original_ledger_entry_id == entry_id,
        UpdateRequest.status == UpdateRequestStatus.PENDING
    ).with_for_update().all()
    now = local_now()
    for db_request in pending:
        db_request.status = UpdateRequestStatus.REJECTED
        db_request.review_note = reason
        db_request.reviewed_by_uid = actor.uid
        db_request.reviewed_by_name = actor.display_name
        db_request.reviewed_at = now
        db_request.updated_at = now
        db_request.updated_by_uid = actor.uid
        db_request.updated_by_name = actor.display_name
        logger.info(f"Update request (ID: {db_request.id}) closed: {reason}")
    return pending


def _resolve_entity(db: Session, entry_in: LedgerEntryCreate, company_id: str) -> Tuple[Optional[int], str]:
    allowed = ENTITY_TYPES_FOR[entry_in.type]
    if entry_in.entity_type not in allowed:
        raise ValidationError(
            f"A {entry_in.type.value} must be recorded against a {' or '.join(t.value for t in allowed)}",
            details={"type": entry_in.type.value, "entity_type": entry_in.entity_type.value}
        )

    if entry_in.entity_type == EntityType.UNKNOWN_CUSTOMER:
        return None, (entry_in.entity_name or "").strip() or UNKNOWN_CUSTOMER_NAME
    if entry_in.entity_type == EntityType.UNKNOWN_SELLER:
        return None, (entry_in.entity_name or "").strip() or UNKNOWN_SELLER_NAME

    if entry_in.entity_id is None:
        raise ValidationError(f"Select a {entry_in.entity_type.value} for this entry")
    partner = lookup_by_id(db, entry_in.entity_id, company_id)
    if entry_in.entity_type == EntityType.CUSTOMER and not partner.is_customer:
        raise ValidationError(f"'{partner.name}' is not a customer", details={"entity_id": partner.id})
    if entry_in.entity_type == EntityType.SELLER and not partner.is_seller:
        raise ValidationError(f"'{partner.name}' is not a seller", details={"entity_id": partner.id})
    return partner.id, partner.name


def _as_payment_application(entry_in: LedgerEntryCreate) -> PaymentApplicationCreate:
    if entry_in.entity_id is None:
        raise ValidationError("A payment must be recorded against a named customer or seller")
    try:
        return PaymentApplicationCreate(
            entity_id=entry_in.entity_id,
            type=entry_in.type,
            payment_amount=entry_in.payment_amount,
            method=entry_in.payment_method or "",
            selected_entry_ids=entry_in.settle_entry_ids,
            payment_date=entry_in.date,
            notes=entry_in.notes,
        )
    except PydanticValidationError as e:
        raise ValidationError(
            "A payment needs an amount, a method and at least one entry to settle",
            details={"reason": str(e)}
        ) from e


def _apply_stock_deltas(db: Session, deltas: Dict[int, int], products: dict, actor: ActorContext,
                        change_type: str, entry_id: int):
    # Check every product before touching any of them
    for product_id, delta in sorted(deltas.items()):
        product = products[product_id]
        if product.stock + delta < 0:
            raise InsufficientStock(product.name, product.stock, -delta)
    for product_id, delta in sorted(deltas.items()):
        if delta:
            product = products[product_id]
            update_stock(db, product, product.stock + delta, actor, change_type,
                         note=f"Ledger entry {entry_id}", ledger_entry_id=entry_id)


def stage_ledger_entry(db: Session, entry_in: LedgerEntryCreate, actor: ActorContext,
                       entry_id: Optional[int] = None, close_pending: bool = True) -> LedgerEntry:
    """Create (or, with entry_id, replace) a ledger entry on the session without committing.

    A direct edit closes any change request still pending for the entry;
    approving a request passes close_pending=False.
    """
    if entry_in.entry_purpose == EntryPurpose.PAYMENT_RECORD:
        if entry_id is not None:
            raise ValidationError("Payments cannot be edited. Delete the payment and record it again.")
        return stage_payment_application(db, _as_payment_application(entry_in), actor).ledger_entry

    existing = None
    if entry_id is not None:
        existing = get_ledger_entry(db, entry_id, actor.company_id, for_update=True)
        if not can_mutate_directly(actor, existing):
            raise PermissionDenied("Only an admin can change this ledger entry")
        if existing.entry_purpose == EntryPurpose.PAYMENT_RECORD:
            raise ValidationError("Payments cannot be edited. Delete the payment and record it again.")
        if crud_payment_records.has_active_allocations(db, existing.id):
            raise ValidationError(
                "This entry has been paid down by a later payment. Delete that payment before changing the entry.",
                details={"ledger_entry_id": existing.id}
            )
        if close_pending:
            close_pending_requests(db, existing.id, actor, "Ledger entry was edited directly before this request was reviewed")

    if not entry_in.items:
        raise ValidationError("A ledger entry must contain at least one item")

    entity_id, entity_name = _resolve_entity(db, entry_in, actor.company_id)

    prior_items = list(existing.items) if existing is not None else []
    product_ids = {item.product_id for item in entry_in.items} | {item.product_id for item in prior_items}
    products = lock_products(db, product_ids, actor.company_id)
    prior_prices = {item.product_id: item.unit_price for item in prior_items}

    new_items = []
    for position, item in enumerate(entry_in.items):
        product = products.get(item.product_id)
        if product is None:
            raise ProductNotFound(item.product_id)
        unit_price = product.numeric_price
        if item.unit_price is not None:
            unit_price = to_money(item.unit_price)
            if unit_price not in (to_money(product.numeric_price), prior_prices.get(product.id)) and not actor.is_privileged:
                raise PermissionDenied(f"Only an admin can change the price of '{product.name}'")
        unit_price = to_money(unit_price)
        new_items.append(LedgerEntryItem(
            position=position,
            product_id=product.id,
            product_name=product.name,
            quantity=item.quantity,
            unit_price=unit_price,
            total_price=to_money(unit_price * item.quantity),
            unit_of_measure=product.unit_of_measure,
            company_id=actor.company_id,
        ))

    deltas: Dict[int, int] = {}
    for item in prior_items:
        if item.product_id not in products:
            logger.warning(
                f"Product {item.product_id} on ledger entry {existing.id} no longer exists; "
                f"skipping its stock reversal"
            )
            continue
        deltas[item.product_id] = deltas.get(item.product_id, 0) - stock_effect(existing.type, item.quantity)
    for item in new_items:
        deltas[item.product_id] = deltas.get(item.product_id, 0) + stock_effect(entry_in.type, item.quantity)

    sub_total, tax_amount, grand_total = compute_totals((item.total_price for item in new_items), entry_in.apply_gst)
    amount_paid_now, remaining_amount = compute_payment_split(entry_in.payment_status, grand_total, entry_in.amount_paid_now)
    payment_method = (entry_in.payment_method or "").strip() or None
    if entry_in.payment_status in (PaymentStatus.PAID, PaymentStatus.PARTIAL) and not payment_method:
        raise ValidationError("Select a payment method for a paid or partially paid entry")

    now = local_now()
    old_values = None
    if existing is not None:
        old_values = sqlalchemy_to_dict(existing)
        old_values["items"] = [sqlalchemy_to_dict(item) for item in prior_items]
        db_entry = existing
        db_entry.items = new_items
        db_entry.updated_at = now
        db_entry.updated_by_uid = actor.uid
        db_entry.updated_by_name = actor.display_name
    else:
        db_entry = LedgerEntry(
            entry_purpose=EntryPurpose.LEDGER_RECORD,
            items=new_items,
            company_id=actor.company_id,
            created_at=now,
            created_by_uid=actor.uid,
            created_by_name=actor.display_name,
        )
        db.add(db_entry)

    db_entry.date = entry_in.date
    db_entry.type = entry_in.type
    db_entry.entity_type = entry_in.entity_type
    db_entry.entity_id = entity_id
    db_entry.entity_name = entity_name
    db_entry.apply_gst = entry_in.apply_gst
    db_entry.sub_total = sub_total
    db_entry.tax_amount = tax_amount
    db_entry.grand_total = grand_total
    db_entry.payment_status = entry_in.payment_status
    db_entry.payment_method = payment_method
    db_entry.amount_paid_now = amount_paid_now
    db_entry.remaining_amount = remaining_amount
    db_entry.notes = entry_in.notes
    db.flush()

    change_type = "ledger_edit" if existing is not None else entry_in.type.value
    _apply_stock_deltas(db, deltas, products, actor, change_type, db_entry.id)

    if amount_paid_now > 0:
        crud_payment_records.upsert_for_entry(db, db_entry, actor)
    else:
        crud_payment_records.delete_for_entry(db, db_entry, actor)

    new_values = sqlalchemy_to_dict(db_entry)
    new_values["items"] = [sqlalchemy_to_dict(item) for item in new_items]
    create_audit_log(db, AuditLogCreate(
        table_name="ledger_entries",
        record_id=db_entry.id,
        changed_by=actor.uid,
        action="UPDATE" if existing is not None else "CREATE",
        old_values=old_values,
        new_values=new_values,
        company_id=actor.company_id,
    ))
    return db_entry


def commit_ledger_entry(db: Session, entry_in: LedgerEntryCreate, actor: ActorContext,
                        entry_id: Optional[int] = None) -> LedgerEntry:
    db_entry = atomic(db, stage_ledger_entry, entry_in, actor, entry_id=entry_id)
    action = "updated" if entry_id is not None else "created"
    logger.info(
        f"Ledger entry (ID: {db_entry.id}) {action}: {db_entry.type.value} of {db_entry.grand_total} "
        f"({db_entry.payment_status.value}) by user {actor.uid} for company {actor.company_id}"
    )
    return db_entry


def stage_ledger_entry_removal(db: Session, entry_id: int, actor: ActorContext,
                               close_pending: bool = True) -> Optional[LedgerEntry]:
    """Reverse an entry's stock and payment effects and soft-delete it. Unknown ids are a no-op."""
    db_entry = db.query(LedgerEntry).filter(
        LedgerEntry.id == entry_id,
        LedgerEntry.company_id == actor.company_id
    ).with_for_update().first()
    if db_entry is None:
        logger.info(f"Ledger entry {entry_id} is already gone; nothing to delete")
        return None
    if not can_mutate_directly(actor, db_entry):
        raise PermissionDenied("Only an admin can delete this ledger entry")

    old_values = sqlalchemy_to_dict(db_entry)
    old_values["items"] = [sqlalchemy_to_dict(item) for item in db_entry.items]

    if db_entry.entry_purpose == EntryPurpose.PAYMENT_RECORD:
        old_values["restored_ledger_entry_ids"] = reverse_settlement(db, db_entry, actor)
    else:
        if crud_payment_records.has_active_allocations(db, db_entry.id):
            raise ValidationError(
                "This entry has been paid down by a later payment. Delete that payment first.",
                details={"ledger_entry_id": db_entry.id}
            )
        products = lock_products(db, {item.product_id for item in db_entry.items}, actor.company_id)
        deltas: Dict[int, int] = {}
        for item in db_entry.items:
            if item.product_id not in products:
                logger.warning(
                    f"Product {item.product_id} on ledger entry {db_entry.id} no longer exists; "
                    f"skipping its stock reversal"
                )
                continue
            deltas[item.product_id] = deltas.get(item.product_id, 0) - stock_effect(db_entry.type, item.quantity)
        _apply_stock_deltas(db, deltas, products, actor, "ledger_delete", db_entry.id)
        crud_payment_records.delete_for_entry(db, db_entry, actor)

    if close_pending:
        close_pending_requests(db, db_entry.id, actor, "Ledger entry was deleted before this request was reviewed")
    db_entry.deleted_at = local_now()
    db_entry.deleted_by = actor.uid
    create_audit_log(db, AuditLogCreate(
        table_name="ledger_entries",
        record_id=db_entry.id,
        changed_by=actor.uid,
        action="DELETE",
        old_values=old_values,
        company_id=actor.company_id,
    ))
    db.flush()
    return db_entry


def delete_ledger_entry(db: Session, entry_id: int, actor: ActorContext) -> Optional[LedgerEntry]:
    db_entry = atomic(db, stage_ledger_entry_removal, entry_id, actor)
    if db_entry is not None:
        logger.info(f"Ledger entry (ID: {entry_id}) deleted by user {actor.uid} for company {actor.company_id}")
    return db_entry
