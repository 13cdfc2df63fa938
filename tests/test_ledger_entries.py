from decimal import Decimal

import pytest

from conftest import ADMIN, MANAGER, TODAY, purchase, sale, stock_of
from crud.audit_log import get_audit_logs
from crud.ledger_entries import (
    commit_ledger_entry, compute_totals, delete_ledger_entry, get_ledger_entry
)
from crud.payment_records import get_payment_record
from models.ledger_entries import EntityType, LedgerEntry, LedgerEntryType, PaymentStatus
from models.payment_records import PaymentRecord, PaymentRecordStatus
from models.product_stock_audit import ProductStockAudit
from schemas.ledger_entries import LedgerEntryCreate, LedgerItemCreate
from utils.errors import (
    EntityNotFound, InsufficientStock, LedgerEntryNotFound, PermissionDenied, ProductNotFound, ValidationError
)


def test_sale_totals_without_gst(db, catalog, partners):
    entry = commit_ledger_entry(db, sale(partners["customer"], [(catalog["widget"], 5)]), ADMIN)

    assert entry.sub_total == Decimal("500.00")
    assert entry.tax_amount == Decimal("0.00")
    assert entry.grand_total == Decimal("500.00")
    assert entry.payment_status == PaymentStatus.PAID
    assert entry.amount_paid_now == Decimal("500.00")
    assert entry.remaining_amount == Decimal("0.00")
    assert entry.entity_name == "Ravi Stores"
    assert entry.created_by_uid == ADMIN.uid
    assert stock_of(db, catalog["widget"]) == 45


def test_sale_totals_with_gst(db, catalog, partners):
    entry = commit_ledger_entry(db, sale(partners["customer"], [(catalog["widget"], 3)], apply_gst=True), ADMIN)

    assert entry.sub_total == Decimal("300.00")
    assert entry.tax_amount == Decimal("54.00")
    assert entry.grand_total == Decimal("354.00")


def test_tax_rounds_half_up():
    sub_total, tax_amount, grand_total = compute_totals([Decimal("0.25")], True)
    assert tax_amount == Decimal("0.05")
    assert grand_total == Decimal("0.30")


def test_items_keep_catalog_snapshot(db, catalog, partners):
    entry = commit_ledger_entry(
        db, sale(partners["customer"], [(catalog["gadget"], 2), (catalog["widget"], 1)]), ADMIN
    )

    assert [item.product_name for item in entry.items] == ["Gadget", "Widget"]
    assert entry.items[0].unit_price == Decimal("250.00")
    assert entry.items[0].total_price == Decimal("500.00")
    assert entry.items[0].unit_of_measure == "box"


def test_paid_sale_links_completed_payment_record(db, catalog, partners):
    entry = commit_ledger_entry(db, sale(partners["customer"], [(catalog["widget"], 2)]), ADMIN)

    record = get_payment_record(db, entry.associated_payment_record_id, ADMIN.company_id)
    assert record is not None
    assert record.status == PaymentRecordStatus.COMPLETED
    assert record.amount_paid == Decimal("200.00")
    assert record.ledger_entry_id == entry.id
    assert record.method == "Cash"


def test_partial_sale_tracks_balance(db, catalog, partners):
    entry = commit_ledger_entry(
        db,
        sale(partners["customer"], [(catalog["widget"], 10)], payment_status=PaymentStatus.PARTIAL,
             amount_paid_now=Decimal("400")),
        ADMIN,
    )

    assert entry.amount_paid_now == Decimal("400.00")
    assert entry.remaining_amount == Decimal("600.00")
    assert entry.amount_paid_now + entry.remaining_amount == entry.grand_total
    record = get_payment_record(db, entry.associated_payment_record_id, ADMIN.company_id)
    assert record.status == PaymentRecordStatus.PARTIAL
    assert record.remaining_balance_on_invoice == Decimal("600.00")


def test_pending_sale_has_no_payment_record(db, catalog, partners):
    entry = commit_ledger_entry(
        db, sale(partners["customer"], [(catalog["widget"], 1)], payment_status=PaymentStatus.PENDING), ADMIN
    )

    assert entry.associated_payment_record_id is None
    assert entry.amount_paid_now == Decimal("0.00")
    assert entry.remaining_amount == Decimal("100.00")
    assert db.query(PaymentRecord).count() == 0


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("100"), Decimal("150"), None])
def test_partial_amount_must_be_inside_total(db, catalog, partners, amount):
    entry_in = sale(partners["customer"], [(catalog["widget"], 1)], payment_status=PaymentStatus.PARTIAL,
                    amount_paid_now=amount)
    with pytest.raises(ValidationError):
        commit_ledger_entry(db, entry_in, ADMIN)
    assert stock_of(db, catalog["widget"]) == 50


def test_paid_entry_needs_payment_method(db, catalog, partners):
    with pytest.raises(ValidationError):
        commit_ledger_entry(db, sale(partners["customer"], [(catalog["widget"], 1)], payment_method="  "), ADMIN)


def test_entry_needs_items(db, partners):
    with pytest.raises(ValidationError):
        commit_ledger_entry(db, sale(partners["customer"], []), ADMIN)


def test_unknown_product_is_rejected(db, catalog, partners):
    with pytest.raises(ProductNotFound):
        commit_ledger_entry(db, sale(partners["customer"], [(catalog["widget"], 1), (9999, 1)]), ADMIN)
    assert stock_of(db, catalog["widget"]) == 50


def test_sale_must_be_against_a_customer(db, catalog, partners):
    entry_in = sale(partners["customer"], [(catalog["widget"], 1)], entity_type=EntityType.SELLER)
    with pytest.raises(ValidationError):
        commit_ledger_entry(db, entry_in, ADMIN)


def test_named_entity_needs_matching_flag(db, catalog, partners):
    with pytest.raises(ValidationError):
        commit_ledger_entry(db, sale(partners["seller"], [(catalog["widget"], 1)]), ADMIN)


def test_named_entity_must_exist(db, catalog):
    with pytest.raises(EntityNotFound):
        commit_ledger_entry(db, sale(4242, [(catalog["widget"], 1)]), ADMIN)


def test_unknown_customer_gets_default_name(db, catalog):
    entry_in = LedgerEntryCreate(
        date=TODAY,
        type=LedgerEntryType.SALE,
        entity_type=EntityType.UNKNOWN_CUSTOMER,
        items=[LedgerItemCreate(product_id=catalog["widget"], quantity=1)],
        payment_method="UPI",
    )
    entry = commit_ledger_entry(db, entry_in, MANAGER)

    assert entry.entity_id is None
    assert entry.entity_name == "Unknown Customer"


def test_insufficient_stock_changes_nothing(db, catalog, partners):
    entry_in = sale(partners["customer"], [(catalog["widget"], 5), (catalog["gadget"], 10)])
    with pytest.raises(InsufficientStock) as excinfo:
        commit_ledger_entry(db, entry_in, ADMIN)

    assert excinfo.value.details["available"] == 5
    assert stock_of(db, catalog["widget"]) == 50
    assert stock_of(db, catalog["gadget"]) == 5
    assert db.query(LedgerEntry).count() == 0
    assert db.query(PaymentRecord).count() == 0
    assert db.query(ProductStockAudit).count() == 0


def test_purchase_adds_stock_and_writes_stock_audit(db, catalog, partners):
    entry = commit_ledger_entry(db, purchase(partners["seller"], [(catalog["gadget"], 7)]), ADMIN)

    assert stock_of(db, catalog["gadget"]) == 12
    audit = db.query(ProductStockAudit).filter(ProductStockAudit.ledger_entry_id == entry.id).one()
    assert (audit.old_quantity, audit.new_quantity, audit.change_amount) == (5, 12, 7)
    assert audit.change_type == "purchase"
    assert audit.changed_by == ADMIN.uid


def test_store_manager_cannot_override_price(db, catalog, partners):
    entry_in = sale(partners["customer"], [(catalog["widget"], 1)])
    entry_in.items[0].unit_price = Decimal("80")
    with pytest.raises(PermissionDenied):
        commit_ledger_entry(db, entry_in, MANAGER)

    entry = commit_ledger_entry(db, entry_in, ADMIN)
    assert entry.grand_total == Decimal("80.00")


def test_delete_restores_stock_and_removes_payment_record(db, catalog, partners):
    entry = commit_ledger_entry(db, sale(partners["customer"], [(catalog["widget"], 5)]), ADMIN)
    entry_id, record_id = entry.id, entry.associated_payment_record_id
    assert stock_of(db, catalog["widget"]) == 45

    delete_ledger_entry(db, entry_id, ADMIN)

    assert stock_of(db, catalog["widget"]) == 50
    assert get_payment_record(db, record_id, ADMIN.company_id) is None
    with pytest.raises(LedgerEntryNotFound):
        get_ledger_entry(db, entry_id, ADMIN.company_id)
    actions = [log.action for log in get_audit_logs(db, "ledger_entries", entry_id, ADMIN.company_id)]
    assert actions == ["CREATE", "DELETE"]


def test_delete_twice_is_a_noop(db, catalog, partners):
    entry = commit_ledger_entry(db, purchase(partners["seller"], [(catalog["widget"], 4)]), ADMIN)
    entry_id = entry.id

    assert delete_ledger_entry(db, entry_id, ADMIN) is not None
    assert delete_ledger_entry(db, entry_id, ADMIN) is None
    assert delete_ledger_entry(db, 123456, ADMIN) is None
    assert stock_of(db, catalog["widget"]) == 50


def test_deleting_purchase_cannot_drive_stock_negative(db, catalog, partners):
    bought = commit_ledger_entry(db, purchase(partners["seller"], [(catalog["gadget"], 3)]), ADMIN)
    bought_id = bought.id
    commit_ledger_entry(db, sale(partners["customer"], [(catalog["gadget"], 8)]), ADMIN)
    assert stock_of(db, catalog["gadget"]) == 0

    with pytest.raises(InsufficientStock):
        delete_ledger_entry(db, bought_id, ADMIN)
    assert get_ledger_entry(db, bought_id, ADMIN.company_id) is not None


def test_edit_applies_only_the_difference(db, catalog, partners):
    entry = commit_ledger_entry(db, sale(partners["customer"], [(catalog["widget"], 5)]), ADMIN)
    entry_id = entry.id

    commit_ledger_entry(db, sale(partners["customer"], [(catalog["widget"], 8)]), ADMIN, entry_id=entry_id)
    assert stock_of(db, catalog["widget"]) == 42

    edited = commit_ledger_entry(
        db, sale(partners["customer"], [(catalog["widget"], 2), (catalog["gadget"], 1)]), ADMIN, entry_id=entry_id
    )
    assert stock_of(db, catalog["widget"]) == 48
    assert stock_of(db, catalog["gadget"]) == 4
    assert edited.grand_total == Decimal("450.00")
    assert edited.created_by_uid == ADMIN.uid
    assert edited.updated_by_uid == ADMIN.uid
    assert len(edited.items) == 2


def test_edit_to_pending_unlinks_payment_record(db, catalog, partners):
    entry = commit_ledger_entry(db, sale(partners["customer"], [(catalog["widget"], 2)]), ADMIN)
    entry_id, record_id = entry.id, entry.associated_payment_record_id

    edited = commit_ledger_entry(
        db, sale(partners["customer"], [(catalog["widget"], 2)], payment_status=PaymentStatus.PENDING),
        ADMIN, entry_id=entry_id,
    )

    assert edited.associated_payment_record_id is None
    assert edited.remaining_amount == Decimal("200.00")
    assert get_payment_record(db, record_id, ADMIN.company_id) is None


def test_edit_from_pending_to_partial_links_payment_record(db, catalog, partners):
    entry = commit_ledger_entry(
        db, sale(partners["customer"], [(catalog["widget"], 3)], payment_status=PaymentStatus.PENDING), MANAGER
    )
    entry_id = entry.id

    edited = commit_ledger_entry(
        db,
        sale(partners["customer"], [(catalog["widget"], 3)], payment_status=PaymentStatus.PARTIAL,
             amount_paid_now=Decimal("120")),
        MANAGER, entry_id=entry_id,
    )

    record = get_payment_record(db, edited.associated_payment_record_id, MANAGER.company_id)
    assert record.status == PaymentRecordStatus.PARTIAL
    assert record.amount_paid == Decimal("120.00")
    assert edited.updated_by_name == MANAGER.display_name


def test_store_manager_cannot_edit_paid_entry_directly(db, catalog, partners):
    entry = commit_ledger_entry(db, sale(partners["customer"], [(catalog["widget"], 1)]), MANAGER)
    entry_id = entry.id

    with pytest.raises(PermissionDenied):
        commit_ledger_entry(db, sale(partners["customer"], [(catalog["widget"], 9)]), MANAGER, entry_id=entry_id)
    with pytest.raises(PermissionDenied):
        delete_ledger_entry(db, entry_id, MANAGER)
    assert stock_of(db, catalog["widget"]) == 49
