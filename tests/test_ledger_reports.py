from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from conftest import ADMIN, MANAGER, TODAY, purchase, sale
from crud.ledger_entries import commit_ledger_entry, delete_ledger_entry
from crud.ledger_reports import _run, daily_summary, list_entries_for_date, list_outstanding_entries
from crud.payment_applications import commit_payment_application
from models.ledger_entries import LedgerEntryType, PaymentStatus
from schemas.payment_applications import PaymentApplicationCreate
from utils.errors import IndexRequired, StoreUnavailable, ValidationError


@pytest.fixture
def day_of_trading(db, catalog, partners):
    """Admin records a sale and a purchase; the store manager records a purchase."""
    admin_sale = commit_ledger_entry(
        db, sale(partners["customer"], [(catalog["widget"], 2)], notes="Diwali order"), ADMIN
    )
    admin_purchase = commit_ledger_entry(
        db, purchase(partners["seller"], [(catalog["gadget"], 4)], payment_status=PaymentStatus.PENDING), ADMIN
    )
    manager_purchase = commit_ledger_entry(
        db, purchase(partners["seller"], [(catalog["widget"], 3)], payment_method="Cheque"), MANAGER
    )
    return {"admin_sale": admin_sale.id, "admin_purchase": admin_purchase.id, "manager_purchase": manager_purchase.id}


def ids(entries):
    return [entry.id for entry in entries]


def test_admin_sees_everything_newest_first(db, day_of_trading):
    entries = list_entries_for_date(db, ADMIN, TODAY)
    assert ids(entries) == [
        day_of_trading["manager_purchase"], day_of_trading["admin_purchase"], day_of_trading["admin_sale"]
    ]


def test_store_manager_sees_all_sales_but_only_own_purchases(db, day_of_trading):
    entries = list_entries_for_date(db, MANAGER, TODAY)
    assert ids(entries) == [day_of_trading["manager_purchase"], day_of_trading["admin_sale"]]


def test_tabs_split_customers_and_sellers(db, day_of_trading):
    assert ids(list_entries_for_date(db, ADMIN, TODAY, tab="customers")) == [day_of_trading["admin_sale"]]
    assert set(ids(list_entries_for_date(db, ADMIN, TODAY, tab="sellers"))) == {
        day_of_trading["admin_purchase"], day_of_trading["manager_purchase"]
    }
    with pytest.raises(ValidationError):
        list_entries_for_date(db, ADMIN, TODAY, tab="vendors")


@pytest.mark.parametrize("term, expected", [
    ("ravi", ["admin_sale"]),
    ("GADGET", ["admin_purchase"]),
    ("diwali", ["admin_sale"]),
    ("cheque", ["manager_purchase"]),
    ("nothing like this", []),
])
def test_search(db, day_of_trading, term, expected):
    found = list_entries_for_date(db, ADMIN, TODAY, search=term)
    assert set(ids(found)) == {day_of_trading[name] for name in expected}


def test_other_dates_and_deleted_entries_are_hidden(db, day_of_trading):
    assert list_entries_for_date(db, ADMIN, TODAY + timedelta(days=1)) == []

    delete_ledger_entry(db, day_of_trading["admin_sale"], ADMIN)
    assert day_of_trading["admin_sale"] not in ids(list_entries_for_date(db, ADMIN, TODAY))


def test_outstanding_entries_oldest_first(db, catalog, partners):
    older = commit_ledger_entry(
        db,
        sale(partners["customer"], [(catalog["widget"], 1)], payment_status=PaymentStatus.PENDING,
             date=TODAY - timedelta(days=3)),
        ADMIN,
    )
    newer = commit_ledger_entry(
        db,
        sale(partners["customer"], [(catalog["widget"], 4)], payment_status=PaymentStatus.PARTIAL,
             amount_paid_now=Decimal("100")),
        ADMIN,
    )
    commit_ledger_entry(db, sale(partners["customer"], [(catalog["widget"], 1)]), ADMIN)

    outstanding = list_outstanding_entries(db, ADMIN, partners["customer"], LedgerEntryType.SALE)

    assert ids(outstanding) == [older.id, newer.id]
    assert list_outstanding_entries(db, ADMIN, partners["customer"], LedgerEntryType.PURCHASE) == []


def test_daily_summary(db, catalog, partners, day_of_trading):
    pending = commit_ledger_entry(
        db, sale(partners["customer"], [(catalog["gadget"], 1)], payment_status=PaymentStatus.PENDING), ADMIN
    )
    commit_payment_application(db, PaymentApplicationCreate(
        entity_id=partners["customer"],
        type=LedgerEntryType.SALE,
        payment_amount=Decimal("50"),
        method="Cash",
        selected_entry_ids=[pending.id],
        payment_date=TODAY,
    ), ADMIN)

    summary = daily_summary(db, ADMIN, TODAY)

    assert summary.sales_count == 2
    assert summary.sales_total == Decimal("450.00")
    assert summary.sales_outstanding == Decimal("200.00")
    assert summary.purchases_count == 2
    assert summary.purchases_total == Decimal("1300.00")
    assert summary.purchases_outstanding == Decimal("1000.00")
    assert summary.amount_received == Decimal("250.00")
    assert summary.amount_paid_out == Decimal("300.00")


def test_daily_summary_follows_visibility(db, day_of_trading):
    summary = daily_summary(db, MANAGER, TODAY)

    assert summary.purchases_count == 1
    assert summary.purchases_total == Decimal("300.00")
    assert summary.amount_paid_out == Decimal("300.00")


class _FailingQuery:
    def __init__(self, error):
        self.error = error

    def all(self):
        raise self.error


def test_missing_index_is_reported_as_index_required():
    error = OperationalError("SELECT ...", {}, Exception("no such index: ix_ledger_entries_company_date"))
    with pytest.raises(IndexRequired) as excinfo:
        _run("ledger_entries_for_date", _FailingQuery(error))
    assert excinfo.value.resolution == "contact_admin"
    assert excinfo.value.details["query"] == "ledger_entries_for_date"


def test_other_store_failures_become_store_unavailable():
    error = OperationalError("SELECT ...", {}, Exception("could not connect to server"))
    with pytest.raises(StoreUnavailable):
        _run("daily_summary", _FailingQuery(error))


def test_unrelated_programming_errors_propagate():
    error = ProgrammingError("SELECT ...", {}, Exception("syntax error at or near FROM"))
    with pytest.raises(ProgrammingError):
        _run("daily_summary", _FailingQuery(error))
