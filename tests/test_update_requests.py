from decimal import Decimal

import pytest

from conftest import ADMIN, MANAGER, OTHER_MANAGER, sale, stock_of
from crud import update_requests
from crud.ledger_entries import commit_ledger_entry, delete_ledger_entry, get_ledger_entry, stage_ledger_entry_removal
from crud.notifications import list_for_recipient
from crud.payment_applications import commit_payment_application
from crud.update_requests import (
    find_pending_request, get_request, list_requests, request_ledger_delete, request_ledger_update, resolve_request,
    submit_change_request
)
from database import atomic
from models.ledger_entries import LedgerEntryType, PaymentStatus
from models.update_requests import UpdateRequestStatus, UpdateRequestType
from schemas.payment_applications import PaymentApplicationCreate
from utils.errors import LedgerEntryNotFound, PermissionDenied, RequestAlreadyPending, RequestNotPending


@pytest.fixture
def paid_sale_id(db, actors, catalog, partners):
    """A paid sale recorded by the store manager: no longer directly editable by them."""
    entry = commit_ledger_entry(db, sale(partners["customer"], [(catalog["widget"], 2)]), MANAGER)
    return entry.id


def test_admin_edits_directly(db, catalog, partners, paid_sale_id):
    outcome = request_ledger_update(db, paid_sale_id, sale(partners["customer"], [(catalog["widget"], 4)]), ADMIN)

    assert outcome.applied is True
    assert outcome.update_request is None
    assert outcome.entry.grand_total == Decimal("400.00")
    assert stock_of(db, catalog["widget"]) == 46


def test_store_manager_edits_own_pending_entry_directly(db, actors, catalog, partners):
    entry = commit_ledger_entry(
        db, sale(partners["customer"], [(catalog["widget"], 2)], payment_status=PaymentStatus.PENDING), MANAGER
    )
    proposed = sale(partners["customer"], [(catalog["widget"], 3)], payment_status=PaymentStatus.PENDING)

    outcome = request_ledger_update(db, entry.id, proposed, MANAGER)

    assert outcome.applied is True
    assert stock_of(db, catalog["widget"]) == 47


def test_store_manager_cannot_directly_edit_someone_elses_pending_entry(db, actors, catalog, partners):
    entry = commit_ledger_entry(
        db, sale(partners["customer"], [(catalog["widget"], 2)], payment_status=PaymentStatus.PENDING), OTHER_MANAGER
    )
    proposed = sale(partners["customer"], [(catalog["widget"], 3)], payment_status=PaymentStatus.PENDING)

    outcome = request_ledger_update(db, entry.id, proposed, MANAGER)

    assert outcome.applied is False
    assert outcome.update_request.requested_by_uid == MANAGER.uid


def test_store_manager_edit_is_queued_for_approval(db, catalog, partners, paid_sale_id):
    proposed = sale(partners["customer"], [(catalog["widget"], 5)])

    outcome = request_ledger_update(db, paid_sale_id, proposed, MANAGER)

    assert outcome.applied is False
    db_request = outcome.update_request
    assert db_request.status == UpdateRequestStatus.PENDING
    assert db_request.request_type == UpdateRequestType.UPDATE
    assert db_request.original_data["grand_total"] == "200.00"
    assert db_request.updated_data["items"][0]["quantity"] == 5
    # nothing moved yet
    assert get_ledger_entry(db, paid_sale_id, ADMIN.company_id).grand_total == Decimal("200.00")
    assert stock_of(db, catalog["widget"]) == 48

    admin_inbox = list_for_recipient(db, ADMIN.uid, ADMIN.company_id)
    assert [n.type for n in admin_inbox] == ["update_request"]
    assert admin_inbox[0].related_doc_id == db_request.id
    assert list_for_recipient(db, MANAGER.uid, MANAGER.company_id) == []


def test_second_request_is_rejected_while_one_is_pending(db, catalog, partners, paid_sale_id):
    request_ledger_update(db, paid_sale_id, sale(partners["customer"], [(catalog["widget"], 5)]), MANAGER)

    with pytest.raises(RequestAlreadyPending):
        request_ledger_delete(db, paid_sale_id, MANAGER)
    with pytest.raises(RequestAlreadyPending):
        submit_change_request(db, paid_sale_id, None, OTHER_MANAGER)
    assert len(list_requests(db, ADMIN.company_id)) == 1


def test_approving_an_update_applies_the_stored_change(db, catalog, partners, paid_sale_id):
    outcome = request_ledger_update(db, paid_sale_id, sale(partners["customer"], [(catalog["widget"], 5)]), MANAGER)

    resolved = resolve_request(db, outcome.update_request.id, UpdateRequestStatus.APPROVED, ADMIN)

    assert resolved.status == UpdateRequestStatus.APPROVED
    assert resolved.reviewed_by_uid == ADMIN.uid
    assert resolved.reviewed_at is not None
    entry = get_ledger_entry(db, paid_sale_id, ADMIN.company_id)
    assert entry.grand_total == Decimal("500.00")
    assert entry.created_by_uid == MANAGER.uid
    assert stock_of(db, catalog["widget"]) == 45
    assert find_pending_request(db, paid_sale_id) is None
    assert [n.type for n in list_for_recipient(db, MANAGER.uid, MANAGER.company_id)] == ["update_approved"]


def test_rejecting_leaves_the_entry_alone(db, catalog, partners, paid_sale_id):
    outcome = request_ledger_update(db, paid_sale_id, sale(partners["customer"], [(catalog["widget"], 5)]), MANAGER)

    resolved = resolve_request(db, outcome.update_request.id, UpdateRequestStatus.REJECTED, ADMIN)

    assert resolved.status == UpdateRequestStatus.REJECTED
    assert get_ledger_entry(db, paid_sale_id, ADMIN.company_id).grand_total == Decimal("200.00")
    assert stock_of(db, catalog["widget"]) == 48
    assert [n.type for n in list_for_recipient(db, MANAGER.uid, MANAGER.company_id)] == ["update_rejected"]

    # a new request may be submitted once the old one is resolved
    again = request_ledger_delete(db, paid_sale_id, MANAGER)
    assert again.update_request.request_type == UpdateRequestType.DELETE


def test_resolving_twice_fails(db, catalog, partners, paid_sale_id):
    outcome = request_ledger_delete(db, paid_sale_id, MANAGER)
    resolve_request(db, outcome.update_request.id, UpdateRequestStatus.REJECTED, ADMIN)

    with pytest.raises(RequestNotPending):
        resolve_request(db, outcome.update_request.id, UpdateRequestStatus.APPROVED, ADMIN)
    assert get_ledger_entry(db, paid_sale_id, ADMIN.company_id) is not None


def test_only_admins_resolve(db, paid_sale_id):
    outcome = request_ledger_delete(db, paid_sale_id, MANAGER)

    with pytest.raises(PermissionDenied):
        resolve_request(db, outcome.update_request.id, UpdateRequestStatus.APPROVED, MANAGER)
    assert find_pending_request(db, paid_sale_id) is not None


def test_approving_a_delete_reverts_the_entry(db, catalog, paid_sale_id):
    outcome = request_ledger_delete(db, paid_sale_id, MANAGER)

    resolve_request(db, outcome.update_request.id, UpdateRequestStatus.APPROVED, ADMIN)

    with pytest.raises(LedgerEntryNotFound):
        get_ledger_entry(db, paid_sale_id, ADMIN.company_id)
    assert stock_of(db, catalog["widget"]) == 50
    assert [n.type for n in list_for_recipient(db, MANAGER.uid, MANAGER.company_id)] == ["delete_approved"]


def test_approving_a_delete_of_an_entry_already_gone_succeeds(db, catalog, paid_sale_id):
    outcome = request_ledger_delete(db, paid_sale_id, MANAGER)
    # removed without closing the request, as a second approval path would
    atomic(db, stage_ledger_entry_removal, paid_sale_id, ADMIN, close_pending=False)

    resolved = resolve_request(db, outcome.update_request.id, UpdateRequestStatus.APPROVED, ADMIN)

    assert resolved.status == UpdateRequestStatus.APPROVED
    assert resolved.review_note is None
    assert stock_of(db, catalog["widget"]) == 50


def test_direct_delete_closes_the_pending_request(db, catalog, partners, paid_sale_id):
    outcome = request_ledger_update(db, paid_sale_id, sale(partners["customer"], [(catalog["widget"], 5)]), MANAGER)

    delete_ledger_entry(db, paid_sale_id, ADMIN)

    db.expire_all()
    closed = get_request(db, outcome.update_request.id, ADMIN.company_id)
    assert closed.status == UpdateRequestStatus.REJECTED
    assert "deleted" in closed.review_note
    assert find_pending_request(db, paid_sale_id) is None
    with pytest.raises(RequestNotPending):
        resolve_request(db, closed.id, UpdateRequestStatus.APPROVED, ADMIN)
    assert stock_of(db, catalog["widget"]) == 50


def test_direct_edit_closes_the_pending_request(db, catalog, partners, paid_sale_id):
    outcome = request_ledger_update(db, paid_sale_id, sale(partners["customer"], [(catalog["widget"], 2)]), MANAGER)

    request_ledger_update(db, paid_sale_id, sale(partners["customer"], [(catalog["widget"], 7)]), ADMIN)

    with pytest.raises(RequestNotPending):
        resolve_request(db, outcome.update_request.id, UpdateRequestStatus.APPROVED, ADMIN)
    db.expire_all()
    entry = get_ledger_entry(db, paid_sale_id, ADMIN.company_id)
    assert [item.quantity for item in entry.items] == [7]
    assert stock_of(db, catalog["widget"]) == 43
    assert get_request(db, outcome.update_request.id, ADMIN.company_id).status == UpdateRequestStatus.REJECTED


def test_request_against_a_changed_entry_is_not_applied(db, actors, catalog, partners):
    entry = commit_ledger_entry(
        db, sale(partners["customer"], [(catalog["widget"], 2)], payment_status=PaymentStatus.PENDING), OTHER_MANAGER
    )
    entry_id = entry.id
    outcome = request_ledger_update(db, entry_id, sale(partners["customer"], [(catalog["widget"], 9)]), MANAGER)
    assert outcome.update_request.entry_version is not None

    # a payment applied and then deleted moves the entry on without a direct edit
    settlement = commit_payment_application(db, PaymentApplicationCreate(
        entity_id=partners["customer"],
        type=LedgerEntryType.SALE,
        payment_amount=Decimal("50"),
        method="Cash",
        selected_entry_ids=[entry_id],
    ), ADMIN)
    delete_ledger_entry(db, settlement.ledger_entry.id, ADMIN)

    resolved = resolve_request(db, outcome.update_request.id, UpdateRequestStatus.APPROVED, ADMIN)

    assert resolved.status == UpdateRequestStatus.REJECTED
    assert "changed" in resolved.review_note
    db.expire_all()
    assert [item.quantity for item in get_ledger_entry(db, entry_id, ADMIN.company_id).items] == [2]
    assert stock_of(db, catalog["widget"]) == 48
    inbox = list_for_recipient(db, MANAGER.uid, MANAGER.company_id)
    assert [n.type for n in inbox] == ["update_rejected"]
    assert "changed" in inbox[0].message


def test_simultaneous_submissions_leave_one_pending_request(db, monkeypatch, paid_sale_id):
    request_ledger_delete(db, paid_sale_id, MANAGER)
    # the second submitter read "nothing pending" before the first one committed
    monkeypatch.setattr(update_requests, "find_pending_request", lambda db, ledger_entry_id: None)

    with pytest.raises(RequestAlreadyPending):
        submit_change_request(db, paid_sale_id, None, OTHER_MANAGER)

    pending = list_requests(db, ADMIN.company_id, status=UpdateRequestStatus.PENDING)
    assert [r.requested_by_uid for r in pending] == [MANAGER.uid]


def test_deleting_an_unknown_entry_is_reported_as_done(db, actors):
    outcome = request_ledger_delete(db, 98765, MANAGER)
    assert outcome.applied is True
    assert outcome.entry is None
    assert list_requests(db, MANAGER.company_id) == []


def test_store_managers_see_only_their_requests(db, catalog, partners, paid_sale_id):
    other = commit_ledger_entry(db, sale(partners["customer"], [(catalog["widget"], 1)]), OTHER_MANAGER)
    request_ledger_delete(db, paid_sale_id, MANAGER)
    request_ledger_delete(db, other.id, OTHER_MANAGER)

    mine = list_requests(db, MANAGER.company_id, requested_by_uid=MANAGER.uid)
    assert [r.original_ledger_entry_id for r in mine] == [paid_sale_id]
    assert len(list_requests(db, ADMIN.company_id, status=UpdateRequestStatus.PENDING)) == 2
