"""
Approval workflow for ledger edits and deletes.

Admins change ledger entries directly. A store manager may change only the
entries they created that are still pending; any other edit or delete is
queued as an UpdateRequest for an admin to approve or reject.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crud.ledger_entries import (
    can_mutate_directly, commit_ledger_entry, delete_ledger_entry, get_ledger_entry,
    ledger_entry_snapshot, stage_ledger_entry, stage_ledger_entry_removal
)
from crud.notifications import notify
from crud.users import list_admin_uids
from database import atomic
from models.ledger_entries import LedgerEntry, EntryPurpose
from models.update_requests import UpdateRequest, UpdateRequestStatus, UpdateRequestType
from schemas.actor import ActorContext
from schemas.ledger_entries import LedgerEntryCreate
from utils import local_now
from utils.errors import (
    PermissionDenied, RequestAlreadyPending, RequestNotPending, UpdateRequestNotFound, ValidationError
)

logger = logging.getLogger("update_requests")


@dataclass
class LedgerChangeOutcome:
    applied: bool
    message: str
    entry: Optional[LedgerEntry] = None
    update_request: Optional[UpdateRequest] = None


def find_pending_request(db: Session, ledger_entry_id: int) -> Optional[UpdateRequest]:
    return db.query(UpdateRequest).filter(
        UpdateRequest.original_ledger_entry_id == ledger_entry_id,
        UpdateRequest.status == UpdateRequestStatus.PENDING
    ).first()


def _stage_change_request(db: Session, entry_id: int, proposed: Optional[LedgerEntryCreate], actor: ActorContext) -> UpdateRequest:
    db_entry = get_ledger_entry(db, entry_id, actor.company_id)
    if proposed is not None and db_entry.entry_purpose == EntryPurpose.PAYMENT_RECORD:
        raise ValidationError("Payments cannot be edited. Delete the payment and record it again.")

    pending = find_pending_request(db, entry_id)
    if pending is not None:
        raise RequestAlreadyPending(entry_id, pending.id)

    db_request = UpdateRequest(
        request_type=UpdateRequestType.UPDATE if proposed is not None else UpdateRequestType.DELETE,
        original_ledger_entry_id=entry_id,
        original_data=ledger_entry_snapshot(db_entry),
        entry_version=db_entry.version,
        updated_data=proposed.model_dump(mode="json") if proposed is not None else None,
        requested_by_uid=actor.uid,
        requested_by_name=actor.display_name,
        status=UpdateRequestStatus.PENDING,
        company_id=actor.company_id,
        created_by_uid=actor.uid,
        created_by_name=actor.display_name,
    )
    db.add(db_request)
    db.flush()
    return db_request


def submit_change_request(db: Session, entry_id: int, proposed: Optional[LedgerEntryCreate],
                          actor: ActorContext) -> UpdateRequest:
    """Queue an edit (proposed given) or a delete (proposed None) for admin approval."""
    try:
        db_request = atomic(db, _stage_change_request, entry_id, proposed, actor)
    except IntegrityError as e:
        # Lost the race against another submitter; the partial unique index caught it
        raise RequestAlreadyPending(entry_id) from e

    kind = db_request.request_type.value
    logger.info(f"Update request (ID: {db_request.id}) to {kind} ledger entry {entry_id} submitted by user {actor.uid}")
    notify(
        db,
        list_admin_uids(db, actor.company_id),
        title=f"Ledger {kind} request",
        message=f"{actor.display_name} asked to {kind} ledger entry #{entry_id}.",
        link=f"/update-requests/{db_request.id}",
        type=f"{kind}_request",
        related_doc_id=db_request.id,
        company_id=actor.company_id,
    )
    return db_request


def _stale_reason(db: Session, db_request: UpdateRequest, actor: ActorContext) -> Optional[str]:
    """Why the entry no longer matches what the request was made against, if it doesn't."""
    db_entry = db.query(LedgerEntry).filter(
        LedgerEntry.id == db_request.original_ledger_entry_id,
        LedgerEntry.company_id == actor.company_id
    ).with_for_update().first()
    if db_entry is None:
        # Deleting an entry that is already gone is still what was asked for
        if db_request.request_type == UpdateRequestType.DELETE:
            return None
        return "Ledger entry was deleted after this request was made"
    if db_request.entry_version is not None and db_entry.version != db_request.entry_version:
        return "Ledger entry changed after this request was made"
    return None


def _stage_resolution(db: Session, request_id: int, decision: UpdateRequestStatus, actor: ActorContext) -> UpdateRequest:
    db_request = db.query(UpdateRequest).filter(
        UpdateRequest.id == request_id,
        UpdateRequest.company_id == actor.company_id
    ).with_for_update().first()
    if db_request is None:
        raise UpdateRequestNotFound(request_id)
    if db_request.status != UpdateRequestStatus.PENDING:
        raise RequestNotPending(request_id, db_request.status.value)

    stale_reason = _stale_reason(db, db_request, actor) if decision == UpdateRequestStatus.APPROVED else None
    if stale_reason is not None:
        logger.warning(f"Update request (ID: {request_id}) cannot be approved: {stale_reason}")
        decision = UpdateRequestStatus.REJECTED
        db_request.review_note = stale_reason
    elif decision == UpdateRequestStatus.APPROVED:
        if db_request.request_type == UpdateRequestType.UPDATE:
            try:
                proposed = LedgerEntryCreate.model_validate(db_request.updated_data)
            except PydanticValidationError as e:
                raise ValidationError("The requested change is no longer valid", details={"reason": str(e)}) from e
            stage_ledger_entry(db, proposed, actor, entry_id=db_request.original_ledger_entry_id, close_pending=False)
        else:
            stage_ledger_entry_removal(db, db_request.original_ledger_entry_id, actor, close_pending=False)

    now = local_now()
    db_request.status = decision
    db_request.reviewed_by_uid = actor.uid
    db_request.reviewed_by_name = actor.display_name
    db_request.reviewed_at = now
    db_request.updated_at = now
    db_request.updated_by_uid = actor.uid
    db_request.updated_by_name = actor.display_name
    db.flush()
    return db_request


def resolve_request(db: Session, request_id: int, decision: UpdateRequestStatus, actor: ActorContext) -> UpdateRequest:
    """Approve (and apply) or reject a pending request. Admins only."""
    if not actor.is_privileged:
        raise PermissionDenied("Only an admin can resolve update requests")
    if decision == UpdateRequestStatus.PENDING:
        raise ValidationError("A request can only be approved or rejected")

    db_request = atomic(db, _stage_resolution, request_id, decision, actor)

    kind = db_request.request_type.value
    outcome = db_request.status.value
    message = f"Your request to {kind} ledger entry #{db_request.original_ledger_entry_id} was {outcome} by {actor.display_name}."
    if db_request.review_note:
        message = f"{message} {db_request.review_note}."
    logger.info(f"Update request (ID: {request_id}) {outcome} by user {actor.uid} for company {actor.company_id}")
    notify(
        db,
        [db_request.requested_by_uid],
        title=f"Ledger {kind} {outcome}",
        message=message,
        link=f"/ledger/{db_request.original_ledger_entry_id}",
        type=f"{kind}_{outcome}",
        related_doc_id=db_request.id,
        company_id=actor.company_id,
    )
    return db_request


def request_ledger_update(db: Session, entry_id: int, entry_in: LedgerEntryCreate, actor: ActorContext) -> LedgerChangeOutcome:
    db_entry = get_ledger_entry(db, entry_id, actor.company_id)
    if can_mutate_directly(actor, db_entry):
        updated = commit_ledger_entry(db, entry_in, actor, entry_id=entry_id)
        return LedgerChangeOutcome(applied=True, entry=updated, message="Ledger entry updated")
    db_request = submit_change_request(db, entry_id, entry_in, actor)
    return LedgerChangeOutcome(applied=False, update_request=db_request, message="Update request sent for admin approval")


def request_ledger_delete(db: Session, entry_id: int, actor: ActorContext) -> LedgerChangeOutcome:
    db_entry = db.query(LedgerEntry).filter(
        LedgerEntry.id == entry_id,
        LedgerEntry.company_id == actor.company_id
    ).first()
    if db_entry is None:
        return LedgerChangeOutcome(applied=True, message="Ledger entry already deleted")
    if can_mutate_directly(actor, db_entry):
        deleted = delete_ledger_entry(db, entry_id, actor)
        return LedgerChangeOutcome(applied=True, entry=deleted, message="Ledger entry deleted")
    db_request = submit_change_request(db, entry_id, None, actor)
    return LedgerChangeOutcome(applied=False, update_request=db_request, message="Delete request sent for admin approval")


def list_requests(db: Session, company_id: str, status: Optional[UpdateRequestStatus] = None,
                  requested_by_uid: Optional[str] = None, skip: int = 0, limit: int = 100):
    query = db.query(UpdateRequest).filter(UpdateRequest.company_id == company_id)
    if status is not None:
        query = query.filter(UpdateRequest.status == status)
    if requested_by_uid:
        query = query.filter(UpdateRequest.requested_by_uid == requested_by_uid)
    return query.order_by(UpdateRequest.created_at.desc(), UpdateRequest.id.desc()).offset(skip).limit(limit).all()


def get_request(db: Session, request_id: int, company_id: str) -> UpdateRequest:
    db_request = db.query(UpdateRequest).filter(
        UpdateRequest.id == request_id,
        UpdateRequest.company_id == company_id
    ).first()
    if db_request is None:
        raise UpdateRequestNotFound(request_id)
    return db_request
