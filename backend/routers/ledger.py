from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
import logging

from crud import ledger_entries as crud_ledger_entries
from crud import ledger_reports as crud_ledger_reports
from crud import payment_applications as crud_payment_applications
from crud import update_requests as crud_update_requests
from crud.audit_log import get_audit_logs
from database import get_db
from models.ledger_entries import LedgerEntryType
from schemas.actor import ActorContext
from schemas.audit_log import AuditLog
from schemas.ledger_changes import LedgerChangeResult
from schemas.ledger_entries import DailySummary, LedgerEntry, LedgerEntryCreate
from schemas.payment_applications import PaymentApplicationCreate, PaymentApplicationResult, SettledEntry
from schemas.payment_records import PaymentRecord
from schemas.update_requests import UpdateRequest
from utils.auth_utils import get_actor

router = APIRouter(prefix="/ledger", tags=["Ledger"])
logger = logging.getLogger("ledger")


def _change_result(outcome: crud_update_requests.LedgerChangeOutcome) -> LedgerChangeResult:
    return LedgerChangeResult(
        applied=outcome.applied,
        message=outcome.message,
        entry=LedgerEntry.model_validate(outcome.entry) if outcome.entry is not None else None,
        update_request=UpdateRequest.model_validate(outcome.update_request) if outcome.update_request is not None else None,
    )


@router.post("/", response_model=LedgerEntry, status_code=status.HTTP_201_CREATED)
def create_ledger_entry(
    entry: LedgerEntryCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor)
):
    return crud_ledger_entries.commit_ledger_entry(db, entry, actor)


@router.post("/payment-applications", response_model=PaymentApplicationResult, status_code=status.HTTP_201_CREATED)
def apply_payment(
    application: PaymentApplicationCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor)
):
    outcome = crud_payment_applications.commit_payment_application(db, application, actor)
    return PaymentApplicationResult(
        ledger_entry=LedgerEntry.model_validate(outcome.ledger_entry),
        payment_record=PaymentRecord.model_validate(outcome.payment_record),
        settled=[SettledEntry(**settled) for settled in outcome.settled],
    )


@router.get("/", response_model=List[LedgerEntry])
def read_ledger_entries(
    entry_date: date = Query(..., alias="date"),
    tab: str = Query("all", pattern="^(all|customers|sellers)$"),
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor)
):
    return crud_ledger_reports.list_entries_for_date(db, actor, entry_date, tab=tab, search=search, skip=skip, limit=limit)


@router.get("/outstanding", response_model=List[LedgerEntry])
def read_outstanding_entries(
    entity_id: int,
    type: LedgerEntryType,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor)
):
    return crud_ledger_reports.list_outstanding_entries(db, actor, entity_id, type)


@router.get("/summary", response_model=DailySummary)
def read_daily_summary(
    entry_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor)
):
    return crud_ledger_reports.daily_summary(db, actor, entry_date)


@router.get("/{entry_id}", response_model=LedgerEntry)
def read_ledger_entry(entry_id: int, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return crud_ledger_reports.get_visible_entry(db, actor, entry_id)


@router.get("/{entry_id}/history", response_model=List[AuditLog])
def read_ledger_entry_history(entry_id: int, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    # Admins can read the history of deleted entries too
    if not actor.is_privileged:
        crud_ledger_reports.get_visible_entry(db, actor, entry_id)
    return get_audit_logs(db, "ledger_entries", entry_id, actor.company_id)


@router.put("/{entry_id}", response_model=LedgerChangeResult)
def update_ledger_entry(
    entry_id: int,
    entry: LedgerEntryCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor)
):
    return _change_result(crud_update_requests.request_ledger_update(db, entry_id, entry, actor))


@router.delete("/{entry_id}", response_model=LedgerChangeResult)
def delete_ledger_entry(entry_id: int, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return _change_result(crud_update_requests.request_ledger_delete(db, entry_id, actor))
