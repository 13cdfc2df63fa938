from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from crud import payment_records as crud_payment_records
from database import get_db
from models.payment_records import PaymentRecordType
from schemas.actor import ActorContext
from schemas.payment_records import PaymentRecord
from utils.auth_utils import get_actor
from utils.errors import PaymentRecordNotFound

router = APIRouter(prefix="/payment-records", tags=["Payment Records"])

@router.get("/", response_model=List[PaymentRecord])
def read_payment_records(
    entity_id: Optional[int] = None,
    type: Optional[PaymentRecordType] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor)
):
    return crud_payment_records.list_for_entity(
        db, actor.company_id, entity_id=entity_id, record_type=type, skip=skip, limit=limit
    )

@router.get("/{record_id}", response_model=PaymentRecord)
def read_payment_record(record_id: int, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    db_record = crud_payment_records.get_payment_record(db, record_id, actor.company_id)
    if db_record is None:
        raise PaymentRecordNotFound(record_id)
    return db_record
