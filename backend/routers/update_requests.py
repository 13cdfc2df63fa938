from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from crud import update_requests as crud_update_requests
from database import get_db
from models.update_requests import UpdateRequestStatus
from schemas.actor import ActorContext
from schemas.update_requests import ResolveRequest, UpdateRequest
from utils.auth_utils import get_actor, require_admin
from utils.errors import UpdateRequestNotFound

router = APIRouter(prefix="/update-requests", tags=["Update Requests"])
logger = logging.getLogger("update_requests")

@router.get("/", response_model=List[UpdateRequest])
def read_update_requests(
    status: Optional[UpdateRequestStatus] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor)
):
    # Store managers only ever see their own requests
    requested_by = None if actor.is_privileged else actor.uid
    return crud_update_requests.list_requests(
        db, actor.company_id, status=status, requested_by_uid=requested_by, skip=skip, limit=limit
    )

@router.get("/{request_id}", response_model=UpdateRequest)
def read_update_request(request_id: int, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    db_request = crud_update_requests.get_request(db, request_id, actor.company_id)
    if not actor.is_privileged and db_request.requested_by_uid != actor.uid:
        logger.warning(f"User {actor.uid} tried to read update request {request_id} of another user")
        raise UpdateRequestNotFound(request_id)
    return db_request

@router.post("/{request_id}/resolve", response_model=UpdateRequest)
def resolve_update_request(
    request_id: int,
    resolution: ResolveRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin)
):
    return crud_update_requests.resolve_request(db, request_id, resolution.decision, actor)
