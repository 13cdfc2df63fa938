from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime
from models.update_requests import UpdateRequestType, UpdateRequestStatus


class ResolveRequest(BaseModel):
    decision: UpdateRequestStatus


class UpdateRequest(BaseModel):
    id: int
    request_type: UpdateRequestType
    original_ledger_entry_id: int
    original_data: Dict[str, Any]
    entry_version: Optional[int] = None
    updated_data: Optional[Dict[str, Any]] = None
    requested_by_uid: str
    requested_by_name: Optional[str] = None
    status: UpdateRequestStatus
    reviewed_by_uid: Optional[str] = None
    reviewed_by_name: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_note: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
