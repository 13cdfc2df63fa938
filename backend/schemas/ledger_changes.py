from pydantic import BaseModel
from typing import Optional
from schemas.ledger_entries import LedgerEntry
from schemas.update_requests import UpdateRequest


class LedgerChangeResult(BaseModel):
    """Outcome of an edit/delete: applied directly, or queued for approval."""
    applied: bool
    entry: Optional[LedgerEntry] = None
    update_request: Optional[UpdateRequest] = None
    message: str
