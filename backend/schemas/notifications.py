from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class Notification(BaseModel):
    id: int
    recipient_uid: str
    title: str
    message: str
    link: Optional[str] = None
    type: Optional[str] = None
    related_doc_id: Optional[int] = None
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
