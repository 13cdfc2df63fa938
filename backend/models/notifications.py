from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime
from database import Base
from datetime import datetime
import pytz

from config import APP_TIMEZONE

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_uid = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String, nullable=True)
    type = Column(String, nullable=True)  # e.g. 'update_request', 'delete_approved'
    related_doc_id = Column(Integer, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    company_id = Column(String, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(pytz.timezone(APP_TIMEZONE)))
