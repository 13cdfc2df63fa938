from sqlalchemy import Column, Integer, String, DateTime, JSON
from database import Base
from datetime import datetime
import pytz

from config import APP_TIMEZONE

class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    table_name = Column(String, nullable=False)
    record_id = Column(Integer, nullable=False, index=True)
    changed_at = Column(DateTime(timezone=True), default=lambda: datetime.now(pytz.timezone(APP_TIMEZONE)))
    changed_by = Column(String, nullable=False)
    action = Column(String, nullable=False)  # e.g., 'INSERT', 'UPDATE', 'DELETE'
    old_values = Column(JSON)
    new_values = Column(JSON)
    company_id = Column(String, index=True)
