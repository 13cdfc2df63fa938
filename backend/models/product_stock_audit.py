from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from database import Base
import pytz

from config import APP_TIMEZONE

class ProductStockAudit(Base):
    __tablename__ = "product_stock_audit"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    ledger_entry_id = Column(Integer, ForeignKey("ledger_entries.id"), nullable=True)
    change_type = Column(String, nullable=False)  # "sale", "purchase", "ledger_edit", "ledger_delete", "initial"
    change_amount = Column(Integer, nullable=False)  # Positive or negative
    old_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)
    changed_by = Column(String, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=lambda: datetime.now(pytz.timezone(APP_TIMEZONE)))
    note = Column(String, nullable=True)
    company_id = Column(String, index=True)

    product = relationship("Product", back_populates="audits")
