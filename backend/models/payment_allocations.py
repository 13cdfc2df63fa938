from sqlalchemy import Column, Integer, Numeric, ForeignKey, String, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base

class PaymentAllocation(Base):
    """The part of a settlement applied to one ledger entry."""
    __tablename__ = "payment_allocations"
    __table_args__ = (CheckConstraint('amount > 0', name='ck_payment_allocations_amount_positive'),)

    id = Column(Integer, primary_key=True, index=True)
    payment_record_id = Column(Integer, ForeignKey("payment_records.id"), nullable=False, index=True)
    ledger_entry_id = Column(Integer, ForeignKey("ledger_entries.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    company_id = Column(String, index=True)

    # Relationships
    payment_record = relationship("PaymentRecord", back_populates="allocations")
    ledger_entry = relationship("LedgerEntry", back_populates="allocations")
