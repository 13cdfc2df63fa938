from sqlalchemy import Column, Integer, Numeric, Date, String, ForeignKey, Text, Enum
from sqlalchemy.orm import relationship
from database import Base
import enum
from models.audit_mixin import AuditMixin

class PaymentRecordType(enum.Enum):
    CUSTOMER = "customer"
    SUPPLIER = "supplier"

class PaymentRecordStatus(enum.Enum):
    COMPLETED = "Completed"
    PENDING = "Pending"
    PARTIAL = "Partial"
    SENT = "Sent"
    RECEIVED = "Received"

class PaymentRecord(Base, AuditMixin):
    """Money movement for an entity.

    Either owned by one ledger entry (ledger_entry_id, kept in lock-step with
    it) or a standalone settlement whose allocations pay down earlier entries.
    """
    __tablename__ = "payment_records"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(Enum(PaymentRecordType), nullable=False)
    related_entity_id = Column(Integer, ForeignKey("business_partners.id"), nullable=True, index=True)
    related_entity_name = Column(String, nullable=False)
    payment_date = Column(Date, nullable=False)
    amount_paid = Column(Numeric(12, 2), nullable=False)
    method = Column(String, nullable=True)  # e.g., "Cash", "UPI", "Bank Transfer"
    status = Column(Enum(PaymentRecordStatus), nullable=False)
    ledger_entry_id = Column(Integer, ForeignKey("ledger_entries.id"), nullable=True, index=True)
    original_invoice_amount = Column(Numeric(12, 2), nullable=True)
    remaining_balance_on_invoice = Column(Numeric(12, 2), nullable=True)
    notes = Column(Text, nullable=True)
    company_id = Column(String, index=True)
    version = Column(Integer, nullable=False)

    # Relationships
    allocations = relationship("PaymentAllocation", back_populates="payment_record", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}

    @property
    def settled_ledger_entry_ids(self):
        return [allocation.ledger_entry_id for allocation in self.allocations]

    @property
    def total_allocated(self):
        return sum((allocation.amount for allocation in self.allocations), 0)
