from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Date, Boolean, ForeignKey, Enum,
    Index, CheckConstraint
)
from sqlalchemy.orm import relationship
from database import Base
import enum
from models.audit_mixin import AuditMixin

class LedgerEntryType(enum.Enum):
    SALE = "sale"
    PURCHASE = "purchase"

class EntryPurpose(enum.Enum):
    LEDGER_RECORD = "LedgerRecord"    # goods movement
    PAYMENT_RECORD = "PaymentRecord"  # money applied against earlier pending/partial entries

class EntityType(enum.Enum):
    CUSTOMER = "customer"
    SELLER = "seller"
    UNKNOWN_CUSTOMER = "unknown_customer"
    UNKNOWN_SELLER = "unknown_seller"

class PaymentStatus(enum.Enum):
    PAID = "paid"
    PENDING = "pending"
    PARTIAL = "partial"

class LedgerEntry(Base, AuditMixin):
    """One recorded sale, purchase or payment application.

    entity_name and the item product names are snapshots taken when the entry
    was committed; they are not kept in sync with the directory or catalog.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index('ix_ledger_entries_company_date', 'company_id', 'date'),
        Index('ix_ledger_entries_company_date_type', 'company_id', 'date', 'type'),
        Index('ix_ledger_entries_entity_type_status', 'company_id', 'entity_id', 'type', 'payment_status'),
        CheckConstraint('remaining_amount >= 0', name='ck_ledger_entries_remaining_non_negative'),
    )

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False)
    type = Column(Enum(LedgerEntryType), nullable=False)
    entry_purpose = Column(Enum(EntryPurpose), default=EntryPurpose.LEDGER_RECORD, nullable=False)
    entity_type = Column(Enum(EntityType), nullable=False)
    entity_id = Column(Integer, ForeignKey("business_partners.id"), nullable=True)
    entity_name = Column(String, nullable=False)
    apply_gst = Column(Boolean, default=False, nullable=False)
    sub_total = Column(Numeric(12, 2), default=0, nullable=False)
    tax_amount = Column(Numeric(12, 2), default=0, nullable=False)
    grand_total = Column(Numeric(12, 2), default=0, nullable=False)
    payment_status = Column(Enum(PaymentStatus), nullable=False)
    payment_method = Column(String, nullable=True)
    amount_paid_now = Column(Numeric(12, 2), default=0, nullable=False)
    remaining_amount = Column(Numeric(12, 2), default=0, nullable=False)
    associated_payment_record_id = Column(Integer, nullable=True, index=True)
    notes = Column(Text, nullable=True)
    company_id = Column(String, index=True)
    version = Column(Integer, nullable=False)

    # Relationships
    items = relationship(
        "LedgerEntryItem",
        back_populates="ledger_entry",
        cascade="all, delete-orphan",
        order_by="LedgerEntryItem.position",
    )
    allocations = relationship("PaymentAllocation", back_populates="ledger_entry")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<LedgerEntry(id={self.id}, type='{self.type.value}', grand_total={self.grand_total}, status='{self.payment_status.value}')>"
