from sqlalchemy import Column, Integer, String, Text, Enum, Boolean, UniqueConstraint
from database import Base
import enum
from models.audit_mixin import TimestampMixin

class PartnerStatus(enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    BLOCKED = "Blocked"

class BusinessPartner(Base, TimestampMixin):
    """A customer, a seller, or both. Ledger entries keep a snapshot of the name."""
    __tablename__ = "business_partners"
    __table_args__ = (UniqueConstraint('company_id', 'name', name='_company_partner_name_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(String, index=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    address = Column(Text, nullable=True)
    email = Column(String, nullable=True)
    status = Column(Enum(PartnerStatus), default=PartnerStatus.ACTIVE, nullable=False)
    is_customer = Column(Boolean, default=False, nullable=False)
    is_seller = Column(Boolean, default=False, nullable=False)
