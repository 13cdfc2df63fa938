from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, JSON, Index, text
from database import Base
import enum
from models.audit_mixin import TimestampMixin

class UpdateRequestType(enum.Enum):
    UPDATE = "update"
    DELETE = "delete"

class UpdateRequestStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class UpdateRequest(Base, TimestampMixin):
    """A store manager's edit/delete of a ledger entry waiting for an admin."""
    __tablename__ = "update_requests"
    __table_args__ = (
        # At most one pending request per ledger entry; also the lookup used before submitting.
        Index(
            'uq_update_requests_pending_entry',
            'original_ledger_entry_id',
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    request_type = Column(Enum(UpdateRequestType), nullable=False)
    original_ledger_entry_id = Column(Integer, ForeignKey("ledger_entries.id"), nullable=False)
    original_data = Column(JSON, nullable=False)
    # LedgerEntry.version the request was made against
    entry_version = Column(Integer, nullable=True)
    updated_data = Column(JSON, nullable=True)
    requested_by_uid = Column(String, nullable=False)
    requested_by_name = Column(String, nullable=True)
    status = Column(Enum(UpdateRequestStatus), default=UpdateRequestStatus.PENDING, nullable=False, index=True)
    reviewed_by_uid = Column(String, nullable=True)
    reviewed_by_name = Column(String, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_note = Column(String, nullable=True)
    company_id = Column(String, index=True)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
