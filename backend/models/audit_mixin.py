from sqlalchemy import Column, DateTime, String
from datetime import datetime
import pytz

from config import APP_TIMEZONE


def _now():
    return datetime.now(pytz.timezone(APP_TIMEZONE))


class TimestampMixin:
    """Mixin that provides created/updated timestamps and who made the change.

    ``*_uid`` is the actor's stable identity, ``*_name`` the display name at the
    time of the change.
    """
    # DateTime(timezone=True) ensures the timezone info is persisted in the database.
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), onupdate=_now)
    created_by_uid = Column(String, nullable=True)
    created_by_name = Column(String, nullable=True)
    updated_by_uid = Column(String, nullable=True)
    updated_by_name = Column(String, nullable=True)


class SoftDeleteMixin:
    """Mixin for soft-delete columns (deleted_at, deleted_by).

    Applied to the financial records (ledger entries, payment records) so that a
    reversed entry stays in the database for the audit trail. Soft-deleted rows
    are hidden from every query by the listener in database.py.
    """
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(String, nullable=True)


class AuditMixin(TimestampMixin, SoftDeleteMixin):
    """Timestamps + soft-delete."""
    pass
