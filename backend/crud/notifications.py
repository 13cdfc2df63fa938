"""
Notification sink.

Notifications are sent after the ledger change they describe has been
committed. Delivery is best-effort: a failure is logged and never undoes the
committed change.
"""

import logging
from typing import Iterable, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.notifications import Notification

logger = logging.getLogger("notifications")

def notify(
    db: Session,
    recipient_uids: Iterable[str],
    title: str,
    message: str,
    link: Optional[str] = None,
    type: Optional[str] = None,
    related_doc_id: Optional[int] = None,
    company_id: Optional[str] = None,
) -> int:
    """Deliver one notification per recipient. Returns how many were stored."""
    recipients = sorted({uid for uid in recipient_uids if uid})
    if not recipients:
        logger.warning(f"Notification '{title}' has no recipients for company {company_id}; nothing sent")
        return 0
    try:
        db.add_all([
            Notification(
                recipient_uid=uid,
                title=title,
                message=message,
                link=link,
                type=type,
                related_doc_id=related_doc_id,
                company_id=company_id,
            )
            for uid in recipients
        ])
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Failed to deliver notification '{title}' to {recipients}")
        return 0
    logger.info(f"Notification '{title}' sent to {len(recipients)} recipient(s)")
    return len(recipients)

def list_for_recipient(db: Session, uid: str, company_id: str, unread_only: bool = False, skip: int = 0, limit: int = 100):
    query = db.query(Notification).filter(Notification.recipient_uid == uid, Notification.company_id == company_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(skip).limit(limit).all()

def mark_read(db: Session, notification_id: int, uid: str):
    db_notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.recipient_uid == uid
    ).first()
    if db_notification is None:
        return None
    db_notification.is_read = True
    db.commit()
    db.refresh(db_notification)
    return db_notification
