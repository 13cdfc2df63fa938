from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from crud import notifications as crud_notifications
from database import get_db
from schemas.actor import ActorContext
from schemas.notifications import Notification
from utils.auth_utils import get_actor
from utils.errors import NotificationNotFound

router = APIRouter(prefix="/notifications", tags=["Notifications"])

@router.get("/", response_model=List[Notification])
def read_my_notifications(
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor)
):
    return crud_notifications.list_for_recipient(db, actor.uid, actor.company_id, unread_only=unread_only, skip=skip, limit=limit)

@router.patch("/{notification_id}/read", response_model=Notification)
def mark_notification_read(notification_id: int, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    db_notification = crud_notifications.mark_read(db, notification_id, actor.uid)
    if db_notification is None:
        raise NotificationNotFound(notification_id)
    return db_notification
