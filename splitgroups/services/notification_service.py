# splitgroups/services/notification_service.py
import logging
from typing import List, Optional
from sqlmodel import Session, col, select

from splitgroups.errors import NotFound
from splitgroups.models.notification import Notification

logger = logging.getLogger(__name__)


def create_notification(session: Session, user_id: int, type: str, title: str, message: str, data: Optional[dict] = None) -> None:
    """Fire-and-forget: callers commit their own change first, a failure here is only logged."""
    try:
        session.add(Notification(user_id=user_id, type=type, title=title, message=message, data=data or {}))
        session.commit()
        logger.debug("Notified user %s: %s", user_id, type)
    except Exception:
        session.rollback()
        logger.exception("Failed to notify user %s (%s)", user_id, type)


def list_notifications(session: Session, user_id: int, limit: int = 50) -> List[Notification]:
    stmt = (
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(col(Notification.created_at).desc(), col(Notification.id).desc())
        .limit(limit)
    )
    return session.exec(stmt).all()


def mark_read(session: Session, user_id: int, notification_id: int) -> Notification:
    n = session.get(Notification, notification_id)
    if not n or n.user_id != user_id:
        raise NotFound("Notification not found")
    n.read = True
    session.add(n); session.commit(); session.refresh(n)
    return n
