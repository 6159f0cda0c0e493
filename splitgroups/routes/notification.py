from fastapi import APIRouter, Depends
from sqlmodel import Session
from splitgroups.auth import get_current_user
from splitgroups.db import get_session
from splitgroups.models.user import User
from splitgroups.services import notification_service

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
def list_notifications(current_user: User = Depends(get_current_user), s: Session = Depends(get_session)):
    return notification_service.list_notifications(s, current_user.id)


@router.put("/{notification_id}/read")
def mark_read(notification_id: int, current_user: User = Depends(get_current_user), s: Session = Depends(get_session)):
    return notification_service.mark_read(s, current_user.id, notification_id)
