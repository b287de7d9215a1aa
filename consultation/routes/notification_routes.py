from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from consultation.routes.dependencies import get_engine
from consultation.scheduling.engine import SchedulingEngine

router = APIRouter(tags=['notifications'])


class NotificationResponse(BaseModel):
    id: str
    recipient: str
    message: str
    created_at: datetime
    is_read: bool

    class Config:
        from_attributes = True


class MarkAllReadResponse(BaseModel):
    marked: int


@router.get('/{username}', response_model=list[NotificationResponse])
def list_unread_notifications(username: str, engine: SchedulingEngine = Depends(get_engine)):
    return engine.notifications.unread(username.strip())


@router.post('/{username}/read-all', response_model=MarkAllReadResponse)
def mark_all_notifications_read(username: str, engine: SchedulingEngine = Depends(get_engine)):
    return MarkAllReadResponse(marked=engine.notifications.mark_all_read(username.strip()))


@router.post('/{username}/{notification_id}/read', status_code=status.HTTP_204_NO_CONTENT)
def mark_notification_read(username: str, notification_id: str, engine: SchedulingEngine = Depends(get_engine)):
    if not engine.notifications.mark_read(username.strip(), notification_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Notification not found.',
        )
