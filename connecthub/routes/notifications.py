from typing import List
from fastapi import APIRouter, Depends
from ..schemas.notifications import NotificationOut
from ..crud import list_notifications, mark_notification_read
from ..auth import get_current_user

router = APIRouter()

@router.get('', response_model=List[NotificationOut])
async def my_notifications(current_user: dict = Depends(get_current_user)):
    return await list_notifications(current_user['id'])

@router.patch('/{notification_id}/read', response_model=NotificationOut)
async def read_notification(notification_id: int, current_user: dict = Depends(get_current_user)):
    return await mark_notification_read(current_user['id'], notification_id)
