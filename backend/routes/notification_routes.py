from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from auth import get_current_user
from database import get_db
from errors import NotFoundError
from schemas import NotificationOut
from services.notification_service import NotificationService

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.get("", response_model=list[NotificationOut])
async def list_notifications(
    unread_only: bool = False,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return NotificationService.get_all(db, user["user_id"], unread_only)


@router.patch("/{notification_id}/read", response_model=NotificationOut)
async def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    try:
        return NotificationService.mark_read(db, user["user_id"], notification_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
