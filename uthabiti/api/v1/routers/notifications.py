from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.api import deps
from uthabiti.core.response_envelope import flash
from uthabiti.db.session import get_db
from uthabiti.models import User
from uthabiti.schemas.activity import InboxResponse, NotificationOut
from uthabiti.services import notifications as notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=InboxResponse, summary="Unread notifications for the caller")
async def read_inbox(
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> InboxResponse:
    unread, latest = await notification_service.inbox(db, current_user)
    return InboxResponse(unread=unread, items=[NotificationOut.model_validate(item) for item in latest])


@router.post("/{notification_id}/read", summary="Mark a notification as read")
async def mark_read(
    notification_id: int,
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    notification = await notification_service.mark_read(db, current_user, notification_id)
    await db.commit()
    return flash(NotificationOut.model_validate(notification), message="Notification marked as read.")
