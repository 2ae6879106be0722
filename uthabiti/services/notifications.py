from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.core.errors import NotFoundError
from uthabiti.models.notification import Notification
from uthabiti.models.user import User

logger = logging.getLogger(__name__)

UNREAD = "Unread"
READ = "Read"
INBOX_PREVIEW_SIZE = 5


async def notify(
    db: AsyncSession,
    *,
    receiver: str | int,
    title: str,
    content: str,
    sender_id: int | None = None,
) -> Notification | None:
    """Append an inbox entry for a user id or a whole role; failures are logged only."""
    notification = Notification(
        sender_id=sender_id,
        receiver_id=str(receiver),
        title=title,
        content=content,
        status=UNREAD,
    )
    try:
        async with db.begin_nested():
            db.add(notification)
            await db.flush()
    except SQLAlchemyError:
        logger.exception("Failed to store notification %r for %s", title, receiver)
        return None
    return notification


def _addressed_to(user: User):
    return or_(Notification.receiver_id == str(user.id), Notification.receiver_id == user.role)


async def inbox(db: AsyncSession, user: User) -> tuple[int, list[Notification]]:
    count_stmt = (
        select(func.count(Notification.id))
        .where(_addressed_to(user), Notification.status == UNREAD)
    )
    unread = (await db.execute(count_stmt)).scalar_one_or_none() or 0
    latest_stmt = (
        select(Notification)
        .where(_addressed_to(user), Notification.status == UNREAD)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(INBOX_PREVIEW_SIZE)
    )
    latest = (await db.execute(latest_stmt)).scalars().all()
    return int(unread), list(latest)


async def mark_read(db: AsyncSession, user: User, notification_id: int) -> Notification:
    stmt = select(Notification).where(Notification.id == notification_id, _addressed_to(user))
    notification = (await db.execute(stmt)).scalar_one_or_none()
    if notification is None:
        raise NotFoundError("Notification not found")
    if notification.status != READ:
        notification.status = READ
        notification.read_at = datetime.now(timezone.utc)
        db.add(notification)
        await db.flush()
    return notification
