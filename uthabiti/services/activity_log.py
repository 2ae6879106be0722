from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping

from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.core import context
from uthabiti.core.logging import get_audit_logger
from uthabiti.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


def serialize_for_audit(value: Any) -> Any:
    return jsonable_encoder(
        value,
        custom_encoder={
            Decimal: lambda v: str(v),
            datetime: lambda v: v.isoformat(),
            date: lambda v: v.isoformat(),
        },
    )


def model_snapshot(model: Any, *, exclude: Iterable[str] | None = None) -> dict[str, Any]:
    if model is None:
        return {}
    excluded = {"created_at", "updated_at", *(exclude or [])}
    data: dict[str, Any] = {}
    for column in model.__table__.columns:
        if column.name in excluded:
            continue
        data[column.name] = getattr(model, column.name)
    return serialize_for_audit(data)


def _display(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return str(serialize_for_audit(value))


def changed_fields(old: Mapping[str, Any], new: Mapping[str, Any]) -> dict[str, tuple[Any, Any]]:
    """Fields of ``new`` whose value differs from ``old``, compared as text."""
    changes: dict[str, tuple[Any, Any]] = {}
    for key, new_value in new.items():
        old_value = old.get(key)
        if _display(old_value) != _display(new_value):
            changes[key] = (old_value, new_value)
    return changes


def describe_changes(old: Mapping[str, Any], new: Mapping[str, Any]) -> str:
    parts = [
        f"{key}: '{_display(before)}' → '{_display(after)}'"
        for key, (before, after) in changed_fields(old, new).items()
    ]
    return ", ".join(parts)


def _actor_from_context() -> int | None:
    actor = context.get_actor_id()
    return int(actor) if actor and actor.isdigit() else None


async def record_activity(
    db: AsyncSession,
    *,
    action: str,
    description: str | None = None,
    user_id: int | None = None,
    member_id: int | None = None,
    old_value: Any | None = None,
    new_value: Any | None = None,
) -> ActivityLog | None:
    """Append one activity entry without ever failing the caller's operation.

    The row is written in a SAVEPOINT so a failed insert rolls back on its own
    and leaves the surrounding unit of work usable.
    """
    entry = ActivityLog(
        user_id=user_id if user_id is not None else _actor_from_context(),
        member_id=member_id,
        action=action,
        description=description,
        old_value=serialize_for_audit(old_value) if old_value is not None else None,
        new_value=serialize_for_audit(new_value) if new_value is not None else None,
        ip_address=context.get_client_ip(),
        user_agent=context.get_user_agent(),
        request_id=context.get_request_id(),
    )
    try:
        async with db.begin_nested():
            db.add(entry)
            await db.flush()
    except SQLAlchemyError:
        logger.exception("Failed to record activity %s", action)
        return None
    get_audit_logger().info(
        action,
        extra={
            "activity": {
                "action": action,
                "user_id": entry.user_id,
                "member_id": member_id,
                "description": description,
                "ip_address": entry.ip_address,
            }
        },
    )
    return entry


async def list_activity(
    db: AsyncSession,
    *,
    member_id: int | None = None,
    action: str | None = None,
    limit: int = 200,
) -> list[ActivityLog]:
    stmt = select(ActivityLog)
    if member_id is not None:
        stmt = stmt.where(ActivityLog.member_id == member_id)
    if action:
        stmt = stmt.where(ActivityLog.action == action)
    stmt = stmt.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
