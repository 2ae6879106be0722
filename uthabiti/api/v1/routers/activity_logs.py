from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.api import deps
from uthabiti.core.permissions import PermissionCode
from uthabiti.db.session import get_db
from uthabiti.models import User
from uthabiti.schemas.activity import ActivityLogEntry, ActivityLogListResponse
from uthabiti.services.activity_log import list_activity

router = APIRouter(prefix="/activity-logs", tags=["activity-logs"])


@router.get("", response_model=ActivityLogListResponse, summary="List activity log entries")
async def list_activity_logs(
    member_id: Optional[int] = Query(default=None),
    action: Optional[str] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    _: User = Depends(deps.require_permission(PermissionCode.ACTIVITY_LOG_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> ActivityLogListResponse:
    rows = await list_activity(db, member_id=member_id, action=action, limit=limit)
    items = [ActivityLogEntry.model_validate(row) for row in rows]
    return ActivityLogListResponse(items=items, total=len(items))
