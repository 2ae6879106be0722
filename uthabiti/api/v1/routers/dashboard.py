from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.api import deps
from uthabiti.core.permissions import PermissionCode
from uthabiti.db.session import get_db
from uthabiti.models import User
from uthabiti.services import dashboard

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", summary="Staff dashboard summary")
async def read_dashboard(
    _: User = Depends(deps.require_permission(PermissionCode.DASHBOARD_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await dashboard.summary(db)
