from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.api import deps
from uthabiti.core.permissions import PermissionCode
from uthabiti.core.response_envelope import flash
from uthabiti.db.session import get_db
from uthabiti.models import User
from uthabiti.schemas.sacco import SaccoSettingsIn, SaccoSettingsOut
from uthabiti.services import sacco_settings

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=Optional[SaccoSettingsOut], summary="Get sacco settings")
async def get_settings(
    _: User = Depends(deps.require_permission(PermissionCode.SETTINGS_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> Optional[SaccoSettingsOut]:
    current = await sacco_settings.get_sacco_settings(db)
    return SaccoSettingsOut.model_validate(current) if current is not None else None


@router.put("", summary="Save sacco settings")
async def save_settings(
    payload: SaccoSettingsIn,
    current_user: User = Depends(deps.require_permission(PermissionCode.SETTINGS_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    saved = await sacco_settings.save_sacco_settings(db, payload, actor_id=current_user.id)
    await db.commit()
    return flash(SaccoSettingsOut.model_validate(saved), message="Settings saved successfully!", next_view="settings")
