from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.api import deps
from uthabiti.core.permissions import PermissionCode
from uthabiti.core.response_envelope import flash
from uthabiti.db.session import get_db
from uthabiti.models import User
from uthabiti.schemas.common import FacilityStatus
from uthabiti.schemas.members import FacilityIn, FacilityOut, StatusChangeRequest
from uthabiti.services import members as member_service

router = APIRouter(prefix="/facilities", tags=["facilities"])


@router.get("", response_model=list[FacilityOut], summary="List facilities")
async def list_facilities(
    status: Optional[FacilityStatus] = Query(default=None),
    member_id: Optional[int] = Query(default=None),
    _: User = Depends(deps.require_permission(PermissionCode.MEMBER_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> list[FacilityOut]:
    facilities = await member_service.list_facilities(
        db, member_id=member_id, status=status.value if status else None
    )
    return [FacilityOut.model_validate(facility) for facility in facilities]


@router.put("/{facility_id}", summary="Update a facility")
async def update_facility(
    facility_id: int,
    payload: FacilityIn,
    current_user: User = Depends(deps.require_permission(PermissionCode.FACILITY_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    facility = await member_service.update_facility(db, facility_id, payload, actor_id=current_user.id)
    await db.commit()
    return flash(FacilityOut.model_validate(facility), message="Facility updated successfully!", next_view="facilities")


@router.post("/{facility_id}/status", summary="Move a facility to its next status")
async def change_facility_status(
    facility_id: int,
    payload: StatusChangeRequest,
    current_user: User = Depends(deps.require_permission(PermissionCode.FACILITY_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    facility = await member_service.change_facility_status(
        db, facility_id, reason=payload.reason, actor_id=current_user.id
    )
    await db.commit()
    return flash(
        FacilityOut.model_validate(facility),
        message=f"Facility status updated to {facility.status}!",
        next_view="facilities",
    )
