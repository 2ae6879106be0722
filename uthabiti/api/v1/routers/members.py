from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.api import deps
from uthabiti.core.permissions import PermissionCode
from uthabiti.core.response_envelope import flash
from uthabiti.db.session import get_db
from uthabiti.models import User
from uthabiti.schemas.common import MembershipType, MemberStatus
from uthabiti.schemas.members import (
    BenefitsIn,
    BenefitsOut,
    FacilityIn,
    FacilityOut,
    MemberDetail,
    MemberOut,
    ProfileIn,
    ProfileOut,
    StatusChangeRequest,
)
from uthabiti.services import members as member_service

router = APIRouter(prefix="/members", tags=["members"])


@router.get("", response_model=list[MemberOut], summary="List members")
async def list_members(
    status: Optional[MemberStatus] = Query(default=None),
    membership_type: Optional[MembershipType] = Query(default=None),
    _: User = Depends(deps.require_permission(PermissionCode.MEMBER_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> list[MemberOut]:
    members = await member_service.list_members(
        db,
        status=status.value if status else None,
        membership_type=membership_type.value if membership_type else None,
    )
    return [MemberOut.model_validate(member) for member in members]


@router.get("/lookup", response_model=MemberDetail, summary="Find a member by membership number")
async def lookup_member(
    membership_no: str = Query(min_length=1),
    _: User = Depends(deps.require_permission(PermissionCode.MEMBER_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> MemberDetail:
    member = await member_service.get_member_by_number(db, membership_no)
    return MemberDetail.model_validate(await member_service.get_member_detail(db, member))


@router.get("/{member_id}", response_model=MemberDetail, summary="Member details")
async def read_member(
    member_id: int,
    _: User = Depends(deps.require_permission(PermissionCode.MEMBER_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> MemberDetail:
    member = await member_service.get_member(db, member_id)
    return MemberDetail.model_validate(await member_service.get_member_detail(db, member))


@router.put("/{member_id}/profile", summary="Update a member profile")
async def update_profile(
    member_id: int,
    payload: ProfileIn,
    current_user: User = Depends(deps.require_permission(PermissionCode.MEMBER_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    profile = await member_service.attach_profile(
        db, member_id, payload, actor_id=current_user.id, next_view="member-details"
    )
    await db.commit()
    return flash(ProfileOut.model_validate(profile), message="Profile saved successfully!", next_view="member-details")


@router.put("/{member_id}/facility", summary="Add or update a member facility")
async def save_facility(
    member_id: int,
    payload: FacilityIn,
    current_user: User = Depends(deps.require_permission(PermissionCode.FACILITY_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    facility = await member_service.attach_facility(
        db, member_id, payload, actor_id=current_user.id, next_view="member-details"
    )
    await db.commit()
    return flash(
        FacilityOut.model_validate(facility), message="Facility saved successfully!", next_view="member-details"
    )


@router.put("/{member_id}/benefits", summary="Replace member programs & financial benefits")
async def save_benefits(
    member_id: int,
    payload: BenefitsIn,
    current_user: User = Depends(deps.require_permission(PermissionCode.MEMBER_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    benefits = await member_service.attach_benefits(
        db, member_id, payload, actor_id=current_user.id, overwrite=True, next_view="member-details"
    )
    await db.commit()
    return flash(
        BenefitsOut.model_validate(benefits),
        message="Programs & financial benefits saved successfully!",
        next_view="member-details",
    )


@router.post("/{member_id}/status", summary="Move a member to its next status")
async def change_status(
    member_id: int,
    payload: StatusChangeRequest,
    current_user: User = Depends(deps.require_permission(PermissionCode.MEMBER_STATUS_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    member = await member_service.change_member_status(
        db, member_id, reason=payload.reason, actor_id=current_user.id
    )
    await db.commit()
    return flash(
        MemberOut.model_validate(member),
        message=f"Member status updated to {member.status}!",
        next_view="member-details",
    )
