from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.api import deps
from uthabiti.api.v1.routers.registrations import registration_state
from uthabiti.core.response_envelope import flash
from uthabiti.db.session import get_db
from uthabiti.models import Member, User
from uthabiti.schemas.members import (
    BenefitsIn,
    FacilityIn,
    FacilityOut,
    MemberDetail,
    ProfileIn,
    ProfileOut,
    StatusChangeRequest,
)
from uthabiti.schemas.registrations import RegistrationState
from uthabiti.schemas.sacco import ContributionOut, SaccoDetail, SaccoMemberOut, SelfContributionCreate
from uthabiti.services import dashboard, ledger
from uthabiti.services import members as member_service
from uthabiti.services import registration_workflows as workflows

router = APIRouter(prefix="/me", tags=["self-service"])


@router.get("/dashboard", summary="Member landing summary")
async def my_dashboard(
    member: Member = Depends(deps.get_current_member),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await dashboard.member_summary(db, member)


@router.get("/member", response_model=MemberDetail, summary="The caller's member record")
async def my_member(
    member: Member = Depends(deps.get_current_member),
    db: AsyncSession = Depends(get_db),
) -> MemberDetail:
    return MemberDetail.model_validate(await member_service.get_member_detail(db, member))


@router.put("/profile", summary="Update the caller's profile")
async def update_my_profile(
    payload: ProfileIn,
    current_user: User = Depends(deps.require_self_service),
    member: Member = Depends(deps.get_current_member),
    db: AsyncSession = Depends(get_db),
) -> dict:
    profile = await member_service.attach_profile(
        db, member.id, payload, actor_id=current_user.id, next_view="my-profile"
    )
    await db.commit()
    return flash(ProfileOut.model_validate(profile), message="Profile saved successfully!", next_view="my-profile")


# Self-service registration: the same workflow as staff, scoped to the caller.


async def _my_state(db: AsyncSession, workflow, member: Member) -> RegistrationState:
    await db.refresh(member)
    return registration_state(workflow, member)


@router.post("/registration", summary="Start or resume the caller's registration")
async def start_my_registration(
    current_user: User = Depends(deps.require_self_service),
    member: Member = Depends(deps.get_current_member),
    db: AsyncSession = Depends(get_db),
) -> dict:
    workflow = await workflows.start_self_registration(db, member, actor_id=current_user.id)
    await db.commit()
    return flash(
        registration_state(workflow, member),
        message="Complete your registration details.",
        next_view=workflows.step_view(workflow),
    )


@router.get("/registration/{workflow_id}", response_model=RegistrationState, summary="Registration progress")
async def read_my_registration(
    workflow_id: str,
    current_user: User = Depends(deps.require_self_service),
    member: Member = Depends(deps.get_current_member),
    db: AsyncSession = Depends(get_db),
) -> RegistrationState:
    workflow = await workflows.get_workflow(
        db, workflow_id, actor_id=current_user.id, actor_role=current_user.role
    )
    return registration_state(workflow, member)


@router.post("/registration/{workflow_id}/profile", summary="Submit the profile step")
async def submit_my_profile(
    workflow_id: str,
    payload: ProfileIn,
    current_user: User = Depends(deps.require_self_service),
    member: Member = Depends(deps.get_current_member),
    db: AsyncSession = Depends(get_db),
) -> dict:
    workflow = await workflows.submit_profile(
        db, workflow_id, payload, actor_id=current_user.id, actor_role=current_user.role
    )
    await db.commit()
    return flash(
        await _my_state(db, workflow, member),
        message="Profile saved successfully!",
        next_view=workflows.step_view(workflow),
    )


@router.post("/registration/{workflow_id}/facility", summary="Submit the facility step")
async def submit_my_facility(
    workflow_id: str,
    payload: FacilityIn,
    current_user: User = Depends(deps.require_self_service),
    member: Member = Depends(deps.get_current_member),
    db: AsyncSession = Depends(get_db),
) -> dict:
    workflow = await workflows.submit_facility(
        db, workflow_id, payload, actor_id=current_user.id, actor_role=current_user.role
    )
    await db.commit()
    return flash(
        await _my_state(db, workflow, member),
        message="Facility saved successfully!",
        next_view=workflows.step_view(workflow),
    )


@router.post("/registration/{workflow_id}/benefits", summary="Submit the programs & financial benefits step")
async def submit_my_benefits(
    workflow_id: str,
    payload: BenefitsIn,
    current_user: User = Depends(deps.require_self_service),
    member: Member = Depends(deps.get_current_member),
    db: AsyncSession = Depends(get_db),
) -> dict:
    workflow = await workflows.submit_benefits(
        db, workflow_id, payload, actor_id=current_user.id, actor_role=current_user.role
    )
    await db.commit()
    return flash(
        await _my_state(db, workflow, member),
        message="Programs & financial benefits saved successfully!",
        next_view=workflows.step_view(workflow),
    )


@router.post("/registration/{workflow_id}/back", summary="Return to the previous step")
async def my_step_back(
    workflow_id: str,
    current_user: User = Depends(deps.require_self_service),
    member: Member = Depends(deps.get_current_member),
    db: AsyncSession = Depends(get_db),
) -> dict:
    workflow = await workflows.step_back(
        db, workflow_id, actor_id=current_user.id, actor_role=current_user.role
    )
    await db.commit()
    return flash(
        await _my_state(db, workflow, member), message="Moved back one step.", next_view=workflows.step_view(workflow)
    )


@router.post("/registration/{workflow_id}/confirm", summary="Submit the registration for approval")
async def confirm_my_registration(
    workflow_id: str,
    current_user: User = Depends(deps.require_self_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    workflow, member = await workflows.confirm(
        db, workflow_id, actor_id=current_user.id, actor_role=current_user.role
    )
    await db.commit()
    return flash(
        registration_state(workflow, member),
        message="Your details have been submitted for approval.",
        next_view=workflows.step_view(workflow),
    )


@router.get("/facilities", response_model=list[FacilityOut], summary="The caller's facilities")
async def my_facilities(
    member: Member = Depends(deps.get_current_member),
    db: AsyncSession = Depends(get_db),
) -> list[FacilityOut]:
    facilities = await member_service.list_facilities(db, member_id=member.id)
    return [FacilityOut.model_validate(facility) for facility in facilities]


@router.post("/facilities/{facility_id}/status-request", summary="Ask an administrator to change a facility status")
async def request_facility_status(
    facility_id: int,
    payload: StatusChangeRequest,
    current_user: User = Depends(deps.require_self_service),
    member: Member = Depends(deps.get_current_member),
    db: AsyncSession = Depends(get_db),
) -> dict:
    facility = await member_service.request_facility_status_change(
        db, facility_id, member, reason=payload.reason, actor_id=current_user.id
    )
    await db.commit()
    return flash(
        FacilityOut.model_validate(facility),
        message="Your request has been sent to the administrator.",
        next_view="my-facilities",
    )


@router.get("/sacco", response_model=SaccoDetail, summary="The caller's sacco account")
async def my_sacco(
    member: Member = Depends(deps.get_current_member),
    db: AsyncSession = Depends(get_db),
) -> SaccoDetail:
    sacco_member = await ledger.get_sacco_member_for_member(db, member.id)
    return SaccoDetail.model_validate(await ledger.get_sacco_detail(db, sacco_member))


@router.post("/sacco", status_code=status.HTTP_201_CREATED, summary="Request to join the sacco")
async def join_sacco(
    current_user: User = Depends(deps.require_self_service),
    member: Member = Depends(deps.get_current_member),
    db: AsyncSession = Depends(get_db),
) -> dict:
    sacco_member = await ledger.enroll_member(db, member, actor_id=current_user.id, actor_role=current_user.role)
    await db.commit()
    return flash(
        SaccoMemberOut.model_validate(sacco_member),
        message="Your sacco membership request has been submitted.",
        next_view="my-sacco",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/sacco/contributions", status_code=status.HTTP_201_CREATED, summary="Post a contribution")
async def contribute(
    payload: SelfContributionCreate,
    current_user: User = Depends(deps.require_self_service),
    member: Member = Depends(deps.get_current_member),
    db: AsyncSession = Depends(get_db),
) -> dict:
    sacco_member = await ledger.get_sacco_member_for_member(db, member.id)
    contribution = await ledger.post_contribution(
        db, sacco_member.id, payload, actor_id=current_user.id, next_view="my-sacco"
    )
    await db.commit()
    return flash(
        ContributionOut.model_validate(contribution),
        message="Contribution recorded successfully!",
        next_view="my-sacco",
        status_code=status.HTTP_201_CREATED,
    )
