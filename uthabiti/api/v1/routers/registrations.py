from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.api import deps
from uthabiti.core.permissions import PermissionCode
from uthabiti.core.response_envelope import flash
from uthabiti.db.session import get_db
from uthabiti.models import Member, RegistrationWorkflow, User
from uthabiti.schemas.members import BenefitsIn, FacilityIn, MemberCreate, MemberOut, ProfileIn
from uthabiti.schemas.registrations import RegistrationState, ResumeDraftRequest, WorkflowOut
from uthabiti.services import members as member_service
from uthabiti.services import registration_workflows as workflows

router = APIRouter(prefix="/registrations", tags=["registrations"])

_register = deps.require_permission(PermissionCode.MEMBER_REGISTER)


def registration_state(workflow: RegistrationWorkflow, member: Member) -> RegistrationState:
    return RegistrationState(
        workflow=WorkflowOut.model_validate(workflow),
        member=MemberOut.model_validate(member),
        steps=workflows.steps_for(member.membership_type),
    )


async def _state_for(db: AsyncSession, workflow: RegistrationWorkflow) -> RegistrationState:
    member = await member_service.get_member(db, workflow.member_id)
    return registration_state(workflow, member)


@router.post("", status_code=status.HTTP_201_CREATED, summary="Start a member registration")
async def start_registration(
    payload: MemberCreate,
    current_user: User = Depends(_register),
    db: AsyncSession = Depends(get_db),
) -> dict:
    workflow, member = await workflows.start_registration(
        db, payload, actor_id=current_user.id, actor_role=current_user.role
    )
    await db.commit()
    return flash(
        registration_state(workflow, member),
        message=f"Member {member.full_name} added with membership number {member.membership_no}.",
        next_view=workflows.step_view(workflow),
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/drafts/resume", summary="Resume a Draft registration by membership number")
async def resume_draft(
    payload: ResumeDraftRequest,
    current_user: User = Depends(_register),
    db: AsyncSession = Depends(get_db),
) -> dict:
    workflow, member = await workflows.resume_draft(db, payload.membership_no, actor_id=current_user.id)
    await db.commit()
    return flash(
        registration_state(workflow, member),
        message=f"Continue the registration for {member.full_name}.",
        next_view=workflows.step_view(workflow),
    )


@router.get("/{workflow_id}", response_model=RegistrationState, summary="Registration progress")
async def read_registration(
    workflow_id: str,
    current_user: User = Depends(_register),
    db: AsyncSession = Depends(get_db),
) -> RegistrationState:
    workflow = await workflows.get_workflow(
        db, workflow_id, actor_id=current_user.id, actor_role=current_user.role
    )
    return await _state_for(db, workflow)


@router.post("/{workflow_id}/profile", summary="Submit the member profile step")
async def submit_profile(
    workflow_id: str,
    payload: ProfileIn,
    current_user: User = Depends(_register),
    db: AsyncSession = Depends(get_db),
) -> dict:
    workflow = await workflows.submit_profile(
        db, workflow_id, payload, actor_id=current_user.id, actor_role=current_user.role
    )
    await db.commit()
    return flash(
        await _state_for(db, workflow), message="Profile saved successfully!", next_view=workflows.step_view(workflow)
    )


@router.post("/{workflow_id}/facility", summary="Submit the facility step")
async def submit_facility(
    workflow_id: str,
    payload: FacilityIn,
    current_user: User = Depends(_register),
    db: AsyncSession = Depends(get_db),
) -> dict:
    workflow = await workflows.submit_facility(
        db, workflow_id, payload, actor_id=current_user.id, actor_role=current_user.role
    )
    await db.commit()
    return flash(
        await _state_for(db, workflow), message="Facility saved successfully!", next_view=workflows.step_view(workflow)
    )


@router.post("/{workflow_id}/benefits", summary="Submit the programs & financial benefits step")
async def submit_benefits(
    workflow_id: str,
    payload: BenefitsIn,
    current_user: User = Depends(_register),
    db: AsyncSession = Depends(get_db),
) -> dict:
    workflow = await workflows.submit_benefits(
        db, workflow_id, payload, actor_id=current_user.id, actor_role=current_user.role
    )
    await db.commit()
    return flash(
        await _state_for(db, workflow),
        message="Programs & financial benefits saved successfully!",
        next_view=workflows.step_view(workflow),
    )


@router.post("/{workflow_id}/back", summary="Return to the previous step")
async def step_back(
    workflow_id: str,
    current_user: User = Depends(_register),
    db: AsyncSession = Depends(get_db),
) -> dict:
    workflow = await workflows.step_back(
        db, workflow_id, actor_id=current_user.id, actor_role=current_user.role
    )
    await db.commit()
    return flash(await _state_for(db, workflow), message="Moved back one step.", next_view=workflows.step_view(workflow))


@router.post("/{workflow_id}/confirm", summary="Confirm and submit the registration")
async def confirm_registration(
    workflow_id: str,
    current_user: User = Depends(_register),
    db: AsyncSession = Depends(get_db),
) -> dict:
    workflow, member = await workflows.confirm(
        db, workflow_id, actor_id=current_user.id, actor_role=current_user.role
    )
    await db.commit()
    return flash(
        registration_state(workflow, member),
        message=f"Member registration submitted with status {member.status}.",
        next_view=workflows.step_view(workflow),
    )
