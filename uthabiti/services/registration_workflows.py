"""Multi-step member registration tracked as a persisted workflow.

A workflow walks one member through ``profile -> facility -> benefits ->
confirm``; the facility step only exists for ``Facility In`` members. Clients
hold the workflow id instead of relying on session state.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.core.errors import NotFoundError, PolicyViolation
from uthabiti.core.permissions import Role
from uthabiti.models.member import Facility, Member, MemberBenefits, MemberProfile
from uthabiti.models.registration_workflow import RegistrationWorkflow
from uthabiti.schemas.common import MembershipType, MemberStatus
from uthabiti.schemas.members import BenefitsIn, FacilityIn, MemberCreate, ProfileIn
from uthabiti.services import members as member_service

FLOW_NEW = "new"
FLOW_DRAFT = "draft"
FLOW_SELF = "self"

STEP_PROFILE = "profile"
STEP_FACILITY = "facility"
STEP_BENEFITS = "benefits"
STEP_CONFIRM = "confirm"
STEP_COMPLETED = "completed"

STATUS_OPEN = "open"
STATUS_COMPLETED = "completed"

STEP_VIEWS = {
    STEP_PROFILE: "add-member-profile",
    STEP_FACILITY: "add-member-facility",
    STEP_BENEFITS: "add-member-benefits",
    STEP_CONFIRM: "confirm-member",
}


def steps_for(membership_type: str) -> list[str]:
    steps = [STEP_PROFILE]
    if membership_type == MembershipType.FACILITY_IN.value:
        steps.append(STEP_FACILITY)
    steps.extend([STEP_BENEFITS, STEP_CONFIRM])
    return steps


def step_view(workflow: RegistrationWorkflow) -> str:
    if workflow.step == STEP_COMPLETED:
        return "my-dashboard" if workflow.flow == FLOW_SELF else "members"
    return STEP_VIEWS[workflow.step]


def _next_step(membership_type: str, current: str) -> str:
    steps = steps_for(membership_type)
    return steps[steps.index(current) + 1]


async def _open_workflow(
    db: AsyncSession, member: Member, *, actor_id: int | None, flow: str, step: str = STEP_PROFILE
) -> RegistrationWorkflow:
    workflow = RegistrationWorkflow(
        member_id=member.id,
        actor_id=actor_id,
        flow=flow,
        step=step,
        status=STATUS_OPEN,
        # a draft resumed at confirm already has its benefits on file
        benefits_submitted=step == STEP_CONFIRM,
    )
    db.add(workflow)
    await db.flush()
    return workflow


async def start_registration(
    db: AsyncSession,
    payload: MemberCreate,
    *,
    actor_id: int | None,
    actor_role: str | None,
) -> tuple[RegistrationWorkflow, Member]:
    member = await member_service.create_member(db, payload, actor_id=actor_id, actor_role=actor_role)
    workflow = await _open_workflow(db, member, actor_id=actor_id, flow=FLOW_NEW)
    return workflow, member


async def get_workflow(
    db: AsyncSession,
    workflow_id: str,
    *,
    actor_id: int | None = None,
    actor_role: str | None = None,
) -> RegistrationWorkflow:
    result = await db.execute(select(RegistrationWorkflow).where(RegistrationWorkflow.id == workflow_id))
    workflow = result.scalar_one_or_none()
    if workflow is None:
        raise NotFoundError("Registration not found", next_view="members")
    # members only ever see their own self-service workflow
    if actor_role == Role.MEMBER.value and (workflow.flow != FLOW_SELF or workflow.actor_id != actor_id):
        raise NotFoundError("Registration not found", next_view="my-dashboard")
    return workflow


async def _open_at_step(
    db: AsyncSession, workflow_id: str, step: str, *, actor_id: int | None, actor_role: str | None
) -> tuple[RegistrationWorkflow, Member]:
    workflow = await get_workflow(db, workflow_id, actor_id=actor_id, actor_role=actor_role)
    if workflow.status != STATUS_OPEN:
        raise PolicyViolation("This registration is already completed.", next_view=step_view(workflow))
    if workflow.step != step:
        raise PolicyViolation(
            f"This registration is at the {workflow.step} step.", next_view=step_view(workflow)
        )
    member = await member_service.get_member(db, workflow.member_id)
    return workflow, member


async def _advance(db: AsyncSession, workflow: RegistrationWorkflow, member: Member) -> RegistrationWorkflow:
    workflow.step = _next_step(member.membership_type, workflow.step)
    db.add(workflow)
    await db.flush()
    return workflow


async def submit_profile(
    db: AsyncSession, workflow_id: str, payload: ProfileIn, *, actor_id: int | None, actor_role: str | None = None
) -> RegistrationWorkflow:
    workflow, member = await _open_at_step(
        db, workflow_id, STEP_PROFILE, actor_id=actor_id, actor_role=actor_role
    )
    await member_service.attach_profile(
        db, member.id, payload, actor_id=actor_id, next_view=STEP_VIEWS[STEP_PROFILE]
    )
    return await _advance(db, workflow, member)


async def submit_facility(
    db: AsyncSession, workflow_id: str, payload: FacilityIn, *, actor_id: int | None, actor_role: str | None = None
) -> RegistrationWorkflow:
    workflow, member = await _open_at_step(
        db, workflow_id, STEP_FACILITY, actor_id=actor_id, actor_role=actor_role
    )
    await member_service.attach_facility(
        db, member.id, payload, actor_id=actor_id, next_view=STEP_VIEWS[STEP_FACILITY]
    )
    return await _advance(db, workflow, member)


async def submit_benefits(
    db: AsyncSession, workflow_id: str, payload: BenefitsIn, *, actor_id: int | None, actor_role: str | None = None
) -> RegistrationWorkflow:
    """Benefits are create-once, but a workflow that stepped back past them may correct its own answers."""
    workflow, member = await _open_at_step(
        db, workflow_id, STEP_BENEFITS, actor_id=actor_id, actor_role=actor_role
    )
    await member_service.attach_benefits(
        db,
        member.id,
        payload,
        actor_id=actor_id,
        overwrite=bool(workflow.benefits_submitted),
        next_view=STEP_VIEWS[STEP_BENEFITS],
    )
    workflow.benefits_submitted = True
    return await _advance(db, workflow, member)


async def step_back(
    db: AsyncSession, workflow_id: str, *, actor_id: int | None, actor_role: str | None = None
) -> RegistrationWorkflow:
    workflow = await get_workflow(db, workflow_id, actor_id=actor_id, actor_role=actor_role)
    if workflow.status != STATUS_OPEN:
        raise PolicyViolation("This registration is already completed.", next_view=step_view(workflow))
    member = await member_service.get_member(db, workflow.member_id)
    steps = steps_for(member.membership_type)
    position = steps.index(workflow.step)
    if position == 0:
        raise PolicyViolation("Already at the first step.", next_view=step_view(workflow))
    workflow.step = steps[position - 1]
    db.add(workflow)
    await db.flush()
    return workflow


async def confirm(
    db: AsyncSession,
    workflow_id: str,
    *,
    actor_id: int | None,
    actor_role: str | None,
) -> tuple[RegistrationWorkflow, Member]:
    workflow, member = await _open_at_step(
        db, workflow_id, STEP_CONFIRM, actor_id=actor_id, actor_role=actor_role
    )
    member = await member_service.confirm_registration(
        db, member.id, actor_id=actor_id, actor_role=actor_role
    )
    workflow.step = STEP_COMPLETED
    workflow.status = STATUS_COMPLETED
    workflow.completed_at = datetime.now(timezone.utc)
    db.add(workflow)
    await db.flush()
    return workflow, member


async def _first_missing_step(db: AsyncSession, member: Member) -> str:
    profile = (
        await db.execute(select(MemberProfile).where(MemberProfile.member_id == member.id))
    ).scalar_one_or_none()
    if profile is None:
        return STEP_PROFILE
    if member.membership_type == MembershipType.FACILITY_IN.value:
        facility = (
            await db.execute(select(Facility).where(Facility.member_id == member.id).limit(1))
        ).scalar_one_or_none()
        if facility is None:
            return STEP_FACILITY
    benefits = (
        await db.execute(select(MemberBenefits).where(MemberBenefits.member_id == member.id))
    ).scalar_one_or_none()
    if benefits is None:
        return STEP_BENEFITS
    return STEP_CONFIRM


async def resume_draft(
    db: AsyncSession, membership_no: str, *, actor_id: int | None
) -> tuple[RegistrationWorkflow, Member]:
    member = await member_service.get_member_by_number(db, membership_no, next_view="drafts")
    if member.status != MemberStatus.DRAFT.value:
        raise PolicyViolation("Only members in Draft can be resumed.", next_view="drafts")
    step = await _first_missing_step(db, member)
    workflow = await _open_workflow(db, member, actor_id=actor_id, flow=FLOW_DRAFT, step=step)
    return workflow, member


async def start_self_registration(
    db: AsyncSession, member: Member, *, actor_id: int | None
) -> RegistrationWorkflow:
    """Open (or reopen) the self-service workflow for the caller's own member record."""
    result = await db.execute(
        select(RegistrationWorkflow).where(
            RegistrationWorkflow.member_id == member.id,
            RegistrationWorkflow.flow == FLOW_SELF,
            RegistrationWorkflow.status == STATUS_OPEN,
        )
    )
    existing = result.scalars().first()
    if existing is not None:
        return existing
    step = await _first_missing_step(db, member)
    return await _open_workflow(db, member, actor_id=actor_id, flow=FLOW_SELF, step=step)
