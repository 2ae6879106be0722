import pytest

from conftest import FakeAsyncSession, FakeResult, entity_handler, make_member

from uthabiti.core.errors import ConflictError, NotFoundError, PolicyViolation
from uthabiti.models import Member, MemberBenefits, MemberProfile, RegistrationWorkflow, User
from uthabiti.schemas.members import BenefitsIn, FacilityIn, MemberCreate, ProfileIn
from uthabiti.services import registration_workflows as workflows


def _workflow(
    member, *, step="profile", flow="new", status="open", actor_id=1, benefits_submitted=False
) -> RegistrationWorkflow:
    return RegistrationWorkflow(
        id="a" * 32,
        member_id=member.id,
        actor_id=actor_id,
        flow=flow,
        step=step,
        status=status,
        benefits_submitted=benefits_submitted,
    )


def _session(workflow, member) -> FakeAsyncSession:
    db = FakeAsyncSession()
    db.on_execute(entity_handler(RegistrationWorkflow, FakeResult(scalar=workflow)))
    db.on_execute(entity_handler(Member, FakeResult(scalar=member)))
    return db


def test_steps_skip_facility_for_individuals():
    assert workflows.steps_for("Individual") == ["profile", "benefits", "confirm"]
    assert workflows.steps_for("Sacco In") == ["profile", "benefits", "confirm"]
    assert workflows.steps_for("Facility In") == ["profile", "facility", "benefits", "confirm"]


def test_step_view():
    member = make_member()
    assert workflows.step_view(_workflow(member, step="facility")) == "add-member-facility"
    assert workflows.step_view(_workflow(member, step="completed", status="completed")) == "members"
    assert workflows.step_view(_workflow(member, step="completed", flow="self")) == "my-dashboard"


@pytest.mark.asyncio
async def test_start_registration_opens_workflow_at_profile():
    db = FakeAsyncSession()
    payload = MemberCreate(
        first_name="Amina",
        last_name="Odhiambo",
        email="amina@example.com",
        membership_type="Facility In",
        county="Mombasa",
        sub_county="Changamwe",
        ward="Kipevu",
    )

    workflow, member = await workflows.start_registration(db, payload, actor_id=1, actor_role="Admin")

    assert len(workflow.id) == 32
    assert workflow.member_id == member.id
    assert workflow.flow == "new"
    assert workflow.step == "profile"
    assert workflow.status == "open"
    assert member.membership_no.startswith("001-001-02-")
    assert len(db.added_of(User)) == 1


@pytest.mark.asyncio
async def test_profile_step_advances_individual_to_benefits():
    member = make_member(membership_type="Individual")
    workflow = _workflow(member)
    db = _session(workflow, member)

    result = await workflows.submit_profile(
        db, workflow.id, ProfileIn(phone="0712345678", id_number="12345678"), actor_id=1
    )

    assert result.step == "benefits"
    assert len(db.added_of(MemberProfile)) == 1


@pytest.mark.asyncio
async def test_profile_step_advances_facility_member_to_facility():
    member = make_member(membership_type="Facility In")
    workflow = _workflow(member)
    db = _session(workflow, member)

    result = await workflows.submit_profile(
        db, workflow.id, ProfileIn(phone="0712345678", id_number="12345678"), actor_id=1
    )
    assert result.step == "facility"

    result = await workflows.submit_facility(db, workflow.id, FacilityIn(facility_name="Little Stars"), actor_id=1)
    assert result.step == "benefits"


@pytest.mark.asyncio
async def test_benefits_step_advances_to_confirm():
    member = make_member()
    workflow = _workflow(member, step="benefits")
    db = _session(workflow, member)

    result = await workflows.submit_benefits(db, workflow.id, BenefitsIn(other="Mentorship"), actor_id=1)

    assert result.step == "confirm"
    assert len(db.added_of(MemberBenefits)) == 1


@pytest.mark.asyncio
async def test_submitting_out_of_order_is_rejected():
    member = make_member()
    workflow = _workflow(member, step="benefits")
    db = _session(workflow, member)

    with pytest.raises(PolicyViolation) as exc_info:
        await workflows.submit_profile(
            db, workflow.id, ProfileIn(phone="0712345678", id_number="12345678"), actor_id=1
        )
    assert exc_info.value.next_view == "add-member-benefits"


@pytest.mark.asyncio
async def test_completed_workflow_is_read_only():
    member = make_member()
    workflow = _workflow(member, step="completed", status="completed")
    db = _session(workflow, member)

    with pytest.raises(PolicyViolation, match="already completed"):
        await workflows.submit_benefits(db, workflow.id, BenefitsIn(), actor_id=1)
    with pytest.raises(PolicyViolation):
        await workflows.step_back(db, workflow.id, actor_id=1)


@pytest.mark.asyncio
async def test_step_back():
    member = make_member(membership_type="Facility In")
    workflow = _workflow(member, step="benefits")
    db = _session(workflow, member)

    result = await workflows.step_back(db, workflow.id, actor_id=1)
    assert result.step == "facility"

    result = await workflows.step_back(db, workflow.id, actor_id=1)
    assert result.step == "profile"

    with pytest.raises(PolicyViolation, match="first step"):
        await workflows.step_back(db, workflow.id, actor_id=1)


@pytest.mark.asyncio
async def test_benefits_can_be_corrected_after_stepping_back():
    member = make_member()
    workflow = _workflow(member, step="confirm", benefits_submitted=True)
    existing = MemberBenefits(id=4, member_id=member.id, benefits={"other": "Mentorship"})
    db = _session(workflow, member)
    db.on_execute(entity_handler(MemberBenefits, FakeResult(scalar=existing)))

    await workflows.step_back(db, workflow.id, actor_id=1)
    result = await workflows.submit_benefits(db, workflow.id, BenefitsIn(other="corrected"), actor_id=1)

    assert result.step == "confirm"
    assert existing.benefits["other"] == "corrected"
    assert db.added_of(MemberBenefits) == [existing]


@pytest.mark.asyncio
async def test_first_benefits_submission_is_create_once():
    member = make_member()
    workflow = _workflow(member, step="benefits")
    existing = MemberBenefits(id=4, member_id=member.id, benefits={"other": "Mentorship"})
    db = _session(workflow, member)
    db.on_execute(entity_handler(MemberBenefits, FakeResult(scalar=existing)))

    with pytest.raises(ConflictError):
        await workflows.submit_benefits(db, workflow.id, BenefitsIn(other="corrected"), actor_id=1)
    assert workflow.step == "benefits"
    assert existing.benefits["other"] == "Mentorship"


@pytest.mark.asyncio
async def test_submitting_benefits_marks_workflow():
    member = make_member()
    workflow = _workflow(member, step="benefits")
    db = _session(workflow, member)

    result = await workflows.submit_benefits(db, workflow.id, BenefitsIn(), actor_id=1)

    assert result.benefits_submitted is True


@pytest.mark.asyncio
async def test_confirm_completes_workflow():
    member = make_member(status="Pending")
    workflow = _workflow(member, step="confirm")
    db = _session(workflow, member)

    result, confirmed = await workflows.confirm(db, workflow.id, actor_id=1, actor_role="Admin")

    assert result.step == "completed"
    assert result.status == "completed"
    assert result.completed_at is not None
    assert confirmed.status == "Active"
    assert workflows.step_view(result) == "members"


@pytest.mark.asyncio
async def test_unknown_workflow():
    with pytest.raises(NotFoundError):
        await workflows.get_workflow(FakeAsyncSession(), "missing")


@pytest.mark.asyncio
async def test_members_cannot_open_staff_workflows():
    member = make_member()
    workflow = _workflow(member, flow="new", actor_id=5)
    db = _session(workflow, member)

    with pytest.raises(NotFoundError):
        await workflows.get_workflow(db, workflow.id, actor_id=5, actor_role="Member")


@pytest.mark.asyncio
async def test_members_cannot_open_someone_elses_self_workflow():
    member = make_member()
    workflow = _workflow(member, flow="self", actor_id=5)
    db = _session(workflow, member)

    with pytest.raises(NotFoundError):
        await workflows.submit_benefits(db, workflow.id, BenefitsIn(), actor_id=6, actor_role="Member")

    found = await workflows.get_workflow(db, workflow.id, actor_id=5, actor_role="Member")
    assert found is workflow


@pytest.mark.asyncio
async def test_resume_draft_starts_at_first_missing_step():
    member = make_member(id=7, status="Draft", membership_type="Facility In")
    profile = MemberProfile(id=1, member_id=7, phone="0712345678", id_number="12345678")
    db = FakeAsyncSession()
    db.on_execute(entity_handler(Member, FakeResult(scalar=member)))
    db.on_execute(entity_handler(MemberProfile, FakeResult(scalar=profile)))

    workflow, resumed = await workflows.resume_draft(db, "001-001-01-0007", actor_id=1)

    assert resumed is member
    assert workflow.flow == "draft"
    assert workflow.step == "facility"


@pytest.mark.asyncio
async def test_resume_complete_draft_opens_at_confirm():
    member = make_member(id=7, status="Draft")
    profile = MemberProfile(id=1, member_id=7, phone="0712345678", id_number="12345678")
    benefits = MemberBenefits(id=2, member_id=7, benefits={"other": "Mentorship"})
    db = FakeAsyncSession()
    db.on_execute(entity_handler(Member, FakeResult(scalar=member)))
    db.on_execute(entity_handler(MemberProfile, FakeResult(scalar=profile)))
    db.on_execute(entity_handler(MemberBenefits, FakeResult(scalar=benefits)))

    workflow, _ = await workflows.resume_draft(db, "001-001-01-0007", actor_id=1)

    assert workflow.step == "confirm"
    assert workflow.benefits_submitted is True


@pytest.mark.asyncio
async def test_resume_draft_requires_draft_status():
    member = make_member(id=7, status="Active")
    db = FakeAsyncSession()
    db.on_execute(entity_handler(Member, FakeResult(scalar=member)))

    with pytest.raises(PolicyViolation, match="Only members in Draft"):
        await workflows.resume_draft(db, "001-001-01-0007", actor_id=1)


@pytest.mark.asyncio
async def test_self_registration_reuses_open_workflow():
    member = make_member()
    existing = _workflow(member, flow="self", step="benefits")
    db = FakeAsyncSession()
    db.on_execute(entity_handler(RegistrationWorkflow, FakeResult(items=[existing])))

    workflow = await workflows.start_self_registration(db, member, actor_id=1)

    assert workflow is existing
    assert db.added == []


@pytest.mark.asyncio
async def test_self_registration_opens_new_workflow():
    member = make_member()
    db = FakeAsyncSession()

    workflow = await workflows.start_self_registration(db, member, actor_id=member.user_id)

    assert workflow.flow == "self"
    assert workflow.step == "profile"
    assert workflow in db.added
