from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.core.errors import ConflictError, NotFoundError, PolicyViolation, ValidationFailure
from uthabiti.core.permissions import Role
from uthabiti.core.security import hash_provisional_secret
from uthabiti.models.member import Facility, Member, MemberBenefits, MemberProfile
from uthabiti.models.sacco import Contribution, SaccoMember
from uthabiti.models.user import User
from uthabiti.schemas.common import (
    ContributionType,
    FacilityStatus,
    MembershipType,
    MemberStatus,
    SaccoStatus,
    UserStatus,
)
from uthabiti.schemas.members import BenefitsIn, FacilityIn, MemberCreate, ProfileIn
from uthabiti.services import membership_numbers
from uthabiti.services.activity_log import describe_changes, model_snapshot, record_activity
from uthabiti.services.notifications import notify
from uthabiti.services.regions import region_codes
from uthabiti.services.sacco_settings import get_sacco_settings

MEMBER_STATUS_TRANSITIONS = {
    MemberStatus.ACTIVE.value: MemberStatus.SUSPENDED.value,
    MemberStatus.INACTIVE.value: MemberStatus.ACTIVE.value,
    MemberStatus.PENDING.value: MemberStatus.ACTIVE.value,
    MemberStatus.DRAFT.value: MemberStatus.ACTIVE.value,
    MemberStatus.SUSPENDED.value: MemberStatus.ACTIVE.value,
}

FACILITY_STATUS_TRANSITIONS = {
    FacilityStatus.ACTIVE.value: FacilityStatus.INACTIVE.value,
    FacilityStatus.INACTIVE.value: FacilityStatus.ACTIVE.value,
    FacilityStatus.PENDING.value: FacilityStatus.ACTIVE.value,
}

_PROFILE_FIELDS = (
    "phone",
    "id_number",
    "dob",
    "gender",
    "disability",
    "education_level",
    "citizenship",
    "country",
    "county",
    "sub_county",
    "ward",
    "next_kin_name",
    "kin_rln",
    "kin_phone",
    "kin_location",
)
_PROFILE_DOCUMENTS = ("member_doc", "member_id_doc")
_FACILITY_FIELDS = (
    "facility_name",
    "facility_type",
    "setup_type",
    "facility_estab_year",
    "reg_no",
    "license_no",
    "male_b",
    "female_b",
    "male_b_dis",
    "female_b_dis",
    "male_c",
    "female_c",
    "f_county",
    "f_subcounty",
    "f_area",
)


def initial_status(actor_role: str | None) -> str:
    """Records created by an Admin go live immediately; everyone else waits for review."""
    if actor_role == Role.ADMIN.value:
        return MemberStatus.ACTIVE.value
    return MemberStatus.PENDING.value


def confirmed_status(actor_role: str | None) -> str:
    if actor_role == Role.ADMIN.value:
        return MemberStatus.ACTIVE.value
    if actor_role in (Role.DATA_CLERK.value, Role.MEMBER.value):
        return MemberStatus.PENDING.value
    return MemberStatus.DRAFT.value


async def get_member(db: AsyncSession, member_id: int, *, next_view: str | None = "members") -> Member:
    result = await db.execute(select(Member).where(Member.id == member_id))
    member = result.scalar_one_or_none()
    if member is None:
        raise NotFoundError("Member not found", next_view=next_view)
    return member


async def get_member_for_user(db: AsyncSession, user_id: int) -> Member:
    result = await db.execute(select(Member).where(Member.user_id == user_id))
    member = result.scalar_one_or_none()
    if member is None:
        raise NotFoundError("No member record is linked to this account", next_view="my-dashboard")
    return member


async def get_member_by_number(db: AsyncSession, membership_no: str, *, next_view: str = "members") -> Member:
    membership_numbers.parse_or_raise(membership_no, next_view=next_view)
    result = await db.execute(select(Member).where(Member.membership_no == membership_no.strip()))
    member = result.scalar_one_or_none()
    if member is None:
        raise NotFoundError("Data not found for this membership number", next_view=next_view)
    return member


async def list_members(
    db: AsyncSession,
    *,
    status: str | None = None,
    membership_type: str | None = None,
) -> list[Member]:
    stmt = select(Member)
    if status:
        stmt = stmt.where(Member.status == status)
    if membership_type:
        stmt = stmt.where(Member.membership_type == membership_type)
    result = await db.execute(stmt.order_by(Member.id.desc()))
    return list(result.scalars().all())


async def get_member_detail(db: AsyncSession, member: Member) -> dict[str, Any]:
    profile = (
        await db.execute(select(MemberProfile).where(MemberProfile.member_id == member.id))
    ).scalar_one_or_none()
    facilities = (
        await db.execute(select(Facility).where(Facility.member_id == member.id).order_by(Facility.id))
    ).scalars().all()
    benefits = (
        await db.execute(select(MemberBenefits).where(MemberBenefits.member_id == member.id))
    ).scalar_one_or_none()
    sacco = (
        await db.execute(select(SaccoMember).where(SaccoMember.member_id == member.id))
    ).scalar_one_or_none()
    return {
        "member": member,
        "profile": profile,
        "facilities": list(facilities),
        "benefits": benefits,
        "sacco": sacco,
    }


async def create_member(
    db: AsyncSession,
    payload: MemberCreate,
    *,
    actor_id: int | None,
    actor_role: str | None,
    password_hash: str | None = None,
    user_id: int | None = None,
) -> Member:
    """Insert a member, then stamp the membership number derived from its new id.

    ``password_hash`` is given for self-registration; staff-created members get
    their membership number as a provisional password.
    """
    existing = await db.execute(select(Member).where(Member.email == payload.email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("A member with this email already exists!", next_view="add-member")
    if user_id is None:
        account = await db.execute(select(User).where(User.email == payload.email))
        if account.scalar_one_or_none() is not None:
            raise ConflictError("An account with this email already exists!", next_view="add-member")
    if region_codes(payload.county, payload.sub_county, payload.ward) is None:
        raise ValidationFailure("Invalid county, subcounty or ward selected.", next_view="add-member")

    status = initial_status(actor_role)
    member = Member(
        first_name=payload.first_name,
        middle_name=payload.middle_name,
        last_name=payload.last_name,
        email=payload.email,
        membership_type=payload.membership_type.value,
        status=status,
        county=payload.county,
        sub_county=payload.sub_county,
        ward=payload.ward,
        user_id=user_id,
        created_by_user_id=actor_id,
    )
    db.add(member)
    await db.flush()

    member.membership_no = membership_numbers.format_membership_number(
        payload.county, payload.sub_county, payload.ward, member.id
    )
    member.hashed_password = password_hash or hash_provisional_secret(member.membership_no)
    if user_id is None:
        # portal login for the member; the provisional password must be changed first
        account = User(
            full_name=member.full_name,
            email=member.email,
            role=Role.MEMBER.value,
            status=UserStatus.PENDING.value,
            hashed_password=member.hashed_password,
        )
        db.add(account)
        await db.flush()
        member.user_id = account.id
    db.add(member)
    await db.flush()

    if payload.membership_type == MembershipType.SACCO_IN:
        await _open_sacco_account(db, member, status=status, actor_id=actor_id)

    await record_activity(
        db,
        action="MEMBER_CREATED",
        description=(
            f"Member {member.full_name} ({member.membership_no}) registered as "
            f"{member.membership_type} with status {status}"
        ),
        user_id=actor_id,
        member_id=member.id,
        new_value=model_snapshot(member, exclude={"hashed_password"}),
    )
    return member


async def _open_sacco_account(db: AsyncSession, member: Member, *, status: str, actor_id: int | None) -> SaccoMember:
    sacco_status = SaccoStatus.ACTIVE.value if status == MemberStatus.ACTIVE.value else SaccoStatus.PENDING.value
    sacco_member = SaccoMember(
        member_id=member.id,
        membership_no=member.membership_no,
        shares=Decimal("0"),
        savings=Decimal("0"),
        loan_balance=Decimal("0"),
        status=sacco_status,
    )
    db.add(sacco_member)
    await db.flush()

    sacco_settings = await get_sacco_settings(db)
    fee = Decimal(sacco_settings.membership_fee or 0) if sacco_settings else Decimal("0")
    if fee > 0:
        # recorded for the books only, it moves no balance
        db.add(
            Contribution(
                sacco_member_id=sacco_member.id,
                member_id=member.id,
                contribution_type=ContributionType.MEMBERSHIP_FEE.value,
                amount=fee,
                payment_method="Registration",
                status="Completed",
                recorded_by_user_id=actor_id,
            )
        )
        await db.flush()
    return sacco_member


async def attach_profile(
    db: AsyncSession,
    member_id: int,
    payload: ProfileIn,
    *,
    actor_id: int | None,
    next_view: str = "add-member-profile",
) -> MemberProfile:
    member = await get_member(db, member_id)
    duplicate = await db.execute(
        select(MemberProfile).where(
            or_(MemberProfile.id_number == payload.id_number, MemberProfile.phone == payload.phone),
            MemberProfile.member_id != member.id,
        )
    )
    if duplicate.scalars().first() is not None:
        raise ConflictError(
            "A member with this National ID or phone number already exists!", next_view=next_view
        )

    values = {field: getattr(payload, field) for field in _PROFILE_FIELDS}
    result = await db.execute(select(MemberProfile).where(MemberProfile.member_id == member.id))
    profile = result.scalar_one_or_none()

    if profile is None:
        profile = MemberProfile(member_id=member.id, **values)
        for field in _PROFILE_DOCUMENTS:
            setattr(profile, field, getattr(payload, field))
        db.add(profile)
        await db.flush()
        await record_activity(
            db,
            action="MEMBER_PROFILE_CREATED",
            description=f"Profile added for {member.full_name} ({member.membership_no})",
            user_id=actor_id,
            member_id=member.id,
            new_value=model_snapshot(profile),
        )
        return profile

    for field in _PROFILE_DOCUMENTS:
        # an omitted upload keeps the stored document
        new_document = getattr(payload, field)
        if new_document:
            values[field] = new_document
    before = model_snapshot(profile)
    description = describe_changes({field: getattr(profile, field) for field in values}, values)
    for field, value in values.items():
        setattr(profile, field, value)
    db.add(profile)
    await db.flush()
    await record_activity(
        db,
        action="MEMBER_PROFILE_UPDATED",
        description=description or f"Profile saved for {member.full_name} with no changes",
        user_id=actor_id,
        member_id=member.id,
        old_value=before,
        new_value=model_snapshot(profile),
    )
    return profile


async def _ensure_facility_numbers_free(
    db: AsyncSession, member_id: int, payload: FacilityIn, next_view: str
) -> None:
    clauses = []
    if payload.reg_no:
        clauses.append(Facility.reg_no == payload.reg_no)
    if payload.license_no:
        clauses.append(Facility.license_no == payload.license_no)
    if not clauses:
        return
    result = await db.execute(select(Facility).where(or_(*clauses), Facility.member_id != member_id))
    if result.scalars().first() is not None:
        raise ConflictError(
            "A facility with this Registration or License Number already exists!", next_view=next_view
        )


async def attach_facility(
    db: AsyncSession,
    member_id: int,
    payload: FacilityIn,
    *,
    actor_id: int | None,
    next_view: str = "add-member-facility",
) -> Facility:
    member = await get_member(db, member_id)
    await _ensure_facility_numbers_free(db, member.id, payload, next_view)

    values = {field: getattr(payload, field) for field in _FACILITY_FIELDS}
    result = await db.execute(
        select(Facility).where(Facility.member_id == member.id).order_by(Facility.id).limit(1)
    )
    facility = result.scalar_one_or_none()
    if facility is None:
        facility = Facility(member_id=member.id, status=FacilityStatus.PENDING.value, **values)
        db.add(facility)
        await db.flush()
        await record_activity(
            db,
            action="MEMBER_FACILITY_CREATED",
            description=f"Facility {facility.facility_name} added for {member.full_name}",
            user_id=actor_id,
            member_id=member.id,
            new_value=model_snapshot(facility),
        )
        return facility

    return await _apply_facility_update(db, facility, member, values, actor_id=actor_id)


async def update_facility(
    db: AsyncSession, facility_id: int, payload: FacilityIn, *, actor_id: int | None
) -> Facility:
    facility = await get_facility(db, facility_id)
    member = await get_member(db, facility.member_id)
    await _ensure_facility_numbers_free(db, member.id, payload, "member-details")
    values = {field: getattr(payload, field) for field in _FACILITY_FIELDS}
    return await _apply_facility_update(db, facility, member, values, actor_id=actor_id)


async def _apply_facility_update(
    db: AsyncSession, facility: Facility, member: Member, values: dict[str, Any], *, actor_id: int | None
) -> Facility:
    before = model_snapshot(facility)
    description = describe_changes({field: getattr(facility, field) for field in values}, values)
    for field, value in values.items():
        setattr(facility, field, value)
    db.add(facility)
    await db.flush()
    await record_activity(
        db,
        action="MEMBER_FACILITY_UPDATED",
        description=description or f"Facility saved for {member.full_name} with no changes",
        user_id=actor_id,
        member_id=member.id,
        old_value=before,
        new_value=model_snapshot(facility),
    )
    return facility


async def attach_benefits(
    db: AsyncSession,
    member_id: int,
    payload: BenefitsIn,
    *,
    actor_id: int | None,
    overwrite: bool = False,
    next_view: str = "add-member-benefits",
) -> MemberBenefits:
    """Registration flows may submit benefits once; the member edit screen overwrites."""
    member = await get_member(db, member_id)
    result = await db.execute(select(MemberBenefits).where(MemberBenefits.member_id == member.id))
    benefits = result.scalar_one_or_none()
    document = payload.as_document()

    if benefits is not None and not overwrite:
        raise ConflictError(
            "A member already submitted programs & financial benefits!", next_view=next_view
        )

    if benefits is None:
        benefits = MemberBenefits(member_id=member.id, benefits=document)
        db.add(benefits)
        await db.flush()
        await record_activity(
            db,
            action="MEMBER_BENEFITS_CREATED",
            description=f"Programs & financial benefits added for {member.full_name}",
            user_id=actor_id,
            member_id=member.id,
            new_value=document,
        )
        return benefits

    before = dict(benefits.benefits or {})
    benefits.benefits = document
    db.add(benefits)
    await db.flush()
    await record_activity(
        db,
        action="MEMBER_BENEFITS_UPDATED",
        description=describe_changes(before, document) or "Benefits saved with no changes",
        user_id=actor_id,
        member_id=member.id,
        old_value=before,
        new_value=document,
    )
    return benefits


async def confirm_registration(
    db: AsyncSession,
    member_id: int,
    *,
    actor_id: int | None,
    actor_role: str | None,
) -> Member:
    member = await get_member(db, member_id)
    previous = member.status
    member.status = confirmed_status(actor_role)
    db.add(member)
    await db.flush()
    await record_activity(
        db,
        action="MEMBER_ADD",
        description=(
            f"Registration of {member.full_name} ({member.membership_no}) confirmed "
            f"with status {member.status}"
        ),
        user_id=actor_id,
        member_id=member.id,
        old_value={"status": previous},
        new_value={"status": member.status},
    )
    if actor_role == Role.MEMBER.value:
        await notify(
            db,
            receiver=Role.ADMIN.value,
            title="Member Registration",
            content="New member has submitted details for approval.",
            sender_id=actor_id,
        )
    return member


async def change_member_status(
    db: AsyncSession,
    member_id: int,
    *,
    reason: str | None,
    actor_id: int | None,
) -> Member:
    member = await get_member(db, member_id)
    previous = member.status
    new_status = MEMBER_STATUS_TRANSITIONS.get(previous)
    if new_status is None:
        raise PolicyViolation("Invalid status action.", next_view="member-details")

    member.status = new_status
    db.add(member)
    if new_status == MemberStatus.SUSPENDED.value:
        await db.execute(
            update(Facility)
            .where(Facility.member_id == member.id, Facility.status != FacilityStatus.CLOSED.value)
            .values(status=FacilityStatus.INACTIVE.value)
        )
    elif new_status == MemberStatus.ACTIVE.value:
        await db.execute(
            update(Facility)
            .where(
                Facility.member_id == member.id,
                Facility.status.in_([FacilityStatus.INACTIVE.value, FacilityStatus.PENDING.value]),
            )
            .values(status=FacilityStatus.ACTIVE.value)
        )
    await db.flush()
    await record_activity(
        db,
        action="MEMBER_STATUS_UPDATE",
        description=f"Status changed from {previous} to {new_status}. Reason: {reason or 'N/A'}",
        user_id=actor_id,
        member_id=member.id,
        old_value={"status": previous},
        new_value={"status": new_status, "reason": reason},
    )
    return member


async def get_facility(db: AsyncSession, facility_id: int) -> Facility:
    result = await db.execute(select(Facility).where(Facility.id == facility_id))
    facility = result.scalar_one_or_none()
    if facility is None:
        raise NotFoundError("Facility not found", next_view="facilities")
    return facility


async def list_facilities(
    db: AsyncSession, *, member_id: int | None = None, status: str | None = None
) -> list[Facility]:
    stmt = select(Facility)
    if member_id is not None:
        stmt = stmt.where(Facility.member_id == member_id)
    if status:
        stmt = stmt.where(Facility.status == status)
    result = await db.execute(stmt.order_by(Facility.id.desc()))
    return list(result.scalars().all())


def next_facility_status(current: str) -> str:
    target = FACILITY_STATUS_TRANSITIONS.get(current)
    if target is None:
        raise PolicyViolation("Invalid status action.", next_view="facilities")
    return target


async def change_facility_status(
    db: AsyncSession,
    facility_id: int,
    *,
    reason: str | None,
    actor_id: int | None,
) -> Facility:
    facility = await get_facility(db, facility_id)
    previous = facility.status
    facility.status = next_facility_status(previous)
    db.add(facility)
    await db.flush()
    await record_activity(
        db,
        action="FACILITY_STATUS_UPDATE",
        description=(
            f"Facility {facility.facility_name} status changed from {previous} to {facility.status}. "
            f"Reason: {reason or 'N/A'}"
        ),
        user_id=actor_id,
        member_id=facility.member_id,
        old_value={"status": previous},
        new_value={"status": facility.status, "reason": reason},
    )
    return facility


async def request_facility_status_change(
    db: AsyncSession,
    facility_id: int,
    member: Member,
    *,
    reason: str | None,
    actor_id: int | None,
) -> Facility:
    """A member asks an administrator to flip their facility; nothing changes yet."""
    facility = await get_facility(db, facility_id)
    if facility.member_id != member.id:
        raise NotFoundError("Facility not found", next_view="my-facilities")
    if not facility.reg_no or not facility.license_no:
        raise PolicyViolation(
            "Unable to complete your request. Your facility is missing Registration & License Number!",
            next_view="my-facilities",
        )
    target = next_facility_status(facility.status)
    await record_activity(
        db,
        action="REQUESTED_FACILITY_STATUS_UPDATE",
        description=(
            f"{member.full_name} requested facility {facility.facility_name} to change from "
            f"{facility.status} to {target}. Reason: {reason or 'N/A'}"
        ),
        user_id=actor_id,
        member_id=member.id,
    )
    await notify(
        db,
        receiver=Role.ADMIN.value,
        title="Facility Update",
        content=(
            f"{member.full_name} ({member.membership_no}) requested facility "
            f"{facility.facility_name} status change to {target}."
        ),
        sender_id=actor_id,
    )
    return facility
