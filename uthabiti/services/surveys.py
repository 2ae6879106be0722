from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.core.errors import ConflictError, NotFoundError, PolicyViolation
from uthabiti.core.permissions import Role
from uthabiti.models.survey import ChildcareSurvey
from uthabiti.schemas.common import SurveyStatus
from uthabiti.schemas.surveys import SurveyIn
from uthabiti.services.activity_log import describe_changes, model_snapshot, record_activity

SURVEY_STATUS_TRANSITIONS = {
    SurveyStatus.PENDING.value: SurveyStatus.ACTIVE.value,
    SurveyStatus.ACTIVE.value: SurveyStatus.INACTIVE.value,
    SurveyStatus.INACTIVE.value: SurveyStatus.ACTIVE.value,
}


def _values(payload: SurveyIn) -> dict:
    return payload.model_dump()


async def list_surveys(db: AsyncSession, *, status: str | None = None) -> list[ChildcareSurvey]:
    stmt = select(ChildcareSurvey)
    if status:
        stmt = stmt.where(ChildcareSurvey.status == status)
    result = await db.execute(stmt.order_by(ChildcareSurvey.id.desc()))
    return list(result.scalars().all())


async def get_survey(db: AsyncSession, survey_id: int) -> ChildcareSurvey:
    result = await db.execute(select(ChildcareSurvey).where(ChildcareSurvey.id == survey_id))
    survey = result.scalar_one_or_none()
    if survey is None:
        raise NotFoundError("Survey not found", next_view="surveys")
    return survey


async def create_survey(
    db: AsyncSession,
    payload: SurveyIn,
    *,
    actor_id: int | None,
    actor_role: str | None,
) -> ChildcareSurvey:
    existing = await db.execute(select(ChildcareSurvey).where(ChildcareSurvey.id_number == payload.id_number))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Respondent with simillar ID already added", next_view="add-survey")

    status = SurveyStatus.ACTIVE.value if actor_role == Role.ADMIN.value else SurveyStatus.PENDING.value
    survey = ChildcareSurvey(**_values(payload), status=status, created_by_user_id=actor_id)
    db.add(survey)
    await db.flush()
    await record_activity(
        db,
        action="SURVEY_CREATED",
        description=f"Survey for respondent {payload.id_number} ({payload.facility_name or 'no facility'}) added",
        user_id=actor_id,
        new_value=model_snapshot(survey),
    )
    return survey


async def update_survey(
    db: AsyncSession, survey_id: int, payload: SurveyIn, *, actor_id: int | None
) -> ChildcareSurvey:
    survey = await get_survey(db, survey_id)
    values = _values(payload)
    if values["id_number"] != survey.id_number:
        clash = await db.execute(
            select(ChildcareSurvey).where(
                ChildcareSurvey.id_number == values["id_number"], ChildcareSurvey.id != survey.id
            )
        )
        if clash.scalar_one_or_none() is not None:
            raise ConflictError("Respondent with simillar ID already added", next_view="edit-survey")

    before = model_snapshot(survey)
    description = describe_changes({key: getattr(survey, key) for key in values}, values)
    for key, value in values.items():
        setattr(survey, key, value)
    db.add(survey)
    await db.flush()
    await record_activity(
        db,
        action="SURVEY_UPDATED",
        description=description or f"Survey {survey.id} saved with no changes",
        user_id=actor_id,
        old_value=before,
        new_value=model_snapshot(survey),
    )
    return survey


async def change_survey_status(
    db: AsyncSession, survey_id: int, *, reason: str | None, actor_id: int | None
) -> ChildcareSurvey:
    survey = await get_survey(db, survey_id)
    previous = survey.status
    new_status = SURVEY_STATUS_TRANSITIONS.get(previous)
    if new_status is None:
        raise PolicyViolation("Invalid status action.", next_view="surveys")
    survey.status = new_status
    db.add(survey)
    await db.flush()
    await record_activity(
        db,
        action="SURVEY_STATUS_UPDATE",
        description=f"Survey {survey.id} changed from {previous} to {new_status}. Reason: {reason or 'N/A'}",
        user_id=actor_id,
        old_value={"status": previous},
        new_value={"status": new_status, "reason": reason},
    )
    return survey
