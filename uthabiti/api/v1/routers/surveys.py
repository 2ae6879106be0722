from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.api import deps
from uthabiti.core.permissions import PermissionCode
from uthabiti.core.response_envelope import flash
from uthabiti.db.session import get_db
from uthabiti.models import User
from uthabiti.schemas.common import SurveyStatus
from uthabiti.schemas.members import StatusChangeRequest
from uthabiti.schemas.surveys import SurveyIn, SurveyOut
from uthabiti.services import surveys as survey_service

router = APIRouter(prefix="/surveys", tags=["surveys"])

_manage = deps.require_permission(PermissionCode.SURVEY_MANAGE)


@router.get("", response_model=list[SurveyOut], summary="List childcare surveys")
async def list_surveys(
    status: Optional[SurveyStatus] = Query(default=None),
    _: User = Depends(_manage),
    db: AsyncSession = Depends(get_db),
) -> list[SurveyOut]:
    rows = await survey_service.list_surveys(db, status=status.value if status else None)
    return [SurveyOut.model_validate(row) for row in rows]


@router.get("/{survey_id}", response_model=SurveyOut, summary="Survey details")
async def read_survey(
    survey_id: int,
    _: User = Depends(_manage),
    db: AsyncSession = Depends(get_db),
) -> SurveyOut:
    return SurveyOut.model_validate(await survey_service.get_survey(db, survey_id))


@router.post("", status_code=status.HTTP_201_CREATED, summary="Record a survey response")
async def create_survey(
    payload: SurveyIn,
    current_user: User = Depends(_manage),
    db: AsyncSession = Depends(get_db),
) -> dict:
    survey = await survey_service.create_survey(
        db, payload, actor_id=current_user.id, actor_role=current_user.role
    )
    await db.commit()
    return flash(
        SurveyOut.model_validate(survey),
        message="Survey saved successfully!",
        next_view="surveys",
        status_code=status.HTTP_201_CREATED,
    )


@router.put("/{survey_id}", summary="Update a survey response")
async def update_survey(
    survey_id: int,
    payload: SurveyIn,
    current_user: User = Depends(_manage),
    db: AsyncSession = Depends(get_db),
) -> dict:
    survey = await survey_service.update_survey(db, survey_id, payload, actor_id=current_user.id)
    await db.commit()
    return flash(SurveyOut.model_validate(survey), message="Survey updated successfully!", next_view="surveys")


@router.post("/{survey_id}/status", summary="Move a survey to its next status")
async def change_survey_status(
    survey_id: int,
    payload: StatusChangeRequest,
    current_user: User = Depends(_manage),
    db: AsyncSession = Depends(get_db),
) -> dict:
    survey = await survey_service.change_survey_status(
        db, survey_id, reason=payload.reason, actor_id=current_user.id
    )
    await db.commit()
    return flash(
        SurveyOut.model_validate(survey), message=f"Survey status updated to {survey.status}!", next_view="surveys"
    )
