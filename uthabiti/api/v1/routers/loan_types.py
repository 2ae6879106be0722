from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.api import deps
from uthabiti.core.permissions import PermissionCode
from uthabiti.core.response_envelope import flash
from uthabiti.db.session import get_db
from uthabiti.models import User
from uthabiti.schemas.sacco import LoanTypeCreate, LoanTypeOut, LoanTypeUpdate
from uthabiti.services import sacco_settings

router = APIRouter(prefix="/loan-types", tags=["loan-types"])


@router.get("", response_model=list[LoanTypeOut], summary="List loan types")
async def list_loan_types(
    _: User = Depends(deps.require_permission(PermissionCode.SACCO_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> list[LoanTypeOut]:
    return [LoanTypeOut.model_validate(row) for row in await sacco_settings.list_loan_types(db)]


@router.post("", status_code=status.HTTP_201_CREATED, summary="Add a loan type")
async def add_loan_type(
    payload: LoanTypeCreate,
    current_user: User = Depends(deps.require_permission(PermissionCode.LOAN_TYPE_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    loan_type = await sacco_settings.add_loan_type(db, payload, actor_id=current_user.id)
    await db.commit()
    return flash(
        LoanTypeOut.model_validate(loan_type),
        message="Loan type added successfully!",
        next_view="loan-types",
        status_code=status.HTTP_201_CREATED,
    )


@router.put("/{loan_type_id}", summary="Update a loan type")
async def update_loan_type(
    loan_type_id: int,
    payload: LoanTypeUpdate,
    current_user: User = Depends(deps.require_permission(PermissionCode.LOAN_TYPE_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    loan_type = await sacco_settings.update_loan_type(db, loan_type_id, payload, actor_id=current_user.id)
    await db.commit()
    return flash(LoanTypeOut.model_validate(loan_type), message="Loan type updated successfully!", next_view="loan-types")
