from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.api import deps
from uthabiti.core.permissions import PermissionCode
from uthabiti.core.response_envelope import flash
from uthabiti.db.session import get_db
from uthabiti.models import User
from uthabiti.schemas.common import LoanStatus, SaccoStatus
from uthabiti.schemas.members import StatusChangeRequest
from uthabiti.schemas.sacco import (
    ContributionCreate,
    ContributionOut,
    LoanIssueRequest,
    LoanOut,
    SaccoDetail,
    SaccoEnrollRequest,
    SaccoMemberOut,
)
from uthabiti.services import ledger

router = APIRouter(prefix="/sacco", tags=["sacco"])


@router.get("/members", response_model=list[SaccoMemberOut], summary="List sacco members")
async def list_sacco_members(
    status: Optional[SaccoStatus] = Query(default=None),
    _: User = Depends(deps.require_permission(PermissionCode.SACCO_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> list[SaccoMemberOut]:
    rows = await ledger.list_sacco_members(db, status=status.value if status else None)
    return [SaccoMemberOut.model_validate(row) for row in rows]


@router.post("/members", status_code=status.HTTP_201_CREATED, summary="Enroll a member into the sacco")
async def enroll_sacco_member(
    payload: SaccoEnrollRequest,
    current_user: User = Depends(deps.require_permission(PermissionCode.SACCO_ENROLL)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    sacco_member = await ledger.enroll_sacco_member(
        db, payload.membership_no, actor_id=current_user.id, actor_role=current_user.role
    )
    await db.commit()
    return flash(
        SaccoMemberOut.model_validate(sacco_member),
        message="Member added to sacco successfully!",
        next_view="sacco",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/members/{sacco_member_id}", response_model=SaccoDetail, summary="Sacco account details")
async def read_sacco_member(
    sacco_member_id: int,
    _: User = Depends(deps.require_permission(PermissionCode.SACCO_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> SaccoDetail:
    sacco_member = await ledger.get_sacco_member(db, sacco_member_id)
    return SaccoDetail.model_validate(await ledger.get_sacco_detail(db, sacco_member))


@router.post("/members/{sacco_member_id}/status", summary="Move a sacco account to its next status")
async def change_sacco_status(
    sacco_member_id: int,
    payload: StatusChangeRequest,
    current_user: User = Depends(deps.require_permission(PermissionCode.SACCO_STATUS_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    sacco_member = await ledger.change_sacco_status(
        db, sacco_member_id, reason=payload.reason, actor_id=current_user.id
    )
    await db.commit()
    return flash(
        SaccoMemberOut.model_validate(sacco_member),
        message=f"Sacco status updated to {sacco_member.status}!",
        next_view="sacco",
    )


@router.get("/contributions", response_model=list[ContributionOut], summary="List contributions")
async def list_contributions(
    sacco_member_id: Optional[int] = Query(default=None),
    _: User = Depends(deps.require_permission(PermissionCode.SACCO_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> list[ContributionOut]:
    rows = await ledger.list_contributions(db, sacco_member_id=sacco_member_id)
    return [ContributionOut.model_validate(row) for row in rows]


@router.post("/contributions", status_code=status.HTTP_201_CREATED, summary="Post a contribution")
async def post_contribution(
    payload: ContributionCreate,
    current_user: User = Depends(deps.require_permission(PermissionCode.CONTRIBUTION_POST)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    contribution = await ledger.post_contribution(
        db, payload.sacco_member_id, payload, actor_id=current_user.id
    )
    await db.commit()
    return flash(
        ContributionOut.model_validate(contribution),
        message="Contribution recorded successfully!",
        next_view="sacco-contributions",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/loans", response_model=list[LoanOut], summary="List loans")
async def list_loans(
    sacco_member_id: Optional[int] = Query(default=None),
    status: Optional[LoanStatus] = Query(default=None),
    _: User = Depends(deps.require_permission(PermissionCode.SACCO_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> list[LoanOut]:
    rows = await ledger.list_loans(
        db, sacco_member_id=sacco_member_id, status=status.value if status else None
    )
    return [LoanOut.model_validate(row) for row in rows]


@router.post("/loans", status_code=status.HTTP_201_CREATED, summary="Issue a loan")
async def issue_loan(
    payload: LoanIssueRequest,
    current_user: User = Depends(deps.require_permission(PermissionCode.LOAN_ISSUE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    loan = await ledger.issue_loan(db, payload, actor_id=current_user.id)
    await db.commit()
    return flash(
        LoanOut.model_validate(loan),
        message="Loan issued successfully!",
        next_view="sacco-loans",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/loans/sweep-overdue", summary="Mark overdue active loans as Defaulted")
async def sweep_overdue(
    _: User = Depends(deps.require_permission(PermissionCode.LOAN_ISSUE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    count = await ledger.sweep_overdue_loans(db)
    await db.commit()
    return flash({"defaulted": count}, message=f"{count} overdue loan(s) marked as Defaulted.", next_view="sacco-loans")
