from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.models.member import Facility, Member
from uthabiti.models.sacco import Loan, SaccoMember
from uthabiti.models.survey import ChildcareSurvey
from uthabiti.schemas.common import LoanStatus
from uthabiti.services import ledger


async def summary(db: AsyncSession) -> dict[str, Any]:
    status_rows = (
        await db.execute(select(Member.status, func.count(Member.id)).group_by(Member.status))
    ).all()
    members_by_status = {status: int(count) for status, count in status_rows}

    totals = (
        await db.execute(
            select(
                func.count(SaccoMember.id),
                func.coalesce(func.sum(SaccoMember.shares), 0),
                func.coalesce(func.sum(SaccoMember.savings), 0),
                func.coalesce(func.sum(SaccoMember.loan_balance), 0),
            )
        )
    ).first()
    sacco_members, shares, savings, loan_balance = totals or (0, 0, 0, 0)

    loan_rows = (await db.execute(select(Loan.status, func.count(Loan.id)).group_by(Loan.status))).all()
    loans_by_status = {status: int(count) for status, count in loan_rows}

    facilities = (await db.execute(select(func.count(Facility.id)))).scalar_one_or_none() or 0
    surveys = (await db.execute(select(func.count(ChildcareSurvey.id)))).scalar_one_or_none() or 0

    return {
        "members": {"total": sum(members_by_status.values()), "by_status": members_by_status},
        "facilities": int(facilities),
        "sacco": {
            "members": int(sacco_members or 0),
            "shares": ledger.as_decimal(shares),
            "savings": ledger.as_decimal(savings),
            "loan_balance": ledger.as_decimal(loan_balance),
        },
        "loans": {
            "active": loans_by_status.get(LoanStatus.ACTIVE.value, 0),
            "by_status": loans_by_status,
        },
        "surveys": int(surveys),
    }


async def member_summary(db: AsyncSession, member: Member) -> dict[str, Any]:
    """Self-service landing data: the member record plus any SACCO balances."""
    sacco = (
        await db.execute(select(SaccoMember).where(SaccoMember.member_id == member.id))
    ).scalar_one_or_none()
    facilities = (
        await db.execute(select(func.count(Facility.id)).where(Facility.member_id == member.id))
    ).scalar_one_or_none() or 0
    data: dict[str, Any] = {
        "membership_no": member.membership_no,
        "status": member.status,
        "membership_type": member.membership_type,
        "facilities": int(facilities),
        "sacco": None,
    }
    if sacco is not None:
        active_loans = await ledger.list_loans(db, sacco_member_id=sacco.id, status=LoanStatus.ACTIVE.value)
        data["sacco"] = {
            "status": sacco.status,
            "shares": ledger.as_decimal(sacco.shares),
            "savings": ledger.as_decimal(sacco.savings),
            "loan_balance": ledger.as_decimal(sacco.loan_balance),
            "active_loans": len(active_loans),
            "outstanding": sum((ledger.as_decimal(loan.balance) for loan in active_loans), Decimal("0")),
        }
    return data
