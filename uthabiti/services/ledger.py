"""SACCO accounts: enrollment, contributions and loans.

Every balance change happens on rows locked with ``SELECT ... FOR UPDATE`` in
the caller's transaction, so the contribution or loan row and its balance
effect commit together or not at all.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.core.errors import ConflictError, NotFoundError, PolicyViolation, ValidationFailure
from uthabiti.core.permissions import Role
from uthabiti.models.member import Member
from uthabiti.models.sacco import Contribution, Loan, LoanType, SaccoMember
from uthabiti.schemas.common import ContributionType, LoanStatus, SaccoStatus
from uthabiti.schemas.sacco import ContributionBase, LoanIssueRequest
from uthabiti.services import membership_numbers
from uthabiti.services.activity_log import model_snapshot, record_activity
from uthabiti.services.notifications import notify

TWOPLACES = Decimal("0.01")

SACCO_STATUS_TRANSITIONS = {
    SaccoStatus.PENDING.value: SaccoStatus.ACTIVE.value,
    SaccoStatus.ACTIVE.value: SaccoStatus.SUSPENDED.value,
    SaccoStatus.INACTIVE.value: SaccoStatus.ACTIVE.value,
    SaccoStatus.SUSPENDED.value: SaccoStatus.ACTIVE.value,
}


def as_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _money(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def add_months(start: date, months: int) -> date:
    """Calendar-month addition; the day is clamped to the target month's length."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def compute_interest(principal: Decimal, rate_percent: Decimal, months: int) -> Decimal:
    """Simple interest over the term: ``principal * rate/100 * months/12``."""
    interest = as_decimal(principal) * (as_decimal(rate_percent) / Decimal("100")) * (
        Decimal(months) / Decimal("12")
    )
    return _money(interest)


async def get_sacco_member(
    db: AsyncSession, sacco_member_id: int, *, lock: bool = False, next_view: str = "sacco"
) -> SaccoMember:
    stmt = select(SaccoMember).where(SaccoMember.id == sacco_member_id)
    if lock:
        stmt = stmt.with_for_update()
    sacco_member = (await db.execute(stmt)).scalar_one_or_none()
    if sacco_member is None:
        raise NotFoundError("Invalid member selected!", next_view=next_view)
    return sacco_member


async def get_sacco_member_for_member(db: AsyncSession, member_id: int) -> SaccoMember:
    result = await db.execute(select(SaccoMember).where(SaccoMember.member_id == member_id))
    sacco_member = result.scalar_one_or_none()
    if sacco_member is None:
        raise NotFoundError("You are not a sacco member yet.", next_view="my-sacco")
    return sacco_member


async def list_sacco_members(db: AsyncSession, *, status: str | None = None) -> list[SaccoMember]:
    stmt = select(SaccoMember)
    if status:
        stmt = stmt.where(SaccoMember.status == status)
    result = await db.execute(stmt.order_by(SaccoMember.id.desc()))
    return list(result.scalars().all())


async def enroll_sacco_member(
    db: AsyncSession,
    membership_no: str,
    *,
    actor_id: int | None,
    actor_role: str | None,
) -> SaccoMember:
    membership_numbers.parse_or_raise(membership_no, next_view="add-sacco-member")
    result = await db.execute(select(Member).where(Member.membership_no == membership_no.strip()))
    member = result.scalar_one_or_none()
    if member is None:
        raise NotFoundError("Data not found for this membership number", next_view="add-sacco-member")
    return await enroll_member(db, member, actor_id=actor_id, actor_role=actor_role)


async def enroll_member(
    db: AsyncSession,
    member: Member,
    *,
    actor_id: int | None,
    actor_role: str | None,
) -> SaccoMember:
    if not member.membership_no:
        raise PolicyViolation(
            "Complete the member registration before joining the sacco.", next_view="my-dashboard"
        )
    existing = await db.execute(select(SaccoMember).where(SaccoMember.member_id == member.id))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("This membership number already added to sacco", next_view="add-sacco-member")

    status = SaccoStatus.ACTIVE.value if actor_role == Role.ADMIN.value else SaccoStatus.PENDING.value
    sacco_member = SaccoMember(
        member_id=member.id,
        membership_no=member.membership_no,
        shares=Decimal("0"),
        savings=Decimal("0"),
        loan_balance=Decimal("0"),
        status=status,
    )
    db.add(sacco_member)
    await db.flush()
    await record_activity(
        db,
        action="SACCO_ADD",
        description=f"{member.full_name} ({member.membership_no}) added to sacco with status {status}",
        user_id=actor_id,
        member_id=member.id,
        new_value=model_snapshot(sacco_member),
    )
    if actor_role == Role.MEMBER.value:
        await notify(
            db,
            receiver=Role.ADMIN.value,
            title="Sacco Membership",
            content=f"{member.full_name} ({member.membership_no}) has requested to join the sacco.",
            sender_id=actor_id,
        )
    return sacco_member


async def change_sacco_status(
    db: AsyncSession,
    sacco_member_id: int,
    *,
    reason: str | None,
    actor_id: int | None,
) -> SaccoMember:
    sacco_member = await get_sacco_member(db, sacco_member_id, lock=True)
    previous = sacco_member.status
    new_status = SACCO_STATUS_TRANSITIONS.get(previous)
    if new_status is None:
        raise PolicyViolation("Invalid status action.", next_view="sacco")
    sacco_member.status = new_status
    db.add(sacco_member)
    await db.flush()
    await record_activity(
        db,
        action="SACCO_STATUS_UPDATE",
        description=(
            f"Sacco membership {sacco_member.membership_no} changed from {previous} to {new_status}. "
            f"Reason: {reason or 'N/A'}"
        ),
        user_id=actor_id,
        member_id=sacco_member.member_id,
        old_value={"status": previous},
        new_value={"status": new_status, "reason": reason},
    )
    return sacco_member


async def _locked_loan_for_repayment(
    db: AsyncSession, sacco_member: SaccoMember, loan_id: int | None, amount: Decimal, next_view: str
) -> Loan:
    if not loan_id:
        raise ValidationFailure("Select the loan being repaid.", next_view=next_view)
    stmt = select(Loan).where(Loan.id == loan_id).with_for_update()
    loan = (await db.execute(stmt)).scalar_one_or_none()
    if loan is None or loan.sacco_member_id != sacco_member.id:
        raise NotFoundError("Invalid loan selected.", next_view=next_view)
    if loan.status != LoanStatus.ACTIVE.value:
        raise PolicyViolation(
            f"Repayments can only be posted against an active loan. This loan is {loan.status}.",
            next_view=next_view,
        )
    if amount > as_decimal(loan.balance):
        raise PolicyViolation("Repayment cannot exceed current loan balance.", next_view=next_view)
    return loan


async def post_contribution(
    db: AsyncSession,
    sacco_member_id: int,
    payload: ContributionBase,
    *,
    actor_id: int | None,
    next_view: str = "sacco-contributions",
) -> Contribution:
    amount = _money(as_decimal(payload.amount))
    if amount <= 0:
        raise ValidationFailure("Amount must be greater than zero!", next_view=next_view)

    sacco_member = await get_sacco_member(db, sacco_member_id, lock=True, next_view=next_view)
    contribution_type = payload.contribution_type
    loan = None
    if contribution_type == ContributionType.LOAN_REPAYMENT:
        loan = await _locked_loan_for_repayment(db, sacco_member, payload.loan_id, amount, next_view)

    contribution = Contribution(
        sacco_member_id=sacco_member.id,
        member_id=sacco_member.member_id,
        loan_id=loan.id if loan is not None else None,
        contribution_type=contribution_type.value,
        amount=amount,
        payment_method=payload.payment_method,
        reference_no=payload.reference_no,
        notes=payload.notes,
        status="Completed",
        recorded_by_user_id=actor_id,
    )
    db.add(contribution)

    if contribution_type == ContributionType.SHARES:
        sacco_member.shares = as_decimal(sacco_member.shares) + amount
    elif contribution_type == ContributionType.SAVINGS:
        sacco_member.savings = as_decimal(sacco_member.savings) + amount
    elif contribution_type == ContributionType.LOAN_REPAYMENT:
        loan.balance = as_decimal(loan.balance) - amount
        if loan.balance <= 0:
            loan.status = LoanStatus.CLOSED.value
        db.add(loan)
        sacco_member.loan_balance = as_decimal(sacco_member.loan_balance) - amount
    elif contribution_type == ContributionType.PENALTY:
        # penalties are charged onto the loan balance aggregate, loan or not
        sacco_member.loan_balance = as_decimal(sacco_member.loan_balance) + amount
    db.add(sacco_member)
    await db.flush()

    description = (
        f"{contribution_type.value} of {amount} via {payload.payment_method}"
        f", reference {payload.reference_no or 'N/A'}"
    )
    if loan is not None:
        description += f", loan #{loan.id} balance now {loan.balance} ({loan.status})"
    if payload.notes:
        description += f". Remarks: {payload.notes}"
    await record_activity(
        db,
        action="ADD_CONTRIBUTION",
        description=description,
        user_id=actor_id,
        member_id=sacco_member.member_id,
        new_value=model_snapshot(contribution),
    )
    return contribution


async def issue_loan(db: AsyncSession, payload: LoanIssueRequest, *, actor_id: int | None) -> Loan:
    loan_type = (
        await db.execute(select(LoanType).where(LoanType.id == payload.loan_type_id))
    ).scalar_one_or_none()
    if loan_type is None:
        raise ValidationFailure("Invalid loan type selected.", next_view="sacco-loans")

    principal = _money(as_decimal(payload.principal))
    min_amount = as_decimal(loan_type.min_amount)
    max_amount = as_decimal(loan_type.max_amount)
    if principal < min_amount or principal > max_amount:
        raise PolicyViolation(
            f"Principal must be between {min_amount} and {max_amount}.", next_view="sacco-loans"
        )
    if payload.repayment_period > loan_type.max_term_months:
        raise PolicyViolation(
            f"Repayment period exceeds maximum term of {loan_type.max_term_months} months.",
            next_view="sacco-loans",
        )

    sacco_member = await get_sacco_member(db, payload.sacco_member_id, lock=True, next_view="sacco-loans")

    rate = as_decimal(payload.interest_rate if payload.interest_rate is not None else loan_type.interest_rate)
    interest_amount = compute_interest(principal, rate, payload.repayment_period)
    total_repayment = principal + interest_amount
    issue_date = payload.issue_date or date.today()
    loan = Loan(
        sacco_member_id=sacco_member.id,
        loan_type=loan_type.loan_name,
        principal=principal,
        interest_rate=rate,
        interest_amount=interest_amount,
        total_repayment=total_repayment,
        balance=total_repayment,
        repayment_period=payload.repayment_period,
        repayment_source=payload.repayment_source,
        issue_date=issue_date,
        due_date=add_months(issue_date, payload.repayment_period),
        status=LoanStatus.ACTIVE.value,
        issued_by_user_id=actor_id,
    )
    db.add(loan)
    sacco_member.loan_balance = as_decimal(sacco_member.loan_balance) + total_repayment
    db.add(sacco_member)
    await db.flush()

    await record_activity(
        db,
        action="LOAN_ISSUED",
        description=(
            f"{loan_type.loan_name} loan of {principal} at {rate}% for {payload.repayment_period} months; "
            f"total repayment {total_repayment}, due {loan.due_date.isoformat()}"
        ),
        user_id=actor_id,
        member_id=sacco_member.member_id,
        new_value=model_snapshot(loan),
    )
    return loan


async def sweep_overdue_loans(db: AsyncSession, *, today: date | None = None) -> int:
    """Mark active loans past their due date with an outstanding balance as Defaulted."""
    today = today or date.today()
    stmt = (
        update(Loan)
        .where(
            Loan.status == LoanStatus.ACTIVE.value,
            Loan.due_date < today,
            Loan.balance > 0,
        )
        .values(status=LoanStatus.DEFAULTED.value)
    )
    result = await db.execute(stmt)
    return result.rowcount or 0


async def list_loans(
    db: AsyncSession, *, sacco_member_id: int | None = None, status: str | None = None
) -> list[Loan]:
    stmt = select(Loan)
    if sacco_member_id is not None:
        stmt = stmt.where(Loan.sacco_member_id == sacco_member_id)
    if status:
        stmt = stmt.where(Loan.status == status)
    result = await db.execute(stmt.order_by(Loan.issue_date.desc(), Loan.id.desc()))
    return list(result.scalars().all())


async def list_contributions(db: AsyncSession, *, sacco_member_id: int | None = None) -> list[Contribution]:
    stmt = select(Contribution)
    if sacco_member_id is not None:
        stmt = stmt.where(Contribution.sacco_member_id == sacco_member_id)
    result = await db.execute(stmt.order_by(Contribution.contribution_date.desc(), Contribution.id.desc()))
    return list(result.scalars().all())


async def get_sacco_detail(db: AsyncSession, sacco_member: SaccoMember) -> dict[str, Any]:
    member = (
        await db.execute(select(Member).where(Member.id == sacco_member.member_id))
    ).scalar_one_or_none()
    return {
        "sacco_member": sacco_member,
        "member_name": member.full_name if member else None,
        "loans": await list_loans(db, sacco_member_id=sacco_member.id),
        "contributions": await list_contributions(db, sacco_member_id=sacco_member.id),
    }
