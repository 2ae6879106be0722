from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.core.errors import ConflictError, NotFoundError, ValidationFailure
from uthabiti.models.sacco import LoanType, SaccoSettings
from uthabiti.schemas.sacco import LoanTypeCreate, LoanTypeUpdate, SaccoSettingsIn
from uthabiti.services.activity_log import describe_changes, model_snapshot, record_activity

_SETTINGS_FIELDS = (
    "sacco_name",
    "registration_number",
    "contact_email",
    "contact_phone",
    "address",
    "membership_fee",
    "loan_interest_default",
    "savings_interest_rate",
    "penalty_rate",
    "max_loan_multiple",
    "financial_year_start",
)
_LOAN_TYPE_FIELDS = ("loan_name", "interest_rate", "max_term_months", "min_amount", "max_amount")


async def get_sacco_settings(db: AsyncSession) -> SaccoSettings | None:
    result = await db.execute(select(SaccoSettings).order_by(SaccoSettings.id).limit(1))
    return result.scalar_one_or_none()


async def save_sacco_settings(
    db: AsyncSession, payload: SaccoSettingsIn, *, actor_id: int | None
) -> SaccoSettings:
    if not payload.sacco_name or not payload.contact_email:
        raise ValidationFailure("Sacco name and contact email are required.", next_view="settings")

    values = {field: getattr(payload, field) for field in _SETTINGS_FIELDS}
    current = await get_sacco_settings(db)
    if current is None:
        current = SaccoSettings(**values)
        db.add(current)
        await db.flush()
        await record_activity(
            db,
            action="SETTINGS_ADDED",
            description=f"Sacco settings created for {payload.sacco_name}",
            user_id=actor_id,
            new_value=model_snapshot(current),
        )
        return current

    before = model_snapshot(current)
    description = describe_changes({f: getattr(current, f) for f in _SETTINGS_FIELDS}, values)
    for field, value in values.items():
        setattr(current, field, value)
    db.add(current)
    await db.flush()
    if description:
        await record_activity(
            db,
            action="SETTINGS_UPDATE",
            description=description,
            user_id=actor_id,
            old_value=before,
            new_value=model_snapshot(current),
        )
    return current


async def list_loan_types(db: AsyncSession) -> list[LoanType]:
    result = await db.execute(select(LoanType).order_by(LoanType.loan_name))
    return list(result.scalars().all())


async def get_loan_type(db: AsyncSession, loan_type_id: int) -> LoanType:
    result = await db.execute(select(LoanType).where(LoanType.id == loan_type_id))
    loan_type = result.scalar_one_or_none()
    if loan_type is None:
        raise NotFoundError("Loan type not found", next_view="loan-types")
    return loan_type


async def _ensure_unique_name(db: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    stmt = select(LoanType).where(LoanType.loan_name == name)
    if exclude_id is not None:
        stmt = stmt.where(LoanType.id != exclude_id)
    if (await db.execute(stmt)).scalar_one_or_none() is not None:
        raise ConflictError("A loan type with this name already exists!", next_view="loan-types")


async def add_loan_type(db: AsyncSession, payload: LoanTypeCreate, *, actor_id: int | None) -> LoanType:
    name = payload.loan_name.strip()
    await _ensure_unique_name(db, name)
    loan_type = LoanType(
        loan_name=name,
        interest_rate=payload.interest_rate,
        max_term_months=payload.max_term_months,
        min_amount=payload.min_amount,
        max_amount=payload.max_amount,
    )
    db.add(loan_type)
    await db.flush()
    await record_activity(
        db,
        action="LOAN_TYPE_ADD",
        description=(
            f"Loan type {name} added: rate {payload.interest_rate}%, "
            f"{payload.min_amount} - {payload.max_amount}, up to {payload.max_term_months} months"
        ),
        user_id=actor_id,
        new_value=model_snapshot(loan_type),
    )
    return loan_type


async def update_loan_type(
    db: AsyncSession, loan_type_id: int, payload: LoanTypeUpdate, *, actor_id: int | None
) -> LoanType:
    loan_type = await get_loan_type(db, loan_type_id)
    name = payload.loan_name.strip()
    if name != loan_type.loan_name:
        await _ensure_unique_name(db, name, exclude_id=loan_type.id)
    values = {field: getattr(payload, field) for field in _LOAN_TYPE_FIELDS}
    values["loan_name"] = name
    before = model_snapshot(loan_type)
    description = describe_changes({f: getattr(loan_type, f) for f in _LOAN_TYPE_FIELDS}, values)
    for field, value in values.items():
        setattr(loan_type, field, value)
    db.add(loan_type)
    await db.flush()
    if description:
        await record_activity(
            db,
            action="LOAN_TYPE_UPDATE",
            description=description,
            user_id=actor_id,
            old_value=before,
            new_value=model_snapshot(loan_type),
        )
    return loan_type
