from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from uthabiti.schemas.common import ContributionType
from uthabiti.utils.normalize import normalize_string


class SaccoEnrollRequest(BaseModel):
    membership_no: str = Field(min_length=1, max_length=32)


class ContributionBase(BaseModel):
    contribution_type: ContributionType
    amount: Decimal
    payment_method: str = Field(min_length=1, max_length=50)
    reference_no: str | None = Field(default=None, max_length=100)
    notes: str | None = None
    loan_id: int | None = None

    @field_validator("reference_no", "notes", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        return normalize_string(value)

    @field_validator("loan_id", mode="before")
    @classmethod
    def _blank_loan(cls, value):
        return None if value in ("", 0, "0") else value


class ContributionCreate(ContributionBase):
    sacco_member_id: int


class SelfContributionCreate(ContributionBase):
    """Contribution posted by a member against their own SACCO account."""


class LoanIssueRequest(BaseModel):
    sacco_member_id: int
    loan_type_id: int
    principal: Decimal = Field(gt=0)
    interest_rate: Decimal | None = Field(default=None, ge=0)
    repayment_period: int = Field(gt=0)
    repayment_source: str | None = Field(default=None, max_length=100)
    issue_date: date | None = None

    @field_validator("interest_rate", "issue_date", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        return None if value == "" else value


class LoanTypeBase(BaseModel):
    loan_name: str = Field(min_length=1, max_length=100)
    interest_rate: Decimal = Field(ge=0)
    max_term_months: int = Field(gt=0)
    min_amount: Decimal = Field(ge=0)
    max_amount: Decimal = Field(gt=0)

    @model_validator(mode="after")
    def _check_range(self):
        if self.min_amount > self.max_amount:
            raise ValueError("Minimum amount cannot exceed maximum amount.")
        return self


class LoanTypeCreate(LoanTypeBase):
    pass


class LoanTypeUpdate(LoanTypeBase):
    pass


class LoanTypeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    loan_name: str
    interest_rate: Decimal
    max_term_months: int
    min_amount: Decimal
    max_amount: Decimal


class SaccoSettingsIn(BaseModel):
    sacco_name: str | None = Field(default=None, max_length=255)
    registration_number: str | None = None
    contact_email: EmailStr | None = None
    contact_phone: str | None = None
    address: str | None = None
    membership_fee: Decimal = Field(default=Decimal("0"), ge=0)
    loan_interest_default: Decimal | None = Field(default=None, ge=0)
    savings_interest_rate: Decimal | None = Field(default=None, ge=0)
    penalty_rate: Decimal | None = Field(default=None, ge=0)
    max_loan_multiple: Decimal | None = Field(default=None, ge=0)
    financial_year_start: date | None = None

    @field_validator(
        "sacco_name", "registration_number", "contact_email", "contact_phone", "address", mode="before"
    )
    @classmethod
    def _blank_to_none(cls, value):
        return normalize_string(value)

    @field_validator(
        "loan_interest_default",
        "savings_interest_rate",
        "penalty_rate",
        "max_loan_multiple",
        "financial_year_start",
        mode="before",
    )
    @classmethod
    def _blank_optional(cls, value):
        return None if value == "" else value


class SaccoSettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sacco_name: str
    registration_number: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    address: str | None = None
    membership_fee: Decimal
    loan_interest_default: Decimal | None = None
    savings_interest_rate: Decimal | None = None
    penalty_rate: Decimal | None = None
    max_loan_multiple: Decimal | None = None
    financial_year_start: date | None = None


class SaccoMemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    member_id: int
    membership_no: str
    shares: Decimal
    savings: Decimal
    loan_balance: Decimal
    status: str
    created_at: datetime | None = None


class ContributionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sacco_member_id: int
    member_id: int
    loan_id: int | None = None
    contribution_type: str
    amount: Decimal
    payment_method: str
    reference_no: str | None = None
    notes: str | None = None
    status: str
    contribution_date: datetime | None = None


class LoanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sacco_member_id: int
    loan_type: str
    principal: Decimal
    interest_rate: Decimal
    interest_amount: Decimal
    total_repayment: Decimal
    balance: Decimal
    repayment_period: int
    repayment_source: str | None = None
    issue_date: date
    due_date: date
    status: str


class SaccoDetail(BaseModel):
    sacco_member: SaccoMemberOut
    member_name: str | None = None
    loans: list[LoanOut] = Field(default_factory=list)
    contributions: list[ContributionOut] = Field(default_factory=list)
