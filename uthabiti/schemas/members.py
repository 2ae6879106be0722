from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from uthabiti.schemas.common import MembershipType
from uthabiti.utils.normalize import join_choices, normalize_number, normalize_string

BENEFIT_KEYS = (
    "competency_cert",
    "childcare_training_done",
    "childcare_training_access",
    "biz_dev_mentorship",
    "childcare_design_benefit",
    "active_bank",
    "banking_services",
    "emergency_loan",
    "business_loan",
    "asset_loan",
    "education_loan",
    "health_insurance",
    "other",
)


class MemberCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    membership_type: MembershipType
    county: str = Field(min_length=1)
    sub_county: str = Field(min_length=1)
    ward: str = Field(min_length=1)

    @field_validator("first_name", "last_name", "county", "sub_county", "ward", mode="before")
    @classmethod
    def _strip_required(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("middle_name", mode="before")
    @classmethod
    def _strip_optional(cls, value):
        return normalize_string(value)

    @field_validator("email", mode="before")
    @classmethod
    def _lower_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class ProfileIn(BaseModel):
    phone: str = Field(min_length=1, max_length=30)
    id_number: str = Field(min_length=1, max_length=50)
    dob: date | None = None
    gender: str | None = None
    disability: str | None = None
    education_level: str | None = None
    citizenship: str | None = None
    country: str | None = None
    county: str | None = None
    sub_county: str | None = None
    ward: str | None = None
    next_kin_name: str | None = None
    kin_rln: str | None = None
    kin_phone: str | None = None
    kin_location: str | None = None
    member_doc: str | None = None
    member_id_doc: str | None = None

    @field_validator("phone", "id_number", mode="before")
    @classmethod
    def _strip_required(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator(
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
        "member_doc",
        "member_id_doc",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value):
        return normalize_string(value)

    @field_validator("dob", mode="before")
    @classmethod
    def _blank_date(cls, value):
        return None if value == "" else value


_FACILITY_COUNTS = ("male_b", "female_b", "male_b_dis", "female_b_dis", "male_c", "female_c")


class FacilityIn(BaseModel):
    facility_name: str = Field(min_length=1, max_length=255)
    facility_type: str | None = None
    setup_type: str | None = None
    facility_estab_year: int | None = None
    reg_no: str | None = Field(default=None, max_length=100)
    license_no: str | None = Field(default=None, max_length=100)
    male_b: int = 0
    female_b: int = 0
    male_b_dis: int = 0
    female_b_dis: int = 0
    male_c: int = 0
    female_c: int = 0
    f_county: str | None = None
    f_subcounty: str | None = None
    f_area: str | None = None

    @field_validator(*_FACILITY_COUNTS, mode="before")
    @classmethod
    def _count(cls, value):
        return int(normalize_number(value))

    @field_validator("facility_estab_year", mode="before")
    @classmethod
    def _year(cls, value):
        number = normalize_number(value)
        return int(number) or None

    @field_validator(
        "facility_type", "setup_type", "reg_no", "license_no", "f_county", "f_subcounty", "f_area",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value):
        return normalize_string(value)


class BenefitsIn(BaseModel):
    """Programs and financial benefits answers; multi-select answers arrive as lists."""

    competency_cert: str | None = None
    childcare_training_done: str | None = None
    childcare_training_access: str | None = None
    biz_dev_mentorship: str | None = None
    childcare_design_benefit: str | None = None
    active_bank: str | None = None
    banking_services: str | None = None
    emergency_loan: str | None = None
    business_loan: str | None = None
    asset_loan: str | None = None
    education_loan: str | None = None
    health_insurance: str | None = None
    other: str | None = None

    @field_validator(*BENEFIT_KEYS, mode="before")
    @classmethod
    def _flatten(cls, value):
        return join_choices(value)

    def as_document(self) -> dict[str, Any]:
        return {key: getattr(self, key) for key in BENEFIT_KEYS}


class StatusChangeRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)

    @field_validator("reason", mode="before")
    @classmethod
    def _strip(cls, value):
        return normalize_string(value)


class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    member_id: int
    phone: str | None = None
    id_number: str | None = None
    dob: date | None = None
    gender: str | None = None
    disability: str | None = None
    education_level: str | None = None
    citizenship: str | None = None
    country: str | None = None
    county: str | None = None
    sub_county: str | None = None
    ward: str | None = None
    next_kin_name: str | None = None
    kin_rln: str | None = None
    kin_phone: str | None = None
    kin_location: str | None = None
    member_doc: str | None = None
    member_id_doc: str | None = None


class FacilityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    member_id: int
    facility_name: str | None = None
    facility_type: str | None = None
    setup_type: str | None = None
    facility_estab_year: int | None = None
    reg_no: str | None = None
    license_no: str | None = None
    male_b: int = 0
    female_b: int = 0
    male_b_dis: int = 0
    female_b_dis: int = 0
    male_c: int = 0
    female_c: int = 0
    f_county: str | None = None
    f_subcounty: str | None = None
    f_area: str | None = None
    status: str


class BenefitsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    member_id: int
    benefits: dict[str, Any]


class MemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    membership_no: str | None = None
    first_name: str
    middle_name: str | None = None
    last_name: str
    email: str
    membership_type: str
    status: str
    county: str | None = None
    sub_county: str | None = None
    ward: str | None = None
    registered_at: datetime | None = None


class SaccoSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    shares: Decimal
    savings: Decimal
    loan_balance: Decimal


class MemberDetail(BaseModel):
    member: MemberOut
    profile: ProfileOut | None = None
    facilities: list[FacilityOut] = Field(default_factory=list)
    benefits: BenefitsOut | None = None
    sacco: SaccoSummaryOut | None = None
