from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from uthabiti.utils.normalize import join_choices, normalize_number, normalize_string

SURVEY_COUNT_FIELDS = (
    "total_children",
    "girls",
    "boys",
    "age_under6",
    "age_6_12",
    "age_12_24",
    "age_24_36",
    "age_36_plus",
    "children_with_disabilities",
    "boys_with_disabilities",
    "girls_with_disabilities",
    "total_workers",
    "female_workers",
    "male_workers",
    "workers_with_disabilities",
)

SURVEY_TEXT_FIELDS = (
    "county_name",
    "sub_county_name",
    "ward_name",
    "enumerator_name",
    "worker_category",
    "gender",
    "age",
    "education_level",
    "received_training",
    "received_certificate",
    "facility_name",
    "facility_classification",
    "geo_location",
    "interested_in_finance",
    "provider_name",
    "phone_number",
)


class SurveyIn(BaseModel):
    id_number: str = Field(min_length=1, max_length=50)
    county_name: str | None = None
    sub_county_name: str | None = None
    ward_name: str | None = None
    enumerator_name: str | None = None
    worker_category: str | None = None
    gender: str | None = None
    age: str | None = None
    education_level: str | None = None
    received_training: str | None = None
    received_certificate: str | None = None
    facility_name: str | None = None
    facility_classification: str | None = None
    geo_location: str | None = None
    year_established: int | None = None
    total_children: int = 0
    girls: int = 0
    boys: int = 0
    age_under6: int = 0
    age_6_12: int = 0
    age_12_24: int = 0
    age_24_36: int = 0
    age_36_plus: int = 0
    children_with_disabilities: int = 0
    boys_with_disabilities: int = 0
    girls_with_disabilities: int = 0
    total_workers: int = 0
    female_workers: int = 0
    male_workers: int = 0
    workers_with_disabilities: int = 0
    member_institutions: str | None = None
    loan_institutions: str | None = None
    interested_in_finance: str | None = None
    provider_name: str | None = None
    phone_number: str | None = None

    @field_validator("id_number", mode="before")
    @classmethod
    def _strip_id(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator(*SURVEY_COUNT_FIELDS, mode="before")
    @classmethod
    def _count(cls, value):
        return int(normalize_number(value))

    @field_validator("year_established", mode="before")
    @classmethod
    def _year(cls, value):
        return int(normalize_number(value)) or None

    @field_validator(*SURVEY_TEXT_FIELDS, mode="before")
    @classmethod
    def _text(cls, value):
        return normalize_string(value)

    @field_validator("member_institutions", "loan_institutions", mode="before")
    @classmethod
    def _choices(cls, value):
        return join_choices(value)


class SurveyOut(SurveyIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    created_at: datetime | None = None
