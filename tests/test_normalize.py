from decimal import Decimal

import pytest

from uthabiti.schemas.members import BenefitsIn, FacilityIn
from uthabiti.schemas.surveys import SurveyIn
from uthabiti.utils.normalize import join_choices, normalize_number, normalize_string, normalize_value


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, 0), ("", 0), ("  ", 0), ("abc", 0), ("12", 12), (" 7 ", 7), ("2.50", Decimal("2.50")), (True, 1), (5, 5)],
)
def test_normalize_number(raw, expected):
    assert normalize_number(raw) == expected


def test_normalize_number_rejects_non_finite():
    assert normalize_number("NaN") == 0
    assert normalize_number("Infinity") == 0


def test_normalize_value_and_string():
    assert normalize_value("") is None
    assert normalize_value(0) == 0
    assert normalize_string("  Nairobi ") == "Nairobi"
    assert normalize_string("   ") is None


def test_join_choices():
    assert join_choices(["Savings", " Loans ", ""]) == "Savings, Loans"
    assert join_choices([]) is None
    assert join_choices("Single") == "Single"
    assert join_choices(None) is None


def test_facility_counts_default_to_zero():
    facility = FacilityIn(facility_name="Little Stars", male_b="", female_b="3", facility_estab_year="", reg_no=" ")
    assert facility.male_b == 0
    assert facility.female_b == 3
    assert facility.facility_estab_year is None
    assert facility.reg_no is None


def test_benefits_flatten_multi_select():
    benefits = BenefitsIn(banking_services=["Savings", "Mobile banking"], other="")
    document = benefits.as_document()
    assert document["banking_services"] == "Savings, Mobile banking"
    assert document["other"] is None
    assert "health_insurance" in document


def test_survey_counts_and_choices():
    survey = SurveyIn(
        id_number=" 1234 ",
        total_children="",
        girls="4",
        member_institutions=["Chama", "Sacco"],
        year_established="",
    )
    assert survey.id_number == "1234"
    assert survey.total_children == 0
    assert survey.girls == 4
    assert survey.member_institutions == "Chama, Sacco"
    assert survey.year_established is None
