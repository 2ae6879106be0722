import pytest

from uthabiti.core.errors import NotFoundError, ValidationFailure
from uthabiti.services import membership_numbers, regions


def test_format_membership_number_pads_member_id():
    number = membership_numbers.format_membership_number("Mombasa", "Changamwe", "Port Reitz", 7)
    assert number == "001-001-01-0007"


def test_format_keeps_ids_wider_than_four_digits():
    number = membership_numbers.format_membership_number("Mombasa", "Changamwe", "Kipevu", 12345)
    assert number == "001-001-02-12345"


def test_format_rejects_unknown_region():
    with pytest.raises(ValidationFailure):
        membership_numbers.format_membership_number("Mombasa", "Changamwe", "Atlantis", 1)


def test_format_rejects_missing_sequence():
    with pytest.raises(ValidationFailure):
        membership_numbers.format_membership_number("Mombasa", "Changamwe", "Port Reitz", 0)


def test_parse_splits_segments():
    parsed = membership_numbers.parse(" 001-001-01-0007 ")
    assert parsed is not None
    assert parsed.county_code == "001"
    assert parsed.ward_code == "01"
    assert parsed.member_id == 7


@pytest.mark.parametrize("value", [None, "", "1-1-1-1", "001-001-01", "abc-def-gh-ijkl", "001-001-001-0007"])
def test_parse_rejects_malformed(value):
    assert membership_numbers.parse(value) is None


def test_resolve_maps_codes_back_to_names():
    parsed, names = membership_numbers.parse_or_raise("001-001-01-0007")
    assert parsed.member_id == 7
    assert (names.county, names.sub_county, names.ward) == ("Mombasa", "Changamwe", "Port Reitz")


def test_resolve_requires_all_three_codes_to_match():
    parsed = membership_numbers.parse("001-001-99-0007")
    assert membership_numbers.resolve(parsed) is None
    with pytest.raises(ValidationFailure) as exc_info:
        membership_numbers.parse_or_raise("001-001-99-0007", next_view="drafts")
    assert exc_info.value.next_view == "drafts"


def test_resolve_with_custom_hierarchy():
    hierarchy = {"Alpha": {"code": "900", "subcounties": {"Beta": {"code": "001", "wards": {"Gamma": "07"}}}}}
    number = membership_numbers.format_membership_number("Alpha", "Beta", "Gamma", 3, hierarchy)
    assert number == "900-001-07-0003"
    names = membership_numbers.resolve(membership_numbers.parse(number), hierarchy)
    assert names.ward == "Gamma"


def test_region_listing():
    counties = regions.list_counties()
    assert {"name": "Mombasa", "code": "001"} in counties
    wards = regions.list_wards("Mombasa", "Changamwe")
    assert {"name": "Port Reitz", "code": "01"} in wards
    with pytest.raises(NotFoundError):
        regions.list_subcounties("Nowhere")
    with pytest.raises(NotFoundError):
        regions.list_wards("Mombasa", "Nowhere")
