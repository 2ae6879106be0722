"""Membership numbers: ``CCC-SSS-WW-NNNN`` (county, subcounty, ward, member id).

The trailing segment is the member's own primary key, zero padded to four
digits, so a number can only be formatted after the member row exists.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from uthabiti.core.errors import ValidationFailure
from uthabiti.resources.regions import REGIONS
from uthabiti.services.regions import region_codes

MEMBERSHIP_NO_PATTERN = re.compile(r"^(\d{3})-(\d{3})-(\d{2})-(\d{4,6})$")
MAX_SEQUENCE = 999_999


@dataclass(frozen=True, slots=True)
class MembershipNumber:
    county_code: str
    sub_county_code: str
    ward_code: str
    member_code: str

    @property
    def member_id(self) -> int:
        return int(self.member_code)


@dataclass(frozen=True, slots=True)
class RegionNames:
    county: str
    sub_county: str
    ward: str


def parse(identifier) -> MembershipNumber | None:
    if identifier is None:
        return None
    match = MEMBERSHIP_NO_PATTERN.match(str(identifier).strip())
    if not match:
        return None
    return MembershipNumber(*match.groups())


def resolve(parsed: MembershipNumber, hierarchy: dict | None = None) -> RegionNames | None:
    """Map the code segments back to names; all three must match or nothing does."""
    hierarchy = REGIONS if hierarchy is None else hierarchy
    for county_name, county_data in hierarchy.items():
        if county_data["code"] != parsed.county_code:
            continue
        for sub_name, sub_data in county_data["subcounties"].items():
            if sub_data["code"] != parsed.sub_county_code:
                continue
            for ward_name, ward_code in sub_data["wards"].items():
                if ward_code == parsed.ward_code:
                    return RegionNames(county=county_name, sub_county=sub_name, ward=ward_name)
    return None


def format_membership_number(
    county: str,
    sub_county: str,
    ward: str,
    sequence_id: int,
    hierarchy: dict | None = None,
) -> str:
    codes = region_codes(county, sub_county, ward, hierarchy)
    if codes is None:
        raise ValidationFailure("Unknown county, subcounty or ward")
    if sequence_id is None or not 0 < int(sequence_id) <= MAX_SEQUENCE:
        raise ValidationFailure("Member sequence is out of range for a membership number")
    county_code, sub_code, ward_code = codes
    return f"{county_code}-{sub_code}-{ward_code}-{int(sequence_id):04d}"


def parse_or_raise(identifier, *, next_view: str | None = None) -> tuple[MembershipNumber, RegionNames]:
    parsed = parse(identifier)
    resolved = resolve(parsed) if parsed else None
    if resolved is None:
        raise ValidationFailure("Invalid membership number", next_view=next_view)
    return parsed, resolved
