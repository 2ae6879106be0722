from __future__ import annotations

from uthabiti.core.errors import NotFoundError
from uthabiti.resources.regions import REGIONS


def list_counties(hierarchy: dict | None = None) -> list[dict[str, str]]:
    hierarchy = REGIONS if hierarchy is None else hierarchy
    return [{"name": name, "code": data["code"]} for name, data in hierarchy.items()]


def list_subcounties(county: str, hierarchy: dict | None = None) -> list[dict[str, str]]:
    hierarchy = REGIONS if hierarchy is None else hierarchy
    county_data = hierarchy.get(county)
    if county_data is None:
        raise NotFoundError("County not found")
    return [{"name": name, "code": data["code"]} for name, data in county_data["subcounties"].items()]


def list_wards(county: str, sub_county: str, hierarchy: dict | None = None) -> list[dict[str, str]]:
    hierarchy = REGIONS if hierarchy is None else hierarchy
    county_data = hierarchy.get(county)
    sub_data = county_data["subcounties"].get(sub_county) if county_data else None
    if sub_data is None:
        raise NotFoundError("Subcounty not found")
    return [{"name": name, "code": code} for name, code in sub_data["wards"].items()]


def region_codes(
    county: str, sub_county: str, ward: str, hierarchy: dict | None = None
) -> tuple[str, str, str] | None:
    hierarchy = REGIONS if hierarchy is None else hierarchy
    county_data = hierarchy.get(county)
    if not county_data:
        return None
    sub_data = county_data["subcounties"].get(sub_county)
    if not sub_data:
        return None
    ward_code = sub_data["wards"].get(ward)
    if not ward_code:
        return None
    return county_data["code"], sub_data["code"], ward_code
