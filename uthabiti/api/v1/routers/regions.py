from fastapi import APIRouter

from uthabiti.services import regions

router = APIRouter(prefix="/regions", tags=["regions"])


@router.get("/counties", summary="List counties")
async def list_counties() -> list[dict[str, str]]:
    return regions.list_counties()


@router.get("/counties/{county}/subcounties", summary="List subcounties of a county")
async def list_subcounties(county: str) -> list[dict[str, str]]:
    return regions.list_subcounties(county)


@router.get("/counties/{county}/subcounties/{sub_county}/wards", summary="List wards of a subcounty")
async def list_wards(county: str, sub_county: str) -> list[dict[str, str]]:
    return regions.list_wards(county, sub_county)
