"""FastAPI routes for the Delivery domain: zones and coverage."""

from uuid import uuid4

from fastapi import APIRouter, Query

from delivery.api.schemas import CreateZoneRequest, NearestZoneSchema, ZoneCoverageResponse, ZoneResponse
from delivery.zone.coverage import Zone
from delivery.zone.repository import ZoneRepository

router = APIRouter(prefix="/zones", tags=["zones"])


@router.get("/coverage", response_model=ZoneCoverageResponse)
async def check_zone_coverage(
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180),
) -> ZoneCoverageResponse:
    """Is the point inside an active delivery zone? Reports the nearest zone either way."""
    coverage = ZoneRepository().check_coverage(latitude, longitude)
    nearest = coverage.nearest_zone
    return ZoneCoverageResponse(
        is_covered=coverage.is_covered,
        nearest_zone=NearestZoneSchema(name=nearest.name, city=nearest.city) if nearest else None,
    )


@router.get("", response_model=list[ZoneResponse])
async def list_zones() -> list[ZoneResponse]:
    return [ZoneResponse.model_validate(zone.model_dump()) for zone in ZoneRepository().list_active()]


@router.post("", status_code=201, response_model=ZoneResponse)
async def create_zone(body: CreateZoneRequest) -> ZoneResponse:
    zone = ZoneRepository().add(Zone(id=str(uuid4()), **body.model_dump()))
    return ZoneResponse.model_validate(zone.model_dump())
