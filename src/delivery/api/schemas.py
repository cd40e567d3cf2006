"""Pydantic request/response schemas for the Delivery API."""

from pydantic import BaseModel, Field


class NearestZoneSchema(BaseModel):
    name: str
    city: str


class ZoneCoverageResponse(BaseModel):
    is_covered: bool
    nearest_zone: NearestZoneSchema | None = None


class CreateZoneRequest(BaseModel):
    name: str
    city: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    radius: float = Field(gt=0)  # metres
    is_active: bool = True

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Mermoz",
                    "city": "Dakar",
                    "latitude": 14.7089,
                    "longitude": -17.4746,
                    "radius": 1500,
                }
            ]
        }
    }


class ZoneResponse(BaseModel):
    id: str
    name: str
    city: str
    latitude: float
    longitude: float
    radius: float
    is_active: bool
