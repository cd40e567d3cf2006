"""Delivery zones and the coverage check.

A zone is a circle (centre + radius in metres) around a neighborhood. A point
is covered when it falls inside any active zone; the nearest zone is reported
either way so the client can show where delivery is available.
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

EARTH_RADIUS_METERS = 6_371_000


class Zone(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str  # neighborhood
    city: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    radius: float = Field(gt=0)  # metres
    is_active: bool = True


@dataclass(frozen=True)
class NearestZone:
    name: str
    city: str


@dataclass(frozen=True)
class ZoneCoverage:
    """Result of a coverage check."""

    is_covered: bool
    nearest_zone: NearestZone | None = None


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates, in metres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = math.sin(delta_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def compute_coverage(latitude: float, longitude: float, zones: Iterable[Zone]) -> ZoneCoverage:
    """Return the first active zone containing the point, else the nearest one."""
    nearest: Zone | None = None
    min_distance = math.inf

    for zone in zones:
        if not zone.is_active:
            continue
        distance = haversine_distance(latitude, longitude, zone.latitude, zone.longitude)
        if distance < min_distance:
            min_distance = distance
            nearest = zone
        if distance <= zone.radius:
            return ZoneCoverage(is_covered=True, nearest_zone=NearestZone(name=zone.name, city=zone.city))

    if nearest is None:
        return ZoneCoverage(is_covered=False)
    return ZoneCoverage(is_covered=False, nearest_zone=NearestZone(name=nearest.name, city=nearest.city))


class ZoneCoverageService(ABC):
    """Answers whether a point can be delivered to."""

    @abstractmethod
    async def check_zone_coverage(self, latitude: float, longitude: float) -> ZoneCoverage: ...


class StaticZoneCoverage(ZoneCoverageService):
    """Coverage against a fixed list of zones, for development and tests."""

    def __init__(self, zones: Iterable[Zone]) -> None:
        self.zones = list(zones)
        self.calls: list[tuple[float, float]] = []

    async def check_zone_coverage(self, latitude: float, longitude: float) -> ZoneCoverage:
        self.calls.append((latitude, longitude))
        return compute_coverage(latitude, longitude, self.zones)
