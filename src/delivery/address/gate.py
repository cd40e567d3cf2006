"""Delivery Address Gate: the selected address and whether it can be served.

An address only enters the gate through ``set_address()``, which always asks
the coverage service about the candidate coordinates first. Checkout reads
``is_deliverable()`` and the landmark as its address precondition.
"""

from collections.abc import Callable

import structlog
from pydantic import BaseModel, ConfigDict, Field

from delivery.zone.coverage import ZoneCoverageService

logger = structlog.get_logger(__name__)


class AddressCandidate(BaseModel):
    """An address picked by the user, before coverage is known."""

    formatted_address: str = ""
    city: str = ""
    neighborhood: str = ""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    additional_info: str = ""


class DeliveryAddress(BaseModel):
    model_config = ConfigDict(frozen=True)

    formatted_address: str = ""
    city: str = ""
    neighborhood: str = ""
    latitude: float | None = None
    longitude: float | None = None
    additional_info: str = ""  # landmark for the rider
    is_zone_covered: bool = False

    def has_address(self) -> bool:
        return bool(self.formatted_address or (self.city and self.neighborhood))

    def full_address(self) -> str:
        if self.city and self.neighborhood:
            return f"{self.neighborhood}, {self.city}"
        return self.formatted_address


class DeliveryAddressGate:
    def __init__(
        self,
        coverage: ZoneCoverageService,
        address: DeliveryAddress | None = None,
        on_change: Callable[[DeliveryAddress], None] | None = None,
    ) -> None:
        self.coverage = coverage
        self._address = address or DeliveryAddress()
        self._on_change = on_change

    @property
    def address(self) -> DeliveryAddress:
        return self._address

    @property
    def is_zone_covered(self) -> bool:
        return self._address.is_zone_covered

    @property
    def landmark(self) -> str:
        return self._address.additional_info

    def has_address(self) -> bool:
        return self._address.has_address()

    def full_address(self) -> str:
        return self._address.full_address()

    def is_deliverable(self) -> bool:
        return self.has_address() and self.is_zone_covered

    async def set_address(self, candidate: AddressCandidate) -> DeliveryAddress:
        """Validate coverage for the candidate, then make it the current address.

        If the coverage check fails the previous address is kept.
        """
        coverage = await self.coverage.check_zone_coverage(candidate.latitude, candidate.longitude)

        if coverage.is_covered and coverage.nearest_zone is not None:
            address = DeliveryAddress(
                formatted_address=candidate.formatted_address,
                city=coverage.nearest_zone.city,
                neighborhood=coverage.nearest_zone.name,
                latitude=candidate.latitude,
                longitude=candidate.longitude,
                additional_info=candidate.additional_info.strip(),
                is_zone_covered=True,
            )
        else:
            address = DeliveryAddress(
                formatted_address=candidate.formatted_address,
                city=candidate.city,
                neighborhood=candidate.neighborhood,
                latitude=candidate.latitude,
                longitude=candidate.longitude,
                additional_info=candidate.additional_info.strip(),
                is_zone_covered=False,
            )
            logger.info(
                "Address outside delivery zones",
                latitude=candidate.latitude,
                longitude=candidate.longitude,
                nearest_zone=coverage.nearest_zone.name if coverage.nearest_zone else None,
            )

        self._replace(address)
        return address

    def set_landmark(self, additional_info: str) -> DeliveryAddress:
        """Update the free-text landmark; coverage is unaffected."""
        self._replace(self._address.model_copy(update={"additional_info": additional_info.strip()}))
        return self._address

    def clear(self) -> None:
        self._replace(DeliveryAddress())

    def _replace(self, address: DeliveryAddress) -> None:
        self._address = address
        if self._on_change is not None:
            self._on_change(address)
