"""Persistence for delivery zones (the neighborhoods table)."""

from uuid import uuid4

from sqlalchemy import Boolean, Float, String, select
from sqlalchemy.orm import Mapped, mapped_column

from delivery.zone.coverage import Zone, ZoneCoverage, compute_coverage
from shared.database import Base, session_scope


class ZoneRecord(Base):
    __tablename__ = "delivery_zones"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name: Mapped[str] = mapped_column(String(120))
    city: Mapped[str] = mapped_column(String(120), index=True)
    latitude: Mapped[float] = mapped_column(Float)
    longitude: Mapped[float] = mapped_column(Float)
    radius: Mapped[float] = mapped_column(Float)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def to_zone(self) -> Zone:
        return Zone(
            id=self.id,
            name=self.name,
            city=self.city,
            latitude=self.latitude,
            longitude=self.longitude,
            radius=self.radius,
            is_active=self.is_active,
        )


class ZoneRepository:
    def add(self, zone: Zone) -> Zone:
        with session_scope() as session:
            session.add(
                ZoneRecord(
                    id=zone.id,
                    name=zone.name,
                    city=zone.city,
                    latitude=zone.latitude,
                    longitude=zone.longitude,
                    radius=zone.radius,
                    is_active=zone.is_active,
                )
            )
        return zone

    def list_active(self) -> list[Zone]:
        with session_scope() as session:
            records = session.scalars(
                select(ZoneRecord).where(ZoneRecord.is_active.is_(True)).order_by(ZoneRecord.city, ZoneRecord.name)
            )
            return [record.to_zone() for record in records]

    def cities(self) -> list[str]:
        return sorted({zone.city for zone in self.list_active()})

    def check_coverage(self, latitude: float, longitude: float) -> ZoneCoverage:
        return compute_coverage(latitude, longitude, self.list_active())
