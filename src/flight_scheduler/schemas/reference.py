"""
Reference data records consumed by the scheduler.

Airports, airlines and aircraft are owned by the reference manager; the
scheduler only reads them.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Coordinates:
    """Latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        """Validate coordinate ranges."""
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude must be in [-90, 90], got {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude must be in [-180, 180], got {self.longitude}")


@dataclass(frozen=True)
class Airport:
    """
    Immutable airport record.

    Attributes:
        id: Reference-manager identifier.
        iata_code: 3-letter IATA code (e.g., 'IST').
        name: Display name.
        country: Country name or code, compared verbatim for route kind.
        coordinates: Location, None when the reference manager has none.
        active: Whether the airport accepts new routes.
        icao_code: 4-letter ICAO code (optional).
    """

    id: int
    iata_code: str
    name: str
    country: Optional[str]
    coordinates: Optional[Coordinates] = None
    active: bool = True
    icao_code: Optional[str] = None


@dataclass(frozen=True)
class Airline:
    """Immutable airline record."""

    id: int
    code: str
    name: str
    active: bool = True


@dataclass(frozen=True)
class Aircraft:
    """Immutable aircraft record. Only status 'ACTIVE' counts as active."""

    id: int
    registration: str
    status: str = "ACTIVE"

    @property
    def active(self) -> bool:
        return self.status == "ACTIVE"
