"""
Itinerary result schemas.

Output contracts of the ItineraryAssembler and RouteSynthesizer previews.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from src.flight_scheduler.schemas.flight import Flight, FlightConnection, FlightStatus
from src.flight_scheduler.schemas.route import RouteKind


@dataclass(frozen=True)
class AssembledItinerary:
    """
    A persisted connecting flight: main record, ordered legs and connections.

    Attributes:
        main_flight: Main record (is_connecting_flight=True, segment_number=0).
        segments: Child flights ordered by segment_number.
        connections: One row per child, same order.
        airport_codes: IATA codes along the itinerary, first origin then
            each leg's destination. Empty when codes could not be resolved.
    """

    main_flight: Flight
    segments: Tuple[Flight, ...]
    connections: Tuple[FlightConnection, ...]
    airport_codes: Tuple[str, ...] = ()

    @property
    def main_flight_id(self) -> int:
        return self.main_flight.stored_id

    @property
    def child_flight_ids(self) -> List[int]:
        return [s.id for s in self.segments if s.id is not None]

    @property
    def total_segments(self) -> int:
        return len(self.segments)

    @property
    def status(self) -> FlightStatus:
        return self.main_flight.status

    @property
    def full_route(self) -> str:
        """Display string such as 'IST → ANK → IZM'."""
        if not self.airport_codes:
            return ""
        return " → ".join(self.airport_codes)

    @property
    def total_connection_minutes(self) -> int:
        return sum(c.connection_time_minutes or 0 for c in self.connections)


@dataclass(frozen=True)
class ConnectionDetail:
    """Connection row enriched with display data."""

    segment_order: int
    segment_flight_id: int
    segment_flight_number: Optional[str]
    connection_time_minutes: Optional[int]
    origin_airport_code: Optional[str] = None
    destination_airport_code: Optional[str] = None


@dataclass(frozen=True)
class LegPreview:
    """Estimated geometry for one leg of a previewed chain."""

    segment_order: int
    origin_airport_code: str
    destination_airport_code: str
    distance_km: int
    estimated_minutes: int


@dataclass(frozen=True)
class RoutePreview:
    """
    Estimate for a chain route without persisting it.

    total_minutes includes the planned connection times.
    """

    legs: Tuple[LegPreview, ...]
    total_distance_km: int
    total_minutes: int
    kind: RouteKind

    @property
    def route_cities(self) -> List[str]:
        if not self.legs:
            return []
        return [self.legs[0].origin_airport_code] + [
            leg.destination_airport_code for leg in self.legs
        ]
