"""
Request schemas for route resolution and connecting-flight assembly.

Requests are immutable and carry raw caller input; semantic validation
(creation-mode data, continuity, timing) is done by the services so that
failures surface as typed scheduler errors.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

from src.flight_scheduler.schemas.flight import FlightType

TIME_ONLY_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
)


class CreationMode(Enum):
    """How a flight-creation request identifies its route."""

    ROUTE = "ROUTE"
    AIRPORT_PAIR = "AIRPORT_PAIR"
    SEGMENT_CHAIN = "SEGMENT_CHAIN"


@dataclass(frozen=True)
class AirportSegment:
    """
    One leg of a requested segment chain.

    Attributes:
        segment_order: 1-based position in the chain.
        origin_airport_id: Departure airport id.
        destination_airport_id: Arrival airport id.
        connection_time_minutes: Planned ground time before the next leg.
    """

    segment_order: int
    origin_airport_id: int
    destination_airport_id: int
    connection_time_minutes: Optional[int] = None

    @property
    def endpoints(self) -> Tuple[int, int]:
        return (self.origin_airport_id, self.destination_airport_id)


@dataclass(frozen=True)
class RouteResolutionRequest:
    """
    Route part of a flight-creation request.

    Exactly one of route_id, the airport pair, or airport_segments is
    expected, selected by creation_mode.
    """

    creation_mode: Optional[CreationMode]
    route_id: Optional[int] = None
    origin_airport_id: Optional[int] = None
    destination_airport_id: Optional[int] = None
    airport_segments: Tuple[AirportSegment, ...] = field(default_factory=tuple)
    flight_number: Optional[str] = None

    @classmethod
    def for_route(cls, route_id: int) -> "RouteResolutionRequest":
        return cls(creation_mode=CreationMode.ROUTE, route_id=route_id)

    @classmethod
    def for_airport_pair(
        cls, origin_airport_id: int, destination_airport_id: int
    ) -> "RouteResolutionRequest":
        return cls(
            creation_mode=CreationMode.AIRPORT_PAIR,
            origin_airport_id=origin_airport_id,
            destination_airport_id=destination_airport_id,
        )

    @classmethod
    def for_segment_chain(
        cls,
        segments: Sequence[AirportSegment],
        flight_number: Optional[str] = None,
    ) -> "RouteResolutionRequest":
        return cls(
            creation_mode=CreationMode.SEGMENT_CHAIN,
            airport_segments=tuple(segments),
            flight_number=flight_number,
        )


@dataclass(frozen=True)
class FlightSegmentRequest:
    """
    One leg of a connecting-flight request.

    route_id is optional; when absent the leg's route is resolved from
    its airport pair.
    """

    segment_number: int
    origin_airport_id: int
    destination_airport_id: int
    scheduled_departure: datetime
    scheduled_arrival: datetime
    route_id: Optional[int] = None
    gate_number: Optional[str] = None
    notes: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        delta = self.scheduled_arrival - self.scheduled_departure
        return int(delta.total_seconds() // 60)


@dataclass(frozen=True)
class ConnectingFlightRequest:
    """
    Request to create or replace a multi-leg itinerary.

    Attributes:
        main_flight_number: Customer-facing number, e.g. 'TK123'.
        airline_id: Operating airline.
        aircraft_id: Aircraft used on all legs.
        type: Flight purpose, inherited by all legs.
        segments: Ordered legs.
        passenger_count: Passengers, inherited by all legs.
        cargo_weight: Cargo in kg, inherited by all legs.
        notes: Free text for the main flight.
        active: Soft-delete flag for all created flights.
    """

    main_flight_number: str
    airline_id: int
    aircraft_id: int
    type: FlightType
    segments: Tuple[FlightSegmentRequest, ...]
    passenger_count: Optional[int] = None
    cargo_weight: Optional[int] = None
    notes: Optional[str] = None
    active: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.segments, tuple):
            object.__setattr__(self, "segments", tuple(self.segments))

    @property
    def first_segment(self) -> Optional[FlightSegmentRequest]:
        return self.segments[0] if self.segments else None

    @property
    def last_segment(self) -> Optional[FlightSegmentRequest]:
        return self.segments[-1] if self.segments else None

    @property
    def flight_date(self) -> Optional[date]:
        """Date of the first leg's scheduled departure."""
        first = self.first_segment
        return first.scheduled_departure.date() if first else None


def resolve_flight_time(
    flight_date: Optional[date],
    value: Union[str, datetime, None],
) -> Optional[datetime]:
    """
    Resolve a schedule input into a datetime.

    Accepts a datetime, a time-only string ('HH:mm' or 'H:mm') combined
    with the explicitly given flight_date, or a full datetime string in
    one of DATETIME_FORMATS.

    Args:
        flight_date: Date used for time-only inputs.
        value: Raw schedule value.

    Returns:
        Parsed datetime, or None for empty input.

    Raises:
        ValueError: If the value cannot be parsed, or a time-only value is
            given without a flight_date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value

    text = value.strip()
    if not text:
        return None

    match = TIME_ONLY_PATTERN.match(text)
    if match:
        if flight_date is None:
            raise ValueError(f"Time-only value '{text}' requires a flight date")
        hour, minute = int(match.group(1)), int(match.group(2))
        return datetime.combine(flight_date, time(hour=hour, minute=minute))

    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    raise ValueError(
        f"Unable to parse datetime: {text}. "
        "Supported formats: yyyy-MM-dd HH:mm, HH:mm, ISO-8601"
    )
