"""
Flight and flight-connection schemas.

Flights are immutable records; state changes produce a new record via
dataclasses.replace and are written back through the FlightRepository.
Pandera schemas guard rows loaded from SQL at the adapter boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional

import pandera as pa
from pandera.typing import DataFrame, Series


class FlightStatus(Enum):
    """Operational status of a flight."""

    SCHEDULED = "SCHEDULED"
    BOARDING = "BOARDING"
    DEPARTED = "DEPARTED"
    ARRIVED = "ARRIVED"
    CANCELLED = "CANCELLED"
    DELAYED = "DELAYED"
    DIVERTED = "DIVERTED"
    RETURNING = "RETURNING"


class FlightType(Enum):
    """Purpose of a flight."""

    PASSENGER = "PASSENGER"
    CARGO = "CARGO"
    POSITIONING = "POSITIONING"
    FERRY = "FERRY"
    TRAINING = "TRAINING"


@dataclass(frozen=True)
class Flight:
    """
    Immutable flight record.

    Standalone and main connecting flights have segment_number 0 and no
    parent; child segments point at their main flight and are numbered
    1..N. Only the main record of an itinerary has is_connecting_flight.

    Attributes:
        id: Store identifier (None before insert).
        flight_number: Customer-facing number, '{main}-S{n}' for segments.
        airline_id: Operating airline.
        aircraft_id: Assigned aircraft.
        route_id: Resolved route (None only before resolution).
        flight_date: Local date of the scheduled departure.
        scheduled_departure: Planned off-block time.
        scheduled_arrival: Planned on-block time.
        status: Operational status.
        type: Flight purpose.
        actual_departure: Recorded departure, if any.
        actual_arrival: Recorded arrival, if any.
        passenger_count: Booked passengers.
        cargo_weight: Cargo in kg.
        gate_number: Departure gate.
        notes: Free text.
        active: Soft-delete flag.
        parent_flight_id: Main flight id for segments, else None.
        segment_number: 0 for main/standalone, 1..N for segments.
        is_connecting_flight: True only on an itinerary's main record.
        version: Optimistic concurrency counter.
    """

    id: Optional[int]
    flight_number: str
    airline_id: int
    aircraft_id: int
    route_id: Optional[int]
    flight_date: date
    scheduled_departure: datetime
    scheduled_arrival: datetime
    status: FlightStatus = FlightStatus.SCHEDULED
    type: FlightType = FlightType.PASSENGER
    actual_departure: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None
    passenger_count: Optional[int] = None
    cargo_weight: Optional[int] = None
    gate_number: Optional[str] = None
    notes: Optional[str] = None
    active: bool = True
    parent_flight_id: Optional[int] = None
    segment_number: int = 0
    is_connecting_flight: bool = False
    version: int = 0

    def __post_init__(self) -> None:
        """Validate structural flight invariants."""
        if self.parent_flight_id is not None and self.is_connecting_flight:
            raise ValueError(
                f"Segment flight {self.flight_number} cannot itself be a connecting flight"
            )
        if self.parent_flight_id is not None and self.segment_number < 1:
            raise ValueError(
                f"Segment flight {self.flight_number} must have segment_number >= 1"
            )
        if self.parent_flight_id is None and self.segment_number != 0:
            raise ValueError(
                f"Flight {self.flight_number} without parent must have segment_number 0"
            )

    @property
    def is_departed(self) -> bool:
        """Departed or already arrived."""
        return self.status in (FlightStatus.DEPARTED, FlightStatus.ARRIVED)

    @property
    def stored_id(self) -> int:
        """Id assigned by the repository; a flight not stored yet has none."""
        if self.id is None:
            raise ValueError(f"Flight {self.flight_number} has not been stored")
        return self.id

    @property
    def is_segment(self) -> bool:
        return self.parent_flight_id is not None

    @property
    def duration_minutes(self) -> int:
        """Actual block time when known, otherwise scheduled."""
        if self.actual_departure is not None and self.actual_arrival is not None:
            delta = self.actual_arrival - self.actual_departure
        else:
            delta = self.scheduled_arrival - self.scheduled_departure
        return int(delta.total_seconds() // 60)


@dataclass(frozen=True)
class FlightConnection:
    """
    One row per segment of a connecting itinerary.

    connection_time_minutes is the gap to the next segment and is None
    for the last segment.
    """

    main_flight_id: int
    segment_flight_id: int
    segment_order: int
    connection_time_minutes: Optional[int] = None


class FlightRowSchema(pa.DataFrameModel):
    """Pandera schema for flight rows loaded from SQL."""

    id: Series[int] = pa.Field(ge=1)
    flight_number: Series[str] = pa.Field(nullable=False)
    airline_id: Series[int] = pa.Field(ge=1)
    aircraft_id: Series[int] = pa.Field(ge=1)
    route_id: Series[float] = pa.Field(nullable=True, description="Nullable FK")
    flight_date: Series[str] = pa.Field(nullable=False)
    scheduled_departure: Series[str] = pa.Field(nullable=False)
    scheduled_arrival: Series[str] = pa.Field(nullable=False)
    status: Series[str] = pa.Field(isin=[s.value for s in FlightStatus])
    type: Series[str] = pa.Field(isin=[t.value for t in FlightType])
    parent_flight_id: Series[float] = pa.Field(nullable=True)
    segment_number: Series[int] = pa.Field(ge=0)
    is_connecting_flight: Series[int] = pa.Field(isin=[0, 1])
    version: Series[int] = pa.Field(ge=0)

    class Config:
        strict = False
        coerce = True
        name = "FlightRowSchema"


class FlightConnectionRowSchema(pa.DataFrameModel):
    """Pandera schema for flight connection rows loaded from SQL."""

    main_flight_id: Series[int] = pa.Field(ge=1)
    segment_flight_id: Series[int] = pa.Field(ge=1)
    segment_order: Series[int] = pa.Field(ge=1)
    connection_time_minutes: Series[float] = pa.Field(nullable=True, ge=0)

    class Config:
        strict = False
        coerce = True
        name = "FlightConnectionRowSchema"


FlightRowFrame = DataFrame[FlightRowSchema]
FlightConnectionRowFrame = DataFrame[FlightConnectionRowSchema]
