"""
Shared fixtures for flight scheduler tests.

Reference data: a small Turkish domestic network (IST, ANK, IZM), one
international airport (FRA), one inactive airport and one airport without
coordinates.
"""

from datetime import datetime

import pytest

from src.flight_scheduler.adapters.reference.in_memory_reference import (
    InMemoryReferenceData,
)
from src.flight_scheduler.adapters.repositories.in_memory_flight_repo import (
    InMemoryFlightRepository,
)
from src.flight_scheduler.schemas.flight import FlightType
from src.flight_scheduler.schemas.reference import (
    Aircraft,
    Airline,
    Airport,
    Coordinates,
)
from src.flight_scheduler.schemas.requests import (
    ConnectingFlightRequest,
    FlightSegmentRequest,
)

IST, ANK, IZM, FRA, OLD, NOC = 1, 2, 3, 4, 5, 6

# 1_700_000_001.234 s -> short timestamp 1234
FIXED_EPOCH_SECONDS = 1_700_000_001.234


@pytest.fixture
def airports() -> list[Airport]:
    return [
        Airport(IST, "IST", "Istanbul Airport", "TR", Coordinates(41.2753, 28.7519)),
        Airport(ANK, "ANK", "Ankara Esenboga", "TR", Coordinates(40.1281, 32.9951)),
        Airport(IZM, "IZM", "Izmir Adnan Menderes", "TR", Coordinates(38.2924, 27.1570)),
        Airport(FRA, "FRA", "Frankfurt Airport", "DE", Coordinates(50.0379, 8.5622)),
        Airport(OLD, "OLD", "Closed Field", "TR", Coordinates(39.0, 30.0), active=False),
        Airport(NOC, "NOC", "No Coordinates", "TR"),
    ]


@pytest.fixture
def reference_data(airports) -> InMemoryReferenceData:
    """In-memory reference data with active/inactive airline and aircraft."""
    return InMemoryReferenceData(
        airports=airports,
        airlines=[
            Airline(1, "TK", "Turkish Airlines"),
            Airline(2, "XX", "Defunct Air", active=False),
        ],
        aircraft=[
            Aircraft(1, "TC-JNA"),
            Aircraft(2, "TC-JNB", status="MAINTENANCE"),
        ],
    )


@pytest.fixture
def flight_repo() -> InMemoryFlightRepository:
    return InMemoryFlightRepository()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_EPOCH_SECONDS


@pytest.fixture
def build_request():
    """
    Factory for connecting-flight requests.

    legs: (origin, destination, departure, arrival) tuples; numbered 1..N.
    """

    def _build(
        legs=None,
        main_flight_number="TK123",
        airline_id=1,
        aircraft_id=1,
        type=FlightType.PASSENGER,
        passenger_count=150,
        cargo_weight=None,
        numbers=None,
        route_ids=None,
    ) -> ConnectingFlightRequest:
        if legs is None:
            legs = [
                (IST, ANK, datetime(2026, 7, 1, 8, 0), datetime(2026, 7, 1, 9, 10)),
                (ANK, IZM, datetime(2026, 7, 1, 10, 40), datetime(2026, 7, 1, 11, 50)),
            ]
        numbers = numbers or list(range(1, len(legs) + 1))
        route_ids = route_ids or [None] * len(legs)
        segments = tuple(
            FlightSegmentRequest(
                segment_number=number,
                origin_airport_id=origin,
                destination_airport_id=destination,
                scheduled_departure=departure,
                scheduled_arrival=arrival,
                route_id=route_id,
            )
            for number, (origin, destination, departure, arrival), route_id in zip(
                numbers, legs, route_ids
            )
        )
        return ConnectingFlightRequest(
            main_flight_number=main_flight_number,
            airline_id=airline_id,
            aircraft_id=aircraft_id,
            type=type,
            segments=segments,
            passenger_count=passenger_count,
            cargo_weight=cargo_weight,
        )

    return _build
