"""
Tests for flight_scheduler schema definitions.

Validates that:
1. Route dataclasses enforce ordering and continuity
2. Flight dataclasses enforce parent/segment invariants
3. Pandera row schemas coerce and reject rows
4. Schedule inputs resolve from time-only and datetime strings
"""

from datetime import date, datetime

import pandas as pd
import pandera as pa
import pytest

from src.flight_scheduler.schemas.flight import (
    Flight,
    FlightConnectionRowSchema,
    FlightRowSchema,
    FlightStatus,
)
from src.flight_scheduler.schemas.flight import FlightConnection
from src.flight_scheduler.schemas.itinerary import (
    AssembledItinerary,
    LegPreview,
    RoutePreview,
)
from src.flight_scheduler.schemas.reference import Aircraft, Coordinates
from src.flight_scheduler.schemas.requests import (
    ConnectingFlightRequest,
    CreationMode,
    RouteResolutionRequest,
    resolve_flight_time,
)
from src.flight_scheduler.schemas.route import (
    Route,
    RouteDraft,
    RouteKind,
    RouteSegment,
    RouteSegmentRowSchema,
)


# -------------------------
# Fixtures
# -------------------------


@pytest.fixture
def chain_segments() -> tuple[RouteSegment, ...]:
    return (
        RouteSegment(order=1, origin_airport_id=1, destination_airport_id=2, distance_km=350),
        RouteSegment(order=2, origin_airport_id=2, destination_airport_id=3, distance_km=520),
    )


def make_flight(**overrides) -> Flight:
    values = dict(
        id=1,
        flight_number="TK123",
        airline_id=1,
        aircraft_id=1,
        route_id=10,
        flight_date=date(2026, 7, 1),
        scheduled_departure=datetime(2026, 7, 1, 8, 0),
        scheduled_arrival=datetime(2026, 7, 1, 9, 30),
    )
    values.update(overrides)
    return Flight(**values)


# -------------------------
# Reference data
# -------------------------


class TestReferenceRecords:
    def test_coordinates_out_of_range_rejected(self):
        """Latitude beyond 90 degrees is invalid."""
        with pytest.raises(ValueError, match="latitude"):
            Coordinates(91.0, 10.0)

    def test_aircraft_active_only_for_active_status(self):
        """Only status ACTIVE counts as active."""
        assert Aircraft(1, "TC-JNA").active
        assert not Aircraft(2, "TC-JNB", status="MAINTENANCE").active


# -------------------------
# Routes
# -------------------------


class TestRoute:
    def test_direct_and_multi_segment_flags(self, chain_segments):
        """One segment is direct; more than one is multi-segment."""
        direct = Route(1, "IST-ANK-D1", "x", RouteKind.DOMESTIC, chain_segments[:1], 350, 30)
        chain = Route(2, "IST-IZM-M2-1", "y", RouteKind.DOMESTIC, chain_segments, 870, 90)

        assert direct.is_direct and not direct.is_multi_segment
        assert chain.is_multi_segment and not chain.is_direct
        assert chain.origin_airport_id == 1
        assert chain.destination_airport_id == 3
        assert chain.endpoint_pairs == ((1, 2), (2, 3))

    def test_route_without_segments_rejected(self):
        with pytest.raises(ValueError, match="at least one segment"):
            Route(1, "X", "x", RouteKind.DOMESTIC, (), 0, 0)

    def test_non_contiguous_orders_rejected(self):
        """Orders must run 1..N."""
        segments = (
            RouteSegment(order=1, origin_airport_id=1, destination_airport_id=2),
            RouteSegment(order=3, origin_airport_id=2, destination_airport_id=3),
        )
        with pytest.raises(ValueError, match="contiguous"):
            Route(1, "X", "x", RouteKind.DOMESTIC, segments, 0, 0)

    def test_broken_chain_rejected(self):
        """A leg must start where the previous one ended."""
        segments = (
            RouteSegment(order=1, origin_airport_id=1, destination_airport_id=2),
            RouteSegment(order=2, origin_airport_id=3, destination_airport_id=4),
        )
        with pytest.raises(ValueError, match="does not match"):
            RouteDraft("X", "x", RouteKind.DOMESTIC, segments, 0, 0)

    def test_draft_to_route_stamps_route_id(self, chain_segments):
        """Persisting a draft assigns the id to every segment."""
        draft = RouteDraft("IST-IZM-M2-1", "TK1 Multi-Segment Route", RouteKind.DOMESTIC,
                           chain_segments, 870, 90)

        route = draft.to_route(42)

        assert route.id == 42
        assert all(s.route_id == 42 for s in route.segments)
        assert draft.segments[0].route_id is None


class TestRouteSegmentRowSchema:
    def test_valid_rows_coerced(self):
        df = pd.DataFrame({
            "route_id": ["1", "1"],
            "segment_order": [1, 2],
            "origin_airport_id": [1, 2],
            "destination_airport_id": [2, 3],
            "distance_km": [350.0, 520.0],
            "estimated_minutes": [27, 39],
            "active": [True, True],
        })

        validated = RouteSegmentRowSchema.validate(df)

        assert validated["route_id"].dtype == "int64"
        assert validated["distance_km"].tolist() == [350, 520]

    def test_same_endpoints_rejected(self):
        """A segment never starts and ends at the same airport."""
        df = pd.DataFrame({
            "route_id": [1],
            "segment_order": [1],
            "origin_airport_id": [2],
            "destination_airport_id": [2],
            "distance_km": [0],
            "estimated_minutes": [0],
            "active": [True],
        })

        with pytest.raises(pa.errors.SchemaError):
            RouteSegmentRowSchema.validate(df)


# -------------------------
# Flights
# -------------------------


class TestFlight:
    def test_main_flight_defaults(self):
        flight = make_flight(is_connecting_flight=True)

        assert flight.segment_number == 0
        assert flight.status is FlightStatus.SCHEDULED
        assert not flight.is_segment
        assert flight.duration_minutes == 90

    def test_segment_requires_positive_number(self):
        with pytest.raises(ValueError, match="segment_number >= 1"):
            make_flight(parent_flight_id=5, segment_number=0)

    def test_segment_cannot_be_connecting(self):
        with pytest.raises(ValueError, match="cannot itself be a connecting flight"):
            make_flight(parent_flight_id=5, segment_number=1, is_connecting_flight=True)

    def test_stored_id(self):
        assert make_flight(id=7).stored_id == 7

        with pytest.raises(ValueError, match="TK123 has not been stored"):
            make_flight(id=None).stored_id

    @pytest.mark.parametrize(
        "status,departed",
        [
            (FlightStatus.SCHEDULED, False),
            (FlightStatus.BOARDING, False),
            (FlightStatus.DEPARTED, True),
            (FlightStatus.ARRIVED, True),
            (FlightStatus.CANCELLED, False),
        ],
    )
    def test_is_departed(self, status, departed):
        """Departed means DEPARTED or ARRIVED."""
        assert make_flight(status=status).is_departed is departed


class TestFlightRowSchemas:
    def test_flight_row_nullable_foreign_keys(self):
        df = pd.DataFrame({
            "id": [1],
            "flight_number": ["TK123"],
            "airline_id": [1],
            "aircraft_id": [1],
            "route_id": [None],
            "flight_date": ["2026-07-01"],
            "scheduled_departure": ["2026-07-01T08:00:00"],
            "scheduled_arrival": ["2026-07-01T09:30:00"],
            "status": ["SCHEDULED"],
            "type": ["PASSENGER"],
            "parent_flight_id": [None],
            "segment_number": [0],
            "is_connecting_flight": [1],
            "version": [0],
        })

        validated = FlightRowSchema.validate(df)

        assert validated["route_id"].isna().all()

    def test_unknown_status_rejected(self):
        df = pd.DataFrame({
            "id": [1],
            "flight_number": ["TK123"],
            "airline_id": [1],
            "aircraft_id": [1],
            "route_id": [10.0],
            "flight_date": ["2026-07-01"],
            "scheduled_departure": ["2026-07-01T08:00:00"],
            "scheduled_arrival": ["2026-07-01T09:30:00"],
            "status": ["LOST"],
            "type": ["PASSENGER"],
            "parent_flight_id": [None],
            "segment_number": [0],
            "is_connecting_flight": [0],
            "version": [0],
        })

        with pytest.raises(pa.errors.SchemaError):
            FlightRowSchema.validate(df)

    def test_negative_connection_time_rejected(self):
        df = pd.DataFrame({
            "main_flight_id": [1],
            "segment_flight_id": [2],
            "segment_order": [1],
            "connection_time_minutes": [-5.0],
        })

        with pytest.raises(pa.errors.SchemaError):
            FlightConnectionRowSchema.validate(df)


# -------------------------
# Requests and results
# -------------------------


class TestRequests:
    def test_resolution_request_factories(self):
        assert RouteResolutionRequest.for_route(7).creation_mode is CreationMode.ROUTE
        pair = RouteResolutionRequest.for_airport_pair(1, 2)
        assert (pair.origin_airport_id, pair.destination_airport_id) == (1, 2)

    def test_connecting_request_normalizes_segments(self, build_request):
        """Segments given as a list become a tuple."""
        request = build_request()
        as_list = ConnectingFlightRequest(
            main_flight_number="TK1",
            airline_id=1,
            aircraft_id=1,
            type=request.type,
            segments=list(request.segments),
        )

        assert isinstance(as_list.segments, tuple)
        assert as_list.flight_date == date(2026, 7, 1)


class TestResolveFlightTime:
    def test_time_only_combined_with_date(self):
        assert resolve_flight_time(date(2026, 7, 1), "9:05") == datetime(2026, 7, 1, 9, 5)

    @pytest.mark.parametrize(
        "value",
        ["2026-07-01 09:05", "2026-07-01T09:05", "2026-07-01T09:05:00"],
    )
    def test_full_datetime_formats(self, value):
        assert resolve_flight_time(None, value) == datetime(2026, 7, 1, 9, 5)

    def test_datetime_passthrough_and_empty(self):
        moment = datetime(2026, 7, 1, 9, 5)
        assert resolve_flight_time(None, moment) is moment
        assert resolve_flight_time(None, "  ") is None
        assert resolve_flight_time(None, None) is None

    def test_time_only_without_date_rejected(self):
        with pytest.raises(ValueError, match="requires a flight date"):
            resolve_flight_time(None, "09:05")

    def test_unparseable_rejected(self):
        with pytest.raises(ValueError, match="Unable to parse"):
            resolve_flight_time(date(2026, 7, 1), "tomorrow")


class TestResults:
    def test_itinerary_full_route_and_totals(self):
        main = make_flight(is_connecting_flight=True)
        itinerary = AssembledItinerary(
            main_flight=main,
            segments=(),
            connections=(
                FlightConnection(1, 2, 1, 90),
                FlightConnection(1, 3, 2, None),
            ),
            airport_codes=("IST", "ANK", "IZM"),
        )

        assert itinerary.full_route == "IST → ANK → IZM"
        assert itinerary.total_connection_minutes == 90

    def test_preview_route_cities(self):
        preview = RoutePreview(
            legs=(
                LegPreview(1, "IST", "ANK", 350, 27),
                LegPreview(2, "ANK", "IZM", 520, 39),
            ),
            total_distance_km=870,
            total_minutes=156,
            kind=RouteKind.DOMESTIC,
        )

        assert preview.route_cities == ["IST", "ANK", "IZM"]
