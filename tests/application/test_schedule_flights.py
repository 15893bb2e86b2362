"""
Tests for the FlightScheduler facade and SchedulerConfig.

Tests cover:
- Default adapter selection from configuration
- End-to-end itinerary lifecycle on SQLite
- Route resolution and chain preview through the facade
- Configuration from environment variables
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from src.flight_scheduler.adapters.reference.http_reference_lookup import (
    HttpReferenceLookup,
)
from src.flight_scheduler.adapters.reference.in_memory_reference import (
    InMemoryReferenceData,
)
from src.flight_scheduler.adapters.repositories.sqlite_flight_repo import (
    SqliteFlightRepository,
)
from src.flight_scheduler.application.schedule_flights import FlightScheduler
from src.flight_scheduler.config import SchedulerConfig
from src.flight_scheduler.exceptions import (
    ConnectionTimingError,
    FlightNotFoundError,
    InvalidRequestError,
)
from src.flight_scheduler.ports.reference_lookup import ReferenceLookup
from src.flight_scheduler.schemas.flight import FlightStatus
from src.flight_scheduler.schemas.requests import (
    AirportSegment,
    RouteResolutionRequest,
)
from tests.conftest import ANK, IST, IZM


@pytest.fixture
def scheduler(reference_data, tmp_path):
    config = SchedulerConfig(db_path=str(tmp_path / "flights.db"))
    with FlightScheduler(config, reference=reference_data) as instance:
        yield instance


# =============================================================================
# WIRING
# =============================================================================


class TestWiring:
    def test_defaults_are_in_memory(self):
        scheduler = FlightScheduler()

        assert isinstance(scheduler.reference, InMemoryReferenceData)
        assert scheduler.config.max_segments == 10

    def test_reference_url_selects_http_adapter(self):
        scheduler = FlightScheduler(
            SchedulerConfig(reference_base_url="http://reference.test", reference_token="t")
        )

        assert isinstance(scheduler.reference, HttpReferenceLookup)
        scheduler.shutdown()

    def test_db_path_selects_sqlite(self, reference_data, tmp_path):
        scheduler = FlightScheduler(
            SchedulerConfig(db_path=str(tmp_path / "f.db")), reference=reference_data
        )

        assert isinstance(scheduler._flights, SqliteFlightRepository)
        scheduler.shutdown()

    def test_read_only_reference_needs_route_writer(self):
        reference = MagicMock(spec=ReferenceLookup)
        reference.name = "Read Only"

        with pytest.raises(ValueError, match="cannot create routes"):
            FlightScheduler(reference=reference)


# =============================================================================
# END TO END
# =============================================================================


class TestItineraryLifecycle:
    def test_create_fly_and_query(self, scheduler, build_request):
        main_id, child_ids = scheduler.assemble_itinerary(build_request())

        assert len(child_ids) == 2
        assert scheduler.get_itinerary(main_id).full_route == "IST → ANK → IZM"

        scheduler.update_segment_status(
            child_ids[0], FlightStatus.DEPARTED, actual_departure=datetime(2026, 7, 1, 8, 4)
        )
        assert scheduler.recompute_itinerary_status(main_id) is FlightStatus.DEPARTED

        scheduler.update_segment_status(
            child_ids[0], FlightStatus.ARRIVED, actual_arrival=datetime(2026, 7, 1, 9, 8)
        )
        final = scheduler.update_segment_status(
            child_ids[1],
            FlightStatus.ARRIVED,
            actual_departure=datetime(2026, 7, 1, 10, 41),
            actual_arrival=datetime(2026, 7, 1, 11, 45),
        )

        main = scheduler.get_itinerary(main_id).main_flight
        assert final is FlightStatus.ARRIVED
        assert main.actual_departure == datetime(2026, 7, 1, 8, 4)
        assert main.actual_arrival == datetime(2026, 7, 1, 11, 45)

    def test_update_then_delete(self, scheduler, build_request):
        itinerary = scheduler.create_itinerary(build_request())

        updated = scheduler.update_itinerary(
            itinerary.main_flight_id,
            build_request(legs=[
                (IST, ANK, datetime(2026, 7, 1, 7), datetime(2026, 7, 1, 8)),
                (ANK, IZM, datetime(2026, 7, 1, 9), datetime(2026, 7, 1, 10)),
            ]),
        )
        assert updated.connections[0].connection_time_minutes == 60
        assert [d.connection_time_minutes for d in
                scheduler.get_connection_details(itinerary.main_flight_id)] == [60, None]

        scheduler.delete_itinerary(itinerary.main_flight_id)

        with pytest.raises(FlightNotFoundError):
            scheduler.get_itinerary(itinerary.main_flight_id)
        assert scheduler.list_itineraries() == []

    def test_timing_violation_leaves_store_empty(self, scheduler, build_request, reference_data):
        with pytest.raises(ConnectionTimingError):
            scheduler.assemble_itinerary(build_request(legs=[
                (IST, ANK, datetime(2026, 7, 1, 8), datetime(2026, 7, 1, 9)),
                (ANK, IZM, datetime(2026, 7, 1, 9, 10), datetime(2026, 7, 1, 10)),
            ]))

        assert scheduler.list_itineraries() == []
        assert reference_data.route_count == 0


class TestRoutes:
    def test_resolve_route(self, scheduler):
        first = scheduler.resolve_route(RouteResolutionRequest.for_airport_pair(IST, ANK))
        second = scheduler.resolve_route(RouteResolutionRequest.for_airport_pair(IST, ANK))

        assert first == second

    def test_preview_chain(self, scheduler, reference_data):
        preview = scheduler.preview_chain_route(
            [AirportSegment(1, IST, ANK, 60), AirportSegment(2, ANK, IZM)]
        )

        assert preview.route_cities == ["IST", "ANK", "IZM"]
        assert reference_data.route_count == 0

    def test_preview_rejects_single_segment(self, scheduler):
        with pytest.raises(InvalidRequestError, match="at least 2"):
            scheduler.preview_chain_route([AirportSegment(1, IST, ANK)])


# =============================================================================
# CONFIGURATION
# =============================================================================


class TestSchedulerConfig:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("REFERENCE_MANAGER_BASE_URL", "http://ref:8081")
        monkeypatch.setenv("REFERENCE_TIMEOUT_MS", "2500")
        monkeypatch.setenv("MIN_CONNECTION_MINUTES", "45")
        monkeypatch.setenv("MAX_ITINERARY_SEGMENTS", "4")

        config = SchedulerConfig.from_env()

        assert config.reference_base_url == "http://ref:8081"
        assert config.reference_timeout_seconds == 2.5
        assert config.min_connection_minutes == 45
        assert config.max_segments == 4

    def test_non_integer_env_rejected(self, monkeypatch):
        monkeypatch.setenv("MAX_CONNECTION_MINUTES", "a day")

        with pytest.raises(ValueError, match="MAX_CONNECTION_MINUTES"):
            SchedulerConfig.from_env()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"reference_timeout_ms": 0},
            {"min_connection_minutes": -1},
            {"min_connection_minutes": 60, "max_connection_minutes": 30},
            {"max_segments": 1},
            {"log_level": "LOUD"},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            SchedulerConfig(**kwargs)
