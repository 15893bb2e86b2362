"""
FlightScheduler - public API for route resolution and connecting flights.

This module provides the main entry point for the scheduling engine. It
acts as a Facade/Factory: it wires adapters and services from a
SchedulerConfig (or explicit overrides) and exposes the caller-facing
operations.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple

from src.flight_scheduler.adapters.reference.http_reference_lookup import (
    HttpReferenceLookup,
    ServiceTokenProvider,
)
from src.flight_scheduler.adapters.reference.in_memory_reference import (
    InMemoryReferenceData,
)
from src.flight_scheduler.adapters.repositories.in_memory_flight_repo import (
    InMemoryFlightRepository,
)
from src.flight_scheduler.adapters.repositories.sqlite_flight_repo import (
    SqliteFlightRepository,
)
from src.flight_scheduler.config import SchedulerConfig
from src.flight_scheduler.ports.flight_repository import FlightRepository
from src.flight_scheduler.ports.reference_lookup import ReferenceLookup
from src.flight_scheduler.ports.route_writer import RouteWriter
from src.flight_scheduler.schemas.flight import FlightStatus
from src.flight_scheduler.schemas.itinerary import (
    AssembledItinerary,
    ConnectionDetail,
    RoutePreview,
)
from src.flight_scheduler.schemas.requests import (
    AirportSegment,
    ConnectingFlightRequest,
    RouteResolutionRequest,
)
from src.flight_scheduler.services.geo_estimator import GeoEstimator
from src.flight_scheduler.services.itinerary_assembler import ItineraryAssembler
from src.flight_scheduler.services.route_matcher import RouteMatcher
from src.flight_scheduler.services.route_resolution_service import (
    RouteResolutionService,
)
from src.flight_scheduler.services.route_synthesizer import RouteSynthesizer
from src.flight_scheduler.services.segment_validation import validate_airport_segments

logger = logging.getLogger(__name__)


class FlightScheduler:
    """
    Public API for flight scheduling.

    Example usage:
        >>> scheduler = FlightScheduler(reference=reference_data)
        >>> route_id = scheduler.resolve_route(
        ...     RouteResolutionRequest.for_airport_pair(1, 2)
        ... )
        >>> main_id, child_ids = scheduler.assemble_itinerary(request)

    Attributes:
        _config: Effective configuration.
        _reference: Reference data lookup.
        _flights: Flight store.
        _resolver: Route resolution service.
        _assembler: Itinerary assembler.
    """

    def __init__(
        self,
        config: Optional[SchedulerConfig] = None,
        reference: Optional[ReferenceLookup] = None,
        route_writer: Optional[RouteWriter] = None,
        flights: Optional[FlightRepository] = None,
        geo: Optional[GeoEstimator] = None,
    ) -> None:
        """
        Initialize the scheduler with optional custom dependencies.

        Args:
            config: Settings. If None, uses SchedulerConfig defaults.
            reference: Reference lookup. If None, uses the reference-manager
                API when configured, else an empty in-memory store.
            route_writer: Route persistence. If None, the reference adapter
                is used when it also implements RouteWriter.
            flights: Flight store. If None, uses SQLite when db_path is
                configured, else the in-memory store.
            geo: Distance estimator. If None, uses defaults.
        """
        self._config = config or SchedulerConfig()

        # Reference data
        if reference is not None:
            self._reference = reference
        elif self._config.reference_base_url:
            self._reference = HttpReferenceLookup(
                base_url=self._config.reference_base_url,
                timeout_seconds=self._config.reference_timeout_seconds,
                token_provider=ServiceTokenProvider(
                    static_token=self._config.reference_token
                ),
            )
        else:
            self._reference = InMemoryReferenceData()

        if route_writer is not None:
            self._route_writer = route_writer
        elif isinstance(self._reference, RouteWriter):
            self._route_writer = self._reference
        else:
            raise ValueError(
                f"{self._reference.name} cannot create routes; pass a route_writer"
            )

        # Flight storage
        if flights is not None:
            self._flights = flights
        elif self._config.db_path:
            self._flights = SqliteFlightRepository(self._config.db_path)
        else:
            self._flights = InMemoryFlightRepository()

        # Services
        self._synthesizer = RouteSynthesizer(
            reference=self._reference,
            writer=self._route_writer,
            geo=geo or GeoEstimator(),
        )
        self._resolver = RouteResolutionService(
            reference=self._reference,
            matcher=RouteMatcher(self._reference),
            synthesizer=self._synthesizer,
            max_segments=self._config.max_segments,
            max_connection_minutes=self._config.max_connection_minutes,
        )
        self._assembler = ItineraryAssembler(
            reference=self._reference,
            resolver=self._resolver,
            flights=self._flights,
            route_writer=self._route_writer,
            config=self._config,
        )

        logger.info(
            "FlightScheduler initialized with %s and %s",
            self._reference.name,
            type(self._flights).__name__,
        )

    # =========================================================================
    # Caller-facing operations
    # =========================================================================

    def resolve_route(self, request: RouteResolutionRequest) -> int:
        """Resolve a flight-creation request to a route id."""
        return self._resolver.resolve(request)

    def assemble_itinerary(self, request: ConnectingFlightRequest) -> Tuple[int, List[int]]:
        """
        Create a connecting flight.

        Returns:
            (main flight id, child flight ids in segment order).
        """
        itinerary = self._assembler.assemble(request)
        return itinerary.main_flight_id, itinerary.child_flight_ids

    def create_itinerary(self, request: ConnectingFlightRequest) -> AssembledItinerary:
        """Same as assemble_itinerary, returning the full itinerary."""
        return self._assembler.assemble(request)

    def recompute_itinerary_status(self, main_flight_id: int) -> FlightStatus:
        """Re-aggregate a main flight's status from its segments."""
        return self._assembler.recompute_status(main_flight_id)

    def update_itinerary(
        self, main_flight_id: int, request: ConnectingFlightRequest
    ) -> AssembledItinerary:
        """Replace all segments of an itinerary that has not departed."""
        return self._assembler.update(main_flight_id, request)

    def delete_itinerary(self, main_flight_id: int) -> None:
        """Delete an itinerary that has not departed."""
        self._assembler.delete(main_flight_id)

    # =========================================================================
    # Queries and segment operations
    # =========================================================================

    def get_itinerary(self, main_flight_id: int) -> AssembledItinerary:
        return self._assembler.get_itinerary(main_flight_id)

    def list_itineraries(
        self,
        airline_id: Optional[int] = None,
        flight_date: Optional[date] = None,
    ) -> List[AssembledItinerary]:
        return self._assembler.list_itineraries(airline_id=airline_id, flight_date=flight_date)

    def get_connection_details(self, main_flight_id: int) -> List[ConnectionDetail]:
        return self._assembler.get_connection_details(main_flight_id)

    def update_segment_status(
        self,
        segment_flight_id: int,
        status: FlightStatus,
        actual_departure: Optional[datetime] = None,
        actual_arrival: Optional[datetime] = None,
    ) -> FlightStatus:
        """Change one segment's status; returns the main flight's new status."""
        return self._assembler.update_segment_status(
            segment_flight_id, status, actual_departure, actual_arrival
        )

    def preview_chain_route(self, segments: Sequence[AirportSegment]) -> RoutePreview:
        """
        Estimate a multi-segment route without creating it.

        Raises:
            InvalidRequestError, RouteContinuityError: Malformed chain.
            InvalidReferenceError: Unknown or inactive airport.
        """
        validate_airport_segments(
            segments, self._config.max_segments, self._config.max_connection_minutes
        )
        return self._synthesizer.preview_chain(segments)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def reference(self) -> ReferenceLookup:
        return self._reference

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    def shutdown(self) -> None:
        """
        Clean shutdown of the scheduler.

        Closes HTTP clients and database connections.
        """
        for resource in (self._reference, self._route_writer, self._flights):
            close = getattr(resource, "close", None)
            if close is not None:
                close()
        logger.info("FlightScheduler shutdown complete")

    def __enter__(self) -> "FlightScheduler":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit with cleanup."""
        self.shutdown()
