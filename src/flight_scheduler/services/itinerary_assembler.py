"""
Itinerary Assembler - builds, updates and deletes connecting flights.

A connecting flight is one main Flight record plus N child segment flights
and N FlightConnection rows. All validation runs before the first write;
the writes themselves happen inside one FlightRepository transaction.

Pipeline:
    1. Structural validation (count, numbering, number format, type, legs)
    2. Continuity validation (via resolved route endpoints)
    3. Timing validation (gap between legs within the allowed window)
    4. Uniqueness validation (flight number + date of first leg)
    5. Reference validation (airline, aircraft, airports)
    6. Assembly (route resolution, then main, children, connections)
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from src.flight_scheduler.config import SchedulerConfig
from src.flight_scheduler.exceptions import (
    DuplicateFlightError,
    FlightNotFoundError,
    ImmutableAfterDepartureError,
    InvalidReferenceError,
    InvalidRequestError,
    InvalidRouteError,
    NotConnectingFlightError,
)
from src.flight_scheduler.ports.reference_lookup import ReferenceServiceError
from src.flight_scheduler.schemas.flight import (
    Flight,
    FlightConnection,
    FlightStatus,
    FlightType,
)
from src.flight_scheduler.schemas.itinerary import AssembledItinerary, ConnectionDetail
from src.flight_scheduler.schemas.requests import (
    ConnectingFlightRequest,
    FlightSegmentRequest,
    RouteResolutionRequest,
)
from src.flight_scheduler.services.segment_validation import (
    connection_gap_minutes,
    validate_continuity,
    validate_distinct_endpoints,
    validate_leg_timing,
    validate_segment_count,
    validate_segment_numbering,
)

if TYPE_CHECKING:
    from datetime import date, datetime

    from src.flight_scheduler.ports.flight_repository import FlightRepository
    from src.flight_scheduler.ports.reference_lookup import ReferenceLookup
    from src.flight_scheduler.ports.route_writer import RouteWriter
    from src.flight_scheduler.services.route_resolution_service import (
        RouteResolutionService,
    )

logger = logging.getLogger(__name__)

MAIN_FLIGHT_NUMBER_PATTERN = re.compile(r"^[A-Z]{2}\d{1,4}$")

# A leg in one of these states puts the whole itinerary under way.
# ARRIVED is not among them: only an arrived first leg does that.
IN_PROGRESS_STATUSES = frozenset(
    {
        FlightStatus.BOARDING,
        FlightStatus.DEPARTED,
        FlightStatus.DIVERTED,
        FlightStatus.RETURNING,
    }
)


def segment_flight_number(main_flight_number: str, segment_number: int) -> str:
    """Child flight number, e.g. 'TK123-S2'."""
    return f"{main_flight_number}-S{segment_number}"


def aggregate_itinerary_status(statuses: Sequence[FlightStatus]) -> FlightStatus:
    """
    Overall status of an itinerary from its children's statuses.

    Rules, first match wins:
        CANCELLED  if any child is cancelled
        ARRIVED    if every child has arrived
        DEPARTED   if any child is boarding or airborne (departed,
                   diverted, returning), or the first leg has departed
                   or arrived
        DELAYED    if any child is delayed
        SCHEDULED  otherwise

    Args:
        statuses: Child statuses ordered by segment number.

    Returns:
        Aggregated FlightStatus (SCHEDULED for an empty list).
    """
    if not statuses:
        return FlightStatus.SCHEDULED
    if FlightStatus.CANCELLED in statuses:
        return FlightStatus.CANCELLED
    if all(s is FlightStatus.ARRIVED for s in statuses):
        return FlightStatus.ARRIVED
    if statuses[0] in (FlightStatus.DEPARTED, FlightStatus.ARRIVED):
        return FlightStatus.DEPARTED
    if any(s in IN_PROGRESS_STATUSES for s in statuses):
        return FlightStatus.DEPARTED
    if FlightStatus.DELAYED in statuses:
        return FlightStatus.DELAYED
    return FlightStatus.SCHEDULED


def validate_flight_type(request: ConnectingFlightRequest) -> None:
    """
    Check passenger and cargo figures against the flight type.

    Raises:
        InvalidRequestError: If the figures do not fit the type.
    """
    passengers = request.passenger_count or 0
    cargo = request.cargo_weight or 0

    if request.type is FlightType.CARGO:
        ok = passengers == 0 and cargo > 0
        rule = "cargo flights carry cargo and no passengers"
    elif request.type is FlightType.PASSENGER:
        ok = passengers > 0
        rule = "passenger flights must carry passengers"
    else:
        ok = passengers == 0
        rule = f"{request.type.value.lower()} flights carry no passengers"

    if not ok:
        raise InvalidRequestError(f"Flight type is inconsistent with its load: {rule}")


@dataclass(frozen=True)
class _ValidatedPlan:
    """Outcome of validation, consumed by the write phase."""

    legs: Tuple[FlightSegmentRequest, ...]
    airport_codes: Tuple[str, ...]
    flight_date: date


class ItineraryAssembler:
    """
    Domain service for connecting-flight itineraries.

    Validation failures surface the specific rule and 1-based segment
    index. No write happens before every validation has passed.

    With a route writer, routes created for a request are stored inactive
    and only activated after its flights are committed, so no other
    request can match them in between. If the flight writes fail they are
    deleted again, unless a stored flight already references them.

    Attributes:
        _reference: Reference data lookup.
        _resolver: Resolves each leg to a route id.
        _flights: Flight and connection store.
        _route_writer: Used to compensate routes created for a failed request.
        _config: Connection window and segment limits.
    """

    def __init__(
        self,
        reference: ReferenceLookup,
        resolver: RouteResolutionService,
        flights: FlightRepository,
        route_writer: Optional[RouteWriter] = None,
        config: Optional[SchedulerConfig] = None,
    ) -> None:
        """
        Initialize the assembler.

        Args:
            reference: Airport, airline, aircraft and route lookups.
            resolver: Route resolution for each leg.
            flights: Transactional flight store.
            route_writer: Enables unpublished route creation and its
                compensation. If None, created routes are active at once
                and left in place when a write fails.
            config: Limits. If None, uses SchedulerConfig defaults.
        """
        self._reference = reference
        self._resolver = resolver
        self._flights = flights
        self._route_writer = route_writer
        self._config = config or SchedulerConfig()

    # =========================================================================
    # Validation (steps 1-5)
    # =========================================================================

    def validate(
        self,
        request: ConnectingFlightRequest,
        exclude_main_flight_id: Optional[int] = None,
    ) -> _ValidatedPlan:
        """
        Run every validation step without writing anything.

        Args:
            request: Itinerary to check.
            exclude_main_flight_id: Main flight being updated, ignored by
                the uniqueness check.

        Raises:
            InvalidRequestError, RouteContinuityError, ConnectionTimingError,
            DuplicateFlightError, InvalidReferenceError: First failed rule.
        """
        legs = request.segments

        # 1. Structure
        validate_segment_count(len(legs), self._config.max_segments)
        validate_segment_numbering([leg.segment_number for leg in legs])
        if not MAIN_FLIGHT_NUMBER_PATTERN.match(request.main_flight_number or ""):
            raise InvalidRequestError(
                f"Invalid main flight number format: {request.main_flight_number!r} "
                "(expected two capital letters followed by 1-4 digits)"
            )
        validate_flight_type(request)
        for leg in legs:
            validate_distinct_endpoints(
                leg.segment_number, leg.origin_airport_id, leg.destination_airport_id
            )

        # 2. Continuity
        endpoints = [self._leg_endpoints(leg) for leg in legs]
        validate_continuity(endpoints)

        # 3. Timing
        validate_leg_timing(
            legs,
            self._config.min_connection_minutes,
            self._config.max_connection_minutes,
        )

        # 4. Uniqueness (checked again inside the write transaction)
        flight_date = legs[0].scheduled_departure.date()
        self._check_unique(request.main_flight_number, flight_date, exclude_main_flight_id)

        # 5. Reference data
        self._check_airline(request.airline_id)
        self._check_aircraft(request.aircraft_id)
        codes = self._check_airports(endpoints)

        return _ValidatedPlan(legs=tuple(legs), airport_codes=codes, flight_date=flight_date)

    def _check_unique(
        self,
        flight_number: str,
        flight_date: date,
        exclude_main_flight_id: Optional[int] = None,
    ) -> None:
        if self._flights.exists_main_flight(flight_number, flight_date, exclude_main_flight_id):
            raise DuplicateFlightError(flight_number, flight_date)

    def _leg_endpoints(self, leg: FlightSegmentRequest) -> Tuple[int, int]:
        """Endpoints from the leg's route when given, else from the leg itself."""
        if leg.route_id is None:
            return (leg.origin_airport_id, leg.destination_airport_id)

        try:
            route = self._reference.get_route(leg.route_id)
        except ReferenceServiceError as e:
            raise InvalidRouteError(
                leg.route_id, f"lookup failed: {e}", index=leg.segment_number
            ) from e
        if route is None:
            raise InvalidRouteError(leg.route_id, "not found", index=leg.segment_number)
        if not route.active:
            raise InvalidRouteError(leg.route_id, "inactive", index=leg.segment_number)
        return (route.origin_airport_id, route.destination_airport_id)

    def _check_airline(self, airline_id: int) -> None:
        try:
            airline = self._reference.get_airline(airline_id)
        except ReferenceServiceError as e:
            raise InvalidReferenceError("airline", airline_id, f"lookup failed: {e}") from e
        if airline is None:
            raise InvalidReferenceError("airline", airline_id, "not found")
        if not airline.active:
            raise InvalidReferenceError("airline", airline_id, "inactive")

    def _check_aircraft(self, aircraft_id: int) -> None:
        try:
            aircraft = self._reference.get_aircraft(aircraft_id)
        except ReferenceServiceError as e:
            raise InvalidReferenceError("aircraft", aircraft_id, f"lookup failed: {e}") from e
        if aircraft is None:
            raise InvalidReferenceError("aircraft", aircraft_id, "not found")
        if not aircraft.active:
            raise InvalidReferenceError("aircraft", aircraft_id, "inactive")

    def _check_airports(self, endpoints: Sequence[Tuple[int, int]]) -> Tuple[str, ...]:
        """Verify every airport along the chain; return their IATA codes in order."""
        chain = [endpoints[0][0]] + [destination for _, destination in endpoints]
        seen: Dict[int, str] = {}
        for position, airport_id in enumerate(chain):
            if airport_id in seen:
                continue
            index = max(position, 1)
            try:
                airport = self._reference.get_airport(airport_id)
            except ReferenceServiceError as e:
                raise InvalidReferenceError(
                    "airport", airport_id, f"lookup failed: {e}", index=index
                ) from e
            if airport is None:
                raise InvalidReferenceError("airport", airport_id, "not found", index=index)
            if not airport.active:
                raise InvalidReferenceError("airport", airport_id, "inactive", index=index)
            seen[airport_id] = airport.iata_code
        return tuple(seen[airport_id] for airport_id in chain)

    # =========================================================================
    # Assembly (step 6)
    # =========================================================================

    def assemble(self, request: ConnectingFlightRequest) -> AssembledItinerary:
        """
        Validate and persist a new connecting flight.

        Returns:
            The stored itinerary.

        Raises:
            Any validation error, RouteCreationError, or a storage error.
            Nothing is left stored when an error is raised.
        """
        start = time.perf_counter()
        plan = self.validate(request)
        created_routes: List[int] = []

        try:
            route_ids = self._resolve_leg_routes(plan.legs, created_routes)
            with self._flights.transaction():
                self._check_unique(request.main_flight_number, plan.flight_date)
                main = self._flights.insert_flight(
                    self._main_flight(request, route_ids[0])
                )
                itinerary = self._write_children(main, request, plan, route_ids)
        except Exception:
            self._compensate_routes(created_routes)
            raise
        self._publish_routes(created_routes)

        logger.info(
            "Assembled connecting flight %s (%d) with %d segments in %.1fms",
            main.flight_number,
            main.id,
            itinerary.total_segments,
            (time.perf_counter() - start) * 1000,
        )
        return itinerary

    def _resolve_leg_routes(
        self,
        legs: Sequence[FlightSegmentRequest],
        created_routes: List[int],
    ) -> List[int]:
        publish = self._route_writer is None
        # Unpublished routes are invisible to matching; reuse them within the request
        pending: Dict[Tuple[int, int], int] = {}
        route_ids = []
        for leg in legs:
            pair = (leg.origin_airport_id, leg.destination_airport_id)
            if leg.route_id is None and pair in pending:
                route_ids.append(pending[pair])
                continue

            if leg.route_id is not None:
                resolution_request = RouteResolutionRequest.for_route(leg.route_id)
            else:
                resolution_request = RouteResolutionRequest.for_airport_pair(*pair)
            outcome = self._resolver.resolve_with_outcome(resolution_request, publish=publish)
            if outcome.created:
                created_routes.append(outcome.route_id)
                pending[pair] = outcome.route_id
            route_ids.append(outcome.route_id)
        return route_ids

    def _compensate_routes(self, route_ids: Sequence[int]) -> None:
        if not route_ids:
            return
        if self._route_writer is None:
            logger.warning(
                "Itinerary write failed; %d created route(s) left in place: %s",
                len(route_ids),
                route_ids,
            )
            return

        for route_id in route_ids:
            if self._flights.route_in_use(route_id):
                logger.warning(
                    "Route %d created for failed itinerary is referenced by stored "
                    "flights; left in place",
                    route_id,
                )
                continue
            try:
                self._route_writer.delete_route(route_id)
                logger.info("Rolled back route %d created for failed itinerary", route_id)
            except ReferenceServiceError as e:
                logger.error("Failed to roll back route %d: %s", route_id, e)

    def _publish_routes(self, route_ids: Sequence[int]) -> None:
        """Activate routes created for an itinerary whose flights are committed."""
        if self._route_writer is None:
            return
        for route_id in route_ids:
            try:
                self._route_writer.activate_route(route_id)
                logger.debug("Published route %d", route_id)
            except ReferenceServiceError as e:
                # Flights are committed and keep the route id; only matching misses it
                logger.error("Failed to publish route %d: %s", route_id, e)

    def _main_flight(self, request: ConnectingFlightRequest, route_id: int) -> Flight:
        first = request.segments[0]
        last = request.segments[-1]
        return Flight(
            id=None,
            flight_number=request.main_flight_number,
            airline_id=request.airline_id,
            aircraft_id=request.aircraft_id,
            route_id=route_id,
            flight_date=first.scheduled_departure.date(),
            scheduled_departure=first.scheduled_departure,
            scheduled_arrival=last.scheduled_arrival,
            status=FlightStatus.SCHEDULED,
            type=request.type,
            passenger_count=request.passenger_count,
            cargo_weight=request.cargo_weight,
            gate_number=first.gate_number,
            notes=request.notes,
            active=request.active,
            segment_number=0,
            is_connecting_flight=True,
        )

    def _write_children(
        self,
        main: Flight,
        request: ConnectingFlightRequest,
        plan: _ValidatedPlan,
        route_ids: Sequence[int],
    ) -> AssembledItinerary:
        """Insert child flights and connection rows for a stored main flight."""
        main_id = main.stored_id
        children = []
        for leg, route_id in zip(plan.legs, route_ids):
            child = Flight(
                id=None,
                flight_number=segment_flight_number(
                    request.main_flight_number, leg.segment_number
                ),
                airline_id=request.airline_id,
                aircraft_id=request.aircraft_id,
                route_id=route_id,
                flight_date=leg.scheduled_departure.date(),
                scheduled_departure=leg.scheduled_departure,
                scheduled_arrival=leg.scheduled_arrival,
                status=FlightStatus.SCHEDULED,
                type=request.type,
                passenger_count=request.passenger_count,
                cargo_weight=request.cargo_weight,
                gate_number=leg.gate_number,
                notes=leg.notes,
                active=request.active,
                parent_flight_id=main_id,
                segment_number=leg.segment_number,
                is_connecting_flight=False,
            )
            children.append(self._flights.insert_flight(child))

        connections = []
        for i, child in enumerate(children):
            gap = None
            if i < len(children) - 1:
                gap = connection_gap_minutes(plan.legs[i], plan.legs[i + 1])
            connections.append(
                FlightConnection(
                    main_flight_id=main_id,
                    segment_flight_id=child.stored_id,
                    segment_order=child.segment_number,
                    connection_time_minutes=gap,
                )
            )
        self._flights.insert_connections(connections)

        return AssembledItinerary(
            main_flight=main,
            segments=tuple(children),
            connections=tuple(connections),
            airport_codes=plan.airport_codes,
        )

    # =========================================================================
    # Update / delete (step 8)
    # =========================================================================

    def update(self, main_flight_id: int, request: ConnectingFlightRequest) -> AssembledItinerary:
        """
        Replace every segment of an itinerary that has not departed yet.

        The main flight's version is checked on write; a concurrent
        update of the same itinerary fails with ConcurrentModificationError
        and changes nothing.

        Raises:
            FlightNotFoundError, NotConnectingFlightError,
            ImmutableAfterDepartureError, ConcurrentModificationError,
            or any validation error.
        """
        main, children = self._load_mutable(main_flight_id, "update")
        plan = self.validate(request, exclude_main_flight_id=main_flight_id)
        created_routes: List[int] = []

        try:
            route_ids = self._resolve_leg_routes(plan.legs, created_routes)
            with self._flights.transaction():
                self._check_unique(
                    request.main_flight_number, plan.flight_date, main_flight_id
                )
                replacement = replace(
                    self._main_flight(request, route_ids[0]),
                    id=main.id,
                    version=main.version,
                )
                updated = self._flights.update_flight(replacement)
                self._flights.delete_connections(main_flight_id)
                self._flights.delete_flights([c.id for c in children if c.id is not None])
                itinerary = self._write_children(updated, request, plan, route_ids)
        except Exception:
            self._compensate_routes(created_routes)
            raise
        self._publish_routes(created_routes)

        logger.info(
            "Updated connecting flight %s (%d): %d -> %d segments",
            updated.flight_number,
            main_flight_id,
            len(children),
            itinerary.total_segments,
        )
        return itinerary

    def delete(self, main_flight_id: int) -> None:
        """
        Delete an itinerary: connections, children, then the main flight.

        Raises:
            FlightNotFoundError, NotConnectingFlightError,
            ImmutableAfterDepartureError.
        """
        main, children = self._load_mutable(main_flight_id, "delete")
        with self._flights.transaction():
            self._flights.delete_connections(main_flight_id)
            self._flights.delete_flights(
                [c.id for c in children if c.id is not None] + [main_flight_id]
            )
        logger.info(
            "Deleted connecting flight %s (%d) and %d segments",
            main.flight_number,
            main_flight_id,
            len(children),
        )

    def _load_main(self, main_flight_id: int) -> Flight:
        main = self._flights.get_flight(main_flight_id)
        if main is None:
            raise FlightNotFoundError(main_flight_id)
        if not main.is_connecting_flight:
            raise NotConnectingFlightError(main_flight_id)
        return main

    def _load_mutable(self, main_flight_id: int, action: str) -> Tuple[Flight, List[Flight]]:
        main = self._load_main(main_flight_id)
        children = self._flights.list_segments(main_flight_id)

        for flight in [main] + children:
            if flight.is_departed:
                logger.warning(
                    "Rejected %s of connecting flight %d: flight %d already departed",
                    action,
                    main_flight_id,
                    flight.stored_id,
                )
                raise ImmutableAfterDepartureError(main_flight_id, flight.stored_id)
        return main, children

    # =========================================================================
    # Status (step 7)
    # =========================================================================

    def recompute_status(self, main_flight_id: int) -> FlightStatus:
        """
        Re-aggregate the main flight's status from its children.

        Actual departure/arrival of the main flight mirror the first and
        last leg once set and are never overwritten afterwards.

        Returns:
            The main flight's status after recomputation.
        """
        main = self._load_main(main_flight_id)
        children = self._flights.list_segments(main_flight_id)
        if not children:
            return main.status

        new_status = aggregate_itinerary_status([c.status for c in children])
        actual_departure = main.actual_departure
        if actual_departure is None:
            actual_departure = children[0].actual_departure
        actual_arrival = main.actual_arrival
        if actual_arrival is None:
            actual_arrival = children[-1].actual_arrival

        if (
            new_status is main.status
            and actual_departure == main.actual_departure
            and actual_arrival == main.actual_arrival
        ):
            return main.status

        self._flights.update_flight(
            replace(
                main,
                status=new_status,
                actual_departure=actual_departure,
                actual_arrival=actual_arrival,
            )
        )
        if new_status is not main.status:
            logger.info(
                "Connecting flight %s (%d) status %s -> %s",
                main.flight_number,
                main_flight_id,
                main.status.value,
                new_status.value,
            )
        return new_status

    def update_segment_status(
        self,
        segment_flight_id: int,
        status: FlightStatus,
        actual_departure: Optional[datetime] = None,
        actual_arrival: Optional[datetime] = None,
    ) -> FlightStatus:
        """
        Change one leg's status and re-aggregate its itinerary.

        Actual times are only applied when given.

        Returns:
            The main flight's status after recomputation.

        Raises:
            FlightNotFoundError: Unknown segment flight.
            InvalidRequestError: The flight is not a segment of an itinerary.
        """
        segment = self._flights.get_flight(segment_flight_id)
        if segment is None:
            raise FlightNotFoundError(segment_flight_id)
        if segment.parent_flight_id is None:
            raise InvalidRequestError(
                f"Flight {segment_flight_id} is not a segment of a connecting flight"
            )

        changes = {"status": status}
        if actual_departure is not None:
            changes["actual_departure"] = actual_departure
        if actual_arrival is not None:
            changes["actual_arrival"] = actual_arrival

        with self._flights.transaction():
            self._flights.update_flight(replace(segment, **changes))
            logger.debug(
                "Segment %s (%d) status %s -> %s",
                segment.flight_number,
                segment_flight_id,
                segment.status.value,
                status.value,
            )
            return self.recompute_status(segment.parent_flight_id)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_itinerary(self, main_flight_id: int) -> AssembledItinerary:
        """
        Load a stored itinerary.

        Raises:
            FlightNotFoundError, NotConnectingFlightError.
        """
        main = self._load_main(main_flight_id)
        return self._build_itinerary(main)

    def list_itineraries(
        self,
        airline_id: Optional[int] = None,
        flight_date: Optional[date] = None,
    ) -> List[AssembledItinerary]:
        """List stored itineraries, optionally by airline and/or date."""
        mains = self._flights.list_main_flights(airline_id=airline_id, flight_date=flight_date)
        return [self._build_itinerary(main) for main in mains]

    def get_connection_details(self, main_flight_id: int) -> List[ConnectionDetail]:
        """
        Connection rows enriched with flight numbers and airport codes.

        Codes are best effort: a failed reference lookup leaves them None.
        """
        self._load_main(main_flight_id)
        segments = {s.id: s for s in self._flights.list_segments(main_flight_id)}
        airport_cache: Dict[int, Optional[str]] = {}

        details = []
        for connection in self._flights.list_connections(main_flight_id):
            segment = segments.get(connection.segment_flight_id)
            origin_code = destination_code = None
            if segment is not None:
                origin_code, destination_code = self._route_codes(
                    segment.route_id, airport_cache
                )
            details.append(
                ConnectionDetail(
                    segment_order=connection.segment_order,
                    segment_flight_id=connection.segment_flight_id,
                    segment_flight_number=segment.flight_number if segment else None,
                    connection_time_minutes=connection.connection_time_minutes,
                    origin_airport_code=origin_code,
                    destination_airport_code=destination_code,
                )
            )
        return details

    def _build_itinerary(self, main: Flight) -> AssembledItinerary:
        segments = self._flights.list_segments(main.stored_id)
        connections = self._flights.list_connections(main.stored_id)

        airport_cache: Dict[int, Optional[str]] = {}
        codes: List[Optional[str]] = []
        for i, segment in enumerate(segments):
            origin_code, destination_code = self._route_codes(segment.route_id, airport_cache)
            if i == 0:
                codes.append(origin_code)
            codes.append(destination_code)

        return AssembledItinerary(
            main_flight=main,
            segments=tuple(segments),
            connections=tuple(connections),
            airport_codes=tuple(codes) if codes and None not in codes else (),
        )

    def _route_codes(
        self,
        route_id: Optional[int],
        airport_cache: Dict[int, Optional[str]],
    ) -> Tuple[Optional[str], Optional[str]]:
        """Origin and destination IATA codes of a route, None where unknown."""
        if route_id is None:
            return None, None
        try:
            route = self._reference.get_route(route_id)
        except ReferenceServiceError as e:
            logger.warning("Route %d lookup failed, codes left empty: %s", route_id, e)
            return None, None
        if route is None:
            return None, None

        origin = route.origin_airport_code or self._airport_code(
            route.origin_airport_id, airport_cache
        )
        destination = route.destination_airport_code or self._airport_code(
            route.destination_airport_id, airport_cache
        )
        return origin, destination

    def _airport_code(
        self, airport_id: int, airport_cache: Dict[int, Optional[str]]
    ) -> Optional[str]:
        if airport_id not in airport_cache:
            try:
                airport = self._reference.get_airport(airport_id)
            except ReferenceServiceError as e:
                logger.warning("Airport %d lookup failed, code left empty: %s", airport_id, e)
                airport = None
            airport_cache[airport_id] = airport.iata_code if airport else None
        return airport_cache[airport_id]
