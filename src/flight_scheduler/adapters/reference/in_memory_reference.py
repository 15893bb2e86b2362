"""
In-memory reference data - airports, airlines, aircraft and routes.

Thread-safe in-process store implementing both the ReferenceLookup and
RouteWriter ports. Used by tests and single-node deployments that have no
reference-manager service.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from src.flight_scheduler.ports.reference_lookup import (
    ReferenceLookup,
    ReferenceServiceError,
)
from src.flight_scheduler.ports.route_writer import RouteWriter
from src.flight_scheduler.schemas.reference import Aircraft, Airline, Airport
from src.flight_scheduler.schemas.route import Route, RouteDraft

logger = logging.getLogger(__name__)


class InMemoryReferenceData(ReferenceLookup, RouteWriter):
    """
    In-process reference data.

    Routes are stored whole, so create_route is atomic by construction:
    the route with all of its segments becomes visible at once or not
    at all.

    Attributes:
        _airports: Airports by id.
        _airlines: Airlines by id.
        _aircraft: Aircraft by id.
        _routes: Routes by id, in creation order.
        _ids: Route id sequence.
        _lock: Guards all maps.
    """

    def __init__(
        self,
        airports: Iterable[Airport] = (),
        airlines: Iterable[Airline] = (),
        aircraft: Iterable[Aircraft] = (),
        routes: Iterable[Route] = (),
    ) -> None:
        self._lock = threading.RLock()
        self._airports: Dict[int, Airport] = {}
        self._airlines: Dict[int, Airline] = {}
        self._aircraft: Dict[int, Aircraft] = {}
        self._routes: Dict[int, Route] = {}
        self._ids = itertools.count(1)

        for airport in airports:
            self.add_airport(airport)
        for airline in airlines:
            self.add_airline(airline)
        for item in aircraft:
            self.add_aircraft(item)
        for route in routes:
            self.add_route(route)

    # =========================================================================
    # Seeding
    # =========================================================================

    def add_airport(self, airport: Airport) -> None:
        with self._lock:
            self._airports[airport.id] = airport

    def add_airline(self, airline: Airline) -> None:
        with self._lock:
            self._airlines[airline.id] = airline

    def add_aircraft(self, aircraft: Aircraft) -> None:
        with self._lock:
            self._aircraft[aircraft.id] = aircraft

    def add_route(self, route: Route) -> None:
        """Store an existing route; later generated ids skip past it."""
        with self._lock:
            self._routes[route.id] = route
            next_id = max(self._routes) + 1
            self._ids = itertools.count(next_id)

    # =========================================================================
    # ReferenceLookup
    # =========================================================================

    def get_airport(self, airport_id: int) -> Optional[Airport]:
        with self._lock:
            return self._airports.get(airport_id)

    def get_route(self, route_id: int) -> Optional[Route]:
        with self._lock:
            return self._routes.get(route_id)

    def list_active_routes(self) -> List[Route]:
        with self._lock:
            return [r for r in self._routes.values() if r.active]

    def get_airline(self, airline_id: int) -> Optional[Airline]:
        with self._lock:
            return self._airlines.get(airline_id)

    def get_aircraft(self, aircraft_id: int) -> Optional[Aircraft]:
        with self._lock:
            return self._aircraft.get(aircraft_id)

    @property
    def name(self) -> str:
        return "In-Memory Reference"

    # =========================================================================
    # RouteWriter
    # =========================================================================

    def create_route(self, draft: RouteDraft) -> Route:
        with self._lock:
            route = draft.to_route(next(self._ids))
            self._routes[route.id] = route
        logger.debug("Stored route %s (%d)", route.code, route.id)
        return route

    def delete_route(self, route_id: int) -> None:
        with self._lock:
            self._routes.pop(route_id, None)

    def activate_route(self, route_id: int) -> None:
        with self._lock:
            route = self._routes.get(route_id)
            if route is None:
                raise ReferenceServiceError(f"Route {route_id} not found")
            self._routes[route_id] = replace(route, active=True)

    @property
    def route_count(self) -> int:
        with self._lock:
            return len(self._routes)
