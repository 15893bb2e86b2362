"""
Route Matcher - finds an existing route that exactly matches a request.

Matching is structural and order-sensitive: a route A→B never matches a
request for B→A, and a chain only matches a route with the same legs in
the same order.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional, Sequence

from src.flight_scheduler.exceptions import InvalidReferenceError
from src.flight_scheduler.ports.reference_lookup import ReferenceServiceError
from src.flight_scheduler.schemas.requests import AirportSegment
from src.flight_scheduler.schemas.route import Route

if TYPE_CHECKING:
    from src.flight_scheduler.ports.reference_lookup import ReferenceLookup

logger = logging.getLogger(__name__)


def is_direct_match(route: Route, origin_airport_id: int, destination_airport_id: int) -> bool:
    """Active single-segment route with exactly this origin and destination."""
    return (
        route.active
        and route.is_direct
        and route.segments[0].endpoints == (origin_airport_id, destination_airport_id)
    )


def is_chain_match(route: Route, segments: Sequence[AirportSegment]) -> bool:
    """Active multi-segment route whose i-th leg equals the i-th requested leg."""
    if not route.active or not route.is_multi_segment:
        return False
    if route.segment_count != len(segments):
        return False
    return all(
        existing.order == requested.segment_order
        and existing.endpoints == requested.endpoints
        for existing, requested in zip(route.segments, segments)
    )


class RouteMatcher:
    """
    Looks up reusable routes among the active route set.

    A miss is not an error; it tells the caller to synthesize a route.
    Lookup failures are not retried and surface as InvalidReferenceError.

    Complexity is O(routes x segments-per-route), bounded by the size of
    one airline network.

    Attributes:
        _reference: Reference data lookup.
    """

    def __init__(self, reference: ReferenceLookup) -> None:
        """
        Initialize the matcher.

        Args:
            reference: Source of active routes.
        """
        self._reference = reference

    def _active_routes(self) -> List[Route]:
        try:
            return self._reference.list_active_routes()
        except ReferenceServiceError as e:
            raise InvalidReferenceError(
                "route", "active routes", f"lookup failed: {e}"
            ) from e

    def find_direct(
        self, origin_airport_id: int, destination_airport_id: int
    ) -> Optional[Route]:
        """
        Find an active direct route for an airport pair.

        Args:
            origin_airport_id: Requested departure airport.
            destination_airport_id: Requested arrival airport.

        Returns:
            The first matching route, or None.
        """
        routes = self._active_routes()
        if not routes:
            logger.debug("No active routes found in system")
            return None

        for route in routes:
            if is_direct_match(route, origin_airport_id, destination_airport_id):
                logger.debug("Found exact direct route match: %s (%d)", route.code, route.id)
                return route

        logger.debug(
            "No direct route found for %d -> %d", origin_airport_id, destination_airport_id
        )
        return None

    def find_chain(self, segments: Sequence[AirportSegment]) -> Optional[Route]:
        """
        Find an active multi-segment route with identical legs.

        The segment order of the request must already be validated.

        Args:
            segments: Requested legs ordered by segment_order.

        Returns:
            The first matching route, or None.
        """
        routes = self._active_routes()
        if not routes:
            logger.debug("No active routes found in system")
            return None

        for route in routes:
            if is_chain_match(route, segments):
                logger.debug(
                    "Found exact multi-segment route match: %s (%d)", route.code, route.id
                )
                return route

        logger.debug("No multi-segment route found for %d segments", len(segments))
        return None
