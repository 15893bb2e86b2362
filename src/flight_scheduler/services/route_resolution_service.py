"""
Route Resolution Service - turns a flight-creation request into a route id.

Dispatch by creation mode:
    ROUTE         -> verify the route exists and is active
    AIRPORT_PAIR  -> reuse a direct route or synthesize one
    SEGMENT_CHAIN -> reuse a chain route or synthesize one
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from src.flight_scheduler.exceptions import (
    InvalidRequestError,
    InvalidRouteError,
)
from src.flight_scheduler.ports.reference_lookup import ReferenceServiceError
from src.flight_scheduler.schemas.requests import CreationMode, RouteResolutionRequest
from src.flight_scheduler.services.segment_validation import validate_airport_segments

if TYPE_CHECKING:
    from src.flight_scheduler.ports.reference_lookup import ReferenceLookup
    from src.flight_scheduler.services.route_matcher import RouteMatcher
    from src.flight_scheduler.services.route_synthesizer import RouteSynthesizer

logger = logging.getLogger(__name__)

MISSING_ROUTE_DATA = "must provide routeId, airport pair, or segment chain"


@dataclass(frozen=True)
class RouteResolution:
    """Resolved route id and whether it was created by this call."""

    route_id: int
    created: bool = False


class RouteResolutionService:
    """
    Resolves the route of a flight-creation request.

    Matching is tried before synthesis, so resolving the same airport pair
    twice returns the same id (the first call may create it).

    Attributes:
        _reference: Reference data lookup.
        _matcher: Finds reusable routes.
        _synthesizer: Creates missing routes.
        _max_segments: Longest accepted chain.
        _max_connection_minutes: Upper bound on caller-supplied connection times.
    """

    def __init__(
        self,
        reference: ReferenceLookup,
        matcher: RouteMatcher,
        synthesizer: RouteSynthesizer,
        max_segments: int = 10,
        max_connection_minutes: int = 1440,
    ) -> None:
        self._reference = reference
        self._matcher = matcher
        self._synthesizer = synthesizer
        self._max_segments = max_segments
        self._max_connection_minutes = max_connection_minutes

    def resolve(self, request: RouteResolutionRequest) -> int:
        """
        Resolve a request to a route id.

        Raises:
            InvalidRequestError: Missing or inconsistent creation-mode data.
            InvalidRouteError: ROUTE mode with an unknown or inactive route.
            InvalidReferenceError: Unknown or inactive airport, or the
                reference data source failed.
            RouteContinuityError: Segment chain legs do not connect.
            RouteCreationError: Synthesis failed and was rolled back.
        """
        return self.resolve_with_outcome(request).route_id

    def resolve_with_outcome(
        self, request: RouteResolutionRequest, publish: bool = True
    ) -> RouteResolution:
        """
        Same as resolve, also reporting whether a route was created.

        With publish=False a created route is stored inactive, so other
        requests cannot match it before the caller activates it.
        """
        mode = request.creation_mode

        if mode is CreationMode.ROUTE and request.route_id is not None:
            return RouteResolution(self._verify_route(request.route_id))

        if (
            mode is CreationMode.AIRPORT_PAIR
            and request.origin_airport_id is not None
            and request.destination_airport_id is not None
        ):
            return self._resolve_airport_pair(
                request.origin_airport_id, request.destination_airport_id, publish
            )

        if mode is CreationMode.SEGMENT_CHAIN and request.airport_segments:
            return self._resolve_segment_chain(request, publish)

        raise InvalidRequestError(MISSING_ROUTE_DATA)

    # =========================================================================
    # Modes
    # =========================================================================

    def _verify_route(self, route_id: int, index: Optional[int] = None) -> int:
        try:
            route = self._reference.get_route(route_id)
        except ReferenceServiceError as e:
            raise InvalidRouteError(route_id, f"lookup failed: {e}", index=index) from e

        if route is None:
            raise InvalidRouteError(route_id, "not found", index=index)
        if not route.active:
            raise InvalidRouteError(route_id, "inactive", index=index)

        logger.debug("Using existing route %s (%d)", route.code, route.id)
        return route.id

    def _resolve_airport_pair(
        self, origin_airport_id: int, destination_airport_id: int, publish: bool = True
    ) -> RouteResolution:
        if origin_airport_id == destination_airport_id:
            raise InvalidRequestError("Origin and destination airports cannot be the same")

        existing = self._matcher.find_direct(origin_airport_id, destination_airport_id)
        if existing is not None:
            return RouteResolution(existing.id)

        logger.info(
            "No direct route for %d -> %d, creating one",
            origin_airport_id,
            destination_airport_id,
        )
        route_id = self._synthesizer.create_direct(
            origin_airport_id, destination_airport_id, active=publish
        )
        return RouteResolution(route_id, created=True)

    def _resolve_segment_chain(
        self, request: RouteResolutionRequest, publish: bool = True
    ) -> RouteResolution:
        segments = list(request.airport_segments)
        validate_airport_segments(
            segments, self._max_segments, self._max_connection_minutes
        )

        existing = self._matcher.find_chain(segments)
        if existing is not None:
            return RouteResolution(existing.id)

        logger.info("No multi-segment route for %d segments, creating one", len(segments))
        route_id = self._synthesizer.create_chain(
            segments, request.flight_number, active=publish
        )
        return RouteResolution(route_id, created=True)
