"""
Route Synthesizer - builds and persists new routes when no match exists.

Distances and times come from the GeoEstimator; the route and all of its
segments are handed to the RouteWriter as one draft, so a failed write
never leaves a route with a subset of its segments.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Tuple

from src.flight_scheduler.exceptions import InvalidReferenceError, RouteCreationError
from src.flight_scheduler.ports.reference_lookup import ReferenceServiceError
from src.flight_scheduler.schemas.itinerary import LegPreview, RoutePreview
from src.flight_scheduler.schemas.reference import Airport
from src.flight_scheduler.schemas.requests import AirportSegment
from src.flight_scheduler.schemas.route import RouteDraft, RouteKind, RouteSegment
from src.flight_scheduler.services.geo_estimator import GeoEstimator

if TYPE_CHECKING:
    from src.flight_scheduler.ports.reference_lookup import ReferenceLookup
    from src.flight_scheduler.ports.route_writer import RouteWriter

logger = logging.getLogger(__name__)


def short_timestamp(epoch_seconds: float) -> int:
    """Last four digits of the epoch time in milliseconds."""
    return int(epoch_seconds * 1000) % 10000


def direct_route_kind(origin: Airport, destination: Airport) -> RouteKind:
    """DOMESTIC iff both airports share a known country."""
    if origin.country and origin.country == destination.country:
        return RouteKind.DOMESTIC
    return RouteKind.INTERNATIONAL


def chain_route_kind(airports: Sequence[Airport]) -> RouteKind:
    """DOMESTIC only if every airport of the chain is in one common country."""
    countries = {a.country for a in airports}
    if len(countries) == 1 and None not in countries and "" not in countries:
        return RouteKind.DOMESTIC
    return RouteKind.INTERNATIONAL


class RouteSynthesizer:
    """
    Creates direct and multi-segment routes.

    Attributes:
        _reference: Airport lookups.
        _writer: Atomic route persistence.
        _geo: Distance and time estimates.
        _clock: Returns epoch seconds; feeds the short timestamp in codes.
    """

    def __init__(
        self,
        reference: ReferenceLookup,
        writer: RouteWriter,
        geo: Optional[GeoEstimator] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._reference = reference
        self._writer = writer
        self._geo = geo or GeoEstimator()
        self._clock = clock

    # =========================================================================
    # Public API
    # =========================================================================

    def create_direct(
        self, origin_airport_id: int, destination_airport_id: int, active: bool = True
    ) -> int:
        """
        Create a single-segment route between two airports.

        Args:
            origin_airport_id: Departure airport.
            destination_airport_id: Arrival airport.
            active: False stores the route unpublished; it is then invisible
                to matching until RouteWriter.activate_route.

        Returns:
            Id of the created route.

        Raises:
            InvalidReferenceError: Unknown or inactive airport, or both
                ids are the same airport.
            RouteCreationError: The write failed and was rolled back.
        """
        draft = self.build_direct_draft(origin_airport_id, destination_airport_id, active)
        return self._persist(draft)

    def create_chain(
        self,
        segments: Sequence[AirportSegment],
        label: Optional[str] = None,
        active: bool = True,
    ) -> int:
        """
        Create a multi-segment route from an ordered, validated chain.

        Args:
            segments: Legs ordered by segment_order.
            label: Used in the route name, usually the main flight number.
            active: False stores the route unpublished.

        Returns:
            Id of the created route.

        Raises:
            InvalidReferenceError: Unknown or inactive airport, or a leg
                whose origin equals its destination.
            RouteCreationError: The write failed and was rolled back.
        """
        draft = self.build_chain_draft(segments, label, active)
        return self._persist(draft)

    def preview_chain(self, segments: Sequence[AirportSegment]) -> RoutePreview:
        """
        Estimate a chain route without persisting anything.

        Returns:
            Per-leg estimates, totals (connection minutes included) and kind.
        """
        airports = self._load_chain_airports(segments)
        legs, airports_in_order = self._chain_legs(segments, airports)
        previews = tuple(
            LegPreview(
                segment_order=leg.order,
                origin_airport_code=airports[leg.origin_airport_id].iata_code,
                destination_airport_code=airports[leg.destination_airport_id].iata_code,
                distance_km=leg.distance_km,
                estimated_minutes=leg.estimated_minutes,
            )
            for leg in legs
        )
        return RoutePreview(
            legs=previews,
            total_distance_km=sum(leg.distance_km for leg in legs),
            total_minutes=self._chain_total_minutes(legs, segments),
            kind=chain_route_kind(airports_in_order),
        )

    # =========================================================================
    # Draft construction
    # =========================================================================

    def build_direct_draft(
        self, origin_airport_id: int, destination_airport_id: int, active: bool = True
    ) -> RouteDraft:
        """Compute the direct route draft (validated, not persisted)."""
        if origin_airport_id == destination_airport_id:
            raise InvalidReferenceError(
                "airport",
                origin_airport_id,
                "origin and destination airports cannot be the same",
            )

        origin = self._load_airport(origin_airport_id)
        destination = self._load_airport(destination_airport_id)
        kind = direct_route_kind(origin, destination)

        distance = self._geo.distance_km(
            origin.coordinates,
            destination.coordinates,
            domestic=kind is RouteKind.DOMESTIC,
        )
        minutes = self._geo.flight_minutes(distance)

        code = f"{origin.iata_code}-{destination.iata_code}-D{short_timestamp(self._clock())}"
        return RouteDraft(
            code=code,
            name=f"{origin.name} to {destination.name}",
            kind=kind,
            segments=(
                RouteSegment(
                    order=1,
                    origin_airport_id=origin.id,
                    destination_airport_id=destination.id,
                    distance_km=distance,
                    estimated_minutes=minutes,
                ),
            ),
            distance_km=distance,
            estimated_minutes=minutes,
            active=active,
            origin_airport_code=origin.iata_code,
            destination_airport_code=destination.iata_code,
        )

    def build_chain_draft(
        self,
        segments: Sequence[AirportSegment],
        label: Optional[str] = None,
        active: bool = True,
    ) -> RouteDraft:
        """Compute the chain route draft (validated, not persisted)."""
        airports = self._load_chain_airports(segments)
        legs, airports_in_order = self._chain_legs(segments, airports)

        first = airports_in_order[0]
        last = airports_in_order[-1]
        code = (
            f"{first.iata_code}-{last.iata_code}-M{len(legs)}-"
            f"{short_timestamp(self._clock())}"
        )
        name_prefix = label or f"{first.iata_code}-{last.iata_code}"

        return RouteDraft(
            code=code,
            name=f"{name_prefix} Multi-Segment Route",
            kind=chain_route_kind(airports_in_order),
            segments=tuple(legs),
            distance_km=sum(leg.distance_km for leg in legs),
            estimated_minutes=self._chain_total_minutes(legs, segments),
            active=active,
            origin_airport_code=first.iata_code,
            destination_airport_code=last.iata_code,
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _persist(self, draft: RouteDraft) -> int:
        start = time.perf_counter()
        try:
            route = self._writer.create_route(draft)
        except ReferenceServiceError as e:
            logger.error("Route creation failed for %s, rolled back: %s", draft.code, e)
            raise RouteCreationError(f"Failed to create route {draft.code}: {e}") from e

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "Created %s route %s (%d) with %d segment(s) in %.1fms",
            route.kind.value,
            route.code,
            route.id,
            route.segment_count,
            elapsed_ms,
        )
        return route.id

    def _load_airport(self, airport_id: int, index: Optional[int] = None) -> Airport:
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
        return airport

    def _load_chain_airports(self, segments: Sequence[AirportSegment]) -> Dict[int, Airport]:
        if not segments:
            raise InvalidReferenceError("route", "chain", "no segments supplied")

        airports: Dict[int, Airport] = {}
        for segment in segments:
            if segment.origin_airport_id == segment.destination_airport_id:
                raise InvalidReferenceError(
                    "airport",
                    segment.origin_airport_id,
                    "origin and destination airports cannot be the same",
                    index=segment.segment_order,
                )
            for airport_id in segment.endpoints:
                if airport_id not in airports:
                    airports[airport_id] = self._load_airport(
                        airport_id, index=segment.segment_order
                    )
        return airports

    def _chain_legs(
        self,
        segments: Sequence[AirportSegment],
        airports: Dict[int, Airport],
    ) -> Tuple[List[RouteSegment], List[Airport]]:
        origins = [airports[s.origin_airport_id] for s in segments]
        destinations = [airports[s.destination_airport_id] for s in segments]
        domestic = [
            direct_route_kind(o, d) is RouteKind.DOMESTIC
            for o, d in zip(origins, destinations)
        ]

        distances = self._geo.leg_distances_km(
            [o.coordinates for o in origins],
            [d.coordinates for d in destinations],
            domestic,
        )

        legs = [
            RouteSegment(
                order=segment.segment_order,
                origin_airport_id=segment.origin_airport_id,
                destination_airport_id=segment.destination_airport_id,
                distance_km=int(distance),
                estimated_minutes=self._geo.flight_minutes(int(distance)),
            )
            for segment, distance in zip(segments, distances)
        ]
        return legs, [origins[0]] + destinations

    @staticmethod
    def _chain_total_minutes(
        legs: Sequence[RouteSegment], segments: Sequence[AirportSegment]
    ) -> int:
        flying = sum(leg.estimated_minutes for leg in legs)
        ground = sum(s.connection_time_minutes or 0 for s in segments)
        return flying + ground
