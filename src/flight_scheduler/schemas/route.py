"""
Route schemas.

Routes own an ordered tuple of RouteSegments by value. Segments keep the
owning route id for diagnostics only; traversal always goes through the
Route. Pandera schemas validate segment rows arriving in bulk from
external sources.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence, Tuple

import pandera as pa
from pandera.typing import Series


class RouteKind(Enum):
    """Whether a route stays within one country."""

    DOMESTIC = "DOMESTIC"
    INTERNATIONAL = "INTERNATIONAL"


@dataclass(frozen=True)
class RouteSegment:
    """
    Immutable leg of a route.

    Attributes:
        order: 1-based position inside the owning route.
        origin_airport_id: Departure airport id.
        destination_airport_id: Arrival airport id.
        distance_km: Great-circle estimate for this leg.
        estimated_minutes: Flight-time estimate for this leg.
        active: Whether the leg is in service.
        route_id: Owning route id (diagnostics only, None before persisting).
    """

    order: int
    origin_airport_id: int
    destination_airport_id: int
    distance_km: int = 0
    estimated_minutes: int = 0
    active: bool = True
    route_id: Optional[int] = None

    @property
    def endpoints(self) -> Tuple[int, int]:
        """(origin, destination) pair."""
        return (self.origin_airport_id, self.destination_airport_id)


def validate_segment_chain(segments: Sequence[RouteSegment]) -> None:
    """
    Check the structural invariants of an ordered segment list.

    Raises:
        ValueError: If the list is empty, orders are not 1..N, or a leg
            does not start where the previous one ended.
    """
    if not segments:
        raise ValueError("Route must have at least one segment")

    for position, segment in enumerate(segments, start=1):
        if segment.order != position:
            raise ValueError(
                f"Segment orders must be contiguous from 1; position {position} "
                f"has order {segment.order}"
            )

    for current, following in zip(segments, segments[1:]):
        if current.destination_airport_id != following.origin_airport_id:
            raise ValueError(
                f"Segment {current.order} destination ({current.destination_airport_id}) "
                f"does not match segment {following.order} origin "
                f"({following.origin_airport_id})"
            )


@dataclass(frozen=True)
class RouteDraft:
    """
    A synthesized route that has not been persisted yet.

    Handed to a RouteWriter, which assigns the id and stores the route
    and all of its segments as one unit.
    """

    code: str
    name: str
    kind: RouteKind
    segments: Tuple[RouteSegment, ...]
    distance_km: int
    estimated_minutes: int
    active: bool = True
    origin_airport_code: Optional[str] = None
    destination_airport_code: Optional[str] = None

    def __post_init__(self) -> None:
        validate_segment_chain(self.segments)

    @property
    def is_multi_segment(self) -> bool:
        return len(self.segments) > 1

    def to_route(self, route_id: int) -> "Route":
        """Attach an id, stamping it on every segment."""
        return Route(
            id=route_id,
            code=self.code,
            name=self.name,
            kind=self.kind,
            segments=tuple(replace(s, route_id=route_id) for s in self.segments),
            distance_km=self.distance_km,
            estimated_minutes=self.estimated_minutes,
            active=self.active,
            origin_airport_code=self.origin_airport_code,
            destination_airport_code=self.destination_airport_code,
        )


@dataclass(frozen=True)
class Route:
    """
    Immutable persisted route.

    A route with exactly one segment is direct; more than one makes it a
    multi-segment (chain) route. Routes are never mutated in place.

    Attributes:
        id: Reference-manager identifier.
        code: Human code, e.g. 'IST-ANK-D4821'.
        name: Human name.
        kind: DOMESTIC or INTERNATIONAL.
        segments: Ordered legs (orders 1..N).
        distance_km: Sum of segment distances.
        estimated_minutes: Total time estimate (legs plus planned connections).
        active: Whether the route may be used by new flights.
        origin_airport_code: IATA code of the first origin (display only).
        destination_airport_code: IATA code of the last destination (display only).
    """

    id: int
    code: str
    name: str
    kind: RouteKind
    segments: Tuple[RouteSegment, ...]
    distance_km: int
    estimated_minutes: int
    active: bool = True
    origin_airport_code: Optional[str] = None
    destination_airport_code: Optional[str] = None

    def __post_init__(self) -> None:
        validate_segment_chain(self.segments)

    @property
    def segment_count(self) -> int:
        return len(self.segments)

    @property
    def is_direct(self) -> bool:
        return len(self.segments) == 1

    @property
    def is_multi_segment(self) -> bool:
        return len(self.segments) > 1

    @property
    def origin_airport_id(self) -> int:
        """First segment origin."""
        return self.segments[0].origin_airport_id

    @property
    def destination_airport_id(self) -> int:
        """Last segment destination."""
        return self.segments[-1].destination_airport_id

    @property
    def endpoint_pairs(self) -> Tuple[Tuple[int, int], ...]:
        """Ordered (origin, destination) pairs of all segments."""
        return tuple(s.endpoints for s in self.segments)


class RouteSegmentRowSchema(pa.DataFrameModel):
    """
    Pandera schema for route segment rows received in bulk.

    Each row is one segment of one route; rows of a route share route_id.
    """

    route_id: Series[int] = pa.Field(ge=1, description="Owning route id")
    segment_order: Series[int] = pa.Field(ge=1, description="1-based segment order")
    origin_airport_id: Series[int] = pa.Field(ge=1, description="Departure airport id")
    destination_airport_id: Series[int] = pa.Field(
        ge=1, description="Arrival airport id"
    )
    distance_km: Series[int] = pa.Field(ge=0, description="Segment distance")
    estimated_minutes: Series[int] = pa.Field(ge=0, description="Segment flight time")
    active: Series[bool] = pa.Field(description="Segment in service")

    class Config:
        strict = False
        coerce = True
        name = "RouteSegmentRowSchema"

    @pa.dataframe_check
    def endpoints_differ(cls, df):
        """A segment never starts and ends at the same airport."""
        return df["origin_airport_id"] != df["destination_airport_id"]
