"""
Segment validation rules shared by route resolution and itinerary assembly.

Each check raises the specific scheduler error for the first violated
rule, naming the 1-based segment index involved.
"""

from __future__ import annotations

from typing import Sequence

from src.flight_scheduler.exceptions import (
    ConnectionTimingError,
    InvalidRequestError,
    RouteContinuityError,
)
from src.flight_scheduler.schemas.requests import AirportSegment, FlightSegmentRequest

MIN_SEGMENTS = 2


def validate_segment_count(count: int, max_segments: int) -> None:
    """Segment count must be within [2, max_segments]."""
    if count < MIN_SEGMENTS:
        raise InvalidRequestError(
            f"Connecting flight must have at least {MIN_SEGMENTS} segments (got {count})"
        )
    if count > max_segments:
        raise InvalidRequestError(
            f"Connecting flight cannot have more than {max_segments} segments (got {count})"
        )


def validate_segment_numbering(numbers: Sequence[int]) -> None:
    """Numbers must be strictly ascending and contiguous starting at 1."""
    for position, number in enumerate(numbers, start=1):
        if number != position:
            raise InvalidRequestError(
                f"Segment numbers must be ascending and contiguous from 1: "
                f"segment {position} has number {number}",
                index=position,
            )


def validate_distinct_endpoints(
    index: int, origin_airport_id: int, destination_airport_id: int
) -> None:
    """A leg may not start and end at the same airport."""
    if origin_airport_id == destination_airport_id:
        raise InvalidRequestError(
            f"Segment {index} origin and destination airports cannot be the same",
            index=index,
        )


def validate_continuity(endpoints: Sequence[tuple]) -> None:
    """
    Each leg must depart from the previous leg's arrival airport.

    Args:
        endpoints: Ordered (origin, destination) pairs.

    Raises:
        RouteContinuityError: Naming the first broken pair of indices.
    """
    for i in range(len(endpoints) - 1):
        arrival = endpoints[i][1]
        departure = endpoints[i + 1][0]
        if arrival != departure:
            raise RouteContinuityError(i + 1, i + 2, arrival, departure)


def validate_airport_segments(
    segments: Sequence[AirportSegment],
    max_segments: int,
    max_connection_minutes: int,
) -> None:
    """
    Validate a requested segment chain before matching or synthesis.

    Raises:
        InvalidRequestError: Bad count, numbering, endpoints or
            connection time.
        RouteContinuityError: Legs do not connect.
    """
    validate_segment_count(len(segments), max_segments)
    validate_segment_numbering([s.segment_order for s in segments])

    for segment in segments:
        validate_distinct_endpoints(
            segment.segment_order,
            segment.origin_airport_id,
            segment.destination_airport_id,
        )
        minutes = segment.connection_time_minutes
        if minutes is not None and not 0 <= minutes <= max_connection_minutes:
            raise InvalidRequestError(
                f"Segment {segment.segment_order} connection time must be within "
                f"[0, {max_connection_minutes}] minutes (got {minutes})",
                index=segment.segment_order,
            )

    validate_continuity([s.endpoints for s in segments])


def connection_gap_minutes(current: FlightSegmentRequest, following: FlightSegmentRequest) -> int:
    """Whole minutes between one leg's arrival and the next leg's departure."""
    delta = following.scheduled_departure - current.scheduled_arrival
    return int(delta.total_seconds() // 60)


def validate_leg_timing(
    legs: Sequence[FlightSegmentRequest],
    min_connection_minutes: int,
    max_connection_minutes: int,
) -> None:
    """
    Validate schedules inside and between legs.

    Raises:
        InvalidRequestError: A leg arrives before (or when) it departs.
        ConnectionTimingError: Arrival not strictly before the next
            departure, or the gap is outside the allowed window.
    """
    for index, leg in enumerate(legs, start=1):
        if leg.scheduled_arrival <= leg.scheduled_departure:
            raise InvalidRequestError(
                f"Segment {index} scheduled arrival must be after its scheduled departure",
                index=index,
            )

    for i in range(len(legs) - 1):
        current, following = legs[i], legs[i + 1]
        gap = connection_gap_minutes(current, following)
        if current.scheduled_arrival >= following.scheduled_departure:
            raise ConnectionTimingError(
                i + 1, i + 2, gap, ConnectionTimingError.NON_INCREASING
            )
        if gap < min_connection_minutes:
            raise ConnectionTimingError(i + 1, i + 2, gap, ConnectionTimingError.TOO_TIGHT)
        if gap > max_connection_minutes:
            raise ConnectionTimingError(i + 1, i + 2, gap, ConnectionTimingError.TOO_LONG)
