"""
Custom exceptions for the flight scheduler.

Provides a hierarchy of exceptions for clear error handling of route
resolution and connecting-flight assembly. Every validation error carries
the failing rule and the offending segment index so callers can surface
it without parsing the message.
"""

from __future__ import annotations

from datetime import date
from typing import Optional


class SchedulerError(Exception):
    """Base exception for all flight scheduler errors."""

    pass


class InvalidRequestError(SchedulerError):
    """Raised when a request is malformed or misses creation-mode data."""

    def __init__(self, message: str, index: Optional[int] = None) -> None:
        self.index = index
        super().__init__(message)


class InvalidReferenceError(SchedulerError):
    """Raised when an airport, airline, aircraft or route is unknown or inactive."""

    def __init__(
        self,
        kind: str,
        ref_id: object,
        reason: str = "not found",
        index: Optional[int] = None,
    ) -> None:
        self.kind = kind
        self.ref_id = ref_id
        self.reason = reason
        self.index = index
        message = f"Invalid {kind} {ref_id}: {reason}"
        if index is not None:
            message += f" (segment {index})"
        super().__init__(message)


class InvalidRouteError(InvalidReferenceError):
    """Raised when an explicitly requested route is unknown or inactive."""

    def __init__(
        self,
        route_id: object,
        reason: str = "not found",
        index: Optional[int] = None,
    ) -> None:
        super().__init__("route", route_id, reason, index=index)


class RouteContinuityError(SchedulerError):
    """Raised when a leg does not depart from the previous leg's arrival airport."""

    def __init__(
        self,
        index: int,
        next_index: int,
        arrival_airport_id: object,
        departure_airport_id: object,
    ) -> None:
        self.index = index
        self.next_index = next_index
        self.arrival_airport_id = arrival_airport_id
        self.departure_airport_id = departure_airport_id
        message = (
            f"Route continuity broken: segment {index} destination "
            f"({arrival_airport_id}) must match segment {next_index} origin "
            f"({departure_airport_id})"
        )
        super().__init__(message)


class ConnectionTimingError(SchedulerError):
    """Raised when the gap between two legs is non-increasing or out of bounds."""

    NON_INCREASING = "non-increasing"
    TOO_TIGHT = "too tight"
    TOO_LONG = "too long"

    def __init__(
        self,
        index: int,
        next_index: int,
        gap_minutes: int,
        reason: str,
    ) -> None:
        self.index = index
        self.next_index = next_index
        self.gap_minutes = gap_minutes
        self.reason = reason
        message = (
            f"Connection between segments {index} and {next_index} is {reason} "
            f"(found: {gap_minutes} minutes)"
        )
        super().__init__(message)


class DuplicateFlightError(SchedulerError):
    """Raised when a main connecting flight already uses the number on that date."""

    def __init__(self, flight_number: str, flight_date: date) -> None:
        self.flight_number = flight_number
        self.flight_date = flight_date
        message = (
            f"Flight number already exists for this date: {flight_number} "
            f"on {flight_date.isoformat()}"
        )
        super().__init__(message)


class RouteCreationError(SchedulerError):
    """Raised when route synthesis failed and was rolled back."""

    pass


class ImmutableAfterDepartureError(SchedulerError):
    """Raised when an itinerary is mutated after its main flight or a leg departed."""

    def __init__(self, main_flight_id: int, flight_id: int) -> None:
        self.main_flight_id = main_flight_id
        self.flight_id = flight_id
        if flight_id == main_flight_id:
            message = f"Connecting flight {main_flight_id} has already departed"
        else:
            message = (
                f"Connecting flight {main_flight_id} cannot be changed: "
                f"segment flight {flight_id} has already departed"
            )
        super().__init__(message)


class FlightNotFoundError(SchedulerError):
    """Raised when a flight id does not exist in the store."""

    def __init__(self, flight_id: int) -> None:
        self.flight_id = flight_id
        super().__init__(f"Flight not found with ID: {flight_id}")


class NotConnectingFlightError(SchedulerError):
    """Raised when an itinerary operation targets a non-main flight."""

    def __init__(self, flight_id: int) -> None:
        self.flight_id = flight_id
        super().__init__(f"Flight {flight_id} is not a connecting flight")


class ConcurrentModificationError(SchedulerError):
    """Raised when the optimistic version check on a main flight fails."""

    def __init__(
        self,
        flight_id: int,
        expected_version: int,
        actual_version: Optional[int],
    ) -> None:
        self.flight_id = flight_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        message = (
            f"Flight {flight_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        super().__init__(message)
