"""
Schema definitions for the flight scheduler.

Frozen dataclasses are the domain contracts; pandera models validate
rows crossing adapter boundaries.
"""

from .flight import (
    Flight,
    FlightConnection,
    FlightConnectionRowSchema,
    FlightRowSchema,
    FlightStatus,
    FlightType,
)
from .itinerary import AssembledItinerary, ConnectionDetail, LegPreview, RoutePreview
from .reference import Aircraft, Airline, Airport, Coordinates
from .requests import (
    AirportSegment,
    ConnectingFlightRequest,
    CreationMode,
    FlightSegmentRequest,
    RouteResolutionRequest,
    resolve_flight_time,
)
from .route import Route, RouteDraft, RouteKind, RouteSegment, RouteSegmentRowSchema

__all__ = [
    # Reference data
    "Aircraft",
    "Airline",
    "Airport",
    "Coordinates",
    # Routes
    "Route",
    "RouteDraft",
    "RouteKind",
    "RouteSegment",
    "RouteSegmentRowSchema",
    # Flights
    "Flight",
    "FlightConnection",
    "FlightConnectionRowSchema",
    "FlightRowSchema",
    "FlightStatus",
    "FlightType",
    # Requests
    "AirportSegment",
    "ConnectingFlightRequest",
    "CreationMode",
    "FlightSegmentRequest",
    "RouteResolutionRequest",
    "resolve_flight_time",
    # Results
    "AssembledItinerary",
    "ConnectionDetail",
    "LegPreview",
    "RoutePreview",
]
