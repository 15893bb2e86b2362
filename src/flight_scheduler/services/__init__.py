"""
Domain services for the flight scheduler.

Services orchestrate the interaction between ports (reference lookups,
route writer, flight store) and domain logic (matching, synthesis,
validation, status aggregation).
"""

from src.flight_scheduler.services.geo_estimator import GeoEstimator
from src.flight_scheduler.services.itinerary_assembler import (
    ItineraryAssembler,
    aggregate_itinerary_status,
)
from src.flight_scheduler.services.route_matcher import RouteMatcher
from src.flight_scheduler.services.route_resolution_service import (
    RouteResolution,
    RouteResolutionService,
)
from src.flight_scheduler.services.route_synthesizer import RouteSynthesizer

__all__ = [
    "GeoEstimator",
    "ItineraryAssembler",
    "RouteMatcher",
    "RouteResolution",
    "RouteResolutionService",
    "RouteSynthesizer",
    "aggregate_itinerary_status",
]
