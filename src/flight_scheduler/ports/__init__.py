"""
Port interfaces for the flight scheduler.

Ports define the abstract interfaces (ABCs) that the domain layer uses
to communicate with external systems. This follows the Ports and
Adapters (Hexagonal) architecture pattern.
"""

from src.flight_scheduler.ports.flight_repository import FlightRepository
from src.flight_scheduler.ports.reference_lookup import (
    ReferenceLookup,
    ReferenceServiceError,
)
from src.flight_scheduler.ports.route_writer import RouteWriter

__all__ = [
    "FlightRepository",
    "ReferenceLookup",
    "ReferenceServiceError",
    "RouteWriter",
]
