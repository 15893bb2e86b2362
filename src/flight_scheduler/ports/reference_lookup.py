"""
Reference Lookup port interface.

Defines the read-only contract for airport, airline, aircraft and route
reference data. Implementations own transport, caching and retry policy;
the scheduler core never retries a lookup itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from src.flight_scheduler.schemas.reference import Aircraft, Airline, Airport
    from src.flight_scheduler.schemas.route import Route


class ReferenceServiceError(Exception):
    """Raised by adapters when the reference data source cannot answer."""

    pass


class ReferenceLookup(ABC):
    """
    Abstract interface for reference data lookups.

    Every method returns None for an unknown id and raises
    ReferenceServiceError when the source is unavailable (timeout,
    transport error, server error).

    Implementations:
    - InMemoryReferenceData: In-process store for tests and single-node use
    - HttpReferenceLookup: Reference-manager REST API over httpx
    """

    @abstractmethod
    def get_airport(self, airport_id: int) -> Optional[Airport]:
        """
        Fetch an airport by id.

        Args:
            airport_id: Reference-manager airport id.

        Returns:
            Airport record, or None if unknown.
        """
        ...

    @abstractmethod
    def get_route(self, route_id: int) -> Optional[Route]:
        """
        Fetch a route, including its ordered segments.

        Args:
            route_id: Reference-manager route id.

        Returns:
            Route record, or None if unknown.
        """
        ...

    @abstractmethod
    def list_active_routes(self) -> List[Route]:
        """
        List all active routes with their segments.

        Returns:
            Active routes; empty list when none exist.
        """
        ...

    @abstractmethod
    def get_airline(self, airline_id: int) -> Optional[Airline]:
        """Fetch an airline by id, or None if unknown."""
        ...

    @abstractmethod
    def get_aircraft(self, aircraft_id: int) -> Optional[Aircraft]:
        """Fetch an aircraft by id, or None if unknown."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Human-readable name of this lookup.

        Returns:
            Lookup identifier (e.g., "In-Memory Reference", "Reference Manager API").
        """
        ...
