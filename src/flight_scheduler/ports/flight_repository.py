"""
Flight Repository port interface.

Defines the storage contract for flights and flight connections. Every
multi-row mutation runs inside transaction() and is all-or-nothing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from typing import TYPE_CHECKING, Iterable, List, Optional

if TYPE_CHECKING:
    from src.flight_scheduler.schemas.flight import Flight, FlightConnection


class FlightRepository(ABC):
    """
    Abstract interface for flight persistence.

    Concurrent updates of the same flight are serialized with an
    optimistic version check: update_flight only succeeds when the
    caller's flight.version equals the stored one.

    Implementations:
    - InMemoryFlightRepository: Snapshot/rollback in-process store
    - SqliteFlightRepository: SQLite tables with cascading connections
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """
        Open a unit of work.

        All writes made inside the block are committed together when it
        exits normally and discarded when it raises. Nested blocks join
        the outer transaction.
        """
        ...

    @abstractmethod
    def get_flight(self, flight_id: int) -> Optional[Flight]:
        """Fetch a flight by id, or None if unknown."""
        ...

    @abstractmethod
    def list_segments(self, main_flight_id: int) -> List[Flight]:
        """
        List child flights of a main flight.

        Returns:
            Flights with parent_flight_id == main_flight_id ordered by
            segment_number.
        """
        ...

    @abstractmethod
    def list_connections(self, main_flight_id: int) -> List[FlightConnection]:
        """List connection rows of a main flight ordered by segment_order."""
        ...

    @abstractmethod
    def list_main_flights(
        self,
        airline_id: Optional[int] = None,
        flight_date: Optional[date] = None,
    ) -> List[Flight]:
        """List main connecting flights, optionally filtered."""
        ...

    @abstractmethod
    def exists_main_flight(
        self,
        flight_number: str,
        flight_date: date,
        exclude_flight_id: Optional[int] = None,
    ) -> bool:
        """
        Check whether a main connecting flight uses a number on a date.

        Args:
            flight_number: Main flight number.
            flight_date: Date of the first leg.
            exclude_flight_id: Main flight to ignore (the one being updated).
        """
        ...

    @abstractmethod
    def route_in_use(self, route_id: int) -> bool:
        """Check whether any stored flight references a route."""
        ...

    @abstractmethod
    def insert_flight(self, flight: Flight) -> Flight:
        """
        Store a new flight.

        Returns:
            The stored flight with its assigned id and version 0.
        """
        ...

    @abstractmethod
    def update_flight(self, flight: Flight) -> Flight:
        """
        Replace a stored flight.

        Returns:
            The stored flight with version incremented by one.

        Raises:
            FlightNotFoundError: If the flight does not exist.
            ConcurrentModificationError: If flight.version is stale.
        """
        ...

    @abstractmethod
    def delete_flights(self, flight_ids: Iterable[int]) -> None:
        """Delete flights by id; connections referencing them go too."""
        ...

    @abstractmethod
    def insert_connections(self, connections: Iterable[FlightConnection]) -> None:
        """Store connection rows."""
        ...

    @abstractmethod
    def delete_connections(self, main_flight_id: int) -> None:
        """Delete every connection row of a main flight."""
        ...
