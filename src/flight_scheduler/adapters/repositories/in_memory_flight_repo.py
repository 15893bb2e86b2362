"""
In-memory flight repository.

Flights and connections live in dicts guarded by a re-entrant lock. A
transaction holds the lock for its whole duration and restores a snapshot
taken at entry if the block raises.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional

from src.flight_scheduler.exceptions import (
    ConcurrentModificationError,
    DuplicateFlightError,
    FlightNotFoundError,
)
from src.flight_scheduler.ports.flight_repository import FlightRepository
from src.flight_scheduler.schemas.flight import Flight, FlightConnection

logger = logging.getLogger(__name__)


class InMemoryFlightRepository(FlightRepository):
    """
    Thread-safe in-process flight store.

    Attributes:
        _flights: Flights by id.
        _connections: Connection rows by main flight id.
        _next_id: Next flight id.
        _lock: Serializes all access; held across a transaction.
        _depth: Nesting level of the current transaction.
    """

    def __init__(self) -> None:
        self._flights: Dict[int, Flight] = {}
        self._connections: Dict[int, List[FlightConnection]] = {}
        self._next_id = 1
        self._lock = threading.RLock()
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            if self._depth > 0:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            snapshot = (
                dict(self._flights),
                {k: list(v) for k, v in self._connections.items()},
                self._next_id,
            )
            self._depth = 1
            try:
                yield
            except BaseException:
                self._flights, self._connections, self._next_id = snapshot
                logger.debug("Rolled back in-memory flight transaction")
                raise
            finally:
                self._depth = 0

    # =========================================================================
    # Reads
    # =========================================================================

    def get_flight(self, flight_id: int) -> Optional[Flight]:
        with self._lock:
            return self._flights.get(flight_id)

    def list_segments(self, main_flight_id: int) -> List[Flight]:
        with self._lock:
            segments = [
                f for f in self._flights.values() if f.parent_flight_id == main_flight_id
            ]
        return sorted(segments, key=lambda f: f.segment_number)

    def list_connections(self, main_flight_id: int) -> List[FlightConnection]:
        with self._lock:
            rows = list(self._connections.get(main_flight_id, []))
        return sorted(rows, key=lambda c: c.segment_order)

    def list_main_flights(
        self,
        airline_id: Optional[int] = None,
        flight_date: Optional[date] = None,
    ) -> List[Flight]:
        with self._lock:
            mains = [
                f
                for f in self._flights.values()
                if f.is_connecting_flight
                and (airline_id is None or f.airline_id == airline_id)
                and (flight_date is None or f.flight_date == flight_date)
            ]
        return sorted(mains, key=lambda f: (f.scheduled_departure, f.id or 0))

    def exists_main_flight(
        self,
        flight_number: str,
        flight_date: date,
        exclude_flight_id: Optional[int] = None,
    ) -> bool:
        with self._lock:
            return any(
                f.is_connecting_flight
                and f.flight_number == flight_number
                and f.flight_date == flight_date
                and f.id != exclude_flight_id
                for f in self._flights.values()
            )

    def route_in_use(self, route_id: int) -> bool:
        with self._lock:
            return any(f.route_id == route_id for f in self._flights.values())

    # =========================================================================
    # Writes
    # =========================================================================

    def insert_flight(self, flight: Flight) -> Flight:
        with self._lock:
            self._check_unique_main(flight)
            stored = replace(flight, id=self._next_id, version=0)
            self._next_id += 1
            self._flights[stored.id] = stored
            return stored

    def update_flight(self, flight: Flight) -> Flight:
        with self._lock:
            current = self._flights.get(flight.id) if flight.id is not None else None
            if current is None:
                raise FlightNotFoundError(flight.id)
            if current.version != flight.version:
                raise ConcurrentModificationError(flight.id, flight.version, current.version)
            self._check_unique_main(flight)
            stored = replace(flight, version=flight.version + 1)
            self._flights[stored.id] = stored
            return stored

    def _check_unique_main(self, flight: Flight) -> None:
        """One main connecting flight per number and date."""
        if flight.is_connecting_flight and self.exists_main_flight(
            flight.flight_number, flight.flight_date, exclude_flight_id=flight.id
        ):
            raise DuplicateFlightError(flight.flight_number, flight.flight_date)

    def delete_flights(self, flight_ids: Iterable[int]) -> None:
        with self._lock:
            for flight_id in list(flight_ids):
                self._flights.pop(flight_id, None)
                # Cascade: connections owned by, or pointing at, the flight
                self._connections.pop(flight_id, None)
                for main_id, rows in self._connections.items():
                    self._connections[main_id] = [
                        c for c in rows if c.segment_flight_id != flight_id
                    ]

    def insert_connections(self, connections: Iterable[FlightConnection]) -> None:
        with self._lock:
            for connection in connections:
                self._connections.setdefault(connection.main_flight_id, []).append(
                    connection
                )

    def delete_connections(self, main_flight_id: int) -> None:
        with self._lock:
            self._connections.pop(main_flight_id, None)

    @property
    def flight_count(self) -> int:
        with self._lock:
            return len(self._flights)
