"""
SQLite flight repository - SQL to dataclass adapter.

Stores flights and flight connections in two tables. Connections and
child flights cascade with their main flight. Rows are loaded with
pandas.read_sql and validated against the pandera row schemas before
they become Flight / FlightConnection records.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Union

import pandas as pd

from src.flight_scheduler.exceptions import (
    ConcurrentModificationError,
    DuplicateFlightError,
    FlightNotFoundError,
)
from src.flight_scheduler.ports.flight_repository import FlightRepository
from src.flight_scheduler.schemas.flight import (
    Flight,
    FlightConnection,
    FlightConnectionRowSchema,
    FlightRowSchema,
    FlightStatus,
    FlightType,
)

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS flights (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    flight_number TEXT NOT NULL,
    airline_id INTEGER NOT NULL,
    aircraft_id INTEGER NOT NULL,
    route_id INTEGER,
    flight_date TEXT NOT NULL,
    scheduled_departure TEXT NOT NULL,
    scheduled_arrival TEXT NOT NULL,
    status TEXT NOT NULL,
    type TEXT NOT NULL,
    actual_departure TEXT,
    actual_arrival TEXT,
    passenger_count INTEGER,
    cargo_weight INTEGER,
    gate_number TEXT,
    notes TEXT,
    active INTEGER NOT NULL DEFAULT 1,
    parent_flight_id INTEGER REFERENCES flights(id) ON DELETE CASCADE,
    segment_number INTEGER NOT NULL DEFAULT 0,
    is_connecting_flight INTEGER NOT NULL DEFAULT 0,
    version INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_flights_parent ON flights(parent_flight_id);
CREATE INDEX IF NOT EXISTS idx_flights_number_date ON flights(flight_number, flight_date);
CREATE UNIQUE INDEX IF NOT EXISTS idx_flights_main_number_date
    ON flights(flight_number, flight_date) WHERE is_connecting_flight = 1;
CREATE INDEX IF NOT EXISTS idx_flights_route ON flights(route_id);

CREATE TABLE IF NOT EXISTS flight_connections (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    main_flight_id INTEGER NOT NULL REFERENCES flights(id) ON DELETE CASCADE,
    segment_flight_id INTEGER NOT NULL REFERENCES flights(id) ON DELETE CASCADE,
    segment_order INTEGER NOT NULL,
    connection_time_minutes INTEGER,
    UNIQUE (main_flight_id, segment_order)
);
"""

WRITE_COLUMNS = (
    "flight_number",
    "airline_id",
    "aircraft_id",
    "route_id",
    "flight_date",
    "scheduled_departure",
    "scheduled_arrival",
    "status",
    "type",
    "actual_departure",
    "actual_arrival",
    "passenger_count",
    "cargo_weight",
    "gate_number",
    "notes",
    "active",
    "parent_flight_id",
    "segment_number",
    "is_connecting_flight",
)


def _opt(value: Any) -> Any:
    """NaN/None from a DataFrame cell to None."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _opt_int(value: Any) -> Optional[int]:
    value = _opt(value)
    return int(value) if value is not None else None


def _opt_datetime(value: Any) -> Optional[datetime]:
    value = _opt(value)
    return datetime.fromisoformat(value) if value is not None else None


def _flight_params(flight: Flight) -> List[Any]:
    """Column values in WRITE_COLUMNS order."""
    return [
        flight.flight_number,
        flight.airline_id,
        flight.aircraft_id,
        flight.route_id,
        flight.flight_date.isoformat(),
        flight.scheduled_departure.isoformat(),
        flight.scheduled_arrival.isoformat(),
        flight.status.value,
        flight.type.value,
        flight.actual_departure.isoformat() if flight.actual_departure else None,
        flight.actual_arrival.isoformat() if flight.actual_arrival else None,
        flight.passenger_count,
        flight.cargo_weight,
        flight.gate_number,
        flight.notes,
        int(flight.active),
        flight.parent_flight_id,
        flight.segment_number,
        int(flight.is_connecting_flight),
    ]


def flights_from_frame(df: pd.DataFrame) -> List[Flight]:
    """
    Convert flight rows to Flight records.

    Args:
        df: Raw rows from the flights table.

    Returns:
        Flights in row order.

    Raises:
        pandera.errors.SchemaError: If a row violates FlightRowSchema.
    """
    if df.empty:
        return []
    validated = FlightRowSchema.validate(df)

    flights = []
    for row in validated.to_dict("records"):
        flights.append(
            Flight(
                id=int(row["id"]),
                flight_number=row["flight_number"],
                airline_id=int(row["airline_id"]),
                aircraft_id=int(row["aircraft_id"]),
                route_id=_opt_int(row["route_id"]),
                flight_date=date.fromisoformat(row["flight_date"]),
                scheduled_departure=datetime.fromisoformat(row["scheduled_departure"]),
                scheduled_arrival=datetime.fromisoformat(row["scheduled_arrival"]),
                status=FlightStatus(row["status"]),
                type=FlightType(row["type"]),
                actual_departure=_opt_datetime(row["actual_departure"]),
                actual_arrival=_opt_datetime(row["actual_arrival"]),
                passenger_count=_opt_int(row["passenger_count"]),
                cargo_weight=_opt_int(row["cargo_weight"]),
                gate_number=_opt(row["gate_number"]),
                notes=_opt(row["notes"]),
                active=bool(row["active"]),
                parent_flight_id=_opt_int(row["parent_flight_id"]),
                segment_number=int(row["segment_number"]),
                is_connecting_flight=bool(row["is_connecting_flight"]),
                version=int(row["version"]),
            )
        )
    return flights


def connections_from_frame(df: pd.DataFrame) -> List[FlightConnection]:
    """Convert connection rows to FlightConnection records."""
    if df.empty:
        return []
    validated = FlightConnectionRowSchema.validate(df)
    return [
        FlightConnection(
            main_flight_id=int(row["main_flight_id"]),
            segment_flight_id=int(row["segment_flight_id"]),
            segment_order=int(row["segment_order"]),
            connection_time_minutes=_opt_int(row["connection_time_minutes"]),
        )
        for row in validated.to_dict("records")
    ]


class SqliteFlightRepository(FlightRepository):
    """
    Flight store on a single SQLite file (or ':memory:').

    One connection is shared and serialized with a re-entrant lock; a
    transaction holds the lock from BEGIN to COMMIT/ROLLBACK.

    Attributes:
        _db_path: Database file path.
        _conn: Open connection (lazy).
        _lock: Serializes access to the connection.
        _depth: Nesting level of the current transaction.
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:") -> None:
        """
        Initialize the repository and create tables if needed.

        Args:
            db_path: Path to the SQLite file.
        """
        self._db_path = str(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._depth = 0
        self._get_connection()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                self._db_path, check_same_thread=False, isolation_level=None
            )
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(SCHEMA_SQL)
            logger.debug("Opened flight database at %s", self._db_path)
        return self._conn

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.debug("Database connection closed")

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

            conn = self._get_connection()
            conn.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield
            except BaseException:
                conn.execute("ROLLBACK")
                logger.debug("Rolled back flight transaction")
                raise
            else:
                conn.execute("COMMIT")
            finally:
                self._depth = 0

    # =========================================================================
    # Reads
    # =========================================================================

    def _select_flights(self, where: str, params: Sequence[Any] = ()) -> List[Flight]:
        query = f"SELECT * FROM flights WHERE {where}"
        with self._lock:
            df = pd.read_sql(query, self._get_connection(), params=list(params))
        return flights_from_frame(df)

    def get_flight(self, flight_id: int) -> Optional[Flight]:
        flights = self._select_flights("id = ?", [flight_id])
        return flights[0] if flights else None

    def list_segments(self, main_flight_id: int) -> List[Flight]:
        return self._select_flights(
            "parent_flight_id = ? ORDER BY segment_number", [main_flight_id]
        )

    def list_connections(self, main_flight_id: int) -> List[FlightConnection]:
        query = """
            SELECT main_flight_id, segment_flight_id, segment_order, connection_time_minutes
            FROM flight_connections
            WHERE main_flight_id = ?
            ORDER BY segment_order
        """
        with self._lock:
            df = pd.read_sql(query, self._get_connection(), params=[main_flight_id])
        return connections_from_frame(df)

    def list_main_flights(
        self,
        airline_id: Optional[int] = None,
        flight_date: Optional[date] = None,
    ) -> List[Flight]:
        conditions = ["is_connecting_flight = 1"]
        params: List[Any] = []
        if airline_id is not None:
            conditions.append("airline_id = ?")
            params.append(airline_id)
        if flight_date is not None:
            conditions.append("flight_date = ?")
            params.append(flight_date.isoformat())
        where = " AND ".join(conditions) + " ORDER BY scheduled_departure, id"
        return self._select_flights(where, params)

    def exists_main_flight(
        self,
        flight_number: str,
        flight_date: date,
        exclude_flight_id: Optional[int] = None,
    ) -> bool:
        query = """
            SELECT 1 FROM flights
            WHERE is_connecting_flight = 1
              AND flight_number = ?
              AND flight_date = ?
              AND (? IS NULL OR id != ?)
            LIMIT 1
        """
        params = [flight_number, flight_date.isoformat(), exclude_flight_id, exclude_flight_id]
        with self._lock:
            row = self._get_connection().execute(query, params).fetchone()
        return row is not None

    def route_in_use(self, route_id: int) -> bool:
        with self._lock:
            row = self._get_connection().execute(
                "SELECT 1 FROM flights WHERE route_id = ? LIMIT 1", [route_id]
            ).fetchone()
        return row is not None

    # =========================================================================
    # Writes
    # =========================================================================

    def insert_flight(self, flight: Flight) -> Flight:
        columns = ", ".join(WRITE_COLUMNS + ("version",))
        placeholders = ", ".join("?" for _ in range(len(WRITE_COLUMNS) + 1))
        with self.transaction():
            try:
                cursor = self._get_connection().execute(
                    f"INSERT INTO flights ({columns}) VALUES ({placeholders})",
                    _flight_params(flight) + [0],
                )
            except sqlite3.IntegrityError as e:
                duplicate = self._duplicate_error(flight, e)
                if duplicate is None:
                    raise
                raise duplicate from e
            return self._reload(cursor.lastrowid)

    def update_flight(self, flight: Flight) -> Flight:
        if flight.id is None:
            raise FlightNotFoundError(flight.id)

        assignments = ", ".join(f"{c} = ?" for c in WRITE_COLUMNS)
        with self.transaction():
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    f"UPDATE flights SET {assignments}, version = version + 1 "
                    "WHERE id = ? AND version = ?",
                    _flight_params(flight) + [flight.id, flight.version],
                )
            except sqlite3.IntegrityError as e:
                duplicate = self._duplicate_error(flight, e)
                if duplicate is None:
                    raise
                raise duplicate from e
            if cursor.rowcount == 0:
                row = conn.execute(
                    "SELECT version FROM flights WHERE id = ?", [flight.id]
                ).fetchone()
                if row is None:
                    raise FlightNotFoundError(flight.id)
                raise ConcurrentModificationError(flight.id, flight.version, row[0])
            return self._reload(flight.id)

    def _reload(self, flight_id: Optional[int]) -> Flight:
        """Read back a row written in the current transaction."""
        stored = self.get_flight(flight_id) if flight_id is not None else None
        if stored is None:
            raise FlightNotFoundError(flight_id)
        return stored

    @staticmethod
    def _duplicate_error(
        flight: Flight, error: sqlite3.IntegrityError
    ) -> Optional[DuplicateFlightError]:
        """A second main flight on one number and date violates the unique index."""
        if flight.is_connecting_flight and "UNIQUE" in str(error).upper():
            return DuplicateFlightError(flight.flight_number, flight.flight_date)
        return None

    def delete_flights(self, flight_ids: Iterable[int]) -> None:
        ids = list(flight_ids)
        if not ids:
            return
        placeholders = ", ".join("?" for _ in ids)
        with self.transaction():
            self._get_connection().execute(
                f"DELETE FROM flights WHERE id IN ({placeholders})", ids
            )

    def insert_connections(self, connections: Iterable[FlightConnection]) -> None:
        rows = [
            (
                c.main_flight_id,
                c.segment_flight_id,
                c.segment_order,
                c.connection_time_minutes,
            )
            for c in connections
        ]
        if not rows:
            return
        with self.transaction():
            self._get_connection().executemany(
                "INSERT INTO flight_connections "
                "(main_flight_id, segment_flight_id, segment_order, connection_time_minutes) "
                "VALUES (?, ?, ?, ?)",
                rows,
            )

    def delete_connections(self, main_flight_id: int) -> None:
        with self.transaction():
            self._get_connection().execute(
                "DELETE FROM flight_connections WHERE main_flight_id = ?", [main_flight_id]
            )
