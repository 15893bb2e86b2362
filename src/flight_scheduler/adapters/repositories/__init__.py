"""
Repository adapters for flights and flight connections.
"""

from src.flight_scheduler.adapters.repositories.in_memory_flight_repo import (
    InMemoryFlightRepository,
)
from src.flight_scheduler.adapters.repositories.sqlite_flight_repo import (
    SqliteFlightRepository,
)

__all__ = [
    "InMemoryFlightRepository",
    "SqliteFlightRepository",
]
