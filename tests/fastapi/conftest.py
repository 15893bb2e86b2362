"""
Fixtures for FastAPI endpoint tests.

Endpoints run against a real FlightScheduler wired to in-memory
reference data and flight storage.
"""

from unittest.mock import patch

import pytest

from src.flight_scheduler.adapters.repositories.in_memory_flight_repo import (
    InMemoryFlightRepository,
)
from src.flight_scheduler.application import FlightScheduler


@pytest.fixture
def anyio_backend():
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def api_scheduler(reference_data) -> FlightScheduler:
    """Scheduler patched into the API module for the duration of a test."""
    scheduler = FlightScheduler(reference=reference_data, flights=InMemoryFlightRepository())
    with patch("src.fastapi.scheduler_api.scheduler", scheduler):
        yield scheduler

