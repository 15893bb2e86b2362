"""
Application layer for the flight scheduler.

This layer provides the public API for route resolution and connecting
flight management. It acts as a facade, handling dependency
initialization and providing a simple interface for consumers.
"""

from src.flight_scheduler.application.schedule_flights import FlightScheduler

__all__ = ["FlightScheduler"]
