"""
Reference data adapters (airports, airlines, aircraft, routes).
"""

from src.flight_scheduler.adapters.reference.http_reference_lookup import (
    HttpReferenceLookup,
    ServiceTokenProvider,
)
from src.flight_scheduler.adapters.reference.in_memory_reference import (
    InMemoryReferenceData,
)

__all__ = [
    "HttpReferenceLookup",
    "InMemoryReferenceData",
    "ServiceTokenProvider",
]
