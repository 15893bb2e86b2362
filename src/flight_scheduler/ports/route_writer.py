"""
Route Writer port interface.

Defines the write contract for routes. A route and all of its segments
are created as one unit: either everything is stored or nothing is.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.flight_scheduler.schemas.route import Route, RouteDraft


class RouteWriter(ABC):
    """
    Abstract interface for persisting synthesized routes.

    Implementations:
    - InMemoryReferenceData: Stores into the in-process reference data
    - HttpReferenceLookup: POSTs to the reference manager, which stores
      the route and its segments in one transaction
    """

    @abstractmethod
    def create_route(self, draft: RouteDraft) -> Route:
        """
        Persist a route together with all of its segments.

        Args:
            draft: Fully computed route without an id.

        Returns:
            The stored Route with its assigned id.

        Raises:
            ReferenceServiceError: If the write failed. No part of the
                route may remain stored in that case.
        """
        ...

    @abstractmethod
    def delete_route(self, route_id: int) -> None:
        """
        Delete a route and its segments.

        Used to compensate a route created (inactive) for an itinerary
        whose flight writes were rolled back.

        Args:
            route_id: Id returned by create_route.
        """
        ...

    @abstractmethod
    def activate_route(self, route_id: int) -> None:
        """
        Mark a route created inactive as active.

        Routes synthesized for an itinerary are stored inactive, so no
        other request can match them, and published once the itinerary's
        flights are committed.

        Args:
            route_id: Id returned by create_route.

        Raises:
            ReferenceServiceError: If the route is unknown or the write failed.
        """
        ...
