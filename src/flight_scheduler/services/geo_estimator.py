"""
Geo Estimator - great-circle distance and flight-time estimates.

Pure functions, no side effects. Missing coordinates fall back to fixed
defaults instead of failing.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from src.flight_scheduler.schemas.reference import Coordinates

EARTH_RADIUS_KM = 6371.0
CRUISE_SPEED_KMH = 800.0

DEFAULT_DOMESTIC_DISTANCE_KM = 400
DEFAULT_INTERNATIONAL_DISTANCE_KM = 1200
DEFAULT_FLIGHT_MINUTES = 90


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """
    Great-circle distance between two points.

    Args:
        a: First point.
        b: Second point.

    Returns:
        Distance in kilometres (0.0 for identical points).
    """
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def haversine_km_vectorized(
    lat1: np.ndarray,
    lon1: np.ndarray,
    lat2: np.ndarray,
    lon2: np.ndarray,
) -> np.ndarray:
    """
    Vectorized Haversine over arrays of coordinates (degrees).

    NaN in any input yields NaN in the matching output position.

    Example:
        >>> haversine_km_vectorized(
        ...     np.array([41.0]), np.array([28.9]),
        ...     np.array([41.0]), np.array([28.9]),
        ... )
        array([0.])
    """
    lat1_r = np.radians(lat1)
    lat2_r = np.radians(lat2)
    d_lat = np.radians(lat2 - lat1)
    d_lon = np.radians(lon2 - lon1)

    h = np.sin(d_lat / 2) ** 2 + np.cos(lat1_r) * np.cos(lat2_r) * np.sin(d_lon / 2) ** 2
    return EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))


@dataclass(frozen=True)
class GeoEstimator:
    """
    Distance and flight-time estimator.

    Attributes:
        cruise_speed_kmh: Average speed used for time estimates.
        default_domestic_km: Distance when coordinates are missing and
            both airports share a country.
        default_international_km: Distance when coordinates are missing
            otherwise.
        default_minutes: Flight time when the distance is unknown.
    """

    cruise_speed_kmh: float = CRUISE_SPEED_KMH
    default_domestic_km: int = DEFAULT_DOMESTIC_DISTANCE_KM
    default_international_km: int = DEFAULT_INTERNATIONAL_DISTANCE_KM
    default_minutes: int = DEFAULT_FLIGHT_MINUTES

    def __post_init__(self) -> None:
        if self.cruise_speed_kmh <= 0:
            raise ValueError(f"cruise_speed_kmh must be > 0, got {self.cruise_speed_kmh}")

    def distance_km(
        self,
        origin: Optional[Coordinates],
        destination: Optional[Coordinates],
        domestic: bool = False,
    ) -> int:
        """
        Whole-kilometre great-circle distance.

        Args:
            origin: Origin coordinates, None if unknown.
            destination: Destination coordinates, None if unknown.
            domestic: Selects the fallback when coordinates are missing.

        Returns:
            Truncated distance in km, or the domestic/international
            default when either point is missing.
        """
        if origin is None or destination is None:
            return self.default_domestic_km if domestic else self.default_international_km
        return int(haversine_km(origin, destination))

    def flight_minutes(self, distance_km: Optional[float]) -> int:
        """
        Flight time at cruise speed, rounded up to whole minutes.

        Returns:
            ceil(distance / speed * 60), or default_minutes when the
            distance is unknown.
        """
        if distance_km is None:
            return self.default_minutes
        return int(math.ceil(distance_km / self.cruise_speed_kmh * 60))

    def leg_distances_km(
        self,
        origins: Sequence[Optional[Coordinates]],
        destinations: Sequence[Optional[Coordinates]],
        domestic_flags: Sequence[bool],
    ) -> np.ndarray:
        """
        Distances for many legs at once.

        Same semantics as distance_km applied element-wise.

        Returns:
            Integer array with one distance per leg.
        """
        if not (len(origins) == len(destinations) == len(domestic_flags)):
            raise ValueError("origins, destinations and domestic_flags must align")
        if not origins:
            return np.zeros(0, dtype=np.int64)

        def _column(points: Sequence[Optional[Coordinates]], attr: str) -> np.ndarray:
            return np.array(
                [getattr(p, attr) if p is not None else np.nan for p in points],
                dtype=float,
            )

        raw = haversine_km_vectorized(
            _column(origins, "latitude"),
            _column(origins, "longitude"),
            _column(destinations, "latitude"),
            _column(destinations, "longitude"),
        )
        fallback = np.where(
            np.asarray(domestic_flags, dtype=bool),
            self.default_domestic_km,
            self.default_international_km,
        )
        # Truncate toward zero like distance_km
        return np.where(np.isnan(raw), fallback, np.trunc(np.nan_to_num(raw))).astype(
            np.int64
        )
