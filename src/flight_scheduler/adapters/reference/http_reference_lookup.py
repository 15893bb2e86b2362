"""
HTTP Reference Lookup - reference-manager REST API client.

Implements ReferenceLookup and RouteWriter over httpx with a per-request
timeout. Route segment rows are validated with pandera before they are
turned into Route records. The client never retries; a timeout, transport
error or 5xx response becomes ReferenceServiceError.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pandas as pd
import pandera as pa

from src.flight_scheduler.ports.reference_lookup import (
    ReferenceLookup,
    ReferenceServiceError,
)
from src.flight_scheduler.ports.route_writer import RouteWriter
from src.flight_scheduler.schemas.reference import (
    Aircraft,
    Airline,
    Airport,
    Coordinates,
)
from src.flight_scheduler.schemas.route import (
    Route,
    RouteDraft,
    RouteKind,
    RouteSegment,
    RouteSegmentRowSchema,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
DEFAULT_TOKEN_TTL_SECONDS = 300.0

SEGMENT_COLUMNS = {
    "segmentOrder": "segment_order",
    "originAirportId": "origin_airport_id",
    "destinationAirportId": "destination_airport_id",
    "distance": "distance_km",
    "estimatedFlightTime": "estimated_minutes",
    "active": "active",
}


class ServiceTokenProvider:
    """
    Bearer token source with expiry.

    Either serves a static token or calls fetch_token, caching the result
    for ttl_seconds. invalidate() forces the next call to fetch again.

    Attributes:
        _static_token: Fixed token, if configured.
        _fetch_token: Callable returning (token, ttl_seconds or None).
        _default_ttl: Cache lifetime when the fetcher gives none.
        _clock: Monotonic time source.
    """

    def __init__(
        self,
        static_token: Optional[str] = None,
        fetch_token: Optional[Callable[[], Tuple[str, Optional[float]]]] = None,
        ttl_seconds: float = DEFAULT_TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._static_token = static_token
        self._fetch_token = fetch_token
        self._default_ttl = ttl_seconds
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at = 0.0
        self._lock = threading.Lock()

    def get_token(self) -> Optional[str]:
        """Current token, refreshed when expired; None when unauthenticated."""
        if self._fetch_token is None:
            return self._static_token

        with self._lock:
            if self._token is None or self._clock() >= self._expires_at:
                token, ttl = self._fetch_token()
                self._token = token
                self._expires_at = self._clock() + (ttl or self._default_ttl)
                logger.debug("Refreshed reference service token")
            return self._token

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
            self._expires_at = 0.0


def _unwrap(payload: Any) -> Any:
    """Strip the {'success': ..., 'data': ...} envelope if present."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _airport_from_payload(payload: Dict[str, Any]) -> Airport:
    coordinates = None
    latitude = payload.get("latitude")
    longitude = payload.get("longitude")
    if latitude is not None and longitude is not None:
        coordinates = Coordinates(float(latitude), float(longitude))

    country = payload.get("country")
    if isinstance(country, dict):
        country = country.get("code") or country.get("name")

    return Airport(
        id=int(payload["id"]),
        iata_code=payload.get("iataCode", ""),
        name=payload.get("name", ""),
        country=country,
        coordinates=coordinates,
        active=bool(payload.get("active", True)),
        icao_code=payload.get("icaoCode"),
    )


def _segment_rows(route_payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Segment rows of one route; a route without segments is one direct leg."""
    route_id = int(route_payload["id"])
    segments = route_payload.get("segments") or []
    if not segments:
        segments = [
            {
                "segmentOrder": 1,
                "originAirportId": route_payload.get("originAirportId"),
                "destinationAirportId": route_payload.get("destinationAirportId"),
                "distance": route_payload.get("distance", 0),
                "estimatedFlightTime": route_payload.get("estimatedFlightTime", 0),
                "active": route_payload.get("active", True),
            }
        ]

    rows = []
    for segment in segments:
        row = {target: segment.get(source) for source, target in SEGMENT_COLUMNS.items()}
        row["route_id"] = route_id
        if row["distance_km"] is None:
            row["distance_km"] = 0
        if row["estimated_minutes"] is None:
            row["estimated_minutes"] = 0
        if row["active"] is None:
            row["active"] = True
        rows.append(row)
    return rows


def routes_from_payload(payloads: List[Dict[str, Any]]) -> List[Route]:
    """
    Build Route records from route JSON objects.

    All segment rows are validated in one pass with RouteSegmentRowSchema.

    Raises:
        ReferenceServiceError: If a payload is malformed.
    """
    if not payloads:
        return []

    try:
        rows = [row for payload in payloads for row in _segment_rows(payload)]
        df = RouteSegmentRowSchema.validate(pd.DataFrame(rows))
    except (KeyError, TypeError, ValueError, pa.errors.SchemaError) as e:
        raise ReferenceServiceError(f"Malformed route payload: {e}") from e

    df = df.sort_values(["route_id", "segment_order"])
    segments_by_route: Dict[int, List[RouteSegment]] = {}
    for row in df.itertuples(index=False):
        segments_by_route.setdefault(int(row.route_id), []).append(
            RouteSegment(
                order=int(row.segment_order),
                origin_airport_id=int(row.origin_airport_id),
                destination_airport_id=int(row.destination_airport_id),
                distance_km=int(row.distance_km),
                estimated_minutes=int(row.estimated_minutes),
                active=bool(row.active),
                route_id=int(row.route_id),
            )
        )

    routes = []
    for payload in payloads:
        route_id = int(payload["id"])
        segments = tuple(segments_by_route[route_id])
        try:
            routes.append(
                Route(
                    id=route_id,
                    code=payload.get("routeCode", ""),
                    name=payload.get("routeName", ""),
                    kind=RouteKind(payload.get("routeType", RouteKind.INTERNATIONAL.value)),
                    segments=segments,
                    distance_km=int(
                        payload.get("distance") or sum(s.distance_km for s in segments)
                    ),
                    estimated_minutes=int(
                        payload.get("estimatedFlightTime")
                        or sum(s.estimated_minutes for s in segments)
                    ),
                    active=bool(payload.get("active", True)),
                    origin_airport_code=payload.get("originAirportCode"),
                    destination_airport_code=payload.get("destinationAirportCode"),
                )
            )
        except ValueError as e:
            raise ReferenceServiceError(f"Malformed route {route_id}: {e}") from e
    return routes


def draft_to_payload(
    draft: Union[RouteDraft, Route], active: Optional[bool] = None
) -> Dict[str, Any]:
    """
    JSON body for POST /routes and PUT /routes/{id}.

    The route and its segments travel together. active overrides the
    route-level flag, segments keep their own.
    """
    return {
        "routeCode": draft.code,
        "routeName": draft.name,
        "routeType": draft.kind.value,
        "distance": draft.distance_km,
        "estimatedFlightTime": draft.estimated_minutes,
        "active": draft.active if active is None else active,
        "originAirportId": draft.segments[0].origin_airport_id,
        "destinationAirportId": draft.segments[-1].destination_airport_id,
        "originAirportCode": draft.origin_airport_code,
        "destinationAirportCode": draft.destination_airport_code,
        "segments": [
            {
                "segmentOrder": s.order,
                "originAirportId": s.origin_airport_id,
                "destinationAirportId": s.destination_airport_id,
                "distance": s.distance_km,
                "estimatedFlightTime": s.estimated_minutes,
                "active": s.active,
            }
            for s in draft.segments
        ],
    }


class HttpReferenceLookup(ReferenceLookup, RouteWriter):
    """
    Reference-manager REST client.

    Attributes:
        _base_url: Service root, e.g. http://reference-manager:8081.
        _timeout: Per-request timeout in seconds.
        _tokens: Bearer token provider.
        _client: Lazily created httpx client.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        token_provider: Optional[ServiceTokenProvider] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Reference-manager root URL.
            timeout_seconds: Caller-imposed timeout for every request.
            token_provider: Source of bearer tokens. If None, sends none.
            transport: Optional custom httpx transport.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._tokens = token_provider or ServiceTokenProvider()
        self._transport = transport
        self._client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.Client(
                    base_url=self._base_url,
                    headers={"Accept": "application/json"},
                    timeout=httpx.Timeout(self._timeout),
                    transport=self._transport,
                )
            return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        with self._client_lock:
            if self._client is not None and not self._client.is_closed:
                self._client.close()
            self._client = None

    @property
    def name(self) -> str:
        return "Reference Manager API"

    # =========================================================================
    # Transport
    # =========================================================================

    def _headers(self) -> Dict[str, str]:
        token = self._tokens.get_token()
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _request(self, method: str, path: str, json: Any = None) -> Optional[Any]:
        """
        Send one request.

        A 401 invalidates the token and is sent once more with a fresh
        one; nothing else is repeated.

        Returns:
            Decoded (unwrapped) JSON body, or None on 404.

        Raises:
            ReferenceServiceError: Timeout, transport error, 4xx/5xx.
        """
        url = f"{API_PREFIX}{path}"
        start = time.perf_counter()
        try:
            response = self._get_client().request(
                method, url, json=json, headers=self._headers()
            )
            if response.status_code == 401:
                self._tokens.invalidate()
                response = self._get_client().request(
                    method, url, json=json, headers=self._headers()
                )
        except httpx.TimeoutException as e:
            raise ReferenceServiceError(f"{method} {url} timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise ReferenceServiceError(f"{method} {url} failed: {e}") from e

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug("%s %s -> %d in %.0fms", method, url, response.status_code, elapsed_ms)

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise ReferenceServiceError(
                f"{method} {url} returned {response.status_code}: {response.text[:200]}"
            )
        if not response.content:
            return None
        try:
            return _unwrap(response.json())
        except ValueError as e:
            raise ReferenceServiceError(f"{method} {url} returned invalid JSON") from e

    # =========================================================================
    # ReferenceLookup
    # =========================================================================

    def get_airport(self, airport_id: int) -> Optional[Airport]:
        payload = self._request("GET", f"/airports/{airport_id}")
        if payload is None:
            return None
        try:
            return _airport_from_payload(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise ReferenceServiceError(f"Malformed airport {airport_id}: {e}") from e

    def get_route(self, route_id: int) -> Optional[Route]:
        payload = self._request("GET", f"/routes/{route_id}")
        if payload is None:
            return None
        return routes_from_payload([payload])[0]

    def list_active_routes(self) -> List[Route]:
        payload = self._request("GET", "/routes/active")
        routes = routes_from_payload(payload or [])
        logger.debug("Loaded %d active routes", len(routes))
        return [r for r in routes if r.active]

    def get_airline(self, airline_id: int) -> Optional[Airline]:
        payload = self._request("GET", f"/airlines/{airline_id}")
        if payload is None:
            return None
        try:
            return Airline(
                id=int(payload["id"]),
                code=payload.get("iataCode") or payload.get("code", ""),
                name=payload.get("name", ""),
                active=bool(payload.get("active", True)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ReferenceServiceError(f"Malformed airline {airline_id}: {e}") from e

    def get_aircraft(self, aircraft_id: int) -> Optional[Aircraft]:
        payload = self._request("GET", f"/aircraft/{aircraft_id}")
        if payload is None:
            return None
        try:
            return Aircraft(
                id=int(payload["id"]),
                registration=payload.get("registrationNumber")
                or payload.get("registration", ""),
                status=payload.get("status", "ACTIVE"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ReferenceServiceError(f"Malformed aircraft {aircraft_id}: {e}") from e

    # =========================================================================
    # RouteWriter
    # =========================================================================

    def create_route(self, draft: RouteDraft) -> Route:
        """
        POST the route with its segments in one request.

        The reference manager stores them in a single transaction, so a
        failed call leaves nothing behind.
        """
        payload = self._request("POST", "/routes", json=draft_to_payload(draft))
        if payload is None:
            raise ReferenceServiceError(f"Route {draft.code} creation returned no body")
        if not payload.get("segments") and draft.is_multi_segment:
            try:
                return draft.to_route(int(payload["id"]))
            except (KeyError, TypeError, ValueError) as e:
                raise ReferenceServiceError(f"Malformed route payload: {e}") from e
        return routes_from_payload([payload])[0]

    def delete_route(self, route_id: int) -> None:
        self._request("DELETE", f"/routes/{route_id}")

    def activate_route(self, route_id: int) -> None:
        """PUT the stored route back with active=true."""
        route = self.get_route(route_id)
        if route is None:
            raise ReferenceServiceError(f"Route {route_id} not found")
        self._request("PUT", f"/routes/{route_id}", json=draft_to_payload(route, active=True))
