"""
Tests for the reference data adapters.

Tests cover:
- InMemoryReferenceData lookups, id allocation and route deletion
- HttpReferenceLookup payload mapping (envelope, camelCase, segments)
- HTTP error handling (404, 5xx, timeouts, malformed payloads)
- Bearer tokens: static, cached with expiry, refreshed once after 401
"""

import json
from dataclasses import replace

import httpx
import pytest
import respx

from src.flight_scheduler.adapters.reference.http_reference_lookup import (
    HttpReferenceLookup,
    ServiceTokenProvider,
    draft_to_payload,
    routes_from_payload,
)
from src.flight_scheduler.adapters.reference.in_memory_reference import (
    InMemoryReferenceData,
)
from src.flight_scheduler.ports.reference_lookup import ReferenceServiceError
from src.flight_scheduler.schemas.route import (
    Route,
    RouteDraft,
    RouteKind,
    RouteSegment,
)

BASE_URL = "http://reference.test"
API = f"{BASE_URL}/api/v1"


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def lookup():
    client = HttpReferenceLookup(BASE_URL, timeout_seconds=1.0)
    yield client
    client.close()


@pytest.fixture
def chain_draft() -> RouteDraft:
    return RouteDraft(
        code="IST-IZM-M2-1234",
        name="TK123 Multi-Segment Route",
        kind=RouteKind.DOMESTIC,
        segments=(
            RouteSegment(1, 1, 2, 349, 27),
            RouteSegment(2, 2, 3, 520, 39),
        ),
        distance_km=869,
        estimated_minutes=156,
        origin_airport_code="IST",
        destination_airport_code="IZM",
    )


def route_payload(route_id=7, segments=None, **overrides) -> dict:
    payload = {
        "id": route_id,
        "routeCode": "IST-ANK-D1",
        "routeName": "Istanbul to Ankara",
        "routeType": "DOMESTIC",
        "originAirportId": 1,
        "destinationAirportId": 2,
        "distance": 349,
        "estimatedFlightTime": 27,
        "active": True,
    }
    if segments is not None:
        payload["segments"] = segments
    payload.update(overrides)
    return payload


# =============================================================================
# IN-MEMORY
# =============================================================================


class TestInMemoryReferenceData:
    def test_generated_ids_skip_seeded_routes(self, chain_draft):
        seeded = Route(5, "X", "x", RouteKind.DOMESTIC, (RouteSegment(1, 1, 2),), 1, 1)
        reference = InMemoryReferenceData(routes=[seeded])

        created = reference.create_route(chain_draft)

        assert created.id == 6
        assert all(s.route_id == 6 for s in created.segments)
        assert reference.route_count == 2

    def test_inactive_routes_not_listed(self):
        reference = InMemoryReferenceData(
            routes=[
                Route(1, "A", "a", RouteKind.DOMESTIC, (RouteSegment(1, 1, 2),), 1, 1),
                Route(2, "B", "b", RouteKind.DOMESTIC, (RouteSegment(1, 2, 1),), 1, 1,
                      active=False),
            ]
        )

        assert [r.id for r in reference.list_active_routes()] == [1]
        assert reference.get_route(2) is not None

    def test_delete_route_is_idempotent(self, chain_draft):
        reference = InMemoryReferenceData()
        route = reference.create_route(chain_draft)

        reference.delete_route(route.id)
        reference.delete_route(route.id)

        assert reference.get_route(route.id) is None

    def test_activate_route_makes_it_matchable(self, chain_draft):
        reference = InMemoryReferenceData()
        route = reference.create_route(replace(chain_draft, active=False))
        assert reference.list_active_routes() == []

        reference.activate_route(route.id)

        assert [r.id for r in reference.list_active_routes()] == [route.id]
        assert reference.get_route(route.id).segment_count == 2

    def test_activate_unknown_route_raises(self):
        with pytest.raises(ReferenceServiceError, match="Route 9 not found"):
            InMemoryReferenceData().activate_route(9)

    def test_unknown_ids_return_none(self):
        reference = InMemoryReferenceData()

        assert reference.get_airport(1) is None
        assert reference.get_airline(1) is None
        assert reference.get_aircraft(1) is None


# =============================================================================
# PAYLOAD MAPPING
# =============================================================================


class TestRoutesFromPayload:
    def test_route_without_segments_is_direct(self):
        (route,) = routes_from_payload([route_payload()])

        assert route.is_direct
        assert route.segments[0].endpoints == (1, 2)
        assert route.segments[0].distance_km == 349
        assert route.kind is RouteKind.DOMESTIC

    def test_segments_sorted_by_order(self):
        (route,) = routes_from_payload([
            route_payload(
                segments=[
                    {"segmentOrder": 2, "originAirportId": 2, "destinationAirportId": 3,
                     "distance": 520, "estimatedFlightTime": 39},
                    {"segmentOrder": 1, "originAirportId": 1, "destinationAirportId": 2,
                     "distance": 349, "estimatedFlightTime": 27},
                ],
                destinationAirportId=3,
            )
        ])

        assert route.endpoint_pairs == ((1, 2), (2, 3))
        assert route.origin_airport_id == 1
        assert route.destination_airport_id == 3

    def test_segment_with_same_endpoints_rejected(self):
        with pytest.raises(ReferenceServiceError, match="Malformed"):
            routes_from_payload([route_payload(destinationAirportId=1)])

    def test_missing_id_rejected(self):
        with pytest.raises(ReferenceServiceError):
            routes_from_payload([{"routeCode": "X"}])

    def test_draft_payload_carries_segments(self, chain_draft):
        payload = draft_to_payload(chain_draft)

        assert payload["routeType"] == "DOMESTIC"
        assert payload["originAirportId"] == 1
        assert payload["destinationAirportId"] == 3
        assert [s["segmentOrder"] for s in payload["segments"]] == [1, 2]


# =============================================================================
# HTTP CLIENT
# =============================================================================


class TestHttpLookups:
    @respx.mock
    def test_airport_envelope_unwrapped(self, lookup):
        respx.get(f"{API}/airports/1").mock(
            return_value=httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "id": 1,
                        "iataCode": "IST",
                        "name": "Istanbul Airport",
                        "country": {"code": "TR"},
                        "latitude": 41.2753,
                        "longitude": 28.7519,
                    },
                },
            )
        )

        airport = lookup.get_airport(1)

        assert airport.iata_code == "IST"
        assert airport.country == "TR"
        assert airport.coordinates.latitude == pytest.approx(41.2753)
        assert airport.active

    @respx.mock
    def test_airport_without_coordinates(self, lookup):
        respx.get(f"{API}/airports/6").mock(
            return_value=httpx.Response(200, json={"id": 6, "iataCode": "NOC"})
        )

        assert lookup.get_airport(6).coordinates is None

    @respx.mock
    def test_not_found_is_none(self, lookup):
        respx.get(f"{API}/routes/404").mock(return_value=httpx.Response(404))

        assert lookup.get_route(404) is None

    @respx.mock
    def test_active_routes_filtered(self, lookup):
        respx.get(f"{API}/routes/active").mock(
            return_value=httpx.Response(
                200,
                json=[route_payload(1), route_payload(2, active=False)],
            )
        )

        assert [r.id for r in lookup.list_active_routes()] == [1]

    @respx.mock
    def test_airline_and_aircraft(self, lookup):
        respx.get(f"{API}/airlines/1").mock(
            return_value=httpx.Response(
                200, json={"id": 1, "iataCode": "TK", "name": "Turkish", "active": False}
            )
        )
        respx.get(f"{API}/aircraft/2").mock(
            return_value=httpx.Response(
                200, json={"id": 2, "registrationNumber": "TC-JNB", "status": "MAINTENANCE"}
            )
        )

        assert not lookup.get_airline(1).active
        aircraft = lookup.get_aircraft(2)
        assert aircraft.registration == "TC-JNB"
        assert not aircraft.active


class TestHttpRouteWriter:
    @respx.mock
    def test_create_route_posts_segments(self, lookup, chain_draft):
        route = respx.post(f"{API}/routes").mock(
            return_value=httpx.Response(201, json={"data": {"id": 42}})
        )

        created = lookup.create_route(chain_draft)

        assert created.id == 42
        assert created.segment_count == 2
        sent = route.calls[0].request
        assert b'"segmentOrder":2' in sent.content.replace(b" ", b"")

    @respx.mock
    def test_create_direct_route_uses_response(self, lookup):
        respx.post(f"{API}/routes").mock(
            return_value=httpx.Response(201, json=route_payload(43))
        )
        draft = RouteDraft("IST-ANK-D1", "x", RouteKind.DOMESTIC,
                           (RouteSegment(1, 1, 2, 349, 27),), 349, 27)

        created = lookup.create_route(draft)

        assert created.id == 43
        assert created.is_direct

    @respx.mock
    def test_delete_route(self, lookup):
        route = respx.delete(f"{API}/routes/42").mock(return_value=httpx.Response(204))

        lookup.delete_route(42)

        assert route.called

    @respx.mock
    def test_activate_route_puts_route_back_active(self, lookup):
        respx.get(f"{API}/routes/42").mock(
            return_value=httpx.Response(200, json=route_payload(42, active=False))
        )
        put = respx.put(f"{API}/routes/42").mock(return_value=httpx.Response(200))

        lookup.activate_route(42)

        sent = json.loads(put.calls[0].request.content)
        assert sent["active"] is True
        assert sent["routeCode"] == "IST-ANK-D1"
        assert sent["segments"][0]["originAirportId"] == 1

    @respx.mock
    def test_activate_missing_route_raises(self, lookup):
        respx.get(f"{API}/routes/42").mock(return_value=httpx.Response(404))
        put = respx.put(f"{API}/routes/42")

        with pytest.raises(ReferenceServiceError, match="Route 42 not found"):
            lookup.activate_route(42)

        assert not put.called


class TestHttpErrors:
    @respx.mock
    def test_server_error_raises(self, lookup):
        route = respx.get(f"{API}/airports/1").mock(return_value=httpx.Response(503))

        with pytest.raises(ReferenceServiceError, match="503"):
            lookup.get_airport(1)

        assert route.call_count == 1

    @respx.mock
    def test_timeout_raises_without_retry(self, lookup):
        route = respx.get(f"{API}/routes/active").mock(
            side_effect=httpx.ReadTimeout("slow")
        )

        with pytest.raises(ReferenceServiceError, match="timed out"):
            lookup.list_active_routes()

        assert route.call_count == 1

    @respx.mock
    def test_connection_error_raises(self, lookup):
        respx.get(f"{API}/airlines/1").mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(ReferenceServiceError, match="failed"):
            lookup.get_airline(1)

    @respx.mock
    def test_invalid_json_raises(self, lookup):
        respx.get(f"{API}/airports/1").mock(
            return_value=httpx.Response(200, content=b"<html>")
        )

        with pytest.raises(ReferenceServiceError, match="invalid JSON"):
            lookup.get_airport(1)


class TestTokens:
    def test_static_token(self):
        assert ServiceTokenProvider(static_token="abc").get_token() == "abc"

    def test_fetched_token_cached_until_expiry(self):
        now = [0.0]
        issued = iter(["t1", "t2"])
        provider = ServiceTokenProvider(
            fetch_token=lambda: (next(issued), 60), clock=lambda: now[0]
        )

        assert provider.get_token() == "t1"
        now[0] = 30.0
        assert provider.get_token() == "t1"
        now[0] = 61.0
        assert provider.get_token() == "t2"

    @respx.mock
    def test_unauthorized_refreshes_token_once(self):
        issued = iter(["stale", "fresh"])
        provider = ServiceTokenProvider(fetch_token=lambda: (next(issued), None))
        lookup = HttpReferenceLookup(BASE_URL, token_provider=provider)
        route = respx.get(f"{API}/airports/1").mock(
            side_effect=[
                httpx.Response(401),
                httpx.Response(200, json={"id": 1, "iataCode": "IST"}),
            ]
        )

        airport = lookup.get_airport(1)

        assert airport.iata_code == "IST"
        assert route.call_count == 2
        assert route.calls[0].request.headers["Authorization"] == "Bearer stale"
        assert route.calls[1].request.headers["Authorization"] == "Bearer fresh"
        lookup.close()

    @respx.mock
    def test_repeated_unauthorized_raises(self):
        lookup = HttpReferenceLookup(
            BASE_URL, token_provider=ServiceTokenProvider(static_token="bad")
        )
        route = respx.get(f"{API}/airports/1").mock(return_value=httpx.Response(401))

        with pytest.raises(ReferenceServiceError, match="401"):
            lookup.get_airport(1)

        assert route.call_count == 2
        lookup.close()
