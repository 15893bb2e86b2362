"""
Tests for RouteMatcher.

Tests cover:
- Direct matches are exact and order-sensitive
- Chain matches require identical legs in identical order
- Inactive routes never match
- Lookup failures surface as InvalidReferenceError
"""

from unittest.mock import MagicMock

import pytest

from src.flight_scheduler.exceptions import InvalidReferenceError
from src.flight_scheduler.ports.reference_lookup import ReferenceServiceError
from src.flight_scheduler.schemas.requests import AirportSegment
from src.flight_scheduler.schemas.route import Route, RouteKind, RouteSegment
from src.flight_scheduler.services.route_matcher import (
    RouteMatcher,
    is_chain_match,
    is_direct_match,
)
from tests.conftest import ANK, IST, IZM


def make_route(route_id, pairs, active=True) -> Route:
    segments = tuple(
        RouteSegment(order=i, origin_airport_id=o, destination_airport_id=d)
        for i, (o, d) in enumerate(pairs, start=1)
    )
    return Route(route_id, f"R{route_id}", f"Route {route_id}", RouteKind.DOMESTIC,
                 segments, 0, 0, active=active)


def chain(*pairs) -> list[AirportSegment]:
    return [
        AirportSegment(segment_order=i, origin_airport_id=o, destination_airport_id=d)
        for i, (o, d) in enumerate(pairs, start=1)
    ]


@pytest.fixture
def matcher_with_routes(reference_data):
    def _build(*routes):
        for route in routes:
            reference_data.add_route(route)
        return RouteMatcher(reference_data)

    return _build


# =============================================================================
# PURE MATCH PREDICATES
# =============================================================================


class TestMatchPredicates:
    def test_direct_match_exact_pair(self):
        route = make_route(1, [(IST, ANK)])

        assert is_direct_match(route, IST, ANK)
        assert not is_direct_match(route, ANK, IST)

    def test_chain_route_is_not_a_direct_match(self):
        route = make_route(1, [(IST, ANK), (ANK, IZM)])

        assert not is_direct_match(route, IST, ANK)

    def test_chain_match_requires_same_length(self):
        route = make_route(1, [(IST, ANK), (ANK, IZM)])

        assert is_chain_match(route, chain((IST, ANK), (ANK, IZM)))
        assert not is_chain_match(route, chain((IST, ANK)))

    def test_direct_route_is_not_a_chain_match(self):
        route = make_route(1, [(IST, ANK)])

        assert not is_chain_match(route, chain((IST, ANK)))


# =============================================================================
# MATCHER
# =============================================================================


class TestFindDirect:
    def test_finds_existing_route(self, matcher_with_routes):
        matcher = matcher_with_routes(make_route(10, [(IST, ANK)]))

        route = matcher.find_direct(IST, ANK)

        assert route is not None and route.id == 10

    def test_reversed_route_does_not_match(self, matcher_with_routes):
        """An existing ANK->IST route is not reused for IST->ANK."""
        matcher = matcher_with_routes(make_route(10, [(ANK, IST)]))

        assert matcher.find_direct(IST, ANK) is None

    def test_inactive_route_ignored(self, matcher_with_routes):
        matcher = matcher_with_routes(make_route(10, [(IST, ANK)], active=False))

        assert matcher.find_direct(IST, ANK) is None

    def test_no_routes_returns_none(self, matcher_with_routes):
        assert matcher_with_routes().find_direct(IST, ANK) is None


class TestFindChain:
    def test_identical_chain_matches(self, matcher_with_routes):
        matcher = matcher_with_routes(
            make_route(10, [(IST, ANK)]),
            make_route(11, [(IST, ANK), (ANK, IZM)]),
        )

        route = matcher.find_chain(chain((IST, ANK), (ANK, IZM)))

        assert route is not None and route.id == 11

    def test_reversed_chain_does_not_match(self, matcher_with_routes):
        matcher = matcher_with_routes(make_route(11, [(IST, ANK), (ANK, IZM)]))

        assert matcher.find_chain(chain((IZM, ANK), (ANK, IST))) is None

    def test_prefix_does_not_match(self, matcher_with_routes):
        matcher = matcher_with_routes(make_route(11, [(IST, ANK), (ANK, IZM), (IZM, IST)]))

        assert matcher.find_chain(chain((IST, ANK), (ANK, IZM))) is None


class TestLookupFailure:
    def test_service_error_wrapped(self):
        """Lookup failures are not retried and carry the cause."""
        reference = MagicMock()
        reference.list_active_routes.side_effect = ReferenceServiceError("timeout")
        matcher = RouteMatcher(reference)

        with pytest.raises(InvalidReferenceError) as exc_info:
            matcher.find_direct(IST, ANK)

        assert isinstance(exc_info.value.__cause__, ReferenceServiceError)
        assert reference.list_active_routes.call_count == 1
