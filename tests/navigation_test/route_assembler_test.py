"""Tests for multi-leg route assembly."""

from datetime import datetime

import pytest

from tripnav.errors import AssemblyError
from tripnav.models import LegStatus, RouteStatus, TravelMode
from tripnav.nav_config import LegFailurePolicy, NavConfig
from tripnav.route_assembler import RouteAssembler, route_totals

from conftest import FakeGateway, make_route


def pair(waypoints, i):
    return waypoints[i].location, waypoints[i + 1].location


@pytest.mark.asyncio
async def test_rejects_fewer_than_two_waypoints(gateway, waypoints):
    assembler = RouteAssembler(gateway)

    for points in ([], waypoints[:1]):
        with pytest.raises(AssemblyError):
            await assembler.create_route(points, TravelMode.WALKING, "trip-1")

    assert gateway.calls == []


@pytest.mark.asyncio
async def test_builds_one_leg_per_pair(gateway, waypoints, clock):
    route = await RouteAssembler(gateway, clock=clock).create_route(waypoints, TravelMode.WALKING, "trip-1")

    assert len(route.legs) == 2
    assert [leg.status for leg in route.legs] == [LegStatus.ACTIVE, LegStatus.PENDING]
    assert route.legs[0].origin.name == "Hotel"
    assert route.legs[1].destination.name == "Market"
    assert route.status is RouteStatus.INACTIVE
    assert route.current_leg_index == 0
    assert route.progress_percentage == 0.0
    assert route.trip_id == "trip-1"
    assert route.id.startswith("route_")
    assert route.created_at == datetime(2024, 5, 1, 9, 0)
    assert route.date == "2024-05-01"


@pytest.mark.asyncio
async def test_totals_sum_every_leg(gateway, waypoints):
    route = await RouteAssembler(gateway).create_route(waypoints, TravelMode.WALKING, "trip-1")

    assert route.total_distance == "2.4 km"
    assert route.total_duration == "30 min"


@pytest.mark.asyncio
async def test_requests_follow_waypoint_order(gateway, waypoints):
    config = NavConfig(language="tr")
    await RouteAssembler(gateway, config).create_route(waypoints, TravelMode.DRIVING, "trip-1")

    assert [(o, d) for o, d, _, _ in gateway.calls] == [pair(waypoints, 0), pair(waypoints, 1)]
    assert all(mode is TravelMode.DRIVING for _, _, mode, _ in gateway.calls)
    assert all(lang == "tr" for _, _, _, lang in gateway.calls)


@pytest.mark.asyncio
async def test_route_ids_are_unique(gateway, waypoints):
    assembler = RouteAssembler(gateway)
    a = await assembler.create_route(waypoints, TravelMode.WALKING, "trip-1")
    b = await assembler.create_route(waypoints, TravelMode.WALKING, "trip-1")
    assert a.id != b.id


class TestLegFailure:

    @pytest.mark.asyncio
    async def test_skip_drops_failed_pair(self, waypoints):
        gw = FakeGateway(fail_on=[pair(waypoints, 1)])
        route = await RouteAssembler(gw).create_route(waypoints, TravelMode.WALKING, "trip-1")

        assert len(gw.calls) == 2
        assert len(route.legs) == 1
        assert route.legs[0].destination.name == "Museum"
        assert route.legs[0].status is LegStatus.ACTIVE
        assert route.total_distance == "1.2 km"

    @pytest.mark.asyncio
    async def test_skip_first_leg_makes_next_one_active(self, waypoints):
        gw = FakeGateway(fail_on=[pair(waypoints, 0)])
        route = await RouteAssembler(gw).create_route(waypoints, TravelMode.WALKING, "trip-1")

        assert len(route.legs) == 1
        assert route.legs[0].origin.name == "Museum"
        assert route.legs[0].status is LegStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_skip_all_failures_gives_empty_route(self, waypoints):
        gw = FakeGateway(fail_on=[pair(waypoints, 0), pair(waypoints, 1)])
        route = await RouteAssembler(gw).create_route(waypoints, TravelMode.WALKING, "trip-1")

        assert route.legs == []
        assert route.current_leg is None
        assert route.total_distance == "0 m"

    @pytest.mark.asyncio
    async def test_abort_stops_at_first_failure(self, waypoints):
        gw = FakeGateway(fail_on=[pair(waypoints, 0)])
        config = NavConfig(leg_failure_policy=LegFailurePolicy.ABORT)

        with pytest.raises(AssemblyError) as exc:
            await RouteAssembler(gw, config).create_route(waypoints, TravelMode.WALKING, "trip-1")

        assert "OVER_QUERY_LIMIT" in str(exc.value)
        assert len(gw.calls) == 1

    @pytest.mark.asyncio
    async def test_placeholder_keeps_leg_with_straight_line(self, waypoints):
        gw = FakeGateway(fail_on=[pair(waypoints, 1)])
        config = NavConfig(leg_failure_policy=LegFailurePolicy.PLACEHOLDER)

        route = await RouteAssembler(gw, config).create_route(waypoints, TravelMode.WALKING, "trip-1")

        assert len(route.legs) == 2
        placeholder = route.legs[1].result
        assert placeholder.coordinates == list(pair(waypoints, 1))
        assert placeholder.distance_meters == pytest.approx(1112, abs=1)
        assert placeholder.duration_seconds == pytest.approx(placeholder.distance_meters / 1.4)
        assert placeholder.steps == []
        assert "OVER_QUERY_LIMIT" in placeholder.warnings[0]


def test_route_totals_fall_back_to_display_strings():
    distance, duration = route_totals(make_route(leg_count=2).legs)
    assert distance == "2.2 km"
    assert duration == "28 min"
