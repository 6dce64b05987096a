"""Shared fixtures for the navigation core tests."""

import math
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Set, Tuple

import pytest

from tripnav.directions import DirectionsGateway
from tripnav.errors import ProviderError
from tripnav.geo_utils import EARTH_RADIUS_M
from tripnav.models import (
    ActiveRoute, Coordinate, LegStatus, LocationFix, NamedPoint, NavigationLeg,
    NavigationStep, RouteResult, StepType, TravelMode,
)


# A north-south path along the prime meridian. At the equator a pure
# longitude offset of x metres is x metres away from it.
PATH = [Coordinate(0.0, 0.0), Coordinate(0.01, 0.0)]


def east_of_path(meters: float, lat: float = 0.005) -> Coordinate:
    return Coordinate(lat, math.degrees(meters / EARTH_RADIUS_M))


def fix_at(meters: float, timestamp: float, accuracy: Optional[float] = 5.0) -> LocationFix:
    point = east_of_path(meters)
    return LocationFix(point.lat, point.lng, timestamp=timestamp, accuracy=accuracy)


class FakeGateway(DirectionsGateway):
    """Records every request; fails for the configured (origin, destination) pairs."""

    def __init__(
        self,
        fail_on: Sequence[Tuple[Coordinate, Coordinate]] = (),
        distance: str = "1.2 km",
        duration: str = "15 mins",
    ) -> None:
        self.calls: List[Tuple[Coordinate, Coordinate, TravelMode, str]] = []
        self.fail_on: Set[Tuple[Coordinate, Coordinate]] = set(fail_on)
        self.distance = distance
        self.duration = duration

    async def get_route(self, origin, destination, mode, language="en"):
        self.calls.append((origin, destination, mode, language))
        if (origin, destination) in self.fail_on:
            raise ProviderError("OVER_QUERY_LIMIT", provider="fake")
        return RouteResult(
            distance=self.distance,
            duration=self.duration,
            coordinates=[origin, destination],
            steps=[NavigationStep(
                type=StepType.WALKING,
                instruction="Head north",
                distance=self.distance,
                duration=self.duration,
                maneuver="straight",
                end_location=destination,
            )],
        )


class FakeClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 9, 0)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(minutes=1)
        return current


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def waypoints():
    return [
        NamedPoint(Coordinate(0.0, 0.0), "Hotel", "place-hotel"),
        NamedPoint(Coordinate(0.01, 0.0), "Museum", "place-museum"),
        NamedPoint(Coordinate(0.02, 0.0), "Market", "place-market"),
    ]


def make_route(leg_count: int = 3, mode: TravelMode = TravelMode.WALKING) -> ActiveRoute:
    """An inactive route of straight legs heading north along the meridian."""
    points = [NamedPoint(Coordinate(0.01 * i, 0.0), f"Stop {i}") for i in range(leg_count + 1)]
    legs = [
        NavigationLeg(
            origin=a,
            destination=b,
            mode=mode,
            result=RouteResult(
                distance="1.1 km",
                duration="14 mins",
                coordinates=[a.location, b.location],
            ),
            status=LegStatus.ACTIVE if i == 0 else LegStatus.PENDING,
        )
        for i, (a, b) in enumerate(zip(points, points[1:]))
    ]
    return ActiveRoute(
        id="route_test",
        trip_id="trip-1",
        mode=mode,
        legs=legs,
        total_distance="3.3 km",
        total_duration="42 min",
        created_at=datetime(2024, 5, 1, 8, 0),
    )
