# route_assembler.py
# Builds a multi-leg ActiveRoute from an ordered waypoint list, one
# directions request per consecutive pair.

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from .directions import DirectionsGateway
from .errors import AssemblyError, ProviderError
from .geo_utils import haversine_distance
from .models import ActiveRoute, LegStatus, NamedPoint, NavigationLeg, RouteResult, TravelMode
from .nav_config import LegFailurePolicy, NavConfig
from .units import format_distance, format_duration, parse_distance_m, parse_duration_min

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------

def leg_distance_m(result: RouteResult) -> float:
    if result.distance_meters is not None:
        return result.distance_meters
    return parse_distance_m(result.distance)


def leg_duration_min(result: RouteResult) -> float:
    if result.duration_seconds is not None:
        return result.duration_seconds / 60
    return parse_duration_min(result.duration)


def route_totals(legs: Sequence[NavigationLeg]) -> Tuple[str, str]:
    """(total_distance, total_duration) display strings summed over legs."""
    meters = sum(leg_distance_m(leg.result) for leg in legs)
    minutes = sum(leg_duration_min(leg.result) for leg in legs)
    return format_distance(meters), format_duration(minutes)


def placeholder_result(origin: NamedPoint, destination: NamedPoint, speed_ms: float, reason: str) -> RouteResult:
    """Straight-line stand-in used when directions are unavailable."""
    meters = haversine_distance(origin.location, destination.location)
    seconds = meters / speed_ms
    return RouteResult(
        distance=format_distance(meters),
        duration=format_duration(seconds / 60),
        distance_meters=meters,
        duration_seconds=seconds,
        coordinates=[origin.location, destination.location],
        warnings=[f"Directions unavailable, showing straight line: {reason}"],
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class RouteAssembler:
    """
    Requests directions for each waypoint pair and aggregates them.

    Args:
        gateway: Directions source, usually a CachedDirectionsGateway.
        config:  NavConfig instance (leg failure policy, language).
        clock:   Returns the current time; datetime.now by default.
    """

    def __init__(
        self,
        gateway: DirectionsGateway,
        config: Optional[NavConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.gateway = gateway
        self.config = config or NavConfig()
        self._now = clock

    async def create_route(
        self,
        waypoints: Sequence[NamedPoint],
        mode: TravelMode,
        trip_id: str,
    ) -> ActiveRoute:
        """
        Assemble an inactive route visiting waypoints in order.

        Legs are requested sequentially, so they are produced in
        origin-to-destination order.

        Raises:
            AssemblyError: Fewer than two waypoints, or a leg failed under
                           the abort policy.
        """
        if len(waypoints) < 2:
            raise AssemblyError(f"At least 2 waypoints are required, got {len(waypoints)}.")

        policy = self.config.leg_failure_policy
        logger.info(f"Assembling {mode.value} route through {len(waypoints)} waypoints.")
        legs: List[NavigationLeg] = []

        for origin, destination in zip(waypoints, waypoints[1:]):
            try:
                result = await self.gateway.get_route(
                    origin.location, destination.location, mode, self.config.language,
                )
            except ProviderError as e:
                if policy is LegFailurePolicy.ABORT:
                    raise AssemblyError(f"Leg {origin.name} → {destination.name} failed: {e}") from e
                if policy is LegFailurePolicy.SKIP:
                    logger.warning(f"Skipping leg {origin.name} → {destination.name}: {e}")
                    continue
                logger.warning(f"Using straight-line leg {origin.name} → {destination.name}: {e}")
                result = placeholder_result(origin, destination, self.config.speed_for(mode), str(e))

            legs.append(NavigationLeg(
                origin=origin,
                destination=destination,
                mode=mode,
                result=result,
                status=LegStatus.ACTIVE if not legs else LegStatus.PENDING,
            ))

        total_distance, total_duration = route_totals(legs)
        route = ActiveRoute(
            id=f"route_{uuid.uuid4().hex[:12]}",
            trip_id=trip_id,
            mode=mode,
            legs=legs,
            total_distance=total_distance,
            total_duration=total_duration,
            created_at=self._now(),
        )
        logger.info(
            f"Route {route.id} ready — {len(legs)}/{len(waypoints) - 1} legs, "
            f"{total_distance}, {total_duration}."
        )
        return route
