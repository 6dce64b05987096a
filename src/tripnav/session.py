# session.py
# Public entry point for one navigation session.
# Owns no business logic; wires the assembler, state machine and detector.

import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence

from .deviation_detector import DeviationDetector
from .directions import CachedDirectionsGateway, DirectionsGateway
from .errors import AssemblyError
from .events import (
    EventListener, LegCompleted, LegSkipped, NavigationEnded, NavigationEvent,
    RouteCompleted, RouteRecalculated,
)
from .models import (
    ActiveRoute, Coordinate, DeviationResult, LocationFix, NamedPoint, RouteProgress,
    RouteStatus, TravelMode,
)
from .nav_config import LegFailurePolicy, NavConfig
from .nav_logger import NavLogger
from .navigator import NavigationStateMachine
from .route_assembler import RouteAssembler

logger = logging.getLogger(__name__)

_LEG_CHANGES = (LegCompleted, LegSkipped, RouteCompleted, RouteRecalculated, NavigationEnded)


@dataclass
class NavigationUpdate:
    """Returned by NavigationSession.update() for every accepted fix."""
    progress: RouteProgress
    deviation: DeviationResult
    arrived: bool


class NavigationSession:
    """
    High-level navigation facade, constructed once per session.

    Typical lifecycle:
        session = NavigationSession(GoogleDirectionsGateway(api_key))
        await session.plan(places, TravelMode.WALKING, trip_id="trip-1")
        session.start()

        # Location loop:
        update = session.update(fix)
        if update and update.deviation.suggest_recalculation:
            await session.recalculate(fix.coordinate)

    Args:
        gateway:    Directions source; wrapped in a cache.
        config:     Optional NavConfig; defaults to NavConfig().
        nav_logger: Optional NavLogger receiving events and verdicts.
    """

    def __init__(
        self,
        gateway: DirectionsGateway,
        config: Optional[NavConfig] = None,
        nav_logger: Optional[NavLogger] = None,
    ) -> None:
        self.config = config or NavConfig()
        self.gateway = CachedDirectionsGateway(gateway)

        # Specialist modules
        self._assembler = RouteAssembler(self.gateway, self.config)
        # A recalculated route must cover every remaining destination or none.
        self._recalc_assembler = RouteAssembler(
            self.gateway, replace(self.config, leg_failure_policy=LegFailurePolicy.ABORT),
        )
        self._machine = NavigationStateMachine(self.config)
        self._detector = DeviationDetector(self.config, self.gateway)
        self._logger = nav_logger
        self._step_index = 0

        self._machine.add_event_listener(self._on_event)
        if nav_logger is not None:
            self._machine.add_event_listener(nav_logger)

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def route(self) -> Optional[ActiveRoute]:
        return self._machine.route

    @property
    def machine(self) -> NavigationStateMachine:
        return self._machine

    @property
    def detector(self) -> DeviationDetector:
        return self._detector

    @property
    def is_active(self) -> bool:
        return self._machine.is_active

    @property
    def current_step_index(self) -> int:
        return self._step_index

    def add_event_listener(self, callback: EventListener) -> None:
        self._machine.add_event_listener(callback)

    def remove_event_listener(self, callback: EventListener) -> None:
        self._machine.remove_event_listener(callback)

    def _on_event(self, event: NavigationEvent) -> None:
        if isinstance(event, _LEG_CHANGES):
            self._detector.reset()
            self._step_index = 0

    # ------------------------------------------------------------------
    # Navigation control
    # ------------------------------------------------------------------

    async def plan(
        self,
        waypoints: Sequence[NamedPoint],
        mode: TravelMode,
        trip_id: str,
    ) -> ActiveRoute:
        """
        Assemble a route through waypoints and make it the session's route.

        Raises:
            AssemblyError: See RouteAssembler.create_route().
        """
        route = await self._assembler.create_route(waypoints, mode, trip_id)
        self._machine.load_route(route)
        if self._logger is not None:
            self._logger.save_route(route)
        return route

    def start(self) -> bool:
        return self._machine.start()

    def pause(self) -> bool:
        return self._machine.pause()

    def resume(self) -> bool:
        return self._machine.resume()

    def complete_current_leg(self) -> bool:
        return self._machine.complete_current_leg()

    def skip_current_leg(self) -> bool:
        return self._machine.skip_current_leg()

    def end(self) -> Optional[ActiveRoute]:
        """Stop navigating and drop the route; deviation history is cleared."""
        route = self._machine.end()
        self._detector.reset()
        self._step_index = 0
        return route

    # ------------------------------------------------------------------
    # Location update, call this on every fix
    # ------------------------------------------------------------------

    def update(self, fix: LocationFix) -> Optional[NavigationUpdate]:
        """
        Process a new location fix.

        Returns:
            NavigationUpdate, or None while navigation is not active.
        """
        if not self._machine.is_active:
            return None
        leg = self._machine.get_current_leg()
        if leg is None:
            return None

        deviation = self._detector.check_deviation(fix, leg.path, leg.mode)
        if self._logger is not None:
            self._logger.log_deviation(fix, deviation)

        progress = self._machine.calculate_progress(fix.coordinate, self._step_index)
        radius = self.config.arrival_radius_m

        if (
            progress.distance_to_next_step
            and progress.distance_to_next_step <= radius
            and self._step_index < len(leg.result.steps) - 1
        ):
            self._step_index += 1

        arrived = progress.distance_to_destination <= radius
        if arrived:
            logger.info(f"Arrived at destination: {leg.destination.name}")
            if self.config.auto_complete_on_arrival:
                self._machine.complete_current_leg()

        return NavigationUpdate(progress=progress, deviation=deviation, arrived=arrived)

    # ------------------------------------------------------------------
    # Recalculation
    # ------------------------------------------------------------------

    async def recalculate(self, current_location: Coordinate) -> bool:
        """
        Replace the remaining legs with a route starting at current_location.

        Returns:
            True if the new legs were accepted; False on any failure, in
            which case the existing route is left untouched.
        """
        route = self._machine.route
        leg = self._machine.get_current_leg()
        if route is None or leg is None:
            return False
        if route.status not in (RouteStatus.ACTIVE, RouteStatus.PAUSED):
            return False

        waypoints = [NamedPoint(current_location, "Current location")] + route.remaining_destinations
        try:
            fresh = await self._recalc_assembler.create_route(waypoints, leg.mode, route.trip_id)
        except AssemblyError as e:
            logger.error(f"Recalculation failed, keeping current route: {e}")
            return False

        return self._machine.replace_remaining_legs(fresh.legs)
