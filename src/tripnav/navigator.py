# navigator.py
# State machine that owns the lifecycle of one active route.
# Call load_route() / start() once, then advance legs as the traveler arrives.

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from .events import (
    EventEmitter, EventListener, LegCompleted, LegSkipped, NavigationEnded,
    NavigationEvent, NavigationPaused, NavigationResumed, NavigationStarted,
    RouteCompleted, RouteCreated, RouteRecalculated,
)
from .geo_utils import haversine_distance
from .models import (
    ActiveRoute, Coordinate, LegStatus, NavigationLeg, RouteProgress, RouteStatus,
)
from .nav_config import NavConfig
from .route_assembler import leg_duration_min, route_totals

logger = logging.getLogger(__name__)


class NavigationStateMachine:
    """
    Stateful lifecycle manager for a single navigation session.

    States: inactive → active → {paused ⇄ active} → completed.

    Usage:
        machine = NavigationStateMachine(config)
        machine.add_event_listener(print)
        machine.start(route)

        # On arrival at each destination:
        machine.complete_current_leg()
    """

    def __init__(
        self,
        config: Optional[NavConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config or NavConfig()
        self._now = clock
        self._route: Optional[ActiveRoute] = None
        self._events = EventEmitter()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_event_listener(self, callback: EventListener) -> None:
        self._events.add_event_listener(callback)

    def remove_event_listener(self, callback: EventListener) -> None:
        self._events.remove_event_listener(callback)

    def _emit(self, event: NavigationEvent) -> None:
        self._events.emit(event)

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def route(self) -> Optional[ActiveRoute]:
        return self._route

    @property
    def status(self) -> RouteStatus:
        return self._route.status if self._route else RouteStatus.INACTIVE

    @property
    def is_active(self) -> bool:
        return self.status is RouteStatus.ACTIVE

    def get_current_leg(self) -> Optional[NavigationLeg]:
        """The leg at current_leg_index, or None before loading / after completion."""
        return self._route.current_leg if self._route else None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load_route(self, route: ActiveRoute) -> None:
        """Take ownership of a freshly assembled route."""
        self._route = route
        self._emit(RouteCreated(route=route))

    def start(self, route: Optional[ActiveRoute] = None) -> bool:
        """
        Begin navigating the loaded route (or load and begin `route`).

        Returns:
            False when there is no route, it has no legs, or it was already
            started; True otherwise.
        """
        if route is not None and route is not self._route:
            self.load_route(route)

        route = self._route
        if route is None or not route.legs:
            logger.warning("Cannot start navigation: no route or no legs.")
            return False
        if route.status is not RouteStatus.INACTIVE:
            logger.warning(f"Cannot start navigation: route is {route.status.value}.")
            return False

        now = self._now()
        route.status = RouteStatus.ACTIVE
        route.started_at = now
        self._activate(route.legs[route.current_leg_index], now)

        leg = route.legs[route.current_leg_index]
        logger.info(f"Navigation started — {len(route.legs)} legs. First stop: {leg.destination.name}")
        self._emit(NavigationStarted(route=route, current_leg=leg))
        return True

    def pause(self) -> bool:
        if self._route is None or self._route.status is not RouteStatus.ACTIVE:
            return False
        self._route.status = RouteStatus.PAUSED
        logger.info("Navigation paused.")
        self._emit(NavigationPaused(route=self._route))
        return True

    def resume(self) -> bool:
        if self._route is None or self._route.status is not RouteStatus.PAUSED:
            return False
        self._route.status = RouteStatus.ACTIVE
        logger.info("Navigation resumed.")
        self._emit(NavigationResumed(route=self._route))
        return True

    def complete_current_leg(self) -> bool:
        """Mark the current leg completed and move to the next one."""
        return self._advance(LegStatus.COMPLETED)

    def skip_current_leg(self) -> bool:
        """Mark the current leg skipped and move to the next one."""
        return self._advance(LegStatus.SKIPPED)

    def end(self) -> Optional[ActiveRoute]:
        """Drop the current route and return it."""
        route = self._route
        if route is None:
            return None
        self._route = None
        logger.info(f"Navigation ended for route {route.id}.")
        self._emit(NavigationEnded(route=route))
        return route

    # ------------------------------------------------------------------
    # Leg advancement: the only place current_leg_index moves
    # ------------------------------------------------------------------

    def _activate(self, leg: NavigationLeg, now: datetime) -> None:
        leg.status = LegStatus.ACTIVE
        leg.actual_start_time = now
        leg.estimated_arrival_time = now + timedelta(minutes=leg_duration_min(leg.result))

    def _advance(self, final_status: LegStatus) -> bool:
        route = self._route
        if route is None or route.status is not RouteStatus.ACTIVE:
            return False
        leg = route.current_leg
        if leg is None:
            return False

        now = self._now()
        leg.status = final_status
        if final_status is LegStatus.COMPLETED:
            leg.actual_arrival_time = now

        route.current_leg_index += 1
        next_leg = route.current_leg

        if next_leg is not None:
            self._activate(next_leg, now)
            route.progress_percentage = 100.0 * route.current_leg_index / len(route.legs)
            logger.info(f"Leg {final_status.value}, advancing to: {next_leg.destination.name}")
        else:
            route.status = RouteStatus.COMPLETED
            route.completed_at = now
            route.progress_percentage = 100.0
            logger.info("Route completed!")

        if final_status is LegStatus.SKIPPED:
            self._emit(LegSkipped(route=route, skipped_leg=leg, next_leg=next_leg))
        elif next_leg is not None:
            self._emit(LegCompleted(route=route, completed_leg=leg, next_leg=next_leg))

        if next_leg is None:
            self._emit(RouteCompleted(route=route))
        return True

    def replace_remaining_legs(self, legs: Sequence[NavigationLeg]) -> bool:
        """
        Swap the current and all later legs for a freshly assembled set.

        Used when a recalculation is accepted. The first new leg becomes the
        active one and totals are recomputed. Legs already completed or
        skipped are rejected, since leg status never moves backwards.
        """
        route = self._route
        if route is None or not legs:
            return False
        if route.status not in (RouteStatus.ACTIVE, RouteStatus.PAUSED):
            return False
        if any(leg.status not in (LegStatus.PENDING, LegStatus.ACTIVE) for leg in legs):
            logger.warning("Cannot replace legs: incoming legs include finished ones.")
            return False

        index = route.current_leg_index
        replaced = len(route.legs) - index
        new_legs: List[NavigationLeg] = list(legs)
        for leg in new_legs:
            leg.status = LegStatus.PENDING
        self._activate(new_legs[0], self._now())

        route.legs = route.legs[:index] + new_legs
        route.total_distance, route.total_duration = route_totals(route.legs)
        route.progress_percentage = 100.0 * index / len(route.legs)

        logger.info(f"Route recalculated: {replaced} legs replaced by {len(new_legs)}.")
        self._emit(RouteRecalculated(route=route, replaced_legs=replaced))
        return True

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def calculate_progress(
        self, current_location: Coordinate, current_step_index: int = 0
    ) -> Optional[RouteProgress]:
        """
        Cheap straight-line progress estimate against the current leg.

        Returns:
            RouteProgress, or None when there is no current leg.
        """
        leg = self.get_current_leg()
        if leg is None:
            return None

        to_destination = haversine_distance(current_location, leg.destination.location)

        to_next_step = 0.0
        steps = leg.result.steps
        if 0 <= current_step_index < len(steps) and steps[current_step_index].end_location:
            to_next_step = haversine_distance(current_location, steps[current_step_index].end_location)

        return RouteProgress(
            current_leg=leg,
            current_step_index=current_step_index,
            distance_to_next_step=to_next_step,
            distance_to_destination=to_destination,
            estimated_time_to_destination=to_destination / self.config.speed_for(leg.mode),
            is_on_route=to_destination < self.config.on_route_cap_m,
            last_known_location=current_location,
        )
