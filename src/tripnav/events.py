# events.py
# Typed navigation events and the listener registry that broadcasts them.

import logging
from dataclasses import dataclass
from typing import Callable, ClassVar, Dict, Optional, Union

from .models import ActiveRoute, NavigationLeg

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event kinds
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RouteCreated:
    type: ClassVar[str] = "route_created"
    route: ActiveRoute


@dataclass(frozen=True)
class NavigationStarted:
    type: ClassVar[str] = "navigation_started"
    route: ActiveRoute
    current_leg: NavigationLeg


@dataclass(frozen=True)
class LegCompleted:
    type: ClassVar[str] = "leg_completed"
    route: ActiveRoute
    completed_leg: NavigationLeg
    next_leg: NavigationLeg


@dataclass(frozen=True)
class LegSkipped:
    type: ClassVar[str] = "leg_skipped"
    route: ActiveRoute
    skipped_leg: NavigationLeg
    next_leg: Optional[NavigationLeg]


@dataclass(frozen=True)
class RouteCompleted:
    type: ClassVar[str] = "route_completed"
    route: ActiveRoute


@dataclass(frozen=True)
class NavigationPaused:
    type: ClassVar[str] = "navigation_paused"
    route: ActiveRoute


@dataclass(frozen=True)
class NavigationResumed:
    type: ClassVar[str] = "navigation_resumed"
    route: ActiveRoute


@dataclass(frozen=True)
class RouteRecalculated:
    type: ClassVar[str] = "route_recalculated"
    route: ActiveRoute
    replaced_legs: int


@dataclass(frozen=True)
class NavigationEnded:
    type: ClassVar[str] = "navigation_ended"
    route: ActiveRoute


NavigationEvent = Union[
    RouteCreated,
    NavigationStarted,
    LegCompleted,
    LegSkipped,
    RouteCompleted,
    NavigationPaused,
    NavigationResumed,
    RouteRecalculated,
    NavigationEnded,
]

EventListener = Callable[[NavigationEvent], None]


def event_to_dict(event: NavigationEvent) -> dict:
    """Flatten an event into a JSON-friendly summary."""
    route = event.route
    entry = {
        "type": event.type,
        "route_id": route.id,
        "route_status": route.status.value,
        "current_leg_index": route.current_leg_index,
        "progress_percentage": route.progress_percentage,
    }
    if isinstance(event, LegCompleted):
        entry["completed"] = event.completed_leg.destination.name
        entry["next"] = event.next_leg.destination.name
    elif isinstance(event, LegSkipped):
        entry["skipped"] = event.skipped_leg.destination.name
        entry["next"] = event.next_leg.destination.name if event.next_leg else None
    elif isinstance(event, RouteRecalculated):
        entry["replaced_legs"] = event.replaced_legs
    return entry


# ---------------------------------------------------------------------------
# Listener registry
# ---------------------------------------------------------------------------

class EventEmitter:
    """
    Synchronous observer registry.

    Listeners are kept in an insertion-ordered dict, so registration and
    removal are O(1) and emission runs in registration order.
    """

    def __init__(self) -> None:
        self._listeners: Dict[EventListener, None] = {}

    def add_event_listener(self, callback: EventListener) -> None:
        self._listeners[callback] = None

    def remove_event_listener(self, callback: EventListener) -> None:
        self._listeners.pop(callback, None)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def emit(self, event: NavigationEvent) -> None:
        for callback in list(self._listeners):
            try:
                callback(event)
            except Exception:
                logger.exception(f"Listener {callback!r} failed on '{event.type}' event.")
