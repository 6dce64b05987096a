# models.py
# Shared data structures and enums used across all modules.

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TravelMode(Enum):
    WALKING   = "walking"
    DRIVING   = "driving"
    TRANSIT   = "transit"
    BICYCLING = "bicycling"


class StepType(Enum):
    WALKING = "walking"
    DRIVING = "driving"
    TRANSIT = "transit"


class LegStatus(Enum):
    PENDING   = "pending"
    ACTIVE    = "active"
    COMPLETED = "completed"
    SKIPPED   = "skipped"


class RouteStatus(Enum):
    INACTIVE  = "inactive"
    ACTIVE    = "active"
    PAUSED    = "paused"
    COMPLETED = "completed"


# ---------------------------------------------------------------------------
# Coordinates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coordinate:
    """Immutable geographic coordinate."""
    lat: float
    lng: float

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class LocationFix:
    """One reading from the device location sensor."""
    lat: float
    lng: float
    timestamp: float                     # seconds, consistent within a session
    accuracy: Optional[float] = None     # metres, horizontal uncertainty

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)

    def to_dict(self) -> dict:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "timestamp": self.timestamp,
            "accuracy": self.accuracy,
        }


@dataclass(frozen=True)
class NamedPoint:
    """A waypoint: a place the route must pass through."""
    location: Coordinate
    name: str
    place_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "location": self.location.to_dict(),
            "name": self.name,
            "place_id": self.place_id,
        }


# ---------------------------------------------------------------------------
# Directions results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TransitStop:
    name: str
    location: Optional[Coordinate] = None


@dataclass(frozen=True)
class TransitDetails:
    """Line and stop information for a public transport step."""
    departure_stop: Optional[TransitStop] = None
    arrival_stop: Optional[TransitStop] = None
    line_name: Optional[str] = None
    line_short_name: Optional[str] = None
    line_color: Optional[str] = None
    vehicle_type: Optional[str] = None   # "BUS" | "SUBWAY" | "TRAIN" | "TRAM" | "FERRY"
    headsign: Optional[str] = None
    num_stops: Optional[int] = None
    departure_time: Optional[str] = None
    arrival_time: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "departure_stop": self.departure_stop.name if self.departure_stop else None,
            "arrival_stop": self.arrival_stop.name if self.arrival_stop else None,
            "line": self.line_short_name or self.line_name,
            "vehicle_type": self.vehicle_type,
            "headsign": self.headsign,
            "num_stops": self.num_stops,
        }


@dataclass(frozen=True)
class NavigationStep:
    """A single navigation instruction within a leg."""
    type: StepType
    instruction: str
    distance: str                        # e.g. "500 m"
    duration: str                        # e.g. "2 mins"
    maneuver: Optional[str] = None       # e.g. "turn-left"
    street_name: Optional[str] = None
    start_location: Optional[Coordinate] = None
    end_location: Optional[Coordinate] = None
    transit_details: Optional[TransitDetails] = None

    def to_dict(self) -> dict:
        d = {
            "type": self.type.value,
            "instruction": self.instruction,
            "distance": self.distance,
            "duration": self.duration,
        }
        if self.type is StepType.TRANSIT:
            d["transit_details"] = self.transit_details.to_dict() if self.transit_details else None
        else:
            d["maneuver"] = self.maneuver
            d["street_name"] = self.street_name
        return d


@dataclass(frozen=True)
class Fare:
    currency: str
    value: float
    text: str


@dataclass(frozen=True)
class RouteResult:
    """Directions for one origin→destination pair under one travel mode."""
    distance: str
    duration: str
    coordinates: List[Coordinate]
    steps: List[NavigationStep] = field(default_factory=list)
    distance_meters: Optional[float] = None
    duration_seconds: Optional[float] = None
    route_polyline: Optional[str] = None
    fare: Optional[Fare] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "distance": self.distance,
            "duration": self.duration,
            "distance_meters": self.distance_meters,
            "duration_seconds": self.duration_seconds,
            "point_count": len(self.coordinates),
            "steps": [s.to_dict() for s in self.steps],
            "fare": self.fare.text if self.fare else None,
            "warnings": list(self.warnings),
        }


# ---------------------------------------------------------------------------
# Active route
# ---------------------------------------------------------------------------

@dataclass
class NavigationLeg:
    """One origin→destination hop of an active route."""
    origin: NamedPoint
    destination: NamedPoint
    mode: TravelMode
    result: RouteResult
    status: LegStatus = LegStatus.PENDING
    actual_start_time: Optional[datetime] = None
    actual_arrival_time: Optional[datetime] = None
    estimated_arrival_time: Optional[datetime] = None

    @property
    def path(self) -> List[Coordinate]:
        return self.result.coordinates

    def to_dict(self) -> dict:
        return {
            "origin": self.origin.to_dict(),
            "destination": self.destination.to_dict(),
            "mode": self.mode.value,
            "status": self.status.value,
            "result": self.result.to_dict(),
            "actual_start_time": _iso(self.actual_start_time),
            "actual_arrival_time": _iso(self.actual_arrival_time),
            "estimated_arrival_time": _iso(self.estimated_arrival_time),
        }


@dataclass
class ActiveRoute:
    """
    A full navigation session over an ordered list of legs.

    current_leg_index stays within [0, len(legs)] and only equals len(legs)
    once the route is completed.
    """
    id: str
    trip_id: str
    mode: TravelMode
    legs: List[NavigationLeg]
    total_distance: str
    total_duration: str
    created_at: datetime
    current_leg_index: int = 0
    status: RouteStatus = RouteStatus.INACTIVE
    progress_percentage: float = 0.0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def date(self) -> str:
        return self.created_at.date().isoformat()

    @property
    def current_leg(self) -> Optional[NavigationLeg]:
        if 0 <= self.current_leg_index < len(self.legs):
            return self.legs[self.current_leg_index]
        return None

    @property
    def remaining_destinations(self) -> List[NamedPoint]:
        """Destinations of the current leg and every leg after it."""
        return [leg.destination for leg in self.legs[self.current_leg_index:]]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "trip_id": self.trip_id,
            "date": self.date,
            "mode": self.mode.value,
            "status": self.status.value,
            "current_leg_index": self.current_leg_index,
            "total_distance": self.total_distance,
            "total_duration": self.total_duration,
            "progress_percentage": self.progress_percentage,
            "created_at": _iso(self.created_at),
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "legs": [leg.to_dict() for leg in self.legs],
        }


# ---------------------------------------------------------------------------
# Per-fix results
# ---------------------------------------------------------------------------

@dataclass
class RouteProgress:
    """Returned by NavigationStateMachine.calculate_progress()."""
    current_leg: NavigationLeg
    current_step_index: int
    distance_to_next_step: float              # metres
    distance_to_destination: float            # metres
    estimated_time_to_destination: float      # seconds
    is_on_route: bool
    last_known_location: Coordinate

    def to_dict(self) -> dict:
        return {
            "destination": self.current_leg.destination.name,
            "current_step_index": self.current_step_index,
            "distance_to_next_step": self.distance_to_next_step,
            "distance_to_destination": self.distance_to_destination,
            "estimated_time_to_destination": self.estimated_time_to_destination,
            "is_on_route": self.is_on_route,
            "last_known_location": self.last_known_location.to_dict(),
        }


@dataclass(frozen=True)
class DeviationResult:
    """Verdict of DeviationDetector.check_deviation() for one fix."""
    is_off_route: bool
    deviation_distance: float                 # metres
    suggest_recalculation: bool
    snap_to_route_location: Optional[Coordinate] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "is_off_route": self.is_off_route,
            "deviation_distance": self.deviation_distance,
            "suggest_recalculation": self.suggest_recalculation,
            "snap_to_route_location": (
                self.snap_to_route_location.to_dict() if self.snap_to_route_location else None
            ),
            "reason": self.reason,
        }


ON_ROUTE = DeviationResult(is_off_route=False, deviation_distance=0.0, suggest_recalculation=False)


@dataclass(frozen=True)
class DeviationStats:
    buffer_size: int
    consecutive_deviations: int
    deviation_duration: float                 # seconds
