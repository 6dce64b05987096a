# nav_config.py
# All tuneable constants in one place.
# Pass a NavConfig instance to every module that needs settings.

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from dotenv import load_dotenv

from .models import TravelMode


# ---------------------------------------------------------------------------
# Road type constants (used by the offline OSM gateway)
# ---------------------------------------------------------------------------

WALKABLE_TYPES: frozenset = frozenset({
    'footway', 'pedestrian', 'path', 'steps', 'cycleway',
    'living_street', 'track', 'crossing', 'residential',
    'service', 'unclassified', 'primary', 'primary_link',
    'secondary', 'secondary_link', 'tertiary', 'tertiary_link',
    'trunk', 'trunk_link',
})

DRIVABLE_TYPES: frozenset = frozenset({
    'motorway', 'motorway_link', 'trunk', 'trunk_link',
    'primary', 'primary_link', 'secondary', 'secondary_link',
    'tertiary', 'tertiary_link', 'unclassified', 'residential',
    'living_street', 'service',
})

CYCLABLE_TYPES: frozenset = frozenset({
    'cycleway', 'path', 'track', 'living_street', 'residential',
    'service', 'unclassified', 'primary', 'primary_link',
    'secondary', 'secondary_link', 'tertiary', 'tertiary_link',
})

ROAD_TYPES: Dict[TravelMode, frozenset] = {
    TravelMode.WALKING:   WALKABLE_TYPES,
    TravelMode.DRIVING:   DRIVABLE_TYPES,
    TravelMode.BICYCLING: CYCLABLE_TYPES,
}

FORBIDDEN_TYPES: frozenset = frozenset({'construction', 'proposed', 'abandoned'})


# ---------------------------------------------------------------------------
# Per-mode defaults
# ---------------------------------------------------------------------------

DEVIATION_THRESHOLDS_M: Dict[TravelMode, float] = {
    TravelMode.WALKING:   50.0,
    TravelMode.DRIVING:   100.0,
    TravelMode.TRANSIT:   200.0,
    TravelMode.BICYCLING: 75.0,
}

# Assumed average speeds for straight-line ETA estimates (m/s)
MODE_SPEEDS_MS: Dict[TravelMode, float] = {
    TravelMode.WALKING:   1.4,
    TravelMode.BICYCLING: 4.2,
    TravelMode.DRIVING:   11.1,
    TravelMode.TRANSIT:   8.3,
}


class LegFailurePolicy(Enum):
    """What RouteAssembler does when the gateway fails for one waypoint pair."""
    SKIP        = "skip"          # drop the pair, the route gets fewer legs
    ABORT       = "abort"         # fail the whole assembly
    PLACEHOLDER = "placeholder"   # straight-line leg flagged with a warning


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class NavConfig:
    # Directions
    language: str = "en"
    leg_failure_policy: LegFailurePolicy = LegFailurePolicy.SKIP
    google_maps_api_key: Optional[str] = None
    steps_time_penalty: float = 2.0        # multiplier for 'steps' road type (OSM gateway)

    # Deviation detection
    deviation_thresholds_m: Dict[TravelMode, float] = field(
        default_factory=lambda: dict(DEVIATION_THRESHOLDS_M)
    )
    min_accuracy_m: float = 50.0           # fixes less accurate than this are ignored
    buffer_size: int = 10                  # fixes kept for smoothing
    deviation_time_threshold_s: float = 30.0
    consecutive_deviation_limit: int = 5
    severe_deviation_factor: float = 3.0   # × threshold → recalculate immediately
    snap_factor: float = 2.0               # × threshold → still snap to route

    # Progress tracking
    mode_speeds_ms: Dict[TravelMode, float] = field(
        default_factory=lambda: dict(MODE_SPEEDS_MS)
    )
    on_route_cap_m: float = 1000.0
    arrival_radius_m: float = 50.0
    auto_complete_on_arrival: bool = True

    # Logging
    log_dir: str = "."                     # directory for saved JSON files
    route_filename: str = "active_route.json"
    session_filename: str = "nav_session.jsonl"

    @property
    def route_filepath(self) -> str:
        return os.path.join(self.log_dir, self.route_filename)

    @property
    def session_filepath(self) -> str:
        return os.path.join(self.log_dir, self.session_filename)

    def threshold_for(self, mode: TravelMode) -> float:
        return self.deviation_thresholds_m[mode]

    def speed_for(self, mode: TravelMode) -> float:
        return self.mode_speeds_ms[mode]

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "NavConfig":
        """
        Build a config from environment variables, loading .env if present.

        Recognised variables: GOOGLE_MAPS_API_KEY, TRIPNAV_LANGUAGE,
        TRIPNAV_LEG_FAILURE_POLICY, TRIPNAV_LOG_DIR, TRIPNAV_ARRIVAL_RADIUS_M,
        TRIPNAV_MIN_ACCURACY_M.
        """
        load_dotenv(dotenv_path)
        config = cls(google_maps_api_key=os.getenv("GOOGLE_MAPS_API_KEY") or None)

        config.language = os.getenv("TRIPNAV_LANGUAGE", config.language)
        config.log_dir = os.getenv("TRIPNAV_LOG_DIR", config.log_dir)

        policy = os.getenv("TRIPNAV_LEG_FAILURE_POLICY")
        if policy:
            config.leg_failure_policy = LegFailurePolicy(policy.strip().lower())

        radius = os.getenv("TRIPNAV_ARRIVAL_RADIUS_M")
        if radius:
            config.arrival_radius_m = float(radius)

        accuracy = os.getenv("TRIPNAV_MIN_ACCURACY_M")
        if accuracy:
            config.min_accuracy_m = float(accuracy)

        return config
