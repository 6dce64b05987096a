"""Turn-by-turn navigation and route-deviation tracking for multi-leg trips."""

from .deviation_detector import DeviationDetector
from .directions import CachedDirectionsGateway, DirectionsGateway, GoogleDirectionsGateway
from .errors import AssemblyError, ProviderError, TripNavError
from .models import (
    ActiveRoute, Coordinate, DeviationResult, LegStatus, LocationFix, NamedPoint,
    NavigationLeg, NavigationStep, RouteProgress, RouteResult, RouteStatus, TravelMode,
)
from .nav_config import LegFailurePolicy, NavConfig
from .navigator import NavigationStateMachine
from .osm_directions import OsmDirectionsGateway
from .route_assembler import RouteAssembler
from .session import NavigationSession, NavigationUpdate

__all__ = [
    "ActiveRoute",
    "AssemblyError",
    "CachedDirectionsGateway",
    "Coordinate",
    "DeviationDetector",
    "DeviationResult",
    "DirectionsGateway",
    "GoogleDirectionsGateway",
    "LegFailurePolicy",
    "LegStatus",
    "LocationFix",
    "NamedPoint",
    "NavConfig",
    "NavigationLeg",
    "NavigationSession",
    "NavigationStateMachine",
    "NavigationStep",
    "NavigationUpdate",
    "OsmDirectionsGateway",
    "ProviderError",
    "RouteAssembler",
    "RouteProgress",
    "RouteResult",
    "RouteStatus",
    "TravelMode",
    "TripNavError",
]
