# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects, no imports from other project modules except models.

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from .models import Coordinate


EARTH_RADIUS_M = 6_371_000.0


@dataclass(frozen=True)
class PolylineMatch:
    """Nearest point on a polyline and its distance from the query point."""
    point: Coordinate
    distance: float          # metres
    segment_index: int


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        a, b: Coordinates in decimal degrees.

    Returns:
        Distance in metres.
    """
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat))
        * math.cos(math.radians(b.lat))
        * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def closest_point_on_segment(
    point: Coordinate, start: Coordinate, end: Coordinate
) -> Coordinate:
    """
    Project point onto the segment start→end in (lat, lng) space.

    The projection parameter is clamped to [0, 1], so the result never lies
    on the extension of the segment. A zero-length segment returns start.
    """
    a = point.lat - start.lat
    b = point.lng - start.lng
    c = end.lat - start.lat
    d = end.lng - start.lng

    len_sq = c * c + d * d
    if len_sq == 0:
        return start

    t = (a * c + b * d) / len_sq
    t = max(0.0, min(1.0, t))
    return Coordinate(start.lat + t * c, start.lng + t * d)


def closest_point_on_polyline(
    point: Coordinate, polyline: Sequence[Coordinate]
) -> Optional[PolylineMatch]:
    """
    Nearest point on a polyline, searched segment by segment.

    Args:
        point:    Query coordinate.
        polyline: Ordered path coordinates.

    Returns:
        PolylineMatch for the global minimum, or None for an empty polyline.
    """
    if not polyline:
        return None
    if len(polyline) == 1:
        return PolylineMatch(polyline[0], haversine_distance(point, polyline[0]), 0)

    best: Optional[PolylineMatch] = None
    for i in range(len(polyline) - 1):
        candidate = closest_point_on_segment(point, polyline[i], polyline[i + 1])
        dist = haversine_distance(point, candidate)
        if best is None or dist < best.distance:
            best = PolylineMatch(candidate, dist, i)
    return best


def calculate_bearing(a: Coordinate, b: Coordinate) -> float:
    """
    Forward azimuth (bearing) from a to b in degrees [0, 360).
    """
    rlat1, rlng1 = math.radians(a.lat), math.radians(a.lng)
    rlat2, rlng2 = math.radians(b.lat), math.radians(b.lng)
    d_lng = rlng2 - rlng1
    y = math.sin(d_lng) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lng)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def get_turn_instruction(bearing_diff: float) -> str:
    """
    Human-readable turn instruction derived from the change in bearing.

    Args:
        bearing_diff: Difference between consecutive bearings in degrees.

    Returns:
        Turn instruction string.
    """
    diff = (bearing_diff + 180) % 360 - 180
    if diff > 45:
        return "Turn sharp right"
    elif diff > 10:
        return "Turn right"
    elif diff < -45:
        return "Turn sharp left"
    elif diff < -10:
        return "Turn left"
    return "Go straight"


def turn_maneuver(instruction: str) -> str:
    """Maneuver code for a turn instruction ("turn-left", "straight", ...)."""
    text = instruction.lower()
    if "sharp right" in text:
        return "turn-sharp-right"
    if "sharp left" in text:
        return "turn-sharp-left"
    if "right" in text:
        return "turn-right"
    if "left" in text:
        return "turn-left"
    return "straight"
