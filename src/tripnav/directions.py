# directions.py
# Directions gateway interface, result cache and the Google Maps backend.
# The core only ever talks to a DirectionsGateway; providers live behind it.

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import googlemaps
from googlemaps import exceptions as gmaps_errors
from googlemaps.convert import decode_polyline

from .errors import ProviderError
from .models import (
    Coordinate, Fare, NavigationStep, RouteResult, StepType, TransitDetails,
    TransitStop, TravelMode,
)

logger = logging.getLogger(__name__)

_HTML_TAG = re.compile(r"<[^>]*>")

CacheKey = Tuple[Coordinate, Coordinate, TravelMode]


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------

class DirectionsGateway(ABC):
    """Returns a route between two coordinates for one travel mode."""

    @abstractmethod
    async def get_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: TravelMode,
        language: str = "en",
    ) -> RouteResult:
        """
        Raises:
            ProviderError: On any provider failure or malformed response.
        """


class CachedDirectionsGateway(DirectionsGateway):
    """
    Memoizes another gateway by (origin, destination, mode).

    A cache hit never reaches the wrapped gateway. Failures are not cached.
    """

    def __init__(self, gateway: DirectionsGateway) -> None:
        self._gateway = gateway
        self._cache: Dict[CacheKey, RouteResult] = {}

    async def get_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: TravelMode,
        language: str = "en",
    ) -> RouteResult:
        key = (origin, destination, mode)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        result = await self._gateway.get_route(origin, destination, mode, language)
        return self._cache.setdefault(key, result)

    def __len__(self) -> int:
        return len(self._cache)

    def clear(self) -> None:
        self._cache.clear()


# ---------------------------------------------------------------------------
# Google Maps response parsing
# ---------------------------------------------------------------------------

def strip_html(text: Optional[str]) -> str:
    return _HTML_TAG.sub("", text or "").strip()


def _coord(d: Optional[Dict[str, Any]]) -> Optional[Coordinate]:
    if not d:
        return None
    return Coordinate(float(d["lat"]), float(d["lng"]))


def _transit_details(td: Dict[str, Any]) -> TransitDetails:
    line = td.get("line") or {}
    vehicle = line.get("vehicle") or {}
    dep = td.get("departure_stop")
    arr = td.get("arrival_stop")
    return TransitDetails(
        departure_stop=TransitStop(dep["name"], _coord(dep.get("location"))) if dep else None,
        arrival_stop=TransitStop(arr["name"], _coord(arr.get("location"))) if arr else None,
        line_name=line.get("name"),
        line_short_name=line.get("short_name"),
        line_color=line.get("color"),
        vehicle_type=vehicle.get("type"),
        headsign=td.get("headsign"),
        num_stops=td.get("num_stops"),
        departure_time=(td.get("departure_time") or {}).get("text"),
        arrival_time=(td.get("arrival_time") or {}).get("text"),
    )


def parse_step(step: Dict[str, Any]) -> NavigationStep:
    """Convert one Google Directions step into a NavigationStep."""
    travel_mode = step.get("travel_mode", "WALKING").upper()
    instruction = strip_html(step.get("html_instructions"))
    distance = (step.get("distance") or {}).get("text", "")
    duration = (step.get("duration") or {}).get("text", "")

    if travel_mode == "TRANSIT" and step.get("transit_details"):
        return NavigationStep(
            type=StepType.TRANSIT,
            instruction=instruction,
            distance=distance,
            duration=duration,
            start_location=_coord(step.get("start_location")),
            end_location=_coord(step.get("end_location")),
            transit_details=_transit_details(step["transit_details"]),
        )

    return NavigationStep(
        type=StepType.DRIVING if travel_mode == "DRIVING" else StepType.WALKING,
        instruction=instruction,
        distance=distance,
        duration=duration,
        maneuver=step.get("maneuver"),
        street_name=step.get("street_name"),
        start_location=_coord(step.get("start_location")),
        end_location=_coord(step.get("end_location")),
    )


def parse_directions(routes: List[Dict[str, Any]]) -> RouteResult:
    """
    Build a RouteResult from a Google Directions `routes` list.

    Raises:
        ProviderError: If no route was returned or a required field is missing.
    """
    if not routes:
        raise ProviderError("No route found between these points.", provider="google")

    try:
        route = routes[0]
        leg = route["legs"][0]
        points = route["overview_polyline"]["points"]
        coordinates = [Coordinate(p["lat"], p["lng"]) for p in decode_polyline(points)]
        fare = route.get("fare")

        return RouteResult(
            distance=leg["distance"]["text"],
            duration=leg["duration"]["text"],
            distance_meters=float(leg["distance"]["value"]),
            duration_seconds=float(leg["duration"]["value"]),
            coordinates=coordinates,
            steps=[parse_step(s) for s in leg.get("steps", [])],
            route_polyline=points,
            fare=Fare(fare["currency"], float(fare["value"]), fare["text"]) if fare else None,
            warnings=list(route.get("warnings", [])),
        )
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise ProviderError(f"Malformed directions response: {e!r}", provider="google") from e


# ---------------------------------------------------------------------------
# Google Maps gateway
# ---------------------------------------------------------------------------

class GoogleDirectionsGateway(DirectionsGateway):
    """
    Directions from the Google Maps Directions API.

    Args:
        api_key: Google Maps API key; ignored when client is given.
        client:  Pre-built googlemaps.Client (or compatible object).
    """

    def __init__(self, api_key: Optional[str] = None, client: Any = None) -> None:
        if client is None:
            if not api_key:
                raise ValueError("Google Maps API key not configured. Set GOOGLE_MAPS_API_KEY in .env")
            client = googlemaps.Client(key=api_key)
        self._client = client

    async def get_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: TravelMode,
        language: str = "en",
    ) -> RouteResult:
        logger.info(f"Requesting {mode.value} directions: {origin} → {destination}")
        try:
            routes = await asyncio.to_thread(
                self._client.directions,
                origin=(origin.lat, origin.lng),
                destination=(destination.lat, destination.lng),
                mode=mode.value,
                language=language,
                alternatives=False,
            )
        except gmaps_errors.ApiError as e:
            raise ProviderError(f"Directions API error: {e}", provider="google") from e
        except (gmaps_errors.TransportError, gmaps_errors.Timeout) as e:
            raise ProviderError(f"Directions request failed: {e!r}", provider="google") from e

        result = parse_directions(routes)
        logger.info(f"Directions ready — {result.distance}, {result.duration}, {len(result.steps)} steps.")
        return result
