# osm_directions.py
# Offline directions gateway: A* pathfinding on a RoutingDB graph.
# Produces the same RouteResult shape as the online providers.

import asyncio
import heapq
import itertools
import logging
from typing import Dict, List, Optional, Set, Tuple

from .directions import DirectionsGateway
from .errors import ProviderError
from .geo_utils import calculate_bearing, get_turn_instruction, haversine_distance, turn_maneuver
from .models import Coordinate, NavigationStep, RouteResult, StepType, TravelMode
from .nav_config import NavConfig, ROAD_TYPES
from .osm_parser import Edge, Node, RoutingDB, load_map
from .units import format_distance, format_duration

logger = logging.getLogger(__name__)

Path = List[Tuple[Node, Edge]]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _walk_back(parents: Dict[Node, Tuple[Node, Edge]], start: Node, end: Node) -> Path:
    """Follow parent links from end to start; returns the hops in travel order."""
    hops: Path = []
    node = end
    while node is not start:
        prev, edge = parents[node]
        hops.append((prev, edge))
        node = prev
    return hops[::-1]


def _build_steps(path: Path, mode: TravelMode, speed_ms: float) -> List[NavigationStep]:
    """Group a raw A* path into NavigationSteps, one per named road stretch."""
    step_type = StepType.DRIVING if mode is TravelMode.DRIVING else StepType.WALKING
    first_node, first_edge = path[0]
    steps: List[NavigationStep] = []

    stretch_start = first_node.coordinate
    curr_name = first_edge.name
    maneuver = "depart"
    text = f"Head out on {first_edge.name}"
    dist_accum = 0.0

    for i, (node, edge) in enumerate(path):
        dist_accum += edge.distance
        next_edge = path[i + 1][1] if i + 1 < len(path) else None

        # Emit a step when road name changes or we reach the end
        if next_edge is None or next_edge.name != curr_name or next_edge.road_type != edge.road_type:
            end = edge.target.coordinate
            steps.append(NavigationStep(
                type=step_type,
                instruction=text,
                distance=format_distance(dist_accum),
                duration=format_duration(dist_accum / speed_ms / 60),
                maneuver=maneuver,
                street_name=curr_name,
                start_location=stretch_start,
                end_location=end,
            ))

            if next_edge is not None:
                b1 = calculate_bearing(node.coordinate, end)
                b2 = calculate_bearing(end, next_edge.target.coordinate)
                turn = get_turn_instruction(b2 - b1)
                maneuver = turn_maneuver(turn)
                text = f"{turn} onto {next_edge.name}"
                curr_name = next_edge.name
                stretch_start = end
                dist_accum = 0.0

    return steps


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class OsmDirectionsGateway(DirectionsGateway):
    """
    Calculates routes between two coordinates on a local OSM extract.

    Args:
        db:     Populated RoutingDB from osm_parser.load_map().
        config: NavConfig instance.
    """

    def __init__(self, db: RoutingDB, config: Optional[NavConfig] = None) -> None:
        self.db = db
        self.config = config or NavConfig()

    @classmethod
    def from_file(cls, osm_file: str, config: Optional[NavConfig] = None) -> "OsmDirectionsGateway":
        return cls(load_map(osm_file), config)

    async def get_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: TravelMode,
        language: str = "en",
    ) -> RouteResult:
        return await asyncio.to_thread(self.calculate, origin, destination, mode)

    def _edge_cost(self, edge: Edge, speed_ms: float) -> float:
        factor = self.config.steps_time_penalty if edge.road_type == "steps" else 1.0
        return edge.distance / speed_ms * factor

    def _search(
        self,
        start: Node,
        goal: Node,
        road_types: frozenset,
        speed_ms: float,
        respect_oneway: bool,
    ) -> Optional[Tuple[Path, float]]:
        """A* over travel time. Returns (hops, seconds) or None if goal is unreachable."""
        def eta(node: Node) -> float:
            return haversine_distance(node.coordinate, goal.coordinate) / speed_ms

        tie = itertools.count()
        frontier = [(eta(start), next(tie), start)]
        seconds: Dict[Node, float] = {start: 0.0}
        parents: Dict[Node, Tuple[Node, Edge]] = {}
        settled: Set[Node] = set()

        while frontier:
            _, _, node = heapq.heappop(frontier)
            if node is goal:
                return _walk_back(parents, start, goal), seconds[goal]
            if node in settled:
                continue
            settled.add(node)

            for edge in node.edges:
                if edge.road_type not in road_types:
                    continue
                if respect_oneway and edge.against_oneway:
                    continue
                cost = seconds[node] + self._edge_cost(edge, speed_ms)
                if cost < seconds.get(edge.target, float("inf")):
                    seconds[edge.target] = cost
                    parents[edge.target] = (node, edge)
                    heapq.heappush(frontier, (cost + eta(edge.target), next(tie), edge.target))
        return None

    def calculate(self, origin: Coordinate, destination: Coordinate, mode: TravelMode) -> RouteResult:
        """
        Run A* from origin to destination.

        Raises:
            ProviderError: If the mode is unsupported or no route exists.
        """
        road_types = ROAD_TYPES.get(mode)
        if road_types is None:
            raise ProviderError(f"{mode.value} routing is not available offline.", provider="osm")

        start_node, _ = self.db.nearest_node(origin, road_types)
        end_node, _ = self.db.nearest_node(destination, road_types)
        if not start_node or not end_node:
            raise ProviderError("Could not find nearby nodes for given coordinates.", provider="osm")
        if start_node is end_node:
            raise ProviderError("Origin and destination map to the same node.", provider="osm")

        speed_ms = self.config.speed_for(mode)
        found = self._search(start_node, end_node, road_types, speed_ms, mode is not TravelMode.WALKING)
        if found is None:
            raise ProviderError(f"No {mode.value} route found between these points.", provider="osm")

        path, total_s = found
        coordinates = [start_node.coordinate] + [edge.target.coordinate for _, edge in path]
        total_m = sum(edge.distance for _, edge in path)

        logger.info(f"Offline route: {len(path)} edges, {total_m:.0f} m.")
        return RouteResult(
            distance=format_distance(total_m),
            duration=format_duration(total_s / 60),
            distance_meters=total_m,
            duration_seconds=total_s,
            coordinates=coordinates,
            steps=_build_steps(path, mode, speed_ms),
        )
