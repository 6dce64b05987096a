# osm_parser.py
# Streams an .osm extract into the routing graph used by the offline
# directions gateway. One graph serves every travel mode; edges keep their
# highway tag so each search can filter by mode.

import logging
import xml.sax as sax
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .geo_utils import haversine_distance
from .models import Coordinate
from .nav_config import FORBIDDEN_TYPES, ROAD_TYPES

logger = logging.getLogger(__name__)

ROUTABLE_TYPES: frozenset = frozenset().union(*ROAD_TYPES.values())

_ONEWAY_VALUES = frozenset({"yes", "true", "1"})


@dataclass(eq=False)
class Edge:
    """Directed hop to `target`; reverse hops of oneway streets are flagged."""
    target: "Node"
    distance: float                      # metres
    road_type: str                       # OSM highway=* value
    name: str
    against_oneway: bool = False


@dataclass(eq=False)
class Node:
    """Graph vertex; hashed by identity so it can key search tables."""
    id: str
    lat: float
    lng: float
    edges: List[Edge] = field(default_factory=list)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)

    def serves(self, road_types: frozenset) -> bool:
        return any(edge.road_type in road_types for edge in self.edges)


class RoutingDB:
    """Nodes by OSM id, each carrying its outgoing edges."""

    def __init__(self) -> None:
        self.nodes: Dict[str, Node] = {}

    def add_node(self, node: Node) -> None:
        self.nodes[node.id] = node

    def add_edge(self, u: str, v: str, road_type: str, name: str, oneway: bool = False) -> None:
        """Link u and v both ways. Unknown ids are ignored."""
        a, b = self.nodes.get(u), self.nodes.get(v)
        if a is None or b is None:
            return
        metres = haversine_distance(a.coordinate, b.coordinate)
        a.edges.append(Edge(b, metres, road_type, name))
        b.edges.append(Edge(a, metres, road_type, name, against_oneway=oneway))

    def add_way(self, refs: Sequence[str], tags: Mapping[str, str]) -> bool:
        """Add a tagged way if it is a routable highway. Returns whether it was kept."""
        road_type = tags.get("highway")
        if road_type not in ROUTABLE_TYPES or road_type in FORBIDDEN_TYPES:
            return False
        name = tags.get("name", "Unnamed road")
        oneway = tags.get("oneway") in _ONEWAY_VALUES
        for u, v in zip(refs, refs[1:]):
            self.add_edge(u, v, road_type, name, oneway)
        return True

    def cleanup(self) -> None:
        """Drop nodes no way ended up using."""
        self.nodes = {nid: node for nid, node in self.nodes.items() if node.edges}

    def nearest_node(
        self, coord: Coordinate, road_types: Optional[Iterable[str]] = None
    ) -> Tuple[Optional[Node], float]:
        """
        Closest node to coord and its distance in metres.

        With road_types set, only nodes touching one of those road types
        are candidates.
        """
        allowed = frozenset(road_types) if road_types is not None else None
        candidates = (
            node for node in self.nodes.values()
            if allowed is None or node.serves(allowed)
        )
        scored = ((haversine_distance(coord, node.coordinate), node) for node in candidates)
        best = min(scored, key=lambda pair: pair[0], default=None)
        if best is None:
            return None, float("inf")
        return best[1], best[0]


class OSMHandler(sax.ContentHandler):
    """Feeds <node> and highway <way> elements into a RoutingDB."""

    def __init__(self, db: RoutingDB) -> None:
        super().__init__()
        self.db = db
        self.ways_kept = 0
        self._way: Optional[Tuple[List[str], Dict[str, str]]] = None

    def startElement(self, name: str, attrs) -> None:  # type: ignore[override]
        if name == "node":
            self.db.add_node(Node(attrs["id"], float(attrs["lat"]), float(attrs["lon"])))
            return
        if name == "way":
            self._way = ([], {})
            return
        if self._way is None:
            return
        refs, tags = self._way
        if name == "nd":
            refs.append(attrs["ref"])
        elif name == "tag":
            tags[attrs["k"]] = attrs["v"]

    def endElement(self, name: str) -> None:  # type: ignore[override]
        if name != "way" or self._way is None:
            return
        refs, tags = self._way
        self._way = None
        if self.db.add_way(refs, tags):
            self.ways_kept += 1


def load_map(osm_file: str) -> RoutingDB:
    """
    Build a RoutingDB from an .osm XML file.

    Raises:
        OSError: If osm_file cannot be opened.
        xml.sax.SAXParseException: On malformed XML.
    """
    logger.info(f"Loading map: {osm_file}")
    db = RoutingDB()
    handler = OSMHandler(db)
    with open(osm_file, "rb") as f:
        sax.parse(f, handler)
    db.cleanup()
    logger.info(f"Map ready: {handler.ways_kept} ways, {len(db.nodes)} routable nodes.")
    return db
