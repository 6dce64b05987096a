"""Tests for the OSM loader and the offline A* directions gateway."""

import pytest

from tripnav.errors import ProviderError
from tripnav.models import Coordinate, StepType, TravelMode
from tripnav.osm_directions import OsmDirectionsGateway
from tripnav.osm_parser import Node, RoutingDB, load_map

OSM_XML = """<?xml version="1.0" encoding="UTF-8"?>
<osm version="0.6">
  <node id="1" lat="0.000" lon="0.000"/>
  <node id="2" lat="0.001" lon="0.000"/>
  <node id="3" lat="0.002" lon="0.000"/>
  <node id="4" lat="0.002" lon="0.001"/>
  <node id="5" lat="0.000" lon="0.010"/>
  <node id="6" lat="0.001" lon="0.010"/>
  <node id="7" lat="0.005" lon="0.005"/>
  <node id="8" lat="0.006" lon="0.005"/>
  <node id="9" lat="0.009" lon="0.009"/>
  <way id="100">
    <nd ref="1"/><nd ref="2"/><nd ref="3"/>
    <tag k="highway" v="residential"/>
    <tag k="name" v="Main St"/>
  </way>
  <way id="101">
    <nd ref="3"/><nd ref="4"/>
    <tag k="highway" v="residential"/>
    <tag k="name" v="Side St"/>
  </way>
  <way id="102">
    <nd ref="5"/><nd ref="6"/>
    <tag k="highway" v="tertiary"/>
    <tag k="name" v="Oneway Rd"/>
    <tag k="oneway" v="yes"/>
  </way>
  <way id="103">
    <nd ref="7"/><nd ref="8"/>
    <tag k="highway" v="construction"/>
  </way>
  <way id="104">
    <nd ref="8"/><nd ref="9"/>
    <tag k="building" v="yes"/>
  </way>
</osm>
"""

N1 = Coordinate(0.0, 0.0)
N4 = Coordinate(0.002, 0.001)
N5 = Coordinate(0.0, 0.01)
N6 = Coordinate(0.001, 0.01)


@pytest.fixture()
def osm_file(tmp_path):
    path = tmp_path / "tiny.osm"
    path.write_text(OSM_XML, encoding="utf-8")
    return str(path)


@pytest.fixture()
def osm(osm_file):
    return OsmDirectionsGateway.from_file(osm_file)


def test_load_map_keeps_only_routable_nodes(osm_file):
    db = load_map(osm_file)

    assert set(db.nodes) == {"1", "2", "3", "4", "5", "6"}
    assert len(db.nodes["2"].edges) == 2


def test_oneway_reverse_edge_is_flagged(osm_file):
    db = load_map(osm_file)
    (forward,) = db.nodes["5"].edges
    (reverse,) = db.nodes["6"].edges
    assert forward.against_oneway is False
    assert reverse.against_oneway is True


def test_nearest_node(osm_file):
    db = load_map(osm_file)
    node, dist = db.nearest_node(Coordinate(0.0011, 0.0001))
    assert node.id == "2"
    assert dist < 20


def test_nearest_node_filters_by_road_type(osm_file):
    db = load_map(osm_file)
    node, _ = db.nearest_node(Coordinate(0.0011, 0.0001), road_types={"tertiary"})
    assert node.id in {"5", "6"}


def test_nearest_node_in_empty_graph():
    node, dist = RoutingDB().nearest_node(N1)
    assert node is None
    assert dist == float("inf")


@pytest.mark.parametrize("tags,kept", [
    ({"highway": "residential", "name": "Main St"}, True),
    ({"highway": "proposed"}, False),
    ({"highway": "bus_guideway"}, False),
    ({"building": "yes"}, False),
])
def test_add_way_keeps_routable_highways(tags, kept):
    db = RoutingDB()
    db.add_node(Node("a", 0.0, 0.0))
    db.add_node(Node("b", 0.001, 0.0))

    assert db.add_way(["a", "b"], tags) is kept
    assert bool(db.nodes["a"].edges) is kept


def test_add_way_names_unnamed_roads():
    db = RoutingDB()
    db.add_node(Node("a", 0.0, 0.0))
    db.add_node(Node("b", 0.001, 0.0))
    db.add_way(["a", "b", "missing"], {"highway": "footway"})

    (edge,) = db.nodes["a"].edges
    assert edge.name == "Unnamed road"
    assert edge.target is db.nodes["b"]
    assert len(db.nodes["b"].edges) == 1


class TestCalculate:

    def test_walking_route(self, osm):
        result = osm.calculate(N1, N4, TravelMode.WALKING)

        assert result.coordinates == [
            Coordinate(0.0, 0.0), Coordinate(0.001, 0.0), Coordinate(0.002, 0.0), N4,
        ]
        assert result.distance_meters == pytest.approx(333.6, abs=1)
        assert result.duration_seconds == pytest.approx(result.distance_meters / 1.4)

    def test_steps_follow_road_names(self, osm):
        result = osm.calculate(N1, N4, TravelMode.WALKING)

        main, side = result.steps
        assert main.type is StepType.WALKING
        assert main.maneuver == "depart"
        assert main.street_name == "Main St"
        assert main.end_location == Coordinate(0.002, 0.0)
        assert side.street_name == "Side St"
        assert "right" in side.maneuver
        assert side.instruction.endswith("onto Side St")
        assert side.end_location == N4

    def test_driving_steps(self, osm):
        result = osm.calculate(N1, N4, TravelMode.DRIVING)
        assert all(step.type is StepType.DRIVING for step in result.steps)
        assert result.duration_seconds == pytest.approx(result.distance_meters / 11.1)

    def test_driving_follows_oneway(self, osm):
        assert osm.calculate(N5, N6, TravelMode.DRIVING).distance_meters == pytest.approx(111, abs=1)

        with pytest.raises(ProviderError) as exc:
            osm.calculate(N6, N5, TravelMode.DRIVING)
        assert exc.value.provider == "osm"

    def test_walking_ignores_oneway(self, osm):
        result = osm.calculate(N6, N5, TravelMode.WALKING)
        assert result.coordinates == [N6, N5]

    def test_disconnected_components(self, osm):
        with pytest.raises(ProviderError):
            osm.calculate(N1, N5, TravelMode.WALKING)

    def test_same_node(self, osm):
        with pytest.raises(ProviderError):
            osm.calculate(N1, Coordinate(0.00001, 0.0), TravelMode.WALKING)

    def test_transit_unsupported(self, osm):
        with pytest.raises(ProviderError):
            osm.calculate(N1, N4, TravelMode.TRANSIT)


@pytest.mark.asyncio
async def test_get_route(osm):
    result = await osm.get_route(N1, N4, TravelMode.BICYCLING)
    assert result.coordinates[-1] == N4
    assert result.duration_seconds == pytest.approx(result.distance_meters / 4.2)
