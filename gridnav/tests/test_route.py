import pytest

from gridnav.geodesy import destination, inverse
from gridnav.models import GeoPoint, RouteMode, Waypoint
from gridnav.route import optimize_route, order_waypoints, total_distance

START = GeoPoint(0.0, 0.0)


def _waypoint(wid, bearing, distance, start=START):
    return Waypoint(id=wid, position=destination(start, bearing, distance), created_at=0.0)


@pytest.fixture
def triangle():
    return [
        _waypoint("far", 0.0, 1200.0),
        _waypoint("mid", 90.0, 500.0),
        _waypoint("near", 180.0, 100.0),
    ]


def test_nearest_point_visited_first(triangle):
    ordered = order_waypoints(triangle, START, "path")
    assert [w.id for w in ordered] == ["near", "mid", "far"]


def test_does_not_mutate_input(triangle):
    before = list(triangle)
    order_waypoints(triangle, START, RouteMode.CIRCUIT)
    assert triangle == before


def test_output_is_permutation(triangle):
    extra = triangle + [_waypoint(f"p{i}", i * 37.0, 50.0 + i * 90.0) for i in range(12)]
    ordered = order_waypoints(extra, START)
    assert len(ordered) == len(extra)
    assert sorted(w.id for w in ordered) == sorted(w.id for w in extra)


def test_deterministic(triangle):
    first = optimize_route(triangle, START, "circuit")
    second = optimize_route(triangle, START, "circuit")
    assert first.route == second.route
    assert first.total_distance == second.total_distance


def test_ties_keep_input_order():
    a = _waypoint("a", 0.0, 100.0)
    b = _waypoint("b", 180.0, 100.0)
    assert order_waypoints([a, b], START)[0].id == "a"
    assert order_waypoints([b, a], START)[0].id == "b"


def test_duplicate_positions_are_kept():
    a = _waypoint("a", 45.0, 300.0)
    b = Waypoint(id="b", position=a.position, created_at=1.0)
    ordered = order_waypoints([a, b], START)
    assert [w.id for w in ordered] == ["a", "b"]


@pytest.mark.parametrize("mode", ["path", "circuit"])
def test_empty_route(mode):
    assert order_waypoints([], START, mode) == []
    assert total_distance([], START, mode) == 0.0
    result = optimize_route([], START, mode)
    assert result.waypoints == []
    assert result.total_distance == 0.0
    assert result.legs == []


def test_single_waypoint_circuit_is_there_and_back():
    only = _waypoint("only", 33.0, 750.0)
    leg = inverse(START, only.position).distance_m
    assert total_distance([only], START, "path") == pytest.approx(leg)
    assert total_distance([only], START, "circuit") == pytest.approx(2 * leg)


def test_circuit_adds_closing_leg(triangle):
    ordered = order_waypoints(triangle, START)
    path = total_distance(ordered, START, "path")
    circuit = total_distance(ordered, START, "circuit")
    closing = inverse(ordered[-1].position, START).distance_m
    assert circuit == pytest.approx(path + closing)


def test_optimize_route_result(triangle):
    result = optimize_route(triangle, START, RouteMode.CIRCUIT)
    assert result.route.closed
    assert result.route.mode is RouteMode.CIRCUIT
    assert len(result.legs) == len(triangle) + 1
    assert result.legs[0].distance_m == pytest.approx(100.0, rel=1e-9)
    assert result.legs[0].bearing_deg == pytest.approx(180.0, abs=1e-6)
    assert result.total_distance == pytest.approx(sum(leg.distance_m for leg in result.legs))

    path = optimize_route(triangle, START)
    assert not path.route.closed
    assert len(path.legs) == len(triangle)


def test_unknown_mode():
    with pytest.raises(ValueError):
        order_waypoints([], START, "loop")
    with pytest.raises(ValueError):
        total_distance([], START, "loop")
