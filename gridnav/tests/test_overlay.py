import pytest

from gridnav import overlay as overlay_module
from gridnav.grid_transform import to_grid
from gridnav.models import GeoPoint, InvalidCoordinate, InvalidGridReference, NoOrigin
from gridnav.overlay import build_overlay, subdivisions, viewport_corners

ORIGIN = GeoPoint(-37.8136, 144.9631)
SOUTH_WEST = GeoPoint(-37.83, 144.94)
NORTH_EAST = GeoPoint(-37.80, 144.98)


@pytest.mark.parametrize("step", [100.0, 1000.0, 10000.0])
@pytest.mark.parametrize("convergence", [0.0, 15.0, -30.0])
def test_overlay_covers_viewport(step, convergence):
    overlay = build_overlay(ORIGIN, SOUTH_WEST, NORTH_EAST, step=step, convergence_deg=convergence)

    for corner in viewport_corners(SOUTH_WEST, NORTH_EAST):
        assert overlay.contains_offset(to_grid(ORIGIN, corner, convergence))

    min_e, min_n, max_e, max_n = overlay.bounds
    for bound in overlay.bounds:
        assert bound / step == pytest.approx(round(bound / step))
    assert overlay.eastings[0] == min_e and overlay.eastings[-1] == max_e
    assert overlay.northings[0] == min_n and overlay.northings[-1] == max_n
    assert len(overlay.points) == len(overlay.eastings) * len(overlay.northings)


def test_bounds_extend_one_step_past_viewport():
    overlay = build_overlay(ORIGIN, SOUTH_WEST, NORTH_EAST, step=1000.0)
    offsets = [to_grid(ORIGIN, c) for c in viewport_corners(SOUTH_WEST, NORTH_EAST)]
    min_e, min_n, max_e, max_n = overlay.bounds
    assert min_e <= min(o.easting for o in offsets) - 1000.0
    assert min_n <= min(o.northing for o in offsets) - 1000.0
    assert max_e >= max(o.easting for o in offsets) + 1000.0
    assert max_n >= max(o.northing for o in offsets) + 1000.0


def test_corner_order_does_not_matter():
    a = build_overlay(ORIGIN, SOUTH_WEST, NORTH_EAST, step=1000.0, convergence_deg=15.0)
    b = build_overlay(ORIGIN, NORTH_EAST, SOUTH_WEST, step=1000.0, convergence_deg=15.0)
    assert a.bounds == b.bounds
    assert a.points == b.points


def test_lattice_is_row_major_and_round_trips():
    overlay = build_overlay(ORIGIN, SOUTH_WEST, NORTH_EAST, step=1000.0, convergence_deg=-30.0)
    size = len(overlay.northings)
    for index, point in enumerate(overlay.points):
        assert point.offset.easting == overlay.eastings[index // size]
        assert point.offset.northing == overlay.northings[index % size]
        back = to_grid(ORIGIN, point.position, -30.0)
        assert back.easting == pytest.approx(point.offset.easting, abs=1e-4)
        assert back.northing == pytest.approx(point.offset.northing, abs=1e-4)


def test_viewport_away_from_origin():
    overlay = build_overlay(ORIGIN, GeoPoint(-38.2, 145.5), GeoPoint(-38.15, 145.56), step=1000.0)
    assert overlay.bounds[0] > 0
    assert overlay.bounds[3] < 0
    for corner in viewport_corners(GeoPoint(-38.2, 145.5), GeoPoint(-38.15, 145.56)):
        assert overlay.contains_offset(to_grid(ORIGIN, corner))


def test_lines_and_feature():
    overlay = build_overlay(ORIGIN, SOUTH_WEST, NORTH_EAST, step=1000.0)
    columns = overlay.columns()
    rows = overlay.rows()
    assert len(columns) == len(overlay.eastings)
    assert len(rows) == len(overlay.northings)
    assert all(len(col) == len(overlay.northings) for col in columns)

    feature = overlay.grid_lines_feature()
    assert feature["type"] == "Feature"
    assert feature["geometry"]["type"] == "MultiLineString"
    assert len(feature["geometry"]["coordinates"]) == len(columns) + len(rows)
    assert feature["properties"]["step"] == 1000.0


def test_subdivisions():
    overlay = build_overlay(ORIGIN, SOUTH_WEST, NORTH_EAST, step=1000.0)
    minor = subdivisions(overlay, parts=10)
    assert len(minor["vertical"]) == (len(overlay.eastings) - 1) * 9
    assert len(minor["horizontal"]) == (len(overlay.northings) - 1) * 9
    first = to_grid(ORIGIN, minor["vertical"][0][0])
    assert first.easting == pytest.approx(overlay.eastings[0] + 100.0, abs=1e-4)
    with pytest.raises(ValueError):
        subdivisions(overlay, parts=1)


def test_deterministic():
    a = build_overlay(ORIGIN, SOUTH_WEST, NORTH_EAST, step=500.0, convergence_deg=7.5)
    b = build_overlay(ORIGIN, SOUTH_WEST, NORTH_EAST, step=500.0, convergence_deg=7.5)
    assert a.points == b.points


def test_validation():
    with pytest.raises(NoOrigin):
        build_overlay(None, SOUTH_WEST, NORTH_EAST)
    with pytest.raises(ValueError):
        build_overlay(ORIGIN, SOUTH_WEST, NORTH_EAST, step=0.0)
    with pytest.raises(InvalidCoordinate):
        build_overlay(ORIGIN, GeoPoint(-95.0, 0.0), NORTH_EAST)


def test_rejects_dense_lattice(monkeypatch):
    monkeypatch.setattr(overlay_module, "MAX_OVERLAY_POINTS", 10)
    with pytest.raises(ValueError):
        build_overlay(ORIGIN, SOUTH_WEST, NORTH_EAST, step=100.0)


def test_dense_lattice_rejected_before_axes_are_built(monkeypatch):
    def fail(*_args):
        raise AssertionError("axes should not be built for an oversized lattice")

    monkeypatch.setattr(overlay_module, "_axis", fail)
    with pytest.raises(ValueError, match="too dense"):
        build_overlay(GeoPoint(0.0, 0.0), GeoPoint(-1.0, -1.0), GeoPoint(1.0, 1.0), step=0.001)


@pytest.mark.parametrize("convergence", [float("nan"), float("inf")])
def test_non_finite_convergence_rejected(convergence):
    with pytest.raises(InvalidGridReference):
        build_overlay(ORIGIN, SOUTH_WEST, NORTH_EAST, convergence_deg=convergence)
