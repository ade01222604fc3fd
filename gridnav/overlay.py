from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from shapely.geometry import LineString, MultiLineString

from .config import DEFAULT_STEP_METRES, DEFAULT_SUBDIVISIONS, MAX_OVERLAY_POINTS
from .grid_transform import check_convergence, from_grid, to_grid
from .models import GeoPoint, GridOffset, NoOrigin, validate_point
from .utils import geometry_to_feature

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LatticePoint:
    offset: GridOffset
    position: GeoPoint


@dataclass
class GridOverlay:
    origin: GeoPoint
    step: float
    convergence: float
    bounds: Tuple[float, float, float, float]
    eastings: List[float]
    northings: List[float]
    points: List[LatticePoint]

    def columns(self) -> List[List[GeoPoint]]:
        """Polylines of constant easting, northings ascending."""
        size = len(self.northings)
        return [
            [p.position for p in self.points[i * size : (i + 1) * size]]
            for i in range(len(self.eastings))
        ]

    def rows(self) -> List[List[GeoPoint]]:
        """Polylines of constant northing, eastings ascending."""
        size = len(self.northings)
        return [
            [self.points[i * size + j].position for i in range(len(self.eastings))]
            for j in range(size)
        ]

    def contains_offset(self, offset: GridOffset, tolerance: float = 1e-6) -> bool:
        min_e, min_n, max_e, max_n = self.bounds
        return (
            min_e - tolerance <= offset.easting <= max_e + tolerance
            and min_n - tolerance <= offset.northing <= max_n + tolerance
        )

    def grid_lines_feature(self) -> dict:
        lines = [LineString([p.as_lonlat() for p in line]) for line in self.columns() + self.rows()]
        return geometry_to_feature(
            MultiLineString(lines),
            {"type": "grid", "step": self.step, "convergence": self.convergence},
        )


def viewport_corners(corner_a: GeoPoint, corner_b: GeoPoint) -> List[GeoPoint]:
    validate_point(corner_a)
    validate_point(corner_b)
    return [
        corner_a,
        GeoPoint(corner_a.latitude, corner_b.longitude),
        corner_b,
        GeoPoint(corner_b.latitude, corner_a.longitude),
    ]


def lattice_bounds(offsets: List[GridOffset], step: float) -> Tuple[float, float, float, float]:
    min_e = min(o.easting for o in offsets)
    max_e = max(o.easting for o in offsets)
    min_n = min(o.northing for o in offsets)
    max_n = max(o.northing for o in offsets)

    return (
        math.floor((min_e - step) / step) * step,
        math.floor((min_n - step) / step) * step,
        math.ceil((max_e + step) / step) * step,
        math.ceil((max_n + step) / step) * step,
    )


def _axis(start: float, end: float, step: float) -> List[float]:
    span = (end - start) / step
    count = int(round(span))
    assert abs(span - count) < 1e-9, "lattice bounds must be whole multiples of the step"
    first = int(round(start / step))
    return [(first + i) * step for i in range(count + 1)]


def build_overlay(
    origin: Optional[GeoPoint],
    corner_a: GeoPoint,
    corner_b: GeoPoint,
    step: float = DEFAULT_STEP_METRES,
    convergence_deg: float = 0.0,
) -> GridOverlay:
    if origin is None:
        raise NoOrigin()
    validate_point(origin)
    check_convergence(convergence_deg)
    if not math.isfinite(step) or step <= 0:
        raise ValueError("Step must be positive")

    corners = viewport_corners(corner_a, corner_b)
    offsets = [to_grid(origin, corner, convergence_deg) for corner in corners]
    min_e, min_n, max_e, max_n = lattice_bounds(offsets, step)

    columns = int(round((max_e - min_e) / step)) + 1
    rows = int(round((max_n - min_n) / step)) + 1
    if columns * rows > MAX_OVERLAY_POINTS:
        raise ValueError(
            "Requested overlay is too dense to generate reliably. Increase the step."
        )

    eastings = _axis(min_e, max_e, step)
    northings = _axis(min_n, max_n, step)

    logger.debug(
        "Building %dx%d overlay lattice (step=%s, convergence=%s)",
        len(eastings),
        len(northings),
        step,
        convergence_deg,
    )

    points: List[LatticePoint] = []
    for easting in eastings:
        for northing in northings:
            offset = GridOffset(easting=easting, northing=northing)
            points.append(LatticePoint(offset=offset, position=from_grid(origin, offset, convergence_deg)))

    return GridOverlay(
        origin=origin,
        step=step,
        convergence=convergence_deg,
        bounds=(min_e, min_n, max_e, max_n),
        eastings=eastings,
        northings=northings,
        points=points,
    )


def subdivisions(overlay: GridOverlay, parts: int = DEFAULT_SUBDIVISIONS) -> Dict[str, List[List[GeoPoint]]]:
    """Minor grid lines splitting every major cell into ``parts`` strips each way."""
    if parts < 2:
        raise ValueError("Subdivisions need at least two parts")

    def line(fixed_e: Optional[float], fixed_n: Optional[float]) -> List[GeoPoint]:
        if fixed_e is not None:
            offsets = [GridOffset(fixed_e, n) for n in overlay.northings]
        else:
            offsets = [GridOffset(e, fixed_n) for e in overlay.eastings]
        return [from_grid(overlay.origin, o, overlay.convergence) for o in offsets]

    vertical: List[List[GeoPoint]] = []
    for e_a, e_b in zip(overlay.eastings[:-1], overlay.eastings[1:]):
        for k in range(1, parts):
            vertical.append(line(e_a + (e_b - e_a) * k / parts, None))

    horizontal: List[List[GeoPoint]] = []
    for n_a, n_b in zip(overlay.northings[:-1], overlay.northings[1:]):
        for k in range(1, parts):
            horizontal.append(line(None, n_a + (n_b - n_a) * k / parts))

    return {"vertical": vertical, "horizontal": horizontal}
