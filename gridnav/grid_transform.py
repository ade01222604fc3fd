from __future__ import annotations

import math
import re
from typing import Optional, Tuple

from .config import GRID_DIGIT_SCALES
from .geodesy import destination, inverse, normalize_bearing
from .models import GeoPoint, GridOffset, InvalidGridReference, NoOrigin, validate_point

_DIGITS_RE = re.compile(r"^[0-9]{1,5}$")


def _require_origin(origin: Optional[GeoPoint]) -> GeoPoint:
    if origin is None:
        raise NoOrigin()
    return validate_point(origin)


def check_convergence(convergence_deg: float) -> float:
    if not math.isfinite(convergence_deg):
        raise InvalidGridReference("Grid convergence must be finite", convergence=convergence_deg)
    return convergence_deg


def _rotate(easting: float, northing: float, degrees: float) -> Tuple[float, float]:
    rad = math.radians(degrees)
    cos_t = math.cos(rad)
    sin_t = math.sin(rad)
    return (easting * cos_t - northing * sin_t, easting * sin_t + northing * cos_t)


def to_grid(origin: Optional[GeoPoint], point: GeoPoint, convergence_deg: float = 0.0) -> GridOffset:
    origin = _require_origin(origin)
    check_convergence(convergence_deg)
    validate_point(point)

    solution = inverse(origin, point)
    bearing_rad = math.radians(solution.initial_bearing_deg)
    e_true = solution.distance_m * math.sin(bearing_rad)
    n_true = solution.distance_m * math.cos(bearing_rad)

    easting, northing = _rotate(e_true, n_true, -convergence_deg)
    return GridOffset(easting=easting, northing=northing)


def from_grid(origin: Optional[GeoPoint], offset: GridOffset, convergence_deg: float = 0.0) -> GeoPoint:
    origin = _require_origin(origin)
    check_convergence(convergence_deg)
    if not (math.isfinite(offset.easting) and math.isfinite(offset.northing)):
        raise InvalidGridReference(
            "Grid offset must be finite", easting=offset.easting, northing=offset.northing
        )

    e_true, n_true = _rotate(offset.easting, offset.northing, convergence_deg)
    distance = math.hypot(e_true, n_true)
    if distance == 0:
        return origin
    bearing = normalize_bearing(math.degrees(math.atan2(e_true, n_true)))
    return destination(origin, bearing, distance)


def digit_scale(digit_count: int) -> float:
    scale = GRID_DIGIT_SCALES.get(digit_count)
    if scale is None:
        raise InvalidGridReference("Grid references use 1-5 digits", digits=digit_count)
    return scale


def encode_digits(meters: float, digit_count: int) -> str:
    """Encode a non-negative distance as a zero-padded grid digit string."""
    scale = digit_scale(digit_count)
    if not math.isfinite(meters) or meters < 0:
        raise InvalidGridReference("Grid distance must be a finite, non-negative number", meters=meters)

    units = int(math.floor(meters / scale + 0.5))
    if units >= 10**digit_count:
        raise InvalidGridReference(
            f"{meters} m does not fit in {digit_count} grid digits", meters=meters, digits=digit_count
        )
    return str(units).zfill(digit_count)


def decode_digits(digits: str) -> float:
    value = digits.strip() if isinstance(digits, str) else ""
    if not _DIGITS_RE.match(value):
        raise InvalidGridReference("Enter grid digits only (1-5 digits)", value=str(digits))
    return int(value) * digit_scale(len(value))


def parse_grid_reference(easting: str, northing: str) -> GridOffset:
    east_meters = decode_digits(easting)
    north_meters = decode_digits(northing)
    if len(easting.strip()) != len(northing.strip()):
        raise InvalidGridReference(
            "Easting and northing must have the same number of digits",
            easting=easting,
            northing=northing,
        )
    return GridOffset(easting=east_meters, northing=north_meters)


def format_grid_reference(offset: GridOffset, digit_count: int) -> Tuple[str, str]:
    return encode_digits(offset.easting, digit_count), encode_digits(offset.northing, digit_count)


def grid_reference_to_point(
    origin: Optional[GeoPoint],
    easting: str,
    northing: str,
    convergence_deg: float = 0.0,
) -> GeoPoint:
    origin = _require_origin(origin)
    check_convergence(convergence_deg)
    offset = parse_grid_reference(easting, northing)
    return from_grid(origin, offset, convergence_deg)


def utm_zone(point: GeoPoint) -> int:
    validate_point(point)
    return min(int((point.longitude + 180.0) // 6) + 1, 60)


def utm_epsg(point: GeoPoint) -> int:
    zone = utm_zone(point)
    return (32600 if point.latitude >= 0 else 32700) + zone


def utm_convergence(point: GeoPoint, zone: Optional[int] = None) -> float:
    """Approximate UTM grid convergence in degrees, positive east of the central meridian
    in the northern hemisphere."""
    zone = zone if zone is not None else utm_zone(point)
    if not 1 <= zone <= 60:
        raise ValueError("UTM zone must be within 1-60")
    central_meridian = zone * 6 - 183
    dlon = math.radians(point.longitude - central_meridian)
    phi = math.radians(point.latitude)
    return math.degrees(math.atan(math.sin(dlon) * math.tan(phi)))
