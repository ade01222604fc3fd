"""Spherical geodesic primitives.

All positions live on a sphere of radius ``EARTH_RADIUS_M``. Bearings are
clockwise from true north in degrees.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

from .config import EARTH_RADIUS_M
from .models import GeoPoint, validate_point


@dataclass(frozen=True)
class Inverse:
    distance_m: float
    initial_bearing_deg: float


def normalize_bearing(degrees: float) -> float:
    value = degrees % 360.0
    # -1e-17 % 360 rounds to 360.0
    if value >= 360.0:
        value = 0.0
    return value


def normalize_longitude(degrees: float) -> float:
    if -180.0 <= degrees <= 180.0:
        return degrees
    value = (degrees + 180.0) % 360.0 - 180.0
    if value == -180.0 and degrees > 0:
        return 180.0
    return value


def haversine_distance(a: GeoPoint, b: GeoPoint) -> float:
    validate_point(a)
    validate_point(b)
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def initial_bearing(a: GeoPoint, b: GeoPoint) -> float:
    validate_point(a)
    validate_point(b)
    if a == b:
        return 0.0
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlon = math.radians(b.longitude - a.longitude)

    x = math.sin(dlon) * math.cos(lat2)
    y = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)
    return normalize_bearing(math.degrees(math.atan2(x, y)))


def inverse(a: GeoPoint, b: GeoPoint) -> Inverse:
    return Inverse(distance_m=haversine_distance(a, b), initial_bearing_deg=initial_bearing(a, b))


def destination(origin: GeoPoint, bearing_deg: float, distance_m: float) -> GeoPoint:
    validate_point(origin)
    if not (math.isfinite(bearing_deg) and math.isfinite(distance_m)):
        raise ValueError("Bearing and distance must be finite")
    if distance_m < 0:
        raise ValueError("Distance must not be negative")
    if distance_m == 0:
        return origin

    delta = distance_m / EARTH_RADIUS_M

    # At a pole every bearing is a meridian; match initial_bearing's convention.
    if abs(origin.latitude) == 90.0:
        arc = min(180.0, math.degrees(delta))
        if origin.latitude > 0:
            return GeoPoint(90.0 - arc, normalize_longitude(origin.longitude + 180.0 - bearing_deg))
        return GeoPoint(-90.0 + arc, normalize_longitude(origin.longitude + bearing_deg))

    lat1 = math.radians(origin.latitude)
    lon1 = math.radians(origin.longitude)
    theta = math.radians(bearing_deg)

    sin_lat2 = math.sin(lat1) * math.cos(delta) + math.cos(lat1) * math.sin(delta) * math.cos(theta)
    lat2 = math.asin(min(1.0, max(-1.0, sin_lat2)))
    lon2 = lon1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(lat1),
        math.cos(delta) - math.sin(lat1) * math.sin(lat2),
    )

    latitude = min(90.0, max(-90.0, math.degrees(lat2)))
    return GeoPoint(latitude, normalize_longitude(math.degrees(lon2)))
