from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class GridNavError(ValueError):
    kind = "error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        payload.update(self.details)
        return payload


class InvalidCoordinate(GridNavError):
    kind = "invalid_coordinate"


class InvalidGridReference(GridNavError):
    kind = "invalid_grid_reference"


class NoOrigin(GridNavError):
    kind = "no_origin"

    def __init__(self, message: str = "Grid origin is not set"):
        super().__init__(message)


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float

    @classmethod
    def create(cls, latitude: float, longitude: float) -> "GeoPoint":
        try:
            lat = float(latitude)
            lon = float(longitude)
        except (TypeError, ValueError) as exc:
            raise InvalidCoordinate(
                "Latitude and longitude must be numbers",
                latitude=str(latitude),
                longitude=str(longitude),
            ) from exc
        return validate_point(cls(lat, lon))

    def as_lonlat(self) -> Tuple[float, float]:
        return (self.longitude, self.latitude)

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.latitude, "lon": self.longitude}


# A grid origin is a plain GeoPoint designated as (0, 0).
GridOrigin = GeoPoint


def validate_point(point: Optional[GeoPoint]) -> GeoPoint:
    if point is None:
        raise InvalidCoordinate("Coordinate is required")
    lat = point.latitude
    lon = point.longitude
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidCoordinate("Coordinate must be finite", latitude=lat, longitude=lon)
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinate("Latitude must be within [-90, 90]", latitude=lat, longitude=lon)
    if not -180.0 <= lon <= 180.0:
        raise InvalidCoordinate("Longitude must be within [-180, 180]", latitude=lat, longitude=lon)
    return point


@dataclass(frozen=True)
class GridOffset:
    easting: float
    northing: float

    def to_dict(self) -> Dict[str, float]:
        return {"easting": self.easting, "northing": self.northing}


@dataclass(frozen=True)
class Waypoint:
    id: str
    position: GeoPoint
    created_at: float
    label: Optional[str] = None
    color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "latitude": self.position.latitude,
            "longitude": self.position.longitude,
            "createdAt": self.created_at,
        }
        if self.label is not None:
            payload["label"] = self.label
        if self.color is not None:
            payload["color"] = self.color
        return payload


class RouteMode(str, Enum):
    PATH = "path"
    CIRCUIT = "circuit"

    @classmethod
    def parse(cls, value: "RouteMode | str") -> "RouteMode":
        try:
            return cls(value)
        except ValueError as exc:
            raise ValueError(f"Unknown route mode '{value}'") from exc


@dataclass(frozen=True)
class Route:
    waypoints: Tuple[Waypoint, ...] = field(default_factory=tuple)
    closed: bool = False

    @property
    def mode(self) -> RouteMode:
        return RouteMode.CIRCUIT if self.closed else RouteMode.PATH

    def __len__(self) -> int:
        return len(self.waypoints)
