from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import APP_DATA_DIR, LEGACY_CHECKPOINTS_FILE, STORE_FILE
from .geodesy import destination
from .grid_transform import grid_reference_to_point, to_grid
from .models import GeoPoint, GridOffset, NoOrigin, RouteMode, Waypoint, validate_point
from .route import RouteResult, optimize_route
from .utils import ensure_parent, make_id, now_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SavedRoute:
    id: str
    name: str
    created_at: float
    waypoints: Tuple[Waypoint, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "checkpoints": [w.to_dict() for w in self.waypoints],
        }


@dataclass(frozen=True)
class SavedLocation:
    id: str
    name: str
    position: GeoPoint
    created_at: float
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "latitude": self.position.latitude,
            "longitude": self.position.longitude,
            "createdAt": self.created_at,
        }
        if self.description is not None:
            payload["description"] = self.description
        return payload


@dataclass(frozen=True)
class StoreState:
    waypoints: Tuple[Waypoint, ...] = ()
    selected_id: Optional[str] = None
    saved_routes: Tuple[SavedRoute, ...] = ()
    saved_locations: Tuple[SavedLocation, ...] = ()
    is_loaded: bool = False
    active_route_color: Optional[str] = None
    active_route_start: Optional[GeoPoint] = None
    active_route_loop: bool = False
    grid_origin: Optional[GeoPoint] = None
    grid_convergence: float = 0.0

    @property
    def selected(self) -> Optional[Waypoint]:
        for waypoint in self.waypoints:
            if waypoint.id == self.selected_id:
                return waypoint
        return None


Listener = Callable[[StoreState], None]


def _parse_waypoint(raw: Any) -> Optional[Waypoint]:
    if not isinstance(raw, dict):
        return None
    if not isinstance(raw.get("id"), str):
        return None
    lat, lon, created = raw.get("latitude"), raw.get("longitude"), raw.get("createdAt")
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (lat, lon, created)):
        return None
    label = raw.get("label")
    color = raw.get("color")
    if label is not None and not isinstance(label, str):
        return None
    try:
        position = validate_point(GeoPoint(float(lat), float(lon)))
    except ValueError:
        return None
    return Waypoint(
        id=raw["id"],
        position=position,
        created_at=float(created),
        label=label,
        color=color if isinstance(color, str) else None,
    )


def _parse_route(raw: Any) -> Optional[SavedRoute]:
    if not isinstance(raw, dict):
        return None
    if not (isinstance(raw.get("id"), str) and isinstance(raw.get("name"), str)):
        return None
    if not isinstance(raw.get("createdAt"), (int, float)) or not isinstance(raw.get("checkpoints"), list):
        return None
    waypoints = [_parse_waypoint(item) for item in raw["checkpoints"]]
    if any(w is None for w in waypoints):
        return None
    return SavedRoute(raw["id"], raw["name"], float(raw["createdAt"]), tuple(waypoints))


def _parse_location(raw: Any) -> Optional[SavedLocation]:
    if not isinstance(raw, dict):
        return None
    if not (isinstance(raw.get("id"), str) and isinstance(raw.get("name"), str)):
        return None
    description = raw.get("description")
    if description is not None and not isinstance(description, str):
        return None
    lat, lon, created = raw.get("latitude"), raw.get("longitude"), raw.get("createdAt")
    if not all(isinstance(v, (int, float)) for v in (lat, lon, created)):
        return None
    try:
        position = validate_point(GeoPoint(float(lat), float(lon)))
    except ValueError:
        return None
    return SavedLocation(raw["id"], raw["name"], position, float(created), description)


def _read_json(path: Path) -> Any:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text())
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable store file %s: %s", path, exc)
        return None


class WaypointStore:
    """Owned waypoint state with change notification and JSON persistence.

    Only saved routes and saved locations are persisted; the active route is
    ephemeral until saved.
    """

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory is not None else APP_DATA_DIR
        self.path = self.directory / STORE_FILE
        self.legacy_path = self.directory / LEGACY_CHECKPOINTS_FILE
        self._state = StoreState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> StoreState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes: Any) -> StoreState:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Store listener %r failed", listener)
        return self._state

    # persistence

    def load(self) -> StoreState:
        raw = _read_json(self.path) or {}
        routes_doc = raw.get("routes") if isinstance(raw, dict) else None
        locations_doc = raw.get("locations") if isinstance(raw, dict) else None

        routes = [r for r in map(_parse_route, routes_doc if isinstance(routes_doc, list) else []) if r]
        locations = [
            loc for loc in map(_parse_location, locations_doc if isinstance(locations_doc, list) else []) if loc
        ]

        if not routes and self.legacy_path.exists():
            legacy = self._import_legacy()
            if legacy is not None:
                routes.insert(0, legacy)

        state = self._set(
            waypoints=(),
            selected_id=None,
            saved_routes=tuple(routes),
            saved_locations=tuple(locations),
            is_loaded=True,
        )
        self.persist()
        logger.info("Loaded %d saved routes and %d locations", len(routes), len(locations))
        return state

    def _import_legacy(self) -> Optional[SavedRoute]:
        raw = _read_json(self.legacy_path)
        items = raw.get("checkpoints") if isinstance(raw, dict) else None
        waypoints = [w for w in map(_parse_waypoint, items if isinstance(items, list) else []) if w]
        self.legacy_path.unlink()
        if not waypoints:
            return None
        # legacy documents stored newest first
        waypoints.reverse()
        logger.info("Recovered %d legacy checkpoints as a saved route", len(waypoints))
        return SavedRoute(make_id(), "Recovered route", now_ms(), tuple(waypoints))

    def persist(self) -> Path:
        ensure_parent(self.path)
        document = {
            "routes": [r.to_dict() for r in self._state.saved_routes],
            "locations": [loc.to_dict() for loc in self._state.saved_locations],
        }
        self.path.write_text(json.dumps(document, indent=2))
        return self.path

    # active route

    def add_waypoint(self, latitude: float, longitude: float, label: Optional[str] = None) -> Waypoint:
        waypoint = Waypoint(
            id=make_id(),
            position=GeoPoint.create(latitude, longitude),
            created_at=now_ms(),
            label=(label.strip() or None) if label else None,
            color=self._state.active_route_color,
        )
        self._set(waypoints=self._state.waypoints + (waypoint,), selected_id=waypoint.id)
        return waypoint

    def _index(self, waypoint_id: str) -> int:
        for index, waypoint in enumerate(self._state.waypoints):
            if waypoint.id == waypoint_id:
                return index
        raise KeyError(waypoint_id)

    def remove_waypoint(self, waypoint_id: str) -> None:
        self._index(waypoint_id)
        remaining = tuple(w for w in self._state.waypoints if w.id != waypoint_id)
        selected = self._state.selected_id
        if selected == waypoint_id:
            selected = remaining[-1].id if remaining else None
        self._set(waypoints=remaining, selected_id=selected)

    def select_waypoint(self, waypoint_id: Optional[str]) -> None:
        if waypoint_id is not None:
            self._index(waypoint_id)
        self._set(selected_id=waypoint_id)

    def set_label(self, waypoint_id: str, label: str) -> Waypoint:
        index = self._index(waypoint_id)
        updated = replace(self._state.waypoints[index], label=label.strip() or None)
        waypoints = list(self._state.waypoints)
        waypoints[index] = updated
        self._set(waypoints=tuple(waypoints))
        return updated

    def reorder(self, waypoints: List[Waypoint]) -> None:
        selected = self._state.selected_id
        if not any(w.id == selected for w in waypoints):
            selected = waypoints[-1].id if waypoints else None
        self._set(waypoints=tuple(waypoints), selected_id=selected)

    def clear_active_route(self) -> None:
        self._set(waypoints=(), selected_id=None)

    def set_active_route_color(self, color: Optional[str]) -> None:
        self._set(active_route_color=color)

    def set_active_route_start(self, start: Optional[GeoPoint]) -> None:
        self._set(active_route_start=validate_point(start) if start is not None else None)

    def set_active_route_loop(self, loop: bool) -> None:
        self._set(active_route_loop=bool(loop))

    def project_waypoint(
        self, distance_m: float, bearing_deg: float, start: Optional[GeoPoint] = None
    ) -> Waypoint:
        if start is None:
            selected = self._state.selected
            if selected is None:
                raise ValueError("Projection needs a start point or a selected waypoint")
            start = selected.position
        target = destination(start, bearing_deg, distance_m)
        return self.add_waypoint(target.latitude, target.longitude)

    def optimize_active_route(self, start: Optional[GeoPoint] = None) -> RouteResult:
        waypoints = self._state.waypoints
        if start is None:
            start = self._state.active_route_start
        if start is None:
            if not waypoints:
                raise ValueError("No waypoints to order")
            start = waypoints[0].position
        mode = RouteMode.CIRCUIT if self._state.active_route_loop else RouteMode.PATH
        result = optimize_route(waypoints, start, mode)
        self.reorder(result.waypoints)
        return result

    # grid

    def set_grid_origin(self, origin: Optional[GeoPoint]) -> None:
        self._set(grid_origin=validate_point(origin) if origin is not None else None)

    def set_convergence(self, degrees: float) -> None:
        self._set(grid_convergence=float(degrees))

    def add_grid_reference(self, easting: str, northing: str) -> Waypoint:
        origin = self._state.grid_origin
        if origin is None:
            raise NoOrigin("Map grid origin is not set")
        point = grid_reference_to_point(origin, easting, northing, self._state.grid_convergence)
        return self.add_waypoint(point.latitude, point.longitude)

    def grid_position(self, waypoint_id: str) -> GridOffset:
        waypoint = self._state.waypoints[self._index(waypoint_id)]
        return to_grid(self._state.grid_origin, waypoint.position, self._state.grid_convergence)

    # saved routes and locations

    def save_route(self, name: str) -> SavedRoute:
        trimmed = name.strip()
        if not trimmed:
            raise ValueError("Route name is required")
        if not self._state.waypoints:
            raise ValueError("No waypoints to save")
        route = SavedRoute(make_id(), trimmed, now_ms(), self._state.waypoints)
        self._set(saved_routes=(route,) + self._state.saved_routes)
        self.persist()
        return route

    def load_route(self, route_id: str) -> SavedRoute:
        for route in self._state.saved_routes:
            if route.id == route_id:
                selected = route.waypoints[-1].id if route.waypoints else None
                self._set(waypoints=route.waypoints, selected_id=selected)
                return route
        raise KeyError(route_id)

    def delete_route(self, route_id: str) -> None:
        self._set(saved_routes=tuple(r for r in self._state.saved_routes if r.id != route_id))
        self.persist()

    def save_location(
        self, name: str, latitude: float, longitude: float, description: Optional[str] = None
    ) -> SavedLocation:
        trimmed = name.strip()
        if not trimmed:
            raise ValueError("Location name is required")
        location = SavedLocation(
            id=make_id(),
            name=trimmed,
            position=GeoPoint.create(latitude, longitude),
            created_at=now_ms(),
            description=description.strip() if description is not None else None,
        )
        self._set(saved_locations=(location,) + self._state.saved_locations)
        self.persist()
        return location

    def delete_location(self, location_id: str) -> None:
        self._set(saved_locations=tuple(loc for loc in self._state.saved_locations if loc.id != location_id))
        self.persist()
