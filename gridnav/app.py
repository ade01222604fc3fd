from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import DEFAULT_STEP_METRES
from .geodesy import destination, inverse
from .grid_transform import from_grid, grid_reference_to_point, to_grid
from .heading import true_heading
from .models import GeoPoint, GridNavError, GridOffset, Waypoint
from .overlay import GridOverlay, build_overlay
from .route import RouteResult, optimize_route

logger = logging.getLogger(__name__)

app = FastAPI(title="Grid Navigation Worker", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GridNavError)
def _grid_nav_error(_: Request, exc: GridNavError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"errors": [exc.to_dict()]})


def _field(payload: Dict[str, Any], key: str) -> Any:
    if key not in payload or payload[key] is None:
        raise HTTPException(status_code=400, detail=f"{key} is required")
    return payload[key]


def _number(payload: Dict[str, Any], key: str, default: Any = None) -> float:
    value = payload.get(key, default) if default is not None else _field(payload, key)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"{key} must be a number") from exc


def _point(payload: Dict[str, Any], key: str) -> GeoPoint:
    raw = _field(payload, key)
    if not isinstance(raw, dict) or "lat" not in raw or "lon" not in raw:
        raise HTTPException(status_code=400, detail=f"{key} must be an object with lat and lon")
    return GeoPoint.create(raw["lat"], raw["lon"])


def _optional_origin(payload: Dict[str, Any]):
    return _point(payload, "origin") if payload.get("origin") is not None else None


def _waypoints(payload: Dict[str, Any]) -> List[Waypoint]:
    raw = payload.get("waypoints") or []
    if not isinstance(raw, list):
        raise HTTPException(status_code=400, detail="waypoints must be a list")
    waypoints = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise HTTPException(status_code=400, detail=f"waypoint {idx} must be an object")
        waypoints.append(
            Waypoint(
                id=str(item.get("id", idx)),
                position=GeoPoint.create(item.get("lat"), item.get("lon")),
                created_at=float(item.get("created_at", 0)),
                label=item.get("label"),
                color=item.get("color"),
            )
        )
    return waypoints


@app.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok"}


@app.post("/geodesy/inverse")
def geodesy_inverse(payload: Dict[str, Any]):
    solution = inverse(_point(payload, "from"), _point(payload, "to"))
    return {"distance_m": solution.distance_m, "initial_bearing_deg": solution.initial_bearing_deg}


@app.post("/geodesy/destination")
def geodesy_destination(payload: Dict[str, Any]):
    try:
        point = destination(
            _point(payload, "origin"), _number(payload, "bearing_deg"), _number(payload, "distance_m")
        )
    except GridNavError:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return point.to_dict()


@app.post("/grid/to-grid")
def grid_to_grid(payload: Dict[str, Any]):
    offset = to_grid(
        _optional_origin(payload), _point(payload, "point"), _number(payload, "convergence", 0.0)
    )
    return offset.to_dict()


@app.post("/grid/from-grid")
def grid_from_grid(payload: Dict[str, Any]):
    offset = GridOffset(_number(payload, "easting"), _number(payload, "northing"))
    point = from_grid(_optional_origin(payload), offset, _number(payload, "convergence", 0.0))
    return point.to_dict()


@app.post("/grid/reference")
def grid_reference(payload: Dict[str, Any]):
    point = grid_reference_to_point(
        _optional_origin(payload),
        str(_field(payload, "easting")),
        str(_field(payload, "northing")),
        _number(payload, "convergence", 0.0),
    )
    return point.to_dict()


def _overlay_response(overlay: GridOverlay) -> Dict[str, Any]:
    return {
        "step": overlay.step,
        "convergence": overlay.convergence,
        "bounds": {
            "min_easting": overlay.bounds[0],
            "min_northing": overlay.bounds[1],
            "max_easting": overlay.bounds[2],
            "max_northing": overlay.bounds[3],
        },
        "points": [
            {
                "easting": p.offset.easting,
                "northing": p.offset.northing,
                "lat": p.position.latitude,
                "lon": p.position.longitude,
            }
            for p in overlay.points
        ],
        "grid_lines": overlay.grid_lines_feature(),
    }


@app.post("/grid/overlay")
def grid_overlay(payload: Dict[str, Any]):
    origin = _optional_origin(payload)
    try:
        overlay = build_overlay(
            origin,
            _point(payload, "corner_a"),
            _point(payload, "corner_b"),
            step=_number(payload, "step", DEFAULT_STEP_METRES),
            convergence_deg=_number(payload, "convergence", 0.0),
        )
    except GridNavError:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return JSONResponse(_overlay_response(overlay))


def _route_response(result: RouteResult) -> Dict[str, Any]:
    return {
        "mode": result.route.mode.value,
        "totals": {
            "distance_m": result.total_distance,
            "waypoints": len(result.route),
        },
        "waypoints": [
            {"seq": idx + 1, "id": w.id, "lat": w.position.latitude, "lon": w.position.longitude}
            for idx, w in enumerate(result.route.waypoints)
        ],
        "legs": [
            {"distance_m": leg.distance_m, "bearing_deg": leg.bearing_deg} for leg in result.legs
        ],
    }


@app.post("/route/optimize")
def route_optimize(payload: Dict[str, Any]):
    try:
        result = optimize_route(
            _waypoints(payload), _point(payload, "start"), payload.get("mode", "path")
        )
    except (GridNavError, HTTPException):
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Route optimisation failed: %s", exc)
        raise HTTPException(status_code=500, detail="Route optimisation failed") from exc
    return JSONResponse(_route_response(result))


@app.post("/heading/true")
def heading_true(payload: Dict[str, Any]):
    try:
        heading = true_heading(
            _number(payload, "magnetic_heading"),
            _point(payload, "position"),
            _number(payload, "declination"),
        )
    except GridNavError:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"true_heading": heading}
