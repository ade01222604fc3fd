from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional

import geopandas as gpd
import pandas as pd
from pyproj import Transformer
from shapely.geometry import LineString, Point

from .config import APP_DATA_DIR, EPSG_LATLON
from .grid_transform import utm_epsg
from .models import RouteMode
from .overlay import GridOverlay
from .route import RouteResult
from .utils import ensure_parent, geometry_to_feature, round_bounds, slugify


def _overlay_file_paths(overlay: GridOverlay, directory: Path):
    step_int = int(round(overlay.step))
    return (
        directory / f"overlay_{step_int}m.geojson",
        directory / f"overlay_{step_int}m.csv",
    )


def export_overlay(overlay: GridOverlay, directory: Optional[Path] = None) -> Dict[str, Path]:
    directory = Path(directory) if directory is not None else APP_DATA_DIR / "overlays"
    geojson_path, csv_path = _overlay_file_paths(overlay, directory)
    ensure_parent(geojson_path)

    epsg = utm_epsg(overlay.origin)
    to_utm = Transformer.from_crs(EPSG_LATLON, epsg, always_xy=True)

    rows = []
    for index, point in enumerate(overlay.points):
        x, y = to_utm.transform(point.position.longitude, point.position.latitude)
        rows.append(
            {
                "id": index + 1,
                "easting": point.offset.easting,
                "northing": point.offset.northing,
                "lat": point.position.latitude,
                "lon": point.position.longitude,
                "utm_x": x,
                "utm_y": y,
            }
        )

    frame = pd.DataFrame(rows)
    frame.to_csv(csv_path, index=False)

    geometry = [Point(row["lon"], row["lat"]) for row in rows]
    gdf = gpd.GeoDataFrame(
        frame[["id", "easting", "northing"]], geometry=geometry, crs=EPSG_LATLON
    )
    gdf.to_file(geojson_path, driver="GeoJSON")

    return {"overlay_points": geojson_path, "overlay_table": csv_path}


def export_route(result: RouteResult, name: str, directory: Optional[Path] = None) -> Dict[str, Path]:
    route_dir = (Path(directory) if directory is not None else APP_DATA_DIR / "routes") / slugify(name)
    route_dir.mkdir(parents=True, exist_ok=True)

    waypoint_path = route_dir / "route_waypoints.csv"
    path_geojson = route_dir / "route_path.geojson"
    report_path = route_dir / "route_report.json"

    stops = [result.start] + [w.position for w in result.route.waypoints]
    if result.route.closed and result.route.waypoints:
        stops.append(result.start)

    pd.DataFrame(
        [
            {
                "seq": idx + 1,
                "id": waypoint.id,
                "label": waypoint.label or "",
                "lat": waypoint.position.latitude,
                "lon": waypoint.position.longitude,
                "leg_m": result.legs[idx].distance_m,
                "bearing_deg": result.legs[idx].bearing_deg,
            }
            for idx, waypoint in enumerate(result.route.waypoints)
        ],
        columns=["seq", "id", "label", "lat", "lon", "leg_m", "bearing_deg"],
    ).to_csv(waypoint_path, index=False)

    features = []
    if len(stops) >= 2:
        features.append(
            geometry_to_feature(
                LineString([p.as_lonlat() for p in stops]),
                {"name": name, "mode": result.route.mode.value},
            )
        )
    path_geojson.write_text(json.dumps({"type": "FeatureCollection", "features": features}, indent=2))

    lons = [p.longitude for p in stops]
    lats = [p.latitude for p in stops]
    report = {
        "route": name,
        "mode": result.route.mode.value,
        "closed": result.route.mode is RouteMode.CIRCUIT,
        "total_length_m": round(result.total_distance, 3),
        "waypoint_count": len(result.route.waypoints),
        "bounds_lonlat": round_bounds((min(lons), min(lats), max(lons), max(lats)), 6),
    }
    report_path.write_text(json.dumps(report, indent=2))

    return {
        "route_waypoints": waypoint_path,
        "route_path": path_geojson,
        "route_report": report_path,
        "route_directory": route_dir,
    }
