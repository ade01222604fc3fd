from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Callable, Optional

import requests

from .config import NOAA_DECLINATION_URL, NOAA_TIMEOUT_S
from .geodesy import normalize_bearing
from .models import GeoPoint, validate_point

logger = logging.getLogger(__name__)

DeclinationModel = Callable[[GeoPoint, Optional[datetime], float], float]

BEARING_REFERENCES = ("true", "magnetic", "grid")


class DeclinationUnavailable(RuntimeError):
    pass


def _require_finite(name: str, value: float) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite")
    return value


def true_heading(mag_heading_deg: float, position: GeoPoint, declination_deg: float) -> float:
    validate_point(position)
    heading = _require_finite("Magnetic heading", mag_heading_deg)
    declination = _require_finite("Declination", declination_deg)
    return normalize_bearing(heading + declination)


def corrected_heading(
    mag_heading_deg: float,
    position: GeoPoint,
    model: DeclinationModel,
    when: Optional[datetime] = None,
    altitude_m: float = 0.0,
) -> float:
    validate_point(position)
    _require_finite("Magnetic heading", mag_heading_deg)
    return true_heading(mag_heading_deg, position, model(position, when, altitude_m))


def convert_bearing(
    bearing: float,
    source: str,
    target: str,
    declination: float = 0.0,
    convergence: float = 0.0,
) -> float:
    """Convert a bearing between true, magnetic and grid north.

    Declination is positive when magnetic north lies east of true north,
    convergence is positive when grid north lies east of true north.
    """
    for ref in (source, target):
        if ref not in BEARING_REFERENCES:
            raise ValueError(f"Unknown bearing reference '{ref}'")
    bearing = _require_finite("Bearing", bearing)
    if source == target:
        return normalize_bearing(bearing)

    offsets = {"true": 0.0, "magnetic": declination, "grid": convergence}
    return normalize_bearing(bearing + offsets[source] - offsets[target])


class FixedDeclination:
    def __init__(self, degrees: float):
        self.degrees = _require_finite("Declination", degrees)

    def __call__(self, position: GeoPoint, when: Optional[datetime] = None, altitude_m: float = 0.0) -> float:
        return self.degrees


class NoaaDeclination:
    """Declination from the NOAA geomagnetic web calculator."""

    def __init__(self, url: str = NOAA_DECLINATION_URL, timeout: float = NOAA_TIMEOUT_S, session=None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _params(self, position: GeoPoint, when: datetime, altitude_m: float) -> dict:
        return {
            "lat1": position.latitude,
            "lon1": position.longitude,
            "elevation": altitude_m / 1000.0,
            "elevationUnits": "K",
            "resultFormat": "json",
            "startYear": when.year,
            "startMonth": when.month,
            "startDay": when.day,
        }

    def __call__(self, position: GeoPoint, when: Optional[datetime] = None, altitude_m: float = 0.0) -> float:
        validate_point(position)
        when = when or datetime.now(timezone.utc)
        try:
            response = self.session.get(
                self.url, params=self._params(position, when, altitude_m), timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Declination lookup failed for %s: %s", position, exc)
            raise DeclinationUnavailable("Declination service request failed") from exc

        value = _extract_declination(data)
        if value is None:
            logger.warning("Declination response had no usable value: %s", data)
            raise DeclinationUnavailable("Declination service returned no value")
        return value


def _extract_declination(data) -> Optional[float]:
    if not isinstance(data, dict):
        return None
    result = data.get("result")
    if isinstance(result, list) and result and isinstance(result[0], dict):
        for key in ("declination", "declination_value"):
            if isinstance(result[0].get(key), (int, float)):
                return float(result[0][key])
    if isinstance(data.get("declination"), (int, float)):
        return float(data["declination"])
    return None
