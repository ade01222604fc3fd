from datetime import datetime, timezone

import pytest
import requests

from gridnav.heading import (
    DeclinationUnavailable,
    FixedDeclination,
    NoaaDeclination,
    convert_bearing,
    corrected_heading,
    true_heading,
)
from gridnav.models import GeoPoint, InvalidCoordinate

MELBOURNE = GeoPoint(-37.8136, 144.9631)


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.mark.parametrize(
    "magnetic,declination,expected",
    [(10.0, 11.5, 21.5), (350.0, 15.0, 5.0), (10.0, -20.0, 350.0), (0.0, 0.0, 0.0), (720.0, 0.0, 0.0)],
)
def test_true_heading(magnetic, declination, expected):
    assert true_heading(magnetic, MELBOURNE, declination) == pytest.approx(expected)


def test_true_heading_validation():
    with pytest.raises(ValueError):
        true_heading(float("nan"), MELBOURNE, 0.0)
    with pytest.raises(ValueError):
        true_heading(10.0, MELBOURNE, float("inf"))
    with pytest.raises(InvalidCoordinate):
        true_heading(10.0, GeoPoint(100.0, 0.0), 0.0)


def test_corrected_heading_uses_model():
    seen = []

    def model(position, when, altitude_m):
        seen.append((position, when, altitude_m))
        return 11.5

    when = datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert corrected_heading(355.0, MELBOURNE, model, when, 120.0) == pytest.approx(6.5)
    assert seen == [(MELBOURNE, when, 120.0)]
    assert corrected_heading(90.0, MELBOURNE, FixedDeclination(-5.0)) == pytest.approx(85.0)


@pytest.mark.parametrize(
    "source,target,expected",
    [
        ("magnetic", "true", 110.0),
        ("true", "magnetic", 90.0),
        ("grid", "true", 102.0),
        ("true", "grid", 98.0),
        ("grid", "magnetic", 92.0),
        ("magnetic", "grid", 108.0),
        ("grid", "grid", 100.0),
    ],
)
def test_convert_bearing(source, target, expected):
    assert convert_bearing(100.0, source, target, declination=10.0, convergence=2.0) == pytest.approx(expected)


def test_convert_bearing_rejects_unknown_reference():
    with pytest.raises(ValueError):
        convert_bearing(10.0, "compass", "true")


def test_noaa_declination_parses_result():
    session = FakeSession(FakeResponse({"result": [{"declination": 11.7}]}))
    model = NoaaDeclination(url="http://geomag.test/declination", session=session)
    when = datetime(2026, 10, 18, tzinfo=timezone.utc)

    assert model(MELBOURNE, when, 500.0) == pytest.approx(11.7)
    url, params, timeout = session.calls[0]
    assert url == "http://geomag.test/declination"
    assert params["lat1"] == MELBOURNE.latitude
    assert params["lon1"] == MELBOURNE.longitude
    assert params["startYear"] == 2026
    assert params["elevation"] == pytest.approx(0.5)
    assert timeout == model.timeout


def test_noaa_declination_top_level_value():
    session = FakeSession(FakeResponse({"declination": -3.25}))
    assert NoaaDeclination(session=session)(MELBOURNE) == pytest.approx(-3.25)


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(error=requests.ConnectionError("offline")),
        FakeSession(FakeResponse({}, status=503)),
        FakeSession(FakeResponse({"result": []})),
    ],
)
def test_noaa_declination_failures(session):
    with pytest.raises(DeclinationUnavailable):
        NoaaDeclination(session=session)(MELBOURNE)
