import os
from pathlib import Path

APP_ROOT = Path(__file__).resolve().parents[1]
APP_DATA_DIR = Path(os.environ.get("GRIDNAV_APP_DATA", APP_ROOT / "app_data"))
APP_DATA_DIR.mkdir(parents=True, exist_ok=True)

STORE_FILE = "gridnav_store.json"
LEGACY_CHECKPOINTS_FILE = "checkpoints.v1.json"

EARTH_RADIUS_M = 6_371_008.8

DEFAULT_STEP_METRES = 1000.0
DEFAULT_SUBDIVISIONS = 10
MAX_OVERLAY_POINTS = 250_000

GRID_DIGIT_SCALES = {1: 10_000.0, 2: 1_000.0, 3: 100.0, 4: 10.0, 5: 1.0}

NOAA_DECLINATION_URL = os.environ.get(
    "GRIDNAV_NOAA_URL",
    "https://www.ngdc.noaa.gov/geomag-web/calculators/calculateDeclination",
)
NOAA_TIMEOUT_S = 10.0

WORKER_HOST = os.environ.get("GRIDNAV_HOST", "127.0.0.1")
WORKER_PORT = int(os.environ.get("GRIDNAV_PORT", "8766"))
WORKER_LOG_LEVEL = os.environ.get("GRIDNAV_LOG_LEVEL", "info").lower()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

EPSG_LATLON = 4326
