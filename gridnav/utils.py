from __future__ import annotations

import random
import re
import string
import time
from pathlib import Path
from typing import Iterable, Tuple

from shapely.geometry import mapping

_ID_ALPHABET = string.digits + string.ascii_lowercase


def slugify(value: str) -> str:
    value = value.strip().lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    value = re.sub(r"-+", "-", value)
    return value.strip("-") or "route"


def make_id() -> str:
    stamp = int(time.time() * 1000)
    head = ""
    while stamp:
        stamp, rem = divmod(stamp, 36)
        head = _ID_ALPHABET[rem] + head
    tail = "".join(random.choice(_ID_ALPHABET) for _ in range(7))
    return f"{head or '0'}-{tail}"


def now_ms() -> float:
    return float(int(time.time() * 1000))


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def round_bounds(bounds: Iterable[float], digits: int = 3) -> Tuple[float, ...]:
    return tuple(round(float(b), digits) for b in bounds)


def geometry_to_feature(geometry, properties=None):
    feature = {
        "type": "Feature",
        "geometry": mapping(geometry),
        "properties": properties or {},
    }
    return feature
