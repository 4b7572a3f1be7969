"""座標比較工具。"""

from __future__ import annotations

import math


def round_coordinate(value: float, digits: int = 6) -> float:
    return round(value + math.copysign(1e-12, value), digits)


def coordinate_distance(a: tuple[float, float], b: tuple[float, float]) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])
