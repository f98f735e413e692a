"""Geometry helpers shared by every fiber engine.

All distances go through :func:`distance_m` so snap radii, disconnect
thresholds and OTDR budgets are measured the same way.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import NamedTuple

from fibernet.schemas.network import Coordinates

EARTH_RADIUS_M = 6371000.0
SAME_POINT_EPSILON_DEG = 1e-7


class PolylineProjection(NamedTuple):
    point: Coordinates
    segment_index: int
    distance_m: float
    along_m: float


def distance_m(a: Coordinates, b: Coordinates) -> float:
    """Great-circle (haversine) distance in meters."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    delta_phi = math.radians(b.lat - a.lat)
    delta_lambda = math.radians(b.lng - a.lng)
    h = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def points_equal(
    a: Coordinates, b: Coordinates, epsilon_deg: float = SAME_POINT_EPSILON_DEG
) -> bool:
    return abs(a.lat - b.lat) < epsilon_deg and abs(a.lng - b.lng) < epsilon_deg


def within_m(a: Coordinates, b: Coordinates, threshold_m: float) -> bool:
    return distance_m(a, b) <= threshold_m


def polyline_length_m(coords: Sequence[Coordinates]) -> float:
    total = 0.0
    for i in range(1, len(coords)):
        total += distance_m(coords[i - 1], coords[i])
    return total


def interpolate(a: Coordinates, b: Coordinates, ratio: float) -> Coordinates:
    """Linear interpolation in degree space, ``ratio`` clamped to [0, 1]."""
    ratio = max(0.0, min(1.0, ratio))
    return Coordinates(
        lat=a.lat + (b.lat - a.lat) * ratio,
        lng=a.lng + (b.lng - a.lng) * ratio,
    )


def _to_meters(lat0: float, point: Coordinates) -> tuple[float, float]:
    x_val = math.radians(point.lng) * EARTH_RADIUS_M * math.cos(math.radians(lat0))
    y_val = math.radians(point.lat) * EARTH_RADIUS_M
    return x_val, y_val


def closest_point_on_segment(
    p: Coordinates, a: Coordinates, b: Coordinates
) -> tuple[Coordinates, float, float]:
    """Return ``(closest_point, offset_m, t)`` for segment ``a``-``b``.

    Works in a local equirectangular frame around ``p``; ``t`` is the
    normalised position of the foot point along the segment.
    """
    lat0 = p.lat
    px, py = _to_meters(lat0, p)
    ax, ay = _to_meters(lat0, a)
    bx, by = _to_meters(lat0, b)
    dx = bx - ax
    dy = by - ay
    if dx == 0 and dy == 0:
        return a, distance_m(p, a), 0.0
    t = ((px - ax) * dx + (py - ay) * dy) / (dx * dx + dy * dy)
    t = max(0.0, min(1.0, t))
    if t == 0.0:
        foot = a
    elif t == 1.0:
        foot = b
    else:
        foot = interpolate(a, b, t)
    return foot, distance_m(p, foot), t


def closest_point_on_polyline(
    p: Coordinates, line: Sequence[Coordinates]
) -> PolylineProjection | None:
    """Nearest point of ``line`` to ``p``; ``None`` for a line without segments."""
    if len(line) < 2:
        return None
    best: PolylineProjection | None = None
    along = 0.0
    for index in range(len(line) - 1):
        a, b = line[index], line[index + 1]
        seg_len = distance_m(a, b)
        foot, offset, t = closest_point_on_segment(p, a, b)
        if best is None or offset < best.distance_m:
            best = PolylineProjection(foot, index, offset, along + t * seg_len)
        along += seg_len
    return best


def collapse_duplicate_points(
    coords: Sequence[Coordinates], threshold_m: float
) -> list[Coordinates]:
    """Drop consecutive points closer than ``threshold_m`` to the last kept one.

    The final vertex is always kept so a dragged end point wins over the
    vertex it landed on.
    """
    if not coords:
        return []
    kept = [coords[0]]
    last_index = len(coords) - 1
    for index in range(1, len(coords)):
        point = coords[index]
        if distance_m(kept[-1], point) < threshold_m:
            if index == last_index and len(kept) > 1:
                kept[-1] = point
            continue
        kept.append(point)
    return kept
