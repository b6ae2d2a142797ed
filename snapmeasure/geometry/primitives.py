from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from shapely.geometry import LineString


@dataclass(frozen=True)
class Point:
    """A 2-D point. Persisted geometry is always photo-space."""
    x: float
    y: float

    def offset(self, dx: float, dy: float) -> "Point":
        return Point(self.x + dx, self.y + dy)

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


def distance(a: Point, b: Point) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def path_length(points: Sequence[Point]) -> float:
    """Total length of an open polyline."""
    if len(points) < 2:
        return 0.0
    return float(LineString([p.as_tuple() for p in points]).length)


def shoelace_area(points: Sequence[Point]) -> float:
    """Unsigned polygon area of an ordered vertex ring (closing edge implied)."""
    if len(points) < 3:
        return 0.0
    total = 0.0
    n = len(points)
    for i in range(n):
        a = points[i]
        b = points[(i + 1) % n]
        total += a.x * b.y - b.x * a.y
    return abs(total) / 2.0


def ring_perimeter(points: Sequence[Point]) -> float:
    """Perimeter of a closed ring, including the closing edge."""
    if len(points) < 2:
        return 0.0
    return float(LineString([p.as_tuple() for p in points] + [points[0].as_tuple()]).length)


def all_coincident(points: Iterable[Point], tolerance: float = 1e-9) -> bool:
    pts = list(points)
    if not pts:
        return True
    first = pts[0]
    return all(distance(first, p) <= tolerance for p in pts[1:])


def _orientation(a: Point, b: Point, c: Point) -> float:
    return (b.x - a.x) * (c.y - a.y) - (b.y - a.y) * (c.x - a.x)


def _on_segment(a: Point, b: Point, p: Point) -> bool:
    return min(a.x, b.x) <= p.x <= max(a.x, b.x) and min(a.y, b.y) <= p.y <= max(a.y, b.y)


def segments_cross(a1: Point, a2: Point, b1: Point, b2: Point) -> bool:
    """True when two segments share any point (touching counts)."""
    # plain orientation test; called O(n^2) times on lasso paths
    d1 = _orientation(b1, b2, a1)
    d2 = _orientation(b1, b2, a2)
    d3 = _orientation(a1, a2, b1)
    d4 = _orientation(a1, a2, b2)
    if ((d1 > 0 > d2) or (d1 < 0 < d2)) and ((d3 > 0 > d4) or (d3 < 0 < d4)):
        return True
    if d1 == 0 and _on_segment(b1, b2, a1):
        return True
    if d2 == 0 and _on_segment(b1, b2, a2):
        return True
    if d3 == 0 and _on_segment(a1, a2, b1):
        return True
    if d4 == 0 and _on_segment(a1, a2, b2):
        return True
    return False


def bounding_box(points: Sequence[Point]) -> tuple[float, float, float, float]:
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return min(xs), min(ys), max(xs), max(ys)
