"""Detect closed loops formed by chained distance measurements."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from loguru import logger

from snapmeasure.geometry.primitives import Point, all_coincident, distance, shoelace_area
from snapmeasure.measure.entities import DistanceMeasurement, Measurement


@dataclass
class _OrientedEdge:
    """Distance edge oriented along the chain direction."""
    source_id: str
    start: Point
    end: Point

    @property
    def length(self) -> float:
        return distance(self.start, self.end)


@dataclass
class PolygonMatch:
    vertices: List[Point]
    consumed_ids: List[str]
    area_px2: float


def _joins(gap: float, a: _OrientedEdge, b: _OrientedEdge, tolerance: float) -> bool:
    """A gap joins two edges only when it is within tolerance and shorter than half of either edge."""
    return gap <= tolerance and gap < 0.5 * min(a.length, b.length)


def _next_edge(
    tail: _OrientedEdge,
    pool: Sequence[DistanceMeasurement],
    used: set[str],
    tolerance: float,
) -> _OrientedEdge | None:
    """Closest unused edge touching the end of ``tail``; reversed when attached by its far point."""
    best: tuple[float, _OrientedEdge] | None = None
    for edge in pool:
        if edge.id in used:
            continue
        p0, p1 = edge.points[0], edge.points[1]
        for candidate in (_OrientedEdge(edge.id, p0, p1), _OrientedEdge(edge.id, p1, p0)):
            gap = distance(tail.end, candidate.start)
            if _joins(gap, tail, candidate, tolerance) and (best is None or gap < best[0]):
                best = (gap, candidate)
    return best[1] if best else None


def _closing_length(chain: Sequence[_OrientedEdge], min_edges: int, tolerance: float) -> int:
    """Length of the prefix whose tail best closes back on the origin, or 0."""
    best_gap, best_len = None, 0
    for n in range(min_edges, len(chain) + 1):
        gap = distance(chain[n - 1].end, chain[0].start)
        if not _joins(gap, chain[n - 1], chain[0], tolerance):
            continue
        if best_gap is None or gap <= best_gap:
            best_gap, best_len = gap, n
    return best_len


def find_closed_chain(
    measurements: Sequence[Measurement],
    newest_id: str,
    *,
    tolerance: float = 30.0,
    min_edges: int = 3,
    min_area_px2: float = 0.5,
) -> PolygonMatch | None:
    """Chase distance edges end-to-start from the newest edge as far as they go,
    then close the chain back on its first edge.

    Returns None when no closed chain of at least ``min_edges`` edges exists or
    the loop is degenerate (collapsed or below ``min_area_px2``).
    """
    edges = [m for m in measurements if isinstance(m, DistanceMeasurement)]
    newest = next((m for m in edges if m.id == newest_id), None)
    if newest is None or len(edges) < min_edges:
        return None

    chain = [_OrientedEdge(newest.id, newest.points[0], newest.points[1])]
    used = {newest.id}
    while True:
        nxt = _next_edge(chain[-1], edges, used, tolerance)
        if nxt is None:
            break
        chain.append(nxt)
        used.add(nxt.source_id)

    # edges chased past the point where the loop closes are left alone
    n = _closing_length(chain, min_edges, tolerance)
    if n == 0:
        return None
    chain = chain[:n]

    vertices = [edge.start for edge in chain]
    if all_coincident(vertices):
        logger.debug("Rejected collapsed polygon chain of {} edges", len(chain))
        return None
    area = shoelace_area(vertices)
    if area < min_area_px2:
        logger.debug("Rejected polygon chain with area {:.3f} px^2", area)
        return None

    logger.debug("Closed polygon from {} distance edges, area {:.1f} px^2", len(chain), area)
    return PolygonMatch(vertices=vertices, consumed_ids=[edge.source_id for edge in chain], area_px2=area)
