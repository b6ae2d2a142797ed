"""
Freehand lasso

An append-only sample buffer plus pure decision functions evaluated on every
sample: should the path close here, or would closing make it cross itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence

from loguru import logger

from snapmeasure.geometry.primitives import Point, distance, segments_cross
from snapmeasure.settings import LassoSettings


class ClosureDecision(str, Enum):
    NOT_ELIGIBLE = "not_eligible"
    CLOSE = "close"
    REJECT_SELF_INTERSECTING = "reject_self_intersecting"


def crosses_itself(points: Sequence[Point], jitter_fraction: float = 0.05) -> bool:
    """Test the ring ``points + [points[0]]`` for self-intersection.

    The first and last ``jitter_fraction`` of segments are left out, which keeps
    the wobble around the start and end of a hand-drawn loop from counting.
    """
    ring = list(points) + [points[0]]
    n = len(ring) - 1  # segment count
    if n < 4:
        return False
    skip = int(n * jitter_fraction)
    lo, hi = skip, n - skip
    for i in range(lo, hi):
        a1, a2 = ring[i], ring[i + 1]
        for j in range(i + 2, hi):
            if i == 0 and j == n - 1:
                continue  # adjacent through the closing vertex
            if segments_cross(a1, a2, ring[j], ring[j + 1]):
                return True
    return False


def closure_decision(points: Sequence[Point], cursor: Point, settings: LassoSettings) -> ClosureDecision:
    if len(points) < settings.min_points_to_close:
        return ClosureDecision.NOT_ELIGIBLE
    if distance(cursor, points[0]) > settings.close_radius_px:
        return ClosureDecision.NOT_ELIGIBLE
    if crosses_itself(points, settings.jitter_fraction):
        return ClosureDecision.REJECT_SELF_INTERSECTING
    return ClosureDecision.CLOSE


@dataclass
class LassoResult:
    points: List[Point]
    is_closed: bool


@dataclass
class LassoBuffer:
    settings: LassoSettings = field(default_factory=LassoSettings)
    points: List[Point] = field(default_factory=list)
    closed: bool = False
    rejected_closures: int = 0

    @property
    def active(self) -> bool:
        return bool(self.points)

    def start(self, point: Point) -> None:
        self.points = [point]
        self.closed = False
        self.rejected_closures = 0

    def add(self, point: Point) -> ClosureDecision:
        """Append one sample. Once the loop has closed further samples are ignored."""
        if not self.points:
            self.start(point)
            return ClosureDecision.NOT_ELIGIBLE
        if self.closed:
            return ClosureDecision.CLOSE

        decision = closure_decision(self.points, point, self.settings)
        if decision is ClosureDecision.CLOSE:
            self.closed = True
            logger.debug("Lasso closed after {} samples", len(self.points))
            return decision
        if decision is ClosureDecision.REJECT_SELF_INTERSECTING:
            self.rejected_closures += 1

        if distance(self.points[-1], point) >= self.settings.min_spacing_px:
            self.points.append(point)
        return decision

    def release(self) -> LassoResult | None:
        """Finish the gesture. Returns None when too little was drawn to keep."""
        points, closed = self.points, self.closed
        self.points = []
        self.closed = False
        if closed and len(points) >= 3:
            return LassoResult(points=points + [points[0]], is_closed=True)
        if len(points) >= 3:
            if self.rejected_closures:
                logger.debug("Lasso kept open after {} self-crossing closures", self.rejected_closures)
            return LassoResult(points=points, is_closed=False)
        return None

    def cancel(self) -> None:
        self.points = []
        self.closed = False
