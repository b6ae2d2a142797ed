from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np
from loguru import logger

from snapmeasure.geometry.primitives import Point


class SnapKind(str, Enum):
    NONE = "none"
    MAGNETIC = "magnetic"
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass(frozen=True)
class SnapResult:
    point: Point
    kind: SnapKind = SnapKind.NONE

    @property
    def snapped(self) -> bool:
        return self.kind is not SnapKind.NONE


def magnetic_snap(
    cursor: Point,
    candidates: Sequence[Point],
    radius: float,
) -> Point | None:
    """Return the closest candidate within ``radius`` of ``cursor``, if any."""
    if not candidates or radius <= 0.0:
        return None
    coords = np.asarray([(p.x, p.y) for p in candidates], dtype=float)
    dists = np.hypot(coords[:, 0] - cursor.x, coords[:, 1] - cursor.y)
    idx = int(np.argmin(dists))
    if dists[idx] > radius:
        return None
    return candidates[idx]


def _axis_deviation(angle_deg: float) -> tuple[float, SnapKind]:
    """Smallest angular distance to the horizontal and vertical axes."""
    a = angle_deg % 180.0
    to_horizontal = min(a, 180.0 - a)
    to_vertical = abs(a - 90.0)
    if to_horizontal <= to_vertical:
        return to_horizontal, SnapKind.HORIZONTAL
    return to_vertical, SnapKind.VERTICAL


class AlignmentSnapper:
    """Axis lock relative to a reference point with entry/exit hysteresis.

    Works in display space: a horizontal lock copies the reference y, a vertical
    lock copies the reference x. Once locked, the lock only releases after the
    raw angle leaves the axis by more than ``exit_deg``.
    """

    def __init__(self, entry_deg: float = 3.0, exit_deg: float = 4.0, min_distance: float = 20.0) -> None:
        self.entry_deg = entry_deg
        self.exit_deg = max(exit_deg, entry_deg)
        self.min_distance = min_distance
        self.locked: SnapKind = SnapKind.NONE

    def reset(self) -> None:
        self.locked = SnapKind.NONE

    def apply(self, reference: Point, cursor: Point, force_vertical: bool = False) -> SnapResult:
        dx = cursor.x - reference.x
        dy = cursor.y - reference.y
        if math.hypot(dx, dy) < self.min_distance:
            self.locked = SnapKind.NONE
            return SnapResult(cursor)

        if force_vertical:
            self.locked = SnapKind.VERTICAL
            return SnapResult(Point(reference.x, cursor.y), SnapKind.VERTICAL)

        angle = math.degrees(math.atan2(dy, dx))
        deviation, axis = _axis_deviation(angle)

        if self.locked is not SnapKind.NONE:
            held = self._deviation_from(angle, self.locked)
            if held <= self.exit_deg:
                return self._lock(reference, cursor, self.locked)
            logger.debug("Alignment lock released at {:.2f} deg", held)
            self.locked = SnapKind.NONE

        if deviation <= self.entry_deg:
            self.locked = axis
            return self._lock(reference, cursor, axis)
        return SnapResult(cursor)

    @staticmethod
    def _deviation_from(angle_deg: float, axis: SnapKind) -> float:
        a = angle_deg % 180.0
        if axis is SnapKind.HORIZONTAL:
            return min(a, 180.0 - a)
        return abs(a - 90.0)

    @staticmethod
    def _lock(reference: Point, cursor: Point, axis: SnapKind) -> SnapResult:
        if axis is SnapKind.HORIZONTAL:
            return SnapResult(Point(cursor.x, reference.y), axis)
        return SnapResult(Point(reference.x, cursor.y), axis)


class CursorSnapper:
    """Magnetic snap first, then alignment; both gated by a minimum distance.

    ``cursor`` and ``reference`` are display-space; ``candidates`` are photo-space
    and compared against the cursor after mapping through ``transform``.
    """

    def __init__(self, alignment: AlignmentSnapper, min_distance: float = 20.0) -> None:
        self.alignment = alignment
        self.min_distance = min_distance

    def resolve(
        self,
        cursor: Point,
        *,
        to_photo,
        reference: Point | None,
        candidates: Sequence[Point],
        magnetic_radius: float,
        use_alignment: bool,
        force_vertical: bool = False,
    ) -> tuple[Point, SnapKind]:
        """Return the photo-space placement point and which snap produced it."""
        if reference is not None:
            gap = math.hypot(cursor.x - reference.x, cursor.y - reference.y)
            if gap < self.min_distance:
                self.alignment.reset()
                return to_photo(cursor.x, cursor.y), SnapKind.NONE

        raw = to_photo(cursor.x, cursor.y)
        hit = magnetic_snap(raw, candidates, magnetic_radius)
        if hit is not None:
            logger.debug("Magnetic snap to ({:.1f}, {:.1f})", hit.x, hit.y)
            return hit, SnapKind.MAGNETIC

        if use_alignment and reference is not None:
            result = self.alignment.apply(reference, cursor, force_vertical=force_vertical)
            if result.snapped:
                return to_photo(result.point.x, result.point.y), result.kind
        return raw, SnapKind.NONE
