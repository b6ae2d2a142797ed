from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence

from loguru import logger

from snapmeasure.geometry.primitives import Point, bounding_box, distance
from snapmeasure.geometry.transform import ViewTransform
from snapmeasure.measure.entities import (
    CircleMeasurement,
    FreehandMeasurement,
    Measurement,
    RectangleMeasurement,
)
from snapmeasure.settings import EditingSettings


class EditKind(str, Enum):
    POINT = "point"  # reshape by one vertex
    SHAPE = "shape"  # translate the whole body


@dataclass
class EditGesture:
    measurement_id: str
    kind: EditKind
    point_index: Optional[int]
    origin: Point      # display-space press location
    last_photo: Point  # photo-space location of the previous move
    moved: bool = False


# Rectangle corners are TL, TR, BR, BL: edges 0-1 and 2-3 share y, edges 1-2 and 3-0 share x.
def _shared_axis(edge_index: int) -> str:
    return "y" if edge_index % 2 == 0 else "x"


def move_rectangle_corner(points: list[Point], index: int, target: Point) -> list[Point]:
    """Move one corner and drag the two adjacent corners along so the box stays axis-aligned."""
    pts = list(points)
    pts[index] = target
    nxt = (index + 1) % 4
    prv = (index - 1) % 4
    for neighbour, edge in ((nxt, index), (prv, prv)):
        p = pts[neighbour]
        if _shared_axis(edge) == "y":
            pts[neighbour] = Point(p.x, target.y)
        else:
            pts[neighbour] = Point(target.x, p.y)
    return pts


def move_freehand_point(
    points: list[Point],
    index: int,
    target: Point,
    weights: Sequence[float],
    is_closed: bool,
) -> list[Point]:
    """Move one sample and pull its neighbours along with a falloff."""
    pts = list(points)
    n = len(pts)
    dx = target.x - pts[index].x
    dy = target.y - pts[index].y
    pts[index] = target
    touched = {index}
    for step, weight in enumerate(weights, start=1):
        for j in (index - step, index + step):
            if 0 <= j < n and j != index:
                pts[j] = pts[j].offset(dx * weight, dy * weight)
                touched.add(j)
    if is_closed and n > 1:
        if 0 in touched:
            pts[-1] = pts[0]
        elif n - 1 in touched:
            pts[0] = pts[-1]
    return pts


class EditingEngine:
    """Vertex/body dragging, pre-edit snapshots and rapid-tap delete."""

    def __init__(self, settings: EditingSettings | None = None) -> None:
        self.settings = settings or EditingSettings()
        self.snapshots: Dict[str, Measurement] = {}
        self.gesture: Optional[EditGesture] = None
        self._tap_target: Optional[str] = None
        self._taps: deque[float] = deque()

    # -- hit testing -----------------------------------------------------

    def hit_test(
        self,
        measurements: Sequence[Measurement],
        cursor: Point,
        transform: ViewTransform,
    ) -> Optional[EditGesture]:
        """Find what a press at display ``cursor`` grabs, newest measurement first."""
        for m in reversed(measurements):
            shown = [transform.point_to_display(p) for p in m.points]
            dists = [distance(cursor, p) for p in shown]
            closest = min(range(len(dists)), key=dists.__getitem__)
            photo = transform.to_photo(cursor.x, cursor.y)

            if isinstance(m, RectangleMeasurement):
                if dists[closest] <= self.settings.corner_grab_radius_px:
                    return EditGesture(m.id, EditKind.POINT, closest, cursor, photo)
                left, top, right, bottom = bounding_box(shown)
                if left <= cursor.x <= right and top <= cursor.y <= bottom:
                    return EditGesture(m.id, EditKind.SHAPE, None, cursor, photo)
                continue

            if dists[closest] <= self.settings.point_grab_radius_px:
                return EditGesture(m.id, EditKind.POINT, closest, cursor, photo)

            if isinstance(m, CircleMeasurement):
                if distance(cursor, shown[0]) <= distance(shown[0], shown[1]):
                    return EditGesture(m.id, EditKind.SHAPE, None, cursor, photo)
        return None

    def begin(self, gesture: EditGesture) -> EditGesture:
        self.gesture = gesture
        return gesture

    # -- mutation --------------------------------------------------------

    def snapshot_once(self, m: Measurement) -> None:
        if m.id not in self.snapshots:
            self.snapshots[m.id] = m.clone()

    def snaps_enabled(self, m: Measurement, index: Optional[int]) -> bool:
        """Circle edge drags stay unsnapped so the radius changes smoothly."""
        return not (isinstance(m, CircleMeasurement) and index == 1)

    def move_point(self, m: Measurement, index: int, target: Point) -> None:
        self.snapshot_once(m)
        if isinstance(m, CircleMeasurement):
            if index == 0:
                old = m.points[0]
                m.translate(target.x - old.x, target.y - old.y)
            else:
                m.points = [m.points[0], target]
        elif isinstance(m, RectangleMeasurement):
            m.points = move_rectangle_corner(m.points, index, target)
        elif isinstance(m, FreehandMeasurement):
            m.points = move_freehand_point(m.points, index, target, self.settings.falloff_weights, m.is_closed)
        else:
            pts = list(m.points)
            pts[index] = target
            m.points = pts

    def move_shape(self, m: Measurement, dx: float, dy: float) -> bool:
        """Translate circles and rectangles; other modes are reshaped only by points."""
        if not isinstance(m, (CircleMeasurement, RectangleMeasurement)):
            return False
        self.snapshot_once(m)
        m.translate(dx, dy)
        return True

    def mark_moved(self, cursor: Point) -> bool:
        g = self.gesture
        if g is None:
            return False
        if not g.moved and math.hypot(cursor.x - g.origin.x, cursor.y - g.origin.y) > self.settings.drag_slop_px:
            g.moved = True
            self._reset_taps()
        return g.moved

    def end(self) -> Optional[EditGesture]:
        gesture, self.gesture = self.gesture, None
        return gesture

    # -- undo ------------------------------------------------------------

    def take_snapshot(self, measurement_id: str) -> Optional[Measurement]:
        return self.snapshots.pop(measurement_id, None)

    def forget(self, measurement_id: str) -> None:
        self.snapshots.pop(measurement_id, None)
        if self._tap_target == measurement_id:
            self._reset_taps()

    # -- rapid tap delete ------------------------------------------------

    def register_tap(self, measurement_id: str, timestamp: float) -> bool:
        """True when this tap completes the delete sequence for ``measurement_id``."""
        if self._tap_target != measurement_id:
            self._reset_taps()
            self._tap_target = measurement_id
        window = self.settings.rapid_tap_window_s
        while self._taps and timestamp - self._taps[0] > window:
            self._taps.popleft()
        self._taps.append(timestamp)
        if len(self._taps) >= self.settings.rapid_tap_count:
            logger.debug("Rapid-tap delete on {}", measurement_id)
            self._reset_taps()
            return True
        return False

    def _reset_taps(self) -> None:
        self._tap_target = None
        self._taps.clear()
