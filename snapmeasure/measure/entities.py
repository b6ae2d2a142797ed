"""Measurement entities: one dataclass per mode, each with its own derived fields."""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

from snapmeasure.calibration.map_scale import ScaleOverlay
from snapmeasure.exceptions import InvariantViolationError
from snapmeasure.geometry.primitives import Point


class Mode(str, Enum):
    DISTANCE = "distance"
    ANGLE = "angle"
    CIRCLE = "circle"
    RECTANGLE = "rectangle"
    FREEHAND = "freehand"
    POLYGON = "polygon"
    # calibration placement; never produces a Measurement
    COIN = "coin"
    BLUEPRINT = "blueprint"


# Points collected before a tap-placed sequence finalizes.
PLACEMENT_ARITY: dict[Mode, int] = {
    Mode.DISTANCE: 2,
    Mode.CIRCLE: 2,
    Mode.RECTANGLE: 2,
    Mode.ANGLE: 3,
    Mode.COIN: 2,
    Mode.BLUEPRINT: 2,
}

CALIBRATION_MODES = frozenset({Mode.COIN, Mode.BLUEPRINT})


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Measurement:
    mode: ClassVar[Mode]
    # Stored point count once finalized; None means variable (>= 3).
    arity: ClassVar[int | None] = None
    area_bearing: ClassVar[bool] = False

    points: list[Point]
    id: str = field(default_factory=new_id)
    display_value: str = ""
    base_unit: str = "mm"
    calibration_kind: str | None = None
    scale_snapshot: ScaleOverlay | None = None
    label: str | None = None
    depth: float | None = None
    depth_unit: str | None = None
    volume: float | None = None

    def check_arity(self) -> None:
        expected = self.arity
        count = len(self.points)
        if expected is None:
            ok = count >= 3
        else:
            ok = count == expected
        if not ok:
            raise InvariantViolationError(
                f"{self.mode.value} measurement has {count} points",
                {"id": self.id, "expected": str(expected or ">=3")},
            )

    def translate(self, dx: float, dy: float) -> None:
        self.points = [p.offset(dx, dy) for p in self.points]

    def has_area(self) -> bool:
        return self.area_bearing

    def area_value(self) -> float | None:
        return None

    def clone(self) -> "Measurement":
        return copy.deepcopy(self)


@dataclass
class DistanceMeasurement(Measurement):
    mode: ClassVar[Mode] = Mode.DISTANCE
    arity: ClassVar[int | None] = 2

    length: float = 0.0


@dataclass
class AngleMeasurement(Measurement):
    """Interior angle (start, vertex, end) or, when ``azimuth``, a map bearing
    (start, north reference, destination)."""
    mode: ClassVar[Mode] = Mode.ANGLE
    arity: ClassVar[int | None] = 3

    degrees: float = 0.0
    azimuth: bool = False


@dataclass
class CircleMeasurement(Measurement):
    """Points are (center, edge)."""
    mode: ClassVar[Mode] = Mode.CIRCLE
    arity: ClassVar[int | None] = 2
    area_bearing: ClassVar[bool] = True

    radius: float = 0.0
    diameter: float = 0.0
    area: float = 0.0

    def area_value(self) -> float | None:
        return self.area


@dataclass
class RectangleMeasurement(Measurement):
    """Points are corners in TL, TR, BR, BL order."""
    mode: ClassVar[Mode] = Mode.RECTANGLE
    arity: ClassVar[int | None] = 4
    area_bearing: ClassVar[bool] = True

    width: float = 0.0
    height: float = 0.0
    area: float = 0.0

    def area_value(self) -> float | None:
        return self.area


@dataclass
class FreehandMeasurement(Measurement):
    """A sampled path. A closed path repeats its first point as its last."""
    mode: ClassVar[Mode] = Mode.FREEHAND

    is_closed: bool = False
    length: float = 0.0
    area: float | None = None
    perimeter: float | None = None

    def has_area(self) -> bool:
        return self.is_closed

    def area_value(self) -> float | None:
        return self.area if self.is_closed else None


@dataclass
class PolygonMeasurement(Measurement):
    mode: ClassVar[Mode] = Mode.POLYGON
    area_bearing: ClassVar[bool] = True

    area: float = 0.0
    perimeter: float = 0.0

    def area_value(self) -> float | None:
        return self.area


MEASUREMENT_TYPES: dict[Mode, type[Measurement]] = {
    cls.mode: cls
    for cls in (
        DistanceMeasurement,
        AngleMeasurement,
        CircleMeasurement,
        RectangleMeasurement,
        FreehandMeasurement,
        PolygonMeasurement,
    )
}
