"""Persisted session schema. Photo-space geometry only; display strings are recomputed on load."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from snapmeasure.calibration.map_scale import ScaleOverlay
from snapmeasure.calibration.model import Calibration, CalibrationKind
from snapmeasure.geometry.primitives import Point
from snapmeasure.measure.entities import MEASUREMENT_TYPES, Measurement, Mode
from snapmeasure.units.conversion import TO_MM

SCHEMA_VERSION = 1


class PointRecord(BaseModel):
    """Photo-space point."""
    x: float
    y: float


class CalibrationRecord(BaseModel):
    pixels_per_unit: float = Field(..., gt=0.0, description="Photo pixels per millimetre")
    unit: str = Field("mm", description="Base unit the calibration was stated in")
    kind: Literal["coin", "blueprint", "verbal", "aerial"]
    method_params: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("unit")
    @classmethod
    def _known_unit(cls, value: str) -> str:
        if value not in TO_MM:
            raise ValueError(f"unknown unit {value!r}")
        return value


class ScaleOverlayRecord(BaseModel):
    screen_distance: float = Field(..., gt=0.0)
    screen_unit: Literal["cm", "in"]
    real_distance: float = Field(..., gt=0.0)
    real_unit: Literal["km", "mi", "m", "ft"]


class MeasurementRecord(BaseModel):
    id: str
    mode: Literal["distance", "angle", "circle", "rectangle", "freehand", "polygon"]
    points: List[PointRecord]
    calibration_kind: Optional[str] = None
    scale_snapshot: Optional[ScaleOverlayRecord] = None
    label: Optional[str] = None
    depth: Optional[float] = Field(None, gt=0.0)
    depth_unit: Optional[str] = None
    is_closed: bool = False
    azimuth: bool = False

    @model_validator(mode="after")
    def _check_point_count(self) -> "MeasurementRecord":
        arity = MEASUREMENT_TYPES[Mode(self.mode)].arity
        count = len(self.points)
        if (arity is None and count < 3) or (arity is not None and count != arity):
            raise ValueError(f"{self.mode} measurement cannot have {count} points")
        if self.depth is not None and self.depth_unit not in TO_MM:
            raise ValueError("depth requires a known depth_unit")
        return self


class SessionState(BaseModel):
    """Everything needed to rebuild a session for one photo."""
    version: int = SCHEMA_VERSION
    calibration: Optional[CalibrationRecord] = None
    scale_overlay: Optional[ScaleOverlayRecord] = None
    map_mode: bool = False
    unit_system: Literal["metric", "imperial"] = "metric"
    declination_deg: float = 0.0
    measurements: List[MeasurementRecord] = Field(default_factory=list)


def overlay_record(overlay: Optional[ScaleOverlay]) -> Optional[ScaleOverlayRecord]:
    if overlay is None:
        return None
    return ScaleOverlayRecord(
        screen_distance=overlay.screen_distance,
        screen_unit=overlay.screen_unit,
        real_distance=overlay.real_distance,
        real_unit=overlay.real_unit,
    )


def overlay_from_record(record: Optional[ScaleOverlayRecord]) -> Optional[ScaleOverlay]:
    if record is None:
        return None
    return ScaleOverlay(record.screen_distance, record.screen_unit, record.real_distance, record.real_unit)


def measurement_record(m: Measurement) -> MeasurementRecord:
    return MeasurementRecord(
        id=m.id,
        mode=m.mode.value,
        points=[PointRecord(x=p.x, y=p.y) for p in m.points],
        calibration_kind=m.calibration_kind,
        scale_snapshot=overlay_record(m.scale_snapshot),
        label=m.label,
        depth=m.depth,
        depth_unit=m.depth_unit,
        is_closed=bool(getattr(m, "is_closed", False)),
        azimuth=bool(getattr(m, "azimuth", False)),
    )


def measurement_from_record(record: MeasurementRecord) -> Measurement:
    cls = MEASUREMENT_TYPES[Mode(record.mode)]
    extra: Dict[str, Any] = {}
    if record.mode == Mode.FREEHAND.value:
        extra["is_closed"] = record.is_closed
    elif record.mode == Mode.ANGLE.value:
        extra["azimuth"] = record.azimuth
    return cls(
        [Point(p.x, p.y) for p in record.points],
        id=record.id,
        calibration_kind=record.calibration_kind,
        scale_snapshot=overlay_from_record(record.scale_snapshot),
        label=record.label,
        depth=record.depth,
        depth_unit=record.depth_unit,
        **extra,
    )


def calibration_record(calibration: Optional[Calibration]) -> Optional[CalibrationRecord]:
    if calibration is None:
        return None
    return CalibrationRecord(
        pixels_per_unit=calibration.pixels_per_unit,
        unit=calibration.unit,
        kind=calibration.kind.value,
        method_params=dict(calibration.method_params),
    )


def calibration_from_record(record: Optional[CalibrationRecord]) -> Optional[Calibration]:
    if record is None:
        return None
    return Calibration(
        pixels_per_unit=record.pixels_per_unit,
        unit=record.unit,
        kind=CalibrationKind(record.kind),
        method_params=dict(record.method_params),
    )


__all__ = [
    "SCHEMA_VERSION",
    "PointRecord",
    "CalibrationRecord",
    "ScaleOverlayRecord",
    "MeasurementRecord",
    "SessionState",
    "measurement_record",
    "overlay_record",
    "overlay_from_record",
    "measurement_from_record",
    "calibration_record",
    "calibration_from_record",
]
