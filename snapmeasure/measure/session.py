"""
Measurement session

Explicit owner of the engine's mutable state: the active calibration, the map
scale overlay, the measurement list and the in-progress point accumulator.
Callers hand in display-space pointer positions; everything stored is
photo-space. Recoverable conditions come back as results, never as exceptions.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from loguru import logger

from snapmeasure.calibration.map_scale import ScaleOverlay
from snapmeasure.calibration.model import Calibration, PixelScale
from snapmeasure.exceptions import CalibrationError
from snapmeasure.geometry.contract import px_radius
from snapmeasure.geometry.primitives import Point, distance
from snapmeasure.geometry.transform import ViewTransform
from snapmeasure.measure.editing import EditGesture, EditingEngine, EditKind
from snapmeasure.measure.entities import (
    CALIBRATION_MODES,
    PLACEMENT_ARITY,
    AngleMeasurement,
    CircleMeasurement,
    DistanceMeasurement,
    FreehandMeasurement,
    Measurement,
    Mode,
    PolygonMeasurement,
    RectangleMeasurement,
)
from snapmeasure.measure.finalize import derive, expand_rectangle
from snapmeasure.measure.lasso import ClosureDecision, LassoBuffer
from snapmeasure.measure.polygon_detector import find_closed_chain
from snapmeasure.measure.struggle import StruggleDetector
from snapmeasure.settings import Settings, get_settings
from snapmeasure.units.conversion import TO_MM, UnitSystem
from snapmeasure.vector.snap import AlignmentSnapper, CursorSnapper, SnapKind, magnetic_snap


class PlacementStatus(str, Enum):
    ADDED = "added"
    FINALIZED = "finalized"
    CALIBRATION_READY = "calibration_ready"
    BLOCKED = "blocked"
    REJECTED = "rejected"


class BlockReason(str, Enum):
    SCALE_REQUIRED = "scale_required"
    CALIBRATION_REQUIRED = "calibration_required"


class UndoResult(str, Enum):
    POPPED_POINT = "popped_point"
    CANCELLED_PATH = "cancelled_path"
    REVERTED = "reverted"
    DELETED = "deleted"
    NOTHING = "nothing"


@dataclass
class PlacementResult:
    status: PlacementStatus
    point: Optional[Point] = None
    snap: SnapKind = SnapKind.NONE
    measurement: Optional[Measurement] = None
    merged_polygon: Optional[PolygonMeasurement] = None
    reason: Optional[BlockReason] = None
    calibration_hint: bool = False


@dataclass(frozen=True)
class RenderSnapshot:
    mode: Mode
    measurements: tuple
    in_progress: tuple
    lasso_path: tuple
    lasso_closed: bool
    calibration_hint: bool
    map_mode: bool


@dataclass
class MeasurementSession:
    settings: Settings = field(default_factory=get_settings)
    calibration: Optional[Calibration] = None
    scale_overlay: Optional[ScaleOverlay] = None
    map_mode: bool = False
    unit_system: UnitSystem = UnitSystem.METRIC
    declination_deg: float = 0.0
    transform: ViewTransform = field(default_factory=ViewTransform)
    mode: Mode = Mode.DISTANCE
    measurements: List[Measurement] = field(default_factory=list)
    in_progress: List[Point] = field(default_factory=list)
    calibration_hint: bool = False

    def __post_init__(self) -> None:
        snap = self.settings.snap
        self.unit_system = UnitSystem(self.unit_system)
        self._snapper = CursorSnapper(
            AlignmentSnapper(snap.alignment_entry_deg, snap.alignment_exit_deg, snap.min_distance_px),
            min_distance=snap.min_distance_px,
        )
        self.lasso = LassoBuffer(self.settings.lasso)
        self.editing = EditingEngine(self.settings.editing)
        self.struggle = StruggleDetector(self.settings.struggle)
        self._history: List[str] = []
        self._pending_calibration: dict[Mode, List[Point]] = {}

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "MeasurementSession":
        settings = settings or get_settings()
        return cls(
            settings=settings,
            unit_system=UnitSystem(settings.format.unit_system),
            declination_deg=settings.format.magnetic_declination_deg,
        )

    # -- lookups ---------------------------------------------------------

    def get(self, measurement_id: str) -> Optional[Measurement]:
        return next((m for m in self.measurements if m.id == measurement_id), None)

    @property
    def pixels_per_mm(self) -> Optional[float]:
        return self.calibration.pixels_per_mm if self.calibration else None

    def _scale_for(self, m: Measurement, calibration: Optional[Calibration] = None) -> Optional[PixelScale]:
        if m.scale_snapshot is not None:
            return m.scale_snapshot.pixel_scale(self.settings.map_scale)
        calibration = calibration or self.calibration
        return calibration.pixel_scale() if calibration else None

    def _derive(self, m: Measurement, calibration: Optional[Calibration] = None) -> Measurement:
        return derive(m, self._scale_for(m, calibration), self.unit_system, self.declination_deg)

    # -- view / mode -----------------------------------------------------

    def update_transform(self, scale: float, translate_x: float, translate_y: float, rotation: float = 0.0) -> None:
        self.transform = ViewTransform(scale, translate_x, translate_y, rotation)

    def select_mode(self, mode: Mode | str) -> None:
        mode = Mode(mode)
        if mode is Mode.POLYGON:
            logger.warning("Polygon measurements are detected from distance edges, not placed directly")
        self.mode = mode
        self.cancel_placement()

    def cancel_placement(self) -> None:
        self.in_progress.clear()
        self.lasso.cancel()
        self._snapper.alignment.reset()

    # -- snapping --------------------------------------------------------

    def _magnetic_radius(self, dragging: bool) -> float:
        snap = self.settings.snap
        if self.calibration is None:
            return snap.magnetic_fallback_px
        mm = snap.magnetic_drag_mm if dragging else snap.magnetic_place_mm
        return px_radius(mm, self.calibration.pixels_per_mm)

    def _candidates(self, exclude_ids: Sequence[str] = (), exclude: Optional[Point] = None) -> List[Point]:
        points = [p for m in self.measurements if m.id not in exclude_ids for p in m.points]
        points.extend(self.in_progress)
        if exclude is not None:
            points = [p for p in points if p != exclude]
        return points

    def _reference(self) -> Optional[Point]:
        k = len(self.in_progress)
        if k == 0:
            return None
        if self.mode is Mode.ANGLE and self.map_mode and k == 2:
            return self.in_progress[0]
        return self.in_progress[-1]

    def resolve_cursor(self, x: float, y: float) -> tuple[Point, SnapKind]:
        """Photo-space placement point for display cursor (x, y) after snapping."""
        k = len(self.in_progress)
        reference = self._reference()
        use_alignment = (self.mode in (Mode.DISTANCE, Mode.BLUEPRINT) and k == 1) or (
            self.mode is Mode.ANGLE and k in (1, 2)
        )
        force_vertical = self.map_mode and self.mode is Mode.ANGLE and k == 1
        ref_display = self.transform.point_to_display(reference) if reference is not None else None
        return self._snapper.resolve(
            Point(x, y),
            to_photo=self.transform.to_photo,
            reference=ref_display,
            candidates=self._candidates(exclude=reference),
            magnetic_radius=self._magnetic_radius(dragging=False),
            use_alignment=use_alignment,
            force_vertical=force_vertical,
        )

    # -- placement -------------------------------------------------------

    def _block_reason(self) -> Optional[BlockReason]:
        if self.mode in CALIBRATION_MODES:
            return None
        if self.map_mode:
            return BlockReason.SCALE_REQUIRED if self.scale_overlay is None else None
        if self.calibration is None and self.mode is not Mode.ANGLE:
            return BlockReason.CALIBRATION_REQUIRED
        return None

    def place_point(self, x: float, y: float, timestamp: float | None = None) -> PlacementResult:
        """Tap at display (x, y) for the active tap-placed mode."""
        if self.mode not in PLACEMENT_ARITY:
            return PlacementResult(PlacementStatus.REJECTED)
        reason = self._block_reason()
        if reason is not None:
            logger.debug("Placement blocked: {}", reason.value)
            return PlacementResult(PlacementStatus.BLOCKED, reason=reason)

        point, snap = self.resolve_cursor(x, y)
        hint = False
        if not self.in_progress:
            hint = self._record_attempt(Point(x, y), timestamp)
        elif any(point == p for p in self.in_progress):
            return PlacementResult(PlacementStatus.REJECTED, point=point, snap=snap)

        self.in_progress.append(point)
        self._snapper.alignment.reset()
        if len(self.in_progress) < PLACEMENT_ARITY[self.mode]:
            return PlacementResult(PlacementStatus.ADDED, point=point, snap=snap, calibration_hint=hint)
        result = self._finalize()
        result.point, result.snap = point, snap
        result.calibration_hint = hint
        return result

    def _record_attempt(self, display_point: Point, timestamp: float | None) -> bool:
        ts = time.monotonic() if timestamp is None else timestamp
        if self.struggle.record(self.mode.value, display_point, ts):
            self.calibration_hint = True
            return True
        return False

    def _finalize(self) -> PlacementResult:
        points = list(self.in_progress)
        self.in_progress.clear()

        if self.mode in CALIBRATION_MODES:
            self._pending_calibration[self.mode] = points
            return PlacementResult(PlacementStatus.CALIBRATION_READY)

        if self.mode is Mode.DISTANCE:
            m: Measurement = DistanceMeasurement(points)
        elif self.mode is Mode.CIRCLE:
            m = CircleMeasurement(points)
        elif self.mode is Mode.RECTANGLE:
            if points[0].x == points[1].x or points[0].y == points[1].y:
                return PlacementResult(PlacementStatus.REJECTED)
            m = RectangleMeasurement(expand_rectangle(points[0], points[1]))
        else:
            m = AngleMeasurement(points, azimuth=self.map_mode)

        merged = self._commit(m)
        return PlacementResult(PlacementStatus.FINALIZED, measurement=m, merged_polygon=merged)

    def _commit(self, m: Measurement) -> Optional[PolygonMeasurement]:
        if self.map_mode:
            m.scale_snapshot = self.scale_overlay
        m.calibration_kind = self.calibration.kind.value if self.calibration else None
        self._derive(m)
        m.check_arity()
        self.measurements.append(m)
        self._history.append(m.id)
        logger.debug("Finalized {} {}: {}", m.mode.value, m.id, m.display_value)
        if isinstance(m, DistanceMeasurement) and self.settings.polygon.enabled:
            return self._merge_polygon(m)
        return None

    def _merge_polygon(self, newest: DistanceMeasurement) -> Optional[PolygonMeasurement]:
        cfg = self.settings.polygon
        match = find_closed_chain(
            self.measurements,
            newest.id,
            tolerance=cfg.snap_tolerance_px,
            min_edges=cfg.min_edges,
            min_area_px2=cfg.min_area_px2,
        )
        if match is None:
            return None
        consumed = set(match.consumed_ids)
        polygon = PolygonMeasurement(
            match.vertices,
            calibration_kind=newest.calibration_kind,
            scale_snapshot=newest.scale_snapshot,
        )
        self._derive(polygon)
        self.measurements = [m for m in self.measurements if m.id not in consumed] + [polygon]
        self._history = [mid for mid in self._history if mid not in consumed] + [polygon.id]
        for mid in consumed:
            self.editing.forget(mid)
        logger.info("Merged {} distance edges into polygon {}", len(consumed), polygon.id)
        return polygon

    # -- freehand --------------------------------------------------------

    def begin_freehand(self, x: float, y: float, timestamp: float | None = None) -> PlacementResult:
        if self.mode is not Mode.FREEHAND:
            return PlacementResult(PlacementStatus.REJECTED)
        reason = self._block_reason()
        if reason is not None:
            return PlacementResult(PlacementStatus.BLOCKED, reason=reason)
        hint = self._record_attempt(Point(x, y), timestamp)
        point = self.transform.to_photo(x, y)
        self.lasso.start(point)
        return PlacementResult(PlacementStatus.ADDED, point=point, calibration_hint=hint)

    def extend_freehand(self, x: float, y: float) -> ClosureDecision:
        if not self.lasso.active:
            return ClosureDecision.NOT_ELIGIBLE
        return self.lasso.add(self.transform.to_photo(x, y))

    def end_freehand(self) -> PlacementResult:
        result = self.lasso.release()
        if result is None:
            return PlacementResult(PlacementStatus.REJECTED)
        m = FreehandMeasurement(result.points, is_closed=result.is_closed)
        self._commit(m)
        return PlacementResult(PlacementStatus.FINALIZED, measurement=m)

    # -- calibration -----------------------------------------------------

    def _recompute_all(
        self,
        calibration: Optional[Calibration],
        unit_system: UnitSystem,
        declination_deg: float,
    ) -> List[Measurement]:
        """Re-derive copies of every measurement; the live list is untouched until swap."""
        updated = []
        for m in self.measurements:
            copy = m.clone()
            scale = (
                copy.scale_snapshot.pixel_scale(self.settings.map_scale)
                if copy.scale_snapshot is not None
                else (calibration.pixel_scale() if calibration else None)
            )
            if copy.scale_snapshot is None and calibration is not None:
                copy.calibration_kind = calibration.kind.value
            derive(copy, scale, unit_system, declination_deg)
            updated.append(copy)
        return updated

    def set_calibration(self, calibration: Calibration) -> None:
        """Replace the calibration and every display value in one step."""
        updated = self._recompute_all(calibration, self.unit_system, self.declination_deg)
        self.calibration = calibration
        self.measurements = updated
        logger.info(
            "Calibration set: {} {:.4f} px/mm ({})",
            calibration.kind.value,
            calibration.pixels_per_unit,
            calibration.unit,
        )

    def _try_calibrate(self, build) -> bool:
        try:
            calibration = build()
        except CalibrationError as exc:
            logger.warning("Calibration rejected: {}", exc.message)
            return False
        self.set_calibration(calibration)
        return True

    def apply_coin_calibration(self, diameter_mm: float, coin_name: str | None = None) -> bool:
        points = self._pending_calibration.get(Mode.COIN)
        if not points:
            return False
        ok = self._try_calibrate(lambda: Calibration.from_coin(distance(points[0], points[1]), diameter_mm, coin_name))
        if ok:
            self._pending_calibration.pop(Mode.COIN, None)
        return ok

    def apply_blueprint_calibration(self, real_distance: float, unit: str) -> bool:
        points = self._pending_calibration.get(Mode.BLUEPRINT)
        if not points:
            return False
        ok = self._try_calibrate(lambda: Calibration.from_blueprint(points[0], points[1], real_distance, unit))
        if ok:
            self._pending_calibration.pop(Mode.BLUEPRINT, None)
        return ok

    def apply_verbal_calibration(
        self, screen_distance: float, screen_unit: str, real_distance: float, real_unit: str
    ) -> bool:
        return self._try_calibrate(
            lambda: Calibration.from_verbal_scale(
                screen_distance, screen_unit, real_distance, real_unit, self.settings.map_scale
            )
        )

    def apply_aerial_calibration(
        self, altitude_m: float, sensor_width_mm: float, focal_length_mm: float, image_width_px: float
    ) -> bool:
        return self._try_calibrate(
            lambda: Calibration.from_ground_sample(altitude_m, sensor_width_mm, focal_length_mm, image_width_px)
        )

    def set_scale_overlay(
        self, screen_distance: float, screen_unit: str, real_distance: float, real_unit: str
    ) -> bool:
        try:
            self.scale_overlay = ScaleOverlay(screen_distance, screen_unit, real_distance, real_unit)
        except CalibrationError as exc:
            logger.warning("Scale overlay rejected: {}", exc.message)
            return False
        return True

    def set_map_mode(self, enabled: bool) -> None:
        self.map_mode = bool(enabled)
        self.cancel_placement()

    def set_unit_system(self, unit_system: UnitSystem | str) -> None:
        system = UnitSystem(unit_system)
        self.measurements = self._recompute_all(self.calibration, system, self.declination_deg)
        self.unit_system = system

    def set_declination(self, degrees: float) -> None:
        self.measurements = self._recompute_all(self.calibration, self.unit_system, degrees)
        self.declination_deg = degrees

    # -- per-measurement attributes ---------------------------------------

    def set_depth(self, measurement_id: str, depth: float | None, unit: str | None = None) -> bool:
        m = self.get(measurement_id)
        if m is None or not m.has_area():
            return False
        if depth is None or depth <= 0:
            m.depth, m.depth_unit = None, None
        else:
            if unit not in TO_MM:
                return False
            m.depth, m.depth_unit = float(depth), unit
        self._derive(m)
        return True

    def set_label(self, measurement_id: str, label: str | None) -> bool:
        m = self.get(measurement_id)
        if m is None:
            return False
        m.label = label.strip() if label and label.strip() else None
        return True

    def delete(self, measurement_id: str) -> bool:
        if self.get(measurement_id) is None:
            return False
        self.measurements = [m for m in self.measurements if m.id != measurement_id]
        self._history = [mid for mid in self._history if mid != measurement_id]
        self.editing.forget(measurement_id)
        return True

    def undo(self) -> UndoResult:
        """Step back: pop a placed point, else revert the last edit or drop the last measurement."""
        if self.in_progress:
            self.in_progress.pop()
            self._snapper.alignment.reset()
            return UndoResult.POPPED_POINT
        if self.lasso.active:
            self.lasso.cancel()
            return UndoResult.CANCELLED_PATH
        while self._history:
            mid = self._history[-1]
            current = self.get(mid)
            if current is None:
                self._history.pop()
                continue
            original = self.editing.take_snapshot(mid)
            if original is not None:
                self._derive(original)
                self.measurements = [original if m.id == mid else m for m in self.measurements]
                return UndoResult.REVERTED
            self.delete(mid)
            return UndoResult.DELETED
        return UndoResult.NOTHING

    # -- editing ---------------------------------------------------------

    def begin_edit(self, x: float, y: float) -> Optional[EditGesture]:
        if self.in_progress or self.lasso.active:
            return None
        gesture = self.editing.hit_test(self.measurements, Point(x, y), self.transform)
        if gesture is None:
            return None
        return self.editing.begin(gesture)

    def drag_edit(self, x: float, y: float) -> bool:
        gesture = self.editing.gesture
        if gesture is None:
            return False
        m = self.get(gesture.measurement_id)
        if m is None:
            return False
        cursor = Point(x, y)
        if not self.editing.mark_moved(cursor):
            return False

        photo = self.transform.to_photo(x, y)
        if gesture.kind is EditKind.POINT and gesture.point_index is not None:
            target = photo
            if self.editing.snaps_enabled(m, gesture.point_index):
                hit = magnetic_snap(photo, self._candidates(exclude_ids=(m.id,)), self._magnetic_radius(dragging=True))
                if hit is not None:
                    target = hit
            self.editing.move_point(m, gesture.point_index, target)
        else:
            if not self.editing.move_shape(m, photo.x - gesture.last_photo.x, photo.y - gesture.last_photo.y):
                return False
        gesture.last_photo = photo
        self._derive(m)
        self._touch(m.id)
        return True

    def end_edit(self, timestamp: float | None = None) -> bool:
        """Finish the gesture; True when it was the final tap of a rapid-tap delete."""
        gesture = self.editing.end()
        if gesture is None or gesture.moved:
            return False
        ts = time.monotonic() if timestamp is None else timestamp
        if self.editing.register_tap(gesture.measurement_id, ts):
            return self.delete(gesture.measurement_id)
        return False

    def _touch(self, measurement_id: str) -> None:
        if self._history and self._history[-1] == measurement_id:
            return
        self._history = [mid for mid in self._history if mid != measurement_id] + [measurement_id]

    # -- output ----------------------------------------------------------

    def snapshot(self) -> RenderSnapshot:
        return RenderSnapshot(
            mode=self.mode,
            measurements=tuple(m.clone() for m in self.measurements),
            in_progress=tuple(self.in_progress),
            lasso_path=tuple(self.lasso.points),
            lasso_closed=self.lasso.closed,
            calibration_hint=self.calibration_hint,
            map_mode=self.map_mode,
        )

    def load_measurements(self, measurements: Sequence[Measurement]) -> None:
        """Adopt restored measurements in order; undo walks them newest first."""
        self.cancel_placement()
        self.measurements = list(measurements)
        self._history = [m.id for m in self.measurements]
        self.measurements = self._recompute_all(self.calibration, self.unit_system, self.declination_deg)

    def new_photo(self) -> None:
        """Drop all photo-bound state; settings and unit preferences survive."""
        self.cancel_placement()
        self.calibration = None
        self.scale_overlay = None
        self.measurements = []
        self._history = []
        self._pending_calibration = {}
        self.editing = EditingEngine(self.settings.editing)
        self.struggle.reset()
        self.calibration_hint = False
