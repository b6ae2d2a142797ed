from __future__ import annotations

import math

import pytest

from snapmeasure.calibration import Calibration, ScaleOverlay
from snapmeasure.geometry import Point
from snapmeasure.measure import (
    BlockReason,
    MeasurementSession,
    Mode,
    PlacementStatus,
    PolygonMeasurement,
    UndoResult,
)
from snapmeasure.measure.lasso import ClosureDecision
from snapmeasure.settings import Settings
from snapmeasure.vector import SnapKind


@pytest.fixture
def session():
    return MeasurementSession(settings=Settings())


def _place(session, *points):
    result = None
    for x, y in points:
        result = session.place_point(x, y, timestamp=0.0)
    return result


def test_measurement_blocked_without_calibration(session):
    """Placing a measurement needs a calibration first."""
    result = session.place_point(10, 10)
    assert result.status is PlacementStatus.BLOCKED
    assert result.reason is BlockReason.CALIBRATION_REQUIRED
    assert session.in_progress == []


def test_map_mode_without_overlay_is_blocked(session):
    """Map mode needs a scale overlay first."""
    session.set_calibration(Calibration(2.0))
    session.set_map_mode(True)
    result = session.place_point(10, 10)
    assert result.status is PlacementStatus.BLOCKED
    assert result.reason is BlockReason.SCALE_REQUIRED


def test_angles_need_no_calibration(session):
    """Angles are placed and shown without calibration."""
    session.select_mode(Mode.ANGLE)
    result = _place(session, (100, 0), (0, 0), (0, 100))
    assert result.status is PlacementStatus.FINALIZED
    assert result.measurement.display_value == "90.0°"


def test_coin_placement_then_distance(session):
    """A placed coin calibrates later distances."""
    session.select_mode(Mode.COIN)
    assert session.place_point(100, 100).status is PlacementStatus.ADDED
    assert session.place_point(150, 100).status is PlacementStatus.CALIBRATION_READY
    assert session.apply_coin_calibration(24.26)
    assert session.calibration.pixels_per_mm == pytest.approx(100.0 / 24.26)

    session.select_mode(Mode.DISTANCE)
    result = _place(session, (0, 300), (200, 300))
    assert result.status is PlacementStatus.FINALIZED
    assert result.measurement.display_value == "48.5 mm"


def test_coin_calibration_needs_placed_circle(session):
    """Coin calibration without a placed circle fails quietly."""
    assert not session.apply_coin_calibration(24.26)
    assert session.calibration is None


def test_blueprint_placement_calibrates(session):
    """Two blueprint pins and a distance calibrate in that unit."""
    session.select_mode(Mode.BLUEPRINT)
    _place(session, (0, 0), (500, 0))
    assert session.apply_blueprint_calibration(5.0, "m")
    assert session.calibration.unit == "m"
    session.select_mode(Mode.DISTANCE)
    result = _place(session, (0, 200), (250, 200))
    assert result.measurement.display_value == "2.50 m"


def test_rectangle_reference_display(session):
    """Rectangles expand to four corners and show size and area."""
    session.set_calibration(Calibration(2.0))
    session.select_mode(Mode.RECTANGLE)
    result = _place(session, (10, 10), (110, 60))
    rect = result.measurement
    assert len(rect.points) == 4
    assert rect.display_value == "50.00 mm × 25.00 mm (A: 1250 mm²)"


def test_zero_size_rectangle_is_rejected(session):
    """Rectangles with no width or height are not stored."""
    session.set_calibration(Calibration(2.0))
    session.select_mode(Mode.RECTANGLE)
    result = _place(session, (10, 10), (110, 10))
    assert result.status is PlacementStatus.REJECTED
    assert session.measurements == []


def test_repeated_point_is_rejected(session):
    """Tapping the same point twice is refused."""
    session.set_calibration(Calibration(2.0))
    result = _place(session, (10, 10), (10, 10))
    assert result.status is PlacementStatus.REJECTED
    assert len(session.in_progress) == 1


def test_four_distance_edges_merge_into_polygon(session):
    """Four joined edges are replaced by one polygon."""
    session.set_calibration(Calibration(1.0))
    _place(session, (0, 0), (1000, 0))
    _place(session, (1000, 0), (1000, 1000))
    _place(session, (1000, 1000), (0, 1000))
    assert len(session.measurements) == 3
    result = _place(session, (0, 1000), (0, 0))

    polygon = result.merged_polygon
    assert isinstance(polygon, PolygonMeasurement)
    assert session.measurements == [polygon]
    assert polygon.area == pytest.approx(1_000_000.0)
    assert polygon.perimeter == pytest.approx(4000.0)
    assert polygon.display_value == "A: 1.00 m² (0.00 ha) · P: 4.00 m"


def _square_edges(side):
    return [
        ((0, 0), (side, 0)),
        ((side, 0), (side, side)),
        ((side, side), (0, side)),
        ((0, side), (0, 0)),
    ]


@pytest.mark.parametrize("side", [10, 100])
@pytest.mark.parametrize("first", [0, 1, 2, 3])
def test_square_merges_only_on_fourth_edge(session, side, first):
    """Short and long edges alike merge into one square polygon whichever side is drawn last."""
    session.set_calibration(Calibration(1.0))
    edges = _square_edges(side)
    edges = edges[first:] + edges[:first]
    for a, b in edges[:3]:
        _place(session, a, b)
    assert len(session.measurements) == 3

    polygon = _place(session, *edges[3]).merged_polygon
    assert isinstance(polygon, PolygonMeasurement)
    assert session.measurements == [polygon]
    assert polygon.area == pytest.approx(side * side)
    assert polygon.perimeter == pytest.approx(4 * side)


def test_second_point_aligns_to_axis(session):
    """The second point locks to the axis near it."""
    session.set_calibration(Calibration(1.0))
    session.place_point(0, 0)
    point, kind = session.resolve_cursor(200, 4)
    assert kind is SnapKind.HORIZONTAL
    assert point == Point(200, 0)


def test_placement_snaps_to_existing_points(session):
    """Taps near existing points snap onto them."""
    session.set_calibration(Calibration(5.0))  # 2 mm -> 10 px
    _place(session, (0, 0), (300, 100))
    point, kind = session.resolve_cursor(306, 104)
    assert kind is SnapKind.MAGNETIC
    assert point == Point(300, 100)


def test_map_mode_distance_and_bearing():
    """Map mode measures with the overlay and shows bearings."""
    session = MeasurementSession(settings=Settings())
    assert session.set_scale_overlay(1.0, "cm", 1.0, "km")
    session.set_map_mode(True)

    px_per_cm = 780.0 / 10.8
    result = _place(session, (0, 0), (10 * px_per_cm, 0))
    line = result.measurement
    assert line.display_value == "10.00 km"
    assert line.scale_snapshot == ScaleOverlay(1.0, "cm", 1.0, "km")

    # later calibration or overlay changes leave map-mode measurements alone
    session.set_calibration(Calibration(3.0))
    session.set_scale_overlay(1.0, "cm", 5.0, "km")
    assert session.get(line.id).display_value == "10.00 km"

    session.set_unit_system("imperial")
    assert session.get(line.id).display_value == "6.21 mi"

    session.select_mode(Mode.ANGLE)
    _place(session, (0, 500), (5, 400))
    assert session.in_progress[1] == Point(0, 400)  # north leg forced vertical
    result = session.place_point(100, 400)
    assert result.measurement.display_value == "45.0° NE"


def test_map_scale_rejects_bad_input(session):
    """Invalid overlay input is refused without raising."""
    assert not session.set_scale_overlay(1.0, "mm", 1.0, "km")
    assert session.scale_overlay is None


def test_recalibration_recomputes_everything(session):
    """Replacing the calibration updates every display value."""
    session.set_calibration(Calibration(2.0))
    line = _place(session, (0, 0), (100, 0)).measurement
    assert line.display_value == "50 mm"

    session.set_calibration(Calibration(4.0))
    assert session.get(line.id).display_value == "25 mm"


def test_bad_verbal_calibration_keeps_previous(session):
    """A failed calibration leaves the old one in place."""
    session.set_calibration(Calibration(2.0))
    assert not session.apply_verbal_calibration(1.0, "cm", -3.0, "km")
    assert session.calibration.pixels_per_mm == 2.0
    assert session.apply_verbal_calibration(1.0, "in", 100.0, "ft")
    assert session.calibration.unit == "ft"


def test_aerial_calibration(session):
    """Aerial calibration is applied to the session."""
    assert session.apply_aerial_calibration(100.0, 13.2, 8.8, 5472.0)
    assert session.calibration.unit == "m"


def test_undo_steps_back_through_points_then_measurements(session):
    """Undo pops placed points, then removes measurements."""
    session.set_calibration(Calibration(2.0))
    session.select_mode(Mode.ANGLE)
    _place(session, (0, 0), (100, 0))
    assert session.undo() is UndoResult.POPPED_POINT
    assert session.in_progress == [Point(0, 0)]
    session.cancel_placement()

    session.select_mode(Mode.DISTANCE)
    _place(session, (0, 0), (100, 0))
    assert session.undo() is UndoResult.DELETED
    assert session.measurements == []
    assert session.undo() is UndoResult.NOTHING


def test_corner_edit_then_undo_reverts_then_deletes(session):
    """Undo reverts an edit before deleting the measurement."""
    session.set_calibration(Calibration(2.0))
    session.select_mode(Mode.RECTANGLE)
    rect = _place(session, (10, 10), (110, 60)).measurement
    original_points = list(rect.points)

    assert session.begin_edit(110, 60) is not None
    assert session.drag_edit(130, 80)
    session.end_edit(timestamp=1.0)
    edited = session.get(rect.id)
    assert edited.width == pytest.approx(60.0)
    assert edited.points[1] == Point(130, 10)

    assert session.undo() is UndoResult.REVERTED
    reverted = session.get(rect.id)
    assert reverted.points == original_points
    assert reverted.display_value == "50.00 mm × 25.00 mm (A: 1250 mm²)"

    assert session.undo() is UndoResult.DELETED
    assert session.get(rect.id) is None


def test_circle_center_moves_and_edge_resizes(session):
    """Circle center drags translate and edge drags resize."""
    session.set_calibration(Calibration(1.0))
    session.select_mode(Mode.CIRCLE)
    circle = _place(session, (100, 100), (150, 100)).measurement

    session.begin_edit(100, 100)
    session.drag_edit(120, 100)
    session.end_edit(timestamp=1.0)
    moved = session.get(circle.id)
    assert moved.points == [Point(120, 100), Point(170, 100)]
    assert moved.radius == pytest.approx(50.0)

    session.begin_edit(170, 100)
    session.drag_edit(190, 100)
    session.end_edit(timestamp=2.0)
    assert session.get(circle.id).radius == pytest.approx(70.0)


def test_rectangle_body_drag_translates(session):
    """Dragging a rectangle body moves all corners."""
    session.set_calibration(Calibration(1.0))
    session.select_mode(Mode.RECTANGLE)
    rect = _place(session, (0, 0), (100, 100)).measurement
    session.begin_edit(50, 50)
    session.drag_edit(60, 70)
    session.end_edit(timestamp=1.0)
    assert session.get(rect.id).points[0] == Point(10, 20)
    assert session.get(rect.id).area == pytest.approx(10_000.0)


def test_press_within_slop_changes_nothing(session):
    """Small presses do not edit the measurement."""
    session.set_calibration(Calibration(1.0))
    session.select_mode(Mode.RECTANGLE)
    rect = _place(session, (0, 0), (100, 100)).measurement
    original_points = list(rect.points)
    session.begin_edit(50, 50)
    assert not session.drag_edit(52, 51)
    session.end_edit(timestamp=1.0)
    assert session.get(rect.id).points == original_points


def test_rapid_taps_delete_measurement(session):
    """Four quick taps delete a measurement."""
    session.set_calibration(Calibration(2.0))
    session.select_mode(Mode.RECTANGLE)
    rect = _place(session, (10, 10), (110, 60)).measurement
    deleted = []
    for t in (0.0, 0.1, 0.2, 0.3):
        session.begin_edit(60, 35)
        deleted.append(session.end_edit(timestamp=t))
    assert deleted == [False, False, False, True]
    assert session.get(rect.id) is None


def test_freehand_loop_becomes_area(session):
    """A closed freehand loop reports area."""
    session.set_calibration(Calibration(1.0))
    session.select_mode(Mode.FREEHAND)
    pts = [(200 + 100 * math.cos(2 * math.pi * i / 40), 200 + 100 * math.sin(2 * math.pi * i / 40)) for i in range(40)]
    assert session.begin_freehand(*pts[0], timestamp=0.0).status is PlacementStatus.ADDED
    for x, y in pts[1:]:
        session.extend_freehand(x, y)
    assert session.extend_freehand(300, 202) is ClosureDecision.CLOSE
    result = session.end_freehand()

    path = result.measurement
    assert path.is_closed
    assert path.points[0] == path.points[-1]
    assert 0.97 * math.pi * 100**2 < path.area < math.pi * 100**2
    assert path.display_value.startswith("A: ")


def test_open_freehand_reports_length(session):
    """An open freehand path reports its length."""
    session.set_calibration(Calibration(1.0))
    session.select_mode(Mode.FREEHAND)
    session.begin_freehand(0, 0)
    session.extend_freehand(30, 0)
    session.extend_freehand(30, 40)
    path = session.end_freehand().measurement
    assert not path.is_closed
    assert path.length == pytest.approx(70.0)
    assert path.display_value == "70 mm"


def test_depth_adds_volume_to_area_measurements(session):
    """Depth turns area measurements into volumes."""
    session.set_calibration(Calibration(2.0))
    session.select_mode(Mode.RECTANGLE)
    rect = _place(session, (10, 10), (110, 60)).measurement
    assert session.set_depth(rect.id, 20.0, "mm")
    updated = session.get(rect.id)
    assert updated.volume == pytest.approx(25_000.0)
    assert updated.display_value.endswith(" · V: 25 mL")

    assert session.set_depth(rect.id, 0, "mm")
    assert session.get(rect.id).volume is None

    session.select_mode(Mode.DISTANCE)
    line = _place(session, (0, 200), (100, 200)).measurement
    assert not session.set_depth(line.id, 5.0, "cm")


def test_labels(session):
    """Labels are trimmed and unknown ids are refused."""
    session.set_calibration(Calibration(2.0))
    line = _place(session, (0, 0), (100, 0)).measurement
    assert session.set_label(line.id, "  door  ")
    assert session.get(line.id).label == "door"
    assert not session.set_label("missing", "x")


def test_struggle_hint_after_repeated_restarts(session):
    """Repeated restarts in one spot raise the calibration hint."""
    session.set_calibration(Calibration(2.0))
    hints = []
    for i, t in enumerate((0.0, 1.0, 2.0)):
        hints.append(session.place_point(100 + 5 * i, 100, timestamp=t).calibration_hint)
        session.cancel_placement()
    assert hints == [False, False, True]
    assert session.calibration_hint


def test_snapshot_is_detached(session):
    """Changing a render snapshot leaves the session untouched."""
    session.set_calibration(Calibration(2.0))
    line = _place(session, (0, 0), (100, 0)).measurement
    session.place_point(0, 300)
    snap = session.snapshot()
    assert snap.in_progress == (Point(0, 300),)
    snap.measurements[0].points.append(Point(1, 1))
    assert len(session.get(line.id).points) == 2


def test_mode_change_clears_in_progress(session):
    """Switching mode drops points being placed."""
    session.set_calibration(Calibration(2.0))
    session.place_point(0, 0)
    session.select_mode(Mode.CIRCLE)
    assert session.in_progress == []


def test_new_photo_resets_state(session):
    """A new photo clears calibration and measurements."""
    session.set_calibration(Calibration(2.0))
    _place(session, (0, 0), (100, 0))
    session.new_photo()
    assert session.calibration is None
    assert session.measurements == []
    assert session.undo() is UndoResult.NOTHING


def test_short_freehand_drag_is_discarded(session):
    """Releasing a drag with fewer than three samples creates nothing."""
    session.set_calibration(Calibration(1.0))
    session.select_mode(Mode.FREEHAND)
    session.begin_freehand(0, 0)
    session.extend_freehand(50, 0)
    result = session.end_freehand()
    assert result.status is PlacementStatus.REJECTED
    assert session.measurements == []
