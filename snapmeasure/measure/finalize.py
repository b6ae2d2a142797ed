"""
Finalization math

Turns photo-space point sequences into physical quantities and display strings.
``derive`` is re-run whenever calibration, unit system or geometry changes, so it
only reads points and the supplied scale.
"""

from __future__ import annotations

import math
from typing import Sequence

from snapmeasure.calibration.model import PixelScale
from snapmeasure.geometry.primitives import (
    Point,
    bounding_box,
    distance,
    path_length,
    ring_perimeter,
    shoelace_area,
)
from snapmeasure.measure.entities import (
    AngleMeasurement,
    CircleMeasurement,
    DistanceMeasurement,
    FreehandMeasurement,
    Measurement,
    PolygonMeasurement,
    RectangleMeasurement,
)
from snapmeasure.units.conversion import UnitSystem, convert_unit
from snapmeasure.units.formatting import (
    format_angle,
    format_area,
    format_bearing,
    format_dimension,
    format_length,
    format_volume,
)


def interior_angle(start: Point, vertex: Point, end: Point) -> float:
    """Angle at ``vertex`` in degrees, normalized to [0, 180]."""
    a = math.atan2(start.y - vertex.y, start.x - vertex.x)
    b = math.atan2(end.y - vertex.y, end.x - vertex.x)
    deg = abs(math.degrees(a - b)) % 360.0
    if deg > 180.0:
        deg = 360.0 - deg
    return deg


def azimuth(start: Point, north: Point, destination: Point, declination_deg: float = 0.0) -> float:
    """Clockwise bearing from the north reference to the destination, in [0, 360).

    Screen y grows downward, so an increasing atan2 angle is clockwise on screen.
    """
    north_angle = math.atan2(north.y - start.y, north.x - start.x)
    dest_angle = math.atan2(destination.y - start.y, destination.x - start.x)
    bearing = math.degrees(dest_angle - north_angle) + declination_deg
    bearing %= 360.0
    if bearing >= 360.0:
        bearing = 0.0
    return bearing


def expand_rectangle(a: Point, b: Point) -> list[Point]:
    """Two opposite corners -> TL, TR, BR, BL of the axis-aligned box."""
    left, right = min(a.x, b.x), max(a.x, b.x)
    top, bottom = min(a.y, b.y), max(a.y, b.y)
    return [Point(left, top), Point(right, top), Point(right, bottom), Point(left, bottom)]


def closed_ring(points: Sequence[Point]) -> list[Point]:
    """Drop a repeated closing vertex, if present."""
    pts = list(points)
    if len(pts) > 1 and pts[0] == pts[-1]:
        pts = pts[:-1]
    return pts


def _with_volume(m: Measurement, text: str, unit_system: UnitSystem) -> str:
    area = m.area_value()
    if not m.has_area() or area is None or not m.depth or not m.depth_unit:
        m.volume = None
        return text
    depth = convert_unit(m.depth, m.depth_unit, m.base_unit)
    m.volume = area * depth
    return f"{text} · V: {format_volume(m.volume, m.base_unit, unit_system)}"


def derive(
    m: Measurement,
    scale: PixelScale | None,
    unit_system: UnitSystem | str = UnitSystem.METRIC,
    declination_deg: float = 0.0,
) -> Measurement:
    """Recompute derived fields and ``display_value`` in place."""
    system = UnitSystem(unit_system)
    pts = m.points

    if isinstance(m, AngleMeasurement):
        if m.azimuth:
            m.degrees = azimuth(pts[0], pts[1], pts[2], declination_deg)
            m.display_value = format_bearing(m.degrees)
        else:
            m.degrees = interior_angle(pts[0], pts[1], pts[2])
            m.display_value = format_angle(m.degrees)
        return m

    if scale is None:
        m.display_value = ""
        return m

    unit = scale.base_unit
    m.base_unit = unit

    if isinstance(m, DistanceMeasurement):
        m.length = scale.length(distance(pts[0], pts[1]))
        m.display_value = format_length(m.length, unit, system)

    elif isinstance(m, CircleMeasurement):
        m.radius = scale.length(distance(pts[0], pts[1]))
        m.diameter = 2.0 * m.radius
        m.area = math.pi * m.radius ** 2
        m.display_value = _with_volume(m, f"⌀ {format_length(m.diameter, unit, system)}", system)

    elif isinstance(m, RectangleMeasurement):
        left, top, right, bottom = bounding_box(pts)
        m.width = scale.length(right - left)
        m.height = scale.length(bottom - top)
        m.area = m.width * m.height
        text = (
            f"{format_dimension(m.width, unit, system)} × "
            f"{format_dimension(m.height, unit, system)} "
            f"(A: {format_area(m.area, unit, system)})"
        )
        m.display_value = _with_volume(m, text, system)

    elif isinstance(m, PolygonMeasurement):
        m.area = scale.area(shoelace_area(pts))
        m.perimeter = scale.length(ring_perimeter(pts))
        text = f"A: {format_area(m.area, unit, system)} · P: {format_length(m.perimeter, unit, system)}"
        m.display_value = _with_volume(m, text, system)

    elif isinstance(m, FreehandMeasurement):
        m.length = scale.length(path_length(pts))
        if m.is_closed:
            ring = closed_ring(pts)
            m.area = scale.area(shoelace_area(ring))
            m.perimeter = scale.length(ring_perimeter(ring))
            text = f"A: {format_area(m.area, unit, system)} · P: {format_length(m.perimeter, unit, system)}"
            m.display_value = _with_volume(m, text, system)
        else:
            m.area = None
            m.perimeter = None
            m.volume = None
            m.display_value = format_length(m.length, unit, system)

    return m
