"""
Unit formatting pipeline.

Every function here is pure: output depends only on the arguments, so display
strings can be regenerated whenever calibration or unit preference changes.
"""

from __future__ import annotations

import math
from typing import Literal

from snapmeasure.units.conversion import (
    FT2_PER_ACRE,
    MM2_PER_HECTARE,
    MM_PER_FL_OZ,
    TO_MM,
    UnitSystem,
    display_unit,
)

QuantityKind = Literal["length", "area", "volume"]

_COMPASS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


def _round_half(value: float) -> float:
    # nearest 0.5, halves rounded up like Math.round
    return math.floor(value * 2.0 + 0.5) / 2.0


def _half_step(value: float, unit: str) -> str:
    rounded = _round_half(value)
    if rounded % 1 == 0:
        return f"{rounded:.0f} {unit}"
    return f"{rounded:.1f} {unit}"


def _compact(value: float, unit: str) -> str:
    """Two decimals with K/M suffix compaction."""
    if value >= 1_000_000:
        return f"{value / 1_000_000:.2f}M {unit}"
    if value >= 1000:
        return f"{value / 1000:.2f}K {unit}"
    return f"{value:.2f} {unit}"


def _feet_inches(feet_value: float) -> str:
    total_inches = int(math.floor(feet_value * 12.0 + 0.5))
    feet, inches = divmod(total_inches, 12)
    if inches == 0:
        return f"{feet}'"
    return f"{feet}'{inches}\""


def format_length(value: float, base_unit: str, unit_system: UnitSystem | str) -> str:
    value, unit = display_unit(value, base_unit, unit_system)
    if unit == "mm":
        return _half_step(value, unit)
    if unit == "cm":
        return f"{value:.1f} cm"
    if unit == "m":
        return f"{value:.2f} m"
    if unit in ("km", "mi"):
        return _compact(value, unit)
    if unit == "ft":
        return _feet_inches(value)
    return f"{value:.2f} {unit}"


def format_dimension(value: float, base_unit: str, unit_system: UnitSystem | str) -> str:
    """Side length of a shape: fixed two decimals for metric, length format otherwise."""
    if UnitSystem(unit_system) is UnitSystem.IMPERIAL:
        return format_length(value, base_unit, unit_system)
    value, unit = display_unit(value, base_unit, unit_system)
    if unit == "km":
        return _compact(value, unit)
    return f"{value:.2f} {unit}"


def format_area(area: float, base_unit: str, unit_system: UnitSystem | str) -> str:
    """Format an area given in square ``base_unit``."""
    area_mm2 = area * TO_MM[base_unit] ** 2

    if UnitSystem(unit_system) is UnitSystem.METRIC:
        if area_mm2 < 10_000:
            return _half_step(area_mm2, "mm²")
        if area_mm2 < 1_000_000:
            return f"{area_mm2 / 100:.1f} cm²"
        m2 = area_mm2 / 1_000_000
        return f"{_compact(m2, 'm²')} ({_compact(area_mm2 / MM2_PER_HECTARE, 'ha')})"

    in2 = area_mm2 / TO_MM["in"] ** 2
    if in2 < 144:
        return f"{in2:.2f} in²"
    ft2 = in2 / 144
    acres = ft2 / FT2_PER_ACRE
    if 100 <= acres < 1000:
        acre_str = f"{round(acres)} ac"
    else:
        acre_str = _compact(acres, "ac")
    return f"{_compact(ft2, 'ft²')} ({acre_str})"


def format_volume(volume: float, base_unit: str, unit_system: UnitSystem | str) -> str:
    """Format a volume given in cubic ``base_unit``."""
    volume_mm3 = volume * TO_MM[base_unit] ** 3

    if UnitSystem(unit_system) is UnitSystem.METRIC:
        liters = volume_mm3 / 1_000_000
        if liters < 1:
            return f"{liters * 1000:.0f} mL"
        if liters < 1000:
            return f"{liters:.2f} L"
        m3 = liters / 1000
        liters_str = _compact(liters, "L") if liters >= 1000 else f"{liters:.0f} L"
        return f"{_compact(m3, 'm³')} ({liters_str})"

    fl_oz = volume_mm3 / MM_PER_FL_OZ
    if fl_oz < 32:
        return f"{fl_oz:.1f} fl oz"
    if fl_oz < 128:
        return f"{fl_oz / 32:.2f} qt"
    gallons = fl_oz / 128
    if gallons < 1000:
        return f"{gallons:.2f} gal"
    ft3 = volume_mm3 / TO_MM["ft"] ** 3
    return f"{_compact(ft3, 'ft³')} ({_compact(gallons, 'gal')})"


def format_quantity(
    value: float,
    base_unit: str,
    unit_system: UnitSystem | str,
    kind: QuantityKind = "length",
) -> str:
    if kind == "length":
        return format_length(value, base_unit, unit_system)
    if kind == "area":
        return format_area(value, base_unit, unit_system)
    if kind == "volume":
        return format_volume(value, base_unit, unit_system)
    raise ValueError(f"Unknown quantity kind: {kind}")


def format_angle(degrees: float) -> str:
    return f"{degrees:.1f}°"


def compass_point(bearing_deg: float) -> str:
    index = int(math.floor((bearing_deg % 360.0) / 45.0 + 0.5)) % 8
    return _COMPASS[index]


def format_bearing(bearing_deg: float) -> str:
    return f"{bearing_deg:.1f}° {compass_point(bearing_deg)}"
