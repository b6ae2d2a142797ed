from __future__ import annotations

from enum import Enum


class UnitSystem(str, Enum):
    METRIC = "metric"
    IMPERIAL = "imperial"


class ScaleTier(str, Enum):
    SMALL = "small"    # mm / cm <-> in
    MEDIUM = "medium"  # m <-> ft
    LARGE = "large"    # km <-> mi


# Conversion factors to mm (base unit)
TO_MM: dict[str, float] = {
    "mm": 1.0,
    "cm": 10.0,
    "in": 25.4,
    "m": 1000.0,
    "ft": 304.8,
    "km": 1_000_000.0,
    "mi": 1_609_344.0,
}

MM_PER_FL_OZ = 29573.5295625
MM2_PER_HECTARE = 1e10
FT2_PER_ACRE = 43560.0


def tier_of(unit: str) -> ScaleTier:
    if unit in ("km", "mi"):
        return ScaleTier.LARGE
    if unit in ("m", "ft"):
        return ScaleTier.MEDIUM
    return ScaleTier.SMALL


def to_mm(value: float, unit: str) -> float:
    return value * TO_MM[unit]


def convert_unit(value: float, from_unit: str, to_unit: str) -> float:
    return value * TO_MM[from_unit] / TO_MM[to_unit]


def display_unit(value: float, base_unit: str, unit_system: UnitSystem | str) -> tuple[float, str]:
    """Pick the display unit for a length while keeping the base unit's scale tier.

    Large and medium tiers map one-to-one (km<->mi, m<->ft). The small tier picks
    by magnitude so hand-sized objects read naturally.
    """
    system = UnitSystem(unit_system)
    value_mm = to_mm(value, base_unit)
    tier = tier_of(base_unit)

    if system is UnitSystem.METRIC:
        if tier is ScaleTier.LARGE:
            return value_mm / TO_MM["km"], "km"
        if tier is ScaleTier.MEDIUM:
            return value_mm / TO_MM["m"], "m"
        if value_mm < 250.0:
            return value_mm, "mm"
        if value_mm < 1000.0:
            return value_mm / TO_MM["cm"], "cm"
        if value_mm < 1_000_000.0:
            return value_mm / TO_MM["m"], "m"
        return value_mm / TO_MM["km"], "km"

    if tier is ScaleTier.LARGE:
        return value_mm / TO_MM["mi"], "mi"
    if tier is ScaleTier.MEDIUM:
        return value_mm / TO_MM["ft"], "ft"
    inches = value_mm / TO_MM["in"]
    if inches < 12.0:
        return inches, "in"
    if inches < 63360.0:
        return inches / 12.0, "ft"
    return value_mm / TO_MM["mi"], "mi"
