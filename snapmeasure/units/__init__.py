from snapmeasure.units.conversion import TO_MM, ScaleTier, UnitSystem, convert_unit, display_unit, tier_of
from snapmeasure.units.formatting import (
    format_angle,
    format_area,
    format_bearing,
    format_dimension,
    format_length,
    format_quantity,
    format_volume,
)

__all__ = [
    "TO_MM",
    "ScaleTier",
    "UnitSystem",
    "convert_unit",
    "display_unit",
    "tier_of",
    "format_angle",
    "format_area",
    "format_bearing",
    "format_dimension",
    "format_length",
    "format_quantity",
    "format_volume",
]
