from __future__ import annotations

from dataclasses import dataclass

from snapmeasure.calibration.model import PixelScale, pixels_per_screen_unit
from snapmeasure.exceptions import CalibrationError
from snapmeasure.settings import MapScaleSettings

_SCREEN_UNITS = ("cm", "in")
_MAP_UNITS = ("km", "mi", "m", "ft")


@dataclass(frozen=True)
class ScaleOverlay:
    """Map-mode ratio ``screen_distance screen_unit = real_distance real_unit``.

    Independent of the active Calibration; measurements created in map mode keep
    a frozen copy of the overlay they were drawn under.
    """
    screen_distance: float
    screen_unit: str
    real_distance: float
    real_unit: str

    def __post_init__(self) -> None:
        if self.screen_unit not in _SCREEN_UNITS:
            raise CalibrationError(f"Unsupported screen unit: {self.screen_unit}")
        if self.real_unit not in _MAP_UNITS:
            raise CalibrationError(f"Unsupported map unit: {self.real_unit}")
        if not (self.screen_distance > 0.0 and self.real_distance > 0.0):
            raise CalibrationError(
                "Scale overlay distances must be positive",
                {"screen_distance": str(self.screen_distance), "real_distance": str(self.real_distance)},
            )

    def pixel_scale(self, screen: MapScaleSettings | None = None) -> PixelScale:
        screen = screen or MapScaleSettings()
        screen_units_per_pixel = 1.0 / pixels_per_screen_unit(self.screen_unit, screen)
        ratio = self.real_distance / self.screen_distance
        return PixelScale(units_per_pixel=screen_units_per_pixel * ratio, base_unit=self.real_unit)
