"""
Calibration model.

Every construction procedure yields ``pixels_per_unit`` expressed in photo pixels
per millimetre. ``unit`` records the base length unit the calibration was stated
in; it decides the scale tier used when values are formatted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from snapmeasure.exceptions import CalibrationError, InvariantViolationError
from snapmeasure.geometry.primitives import Point, distance
from snapmeasure.settings import MapScaleSettings
from snapmeasure.units.conversion import TO_MM


class CalibrationKind(str, Enum):
    COIN = "coin"
    BLUEPRINT = "blueprint"
    VERBAL = "verbal"
    AERIAL = "aerial"


@dataclass(frozen=True)
class PixelScale:
    """Conversion from photo pixels to a physical base unit."""
    units_per_pixel: float
    base_unit: str

    def length(self, pixels: float) -> float:
        return pixels * self.units_per_pixel

    def area(self, pixels_squared: float) -> float:
        return pixels_squared * self.units_per_pixel ** 2


@dataclass(frozen=True)
class Calibration:
    pixels_per_unit: float
    unit: str = "mm"
    kind: CalibrationKind = CalibrationKind.COIN
    method_params: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if not (self.pixels_per_unit > 0.0 and math.isfinite(self.pixels_per_unit)):
            raise InvariantViolationError(
                "pixels_per_unit must be a positive finite number",
                {"pixels_per_unit": str(self.pixels_per_unit)},
            )
        if self.unit not in TO_MM:
            raise InvariantViolationError(f"Unknown calibration unit: {self.unit}")

    @property
    def pixels_per_mm(self) -> float:
        return self.pixels_per_unit

    def pixel_scale(self) -> PixelScale:
        mm_per_pixel = 1.0 / self.pixels_per_unit
        return PixelScale(units_per_pixel=mm_per_pixel / TO_MM[self.unit], base_unit=self.unit)

    @classmethod
    def from_coin(cls, pixel_radius: float, diameter_mm: float, coin_name: str | None = None) -> "Calibration":
        """Coin of known diameter traced as a circle of ``pixel_radius``."""
        if not pixel_radius > 0.0:
            raise CalibrationError("Coin circle has no radius", {"pixel_radius": str(pixel_radius)})
        if not diameter_mm > 0.0:
            raise CalibrationError("Coin diameter must be positive", {"diameter_mm": str(diameter_mm)})
        params: dict[str, Any] = {"pixel_radius": pixel_radius, "diameter_mm": diameter_mm}
        if coin_name:
            params["coin_name"] = coin_name
        return cls(
            pixels_per_unit=(2.0 * pixel_radius) / diameter_mm,
            unit="mm",
            kind=CalibrationKind.COIN,
            method_params=params,
        )

    @classmethod
    def from_blueprint(cls, pin1: Point, pin2: Point, real_distance: float, unit: str) -> "Calibration":
        """Two pins placed on a drawing with a known real distance between them."""
        if unit not in TO_MM:
            raise CalibrationError(f"Unknown unit: {unit}", {"unit": unit})
        if not real_distance > 0.0:
            raise CalibrationError("Blueprint distance must be positive", {"distance": str(real_distance)})
        pixel_distance = distance(pin1, pin2)
        if pixel_distance <= 0.0:
            raise CalibrationError("Blueprint pins coincide")
        return cls(
            pixels_per_unit=pixel_distance / (real_distance * TO_MM[unit]),
            unit=unit,
            kind=CalibrationKind.BLUEPRINT,
            method_params={
                "pin1": [pin1.x, pin1.y],
                "pin2": [pin2.x, pin2.y],
                "distance": real_distance,
                "distance_unit": unit,
            },
        )

    @classmethod
    def from_verbal_scale(
        cls,
        screen_distance: float,
        screen_unit: str,
        real_distance: float,
        real_unit: str,
        screen: MapScaleSettings | None = None,
    ) -> "Calibration":
        """'X screen-cm/in = Y real-km/mi/m/ft' on an assumed phone screen.

        The pixel density comes from a fixed assumed screen width, not the device.
        """
        screen = screen or MapScaleSettings()
        if screen_unit not in ("cm", "in"):
            raise CalibrationError(f"Unsupported screen unit: {screen_unit}", {"screen_unit": screen_unit})
        if real_unit not in ("km", "mi", "m", "ft"):
            raise CalibrationError(f"Unsupported map unit: {real_unit}", {"real_unit": real_unit})
        if not (screen_distance > 0.0 and real_distance > 0.0):
            raise CalibrationError("Verbal scale distances must be positive")
        screen_distance_px = screen_distance * pixels_per_screen_unit(screen_unit, screen)
        return cls(
            pixels_per_unit=screen_distance_px / (real_distance * TO_MM[real_unit]),
            unit=real_unit,
            kind=CalibrationKind.VERBAL,
            method_params={
                "screen_distance": screen_distance,
                "screen_unit": screen_unit,
                "real_distance": real_distance,
                "real_unit": real_unit,
            },
        )

    @classmethod
    def from_ground_sample(
        cls,
        altitude_m: float,
        sensor_width_mm: float,
        focal_length_mm: float,
        image_width_px: float,
    ) -> "Calibration":
        """Drone photo: GSD = altitude * sensor width / (focal length * image width)."""
        if min(altitude_m, sensor_width_mm, focal_length_mm, image_width_px) <= 0.0:
            raise CalibrationError("Aerial parameters must all be positive")
        gsd_mm = (altitude_m * 1000.0 * sensor_width_mm) / (focal_length_mm * image_width_px)
        return cls(
            pixels_per_unit=1.0 / gsd_mm,
            unit="m",
            kind=CalibrationKind.AERIAL,
            method_params={
                "altitude_m": altitude_m,
                "sensor_width_mm": sensor_width_mm,
                "focal_length_mm": focal_length_mm,
                "image_width_px": image_width_px,
            },
        )


def pixels_per_screen_unit(screen_unit: str, screen: MapScaleSettings) -> float:
    physical_width = screen.assumed_screen_width_cm if screen_unit == "cm" else screen.assumed_screen_width_in
    return screen.assumed_screen_width_px / physical_width
