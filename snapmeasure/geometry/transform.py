"""Photo-space <-> display-space mapping under pan and zoom."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from snapmeasure.exceptions import InvariantViolationError
from snapmeasure.geometry.primitives import Point


@dataclass
class ViewTransform:
    """Pan/zoom state owned by the external viewport.

    ``rotation`` is carried for the display collaborator only. The mapping below
    ignores it; geometry placed while the photo is rotated is not corrected.
    """
    scale: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0
    rotation: float = 0.0

    def __post_init__(self) -> None:
        if not self.scale > 0.0:
            raise InvariantViolationError("View scale must be positive", {"scale": str(self.scale)})
        if self.rotation:
            logger.warning("Display rotation {} is not applied to coordinate mapping", self.rotation)

    def to_photo(self, sx: float, sy: float) -> Point:
        return Point((sx - self.translate_x) / self.scale, (sy - self.translate_y) / self.scale)

    def to_display(self, px: float, py: float) -> Point:
        return Point(px * self.scale + self.translate_x, py * self.scale + self.translate_y)

    def point_to_display(self, point: Point) -> Point:
        return self.to_display(point.x, point.y)

    def display_length(self, photo_length: float) -> float:
        return photo_length * self.scale

    def photo_length(self, display_length: float) -> float:
        return display_length / self.scale
