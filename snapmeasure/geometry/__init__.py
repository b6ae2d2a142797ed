from snapmeasure.geometry.primitives import Point
from snapmeasure.geometry.transform import ViewTransform

__all__ = ["Point", "ViewTransform"]
