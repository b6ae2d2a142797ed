from snapmeasure.calibration.map_scale import ScaleOverlay
from snapmeasure.calibration.model import Calibration, CalibrationKind, PixelScale

__all__ = ["Calibration", "CalibrationKind", "PixelScale", "ScaleOverlay"]
