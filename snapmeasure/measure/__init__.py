from snapmeasure.measure.entities import (
    AngleMeasurement,
    CircleMeasurement,
    DistanceMeasurement,
    FreehandMeasurement,
    Measurement,
    Mode,
    PolygonMeasurement,
    RectangleMeasurement,
)
from snapmeasure.measure.session import (
    BlockReason,
    MeasurementSession,
    PlacementResult,
    PlacementStatus,
    RenderSnapshot,
    UndoResult,
)

__all__ = [
    "AngleMeasurement",
    "BlockReason",
    "CircleMeasurement",
    "DistanceMeasurement",
    "FreehandMeasurement",
    "Measurement",
    "MeasurementSession",
    "Mode",
    "PlacementResult",
    "PlacementStatus",
    "PolygonMeasurement",
    "RectangleMeasurement",
    "RenderSnapshot",
    "UndoResult",
]
