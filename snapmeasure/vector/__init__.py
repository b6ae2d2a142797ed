from snapmeasure.vector.snap import AlignmentSnapper, CursorSnapper, SnapKind, SnapResult, magnetic_snap

__all__ = ["AlignmentSnapper", "CursorSnapper", "SnapKind", "SnapResult", "magnetic_snap"]
