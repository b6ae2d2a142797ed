"""Custom exception hierarchy for snapmeasure."""

from __future__ import annotations


class SnapMeasureError(Exception):
    """Base exception for all snapmeasure-specific errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(SnapMeasureError):
    """Raised when configuration is invalid or missing."""
    pass


class CalibrationError(SnapMeasureError):
    """Raised when a calibration cannot be constructed from the given input."""
    pass


class GeometryError(SnapMeasureError):
    """Raised when geometry operations fail."""
    pass


class InvariantViolationError(GeometryError):
    """Raised when an engine invariant is broken (programming error, not user input)."""
    pass


class StorageError(SnapMeasureError):
    """Raised when storage operations fail."""
    pass


class SessionFormatError(StorageError):
    """Raised when a persisted session cannot be decoded."""
    pass
