"""Photo measurement and calibration engine."""

__version__ = "0.1.0"
