from __future__ import annotations

"""
Measurement Engine Contract

Single source of truth for thresholds, tolerances, and defaults used by the
measurement engine. Settings defaults and modules import from here instead of
hardcoding.
"""

# Pixel quantities are photo-space pixels unless they end with _DISPLAY_PX.

# Magnetic snap (radius expressed in physical mm, converted via pixels-per-mm)
MAGNETIC_SNAP_PLACE_MM = 2.0
MAGNETIC_SNAP_DRAG_MM = 0.5
MAGNETIC_SNAP_FALLBACK_PX = 8.0  # used when no calibration is active (map mode)

# Alignment snap
ALIGNMENT_ENTRY_DEG = 3.0
ALIGNMENT_EXIT_DEG = 4.0
SNAP_MIN_DISTANCE_DISPLAY_PX = 20.0

# Polygon detection
POLYGON_SNAP_TOLERANCE_PX = 30.0
POLYGON_MIN_EDGES = 3
POLYGON_MIN_AREA_PX2 = 0.5

# Freehand lasso
LASSO_MIN_SPACING_PX = 0.5
LASSO_MIN_POINTS_TO_CLOSE = 30
LASSO_CLOSE_RADIUS_PX = 8.0
LASSO_JITTER_FRACTION = 0.05

# Editing
POINT_GRAB_RADIUS_DISPLAY_PX = 30.0
CORNER_GRAB_RADIUS_DISPLAY_PX = 20.0
DRAG_SLOP_DISPLAY_PX = 4.0
FREEHAND_FALLOFF_WEIGHTS = (0.67, 0.33)
RAPID_TAP_COUNT = 4
RAPID_TAP_WINDOW_S = 0.5

# Calibration hint (struggle detector)
STRUGGLE_MIN_ATTEMPTS = 3
STRUGGLE_RADIUS_DISPLAY_PX = 80.0
STRUGGLE_WINDOW_S = 20.0

# Verbal / map scale: assumed phone screen, 2x pixel density
ASSUMED_SCREEN_WIDTH_PX = 780.0
ASSUMED_SCREEN_WIDTH_CM = 10.8
ASSUMED_SCREEN_WIDTH_IN = 4.25


def px_radius(mm_value: float, pixels_per_mm: float) -> float:
    """Convert a physical radius in millimetres into photo pixels."""
    return float(mm_value * pixels_per_mm)
