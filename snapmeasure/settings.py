from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from snapmeasure.exceptions import ConfigurationError
from snapmeasure.geometry import contract as c

# Load .env file from project root
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


class SnapSettings(BaseModel):
    magnetic_place_mm: float = Field(c.MAGNETIC_SNAP_PLACE_MM, gt=0.0)
    magnetic_drag_mm: float = Field(c.MAGNETIC_SNAP_DRAG_MM, gt=0.0)
    magnetic_fallback_px: float = Field(c.MAGNETIC_SNAP_FALLBACK_PX, gt=0.0)
    alignment_entry_deg: float = Field(c.ALIGNMENT_ENTRY_DEG, ge=0.0, le=45.0)
    alignment_exit_deg: float = Field(c.ALIGNMENT_EXIT_DEG, ge=0.0, le=45.0)
    min_distance_px: float = Field(c.SNAP_MIN_DISTANCE_DISPLAY_PX, ge=0.0)


class PolygonSettings(BaseModel):
    enabled: bool = True
    snap_tolerance_px: float = Field(c.POLYGON_SNAP_TOLERANCE_PX, gt=0.0)
    min_edges: int = Field(c.POLYGON_MIN_EDGES, ge=3)
    min_area_px2: float = Field(c.POLYGON_MIN_AREA_PX2, ge=0.0)


class LassoSettings(BaseModel):
    min_spacing_px: float = Field(c.LASSO_MIN_SPACING_PX, ge=0.0)
    min_points_to_close: int = Field(c.LASSO_MIN_POINTS_TO_CLOSE, ge=3)
    close_radius_px: float = Field(c.LASSO_CLOSE_RADIUS_PX, gt=0.0)
    jitter_fraction: float = Field(c.LASSO_JITTER_FRACTION, ge=0.0, lt=0.5)


class EditingSettings(BaseModel):
    point_grab_radius_px: float = Field(c.POINT_GRAB_RADIUS_DISPLAY_PX, gt=0.0)
    corner_grab_radius_px: float = Field(c.CORNER_GRAB_RADIUS_DISPLAY_PX, gt=0.0)
    drag_slop_px: float = Field(c.DRAG_SLOP_DISPLAY_PX, ge=0.0)
    falloff_weights: list[float] = Field(default_factory=lambda: list(c.FREEHAND_FALLOFF_WEIGHTS))
    rapid_tap_count: int = Field(c.RAPID_TAP_COUNT, ge=2)
    rapid_tap_window_s: float = Field(c.RAPID_TAP_WINDOW_S, gt=0.0)

    @field_validator("falloff_weights", mode="before")
    @classmethod
    def _normalize_weights(cls, value: Any) -> list[float]:
        if value is None:
            return list(c.FREEHAND_FALLOFF_WEIGHTS)
        if isinstance(value, (int, float)):
            value = [float(value)]
        weights: list[float] = []
        for item in value:
            try:
                weight = float(item)
            except (TypeError, ValueError) as exc:
                raise ValueError("falloff_weights entries must be numeric") from exc
            if not 0.0 <= weight <= 1.0:
                raise ValueError("falloff_weights entries must lie in [0, 1]")
            weights.append(weight)
        return weights


class MapScaleSettings(BaseModel):
    assumed_screen_width_px: float = Field(c.ASSUMED_SCREEN_WIDTH_PX, gt=0.0)
    assumed_screen_width_cm: float = Field(c.ASSUMED_SCREEN_WIDTH_CM, gt=0.0)
    assumed_screen_width_in: float = Field(c.ASSUMED_SCREEN_WIDTH_IN, gt=0.0)


class StruggleSettings(BaseModel):
    enabled: bool = True
    min_attempts: int = Field(c.STRUGGLE_MIN_ATTEMPTS, ge=2)
    radius_px: float = Field(c.STRUGGLE_RADIUS_DISPLAY_PX, gt=0.0)
    window_s: float = Field(c.STRUGGLE_WINDOW_S, gt=0.0)


class FormatSettings(BaseModel):
    unit_system: str = "metric"
    magnetic_declination_deg: float = Field(0.0, ge=-180.0, le=180.0)

    @field_validator("unit_system")
    @classmethod
    def _check_unit_system(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in {"metric", "imperial"}:
            raise ValueError("unit_system must be 'metric' or 'imperial'")
        return value


class Settings(BaseModel):
    snap: SnapSettings = Field(default_factory=SnapSettings)
    polygon: PolygonSettings = Field(default_factory=PolygonSettings)
    lasso: LassoSettings = Field(default_factory=LassoSettings)
    editing: EditingSettings = Field(default_factory=EditingSettings)
    map_scale: MapScaleSettings = Field(default_factory=MapScaleSettings)
    struggle: StruggleSettings = Field(default_factory=StruggleSettings)
    format: FormatSettings = Field(default_factory=FormatSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from YAML configuration file.

        Args:
            path: Optional path to configuration file. If not provided, uses
                SNAPMEASURE_CONFIG environment variable or config/default.yaml.
                A missing default file yields built-in defaults; a missing
                explicit file is an error.

        Returns:
            Settings instance with loaded configuration.

        Raises:
            ConfigurationError: If the file is missing or its content is invalid.
        """
        explicit = path is not None or "SNAPMEASURE_CONFIG" in os.environ
        config_path = path or Path(os.getenv("SNAPMEASURE_CONFIG", "config/default.yaml"))
        if not config_path.exists():
            if explicit:
                raise ConfigurationError(
                    f"Configuration file not found: {config_path}",
                    {"path": str(config_path)},
                )
            return cls()
        try:
            with config_path.open("r", encoding="utf-8") as fp:
                payload = yaml.safe_load(fp) or {}
            return cls(**payload)
        except Exception as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", {"path": str(config_path)}) from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "Settings",
    "SnapSettings",
    "PolygonSettings",
    "LassoSettings",
    "EditingSettings",
    "MapScaleSettings",
    "StruggleSettings",
    "FormatSettings",
    "get_settings",
]
