from __future__ import annotations

from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from snapmeasure.exceptions import SessionFormatError, StorageError
from snapmeasure.measure.session import MeasurementSession
from snapmeasure.settings import Settings
from snapmeasure.storage.schema import (
    SessionState,
    calibration_from_record,
    calibration_record,
    measurement_from_record,
    measurement_record,
    overlay_from_record,
    overlay_record,
)
from snapmeasure.units.conversion import UnitSystem


def session_state(session: MeasurementSession) -> SessionState:
    return SessionState(
        calibration=calibration_record(session.calibration),
        scale_overlay=overlay_record(session.scale_overlay),
        map_mode=session.map_mode,
        unit_system=session.unit_system.value,
        declination_deg=session.declination_deg,
        measurements=[measurement_record(m) for m in session.measurements],
    )


def restore_session(state: SessionState, settings: Settings | None = None) -> MeasurementSession:
    """Rebuild a session; derived values and display strings are recomputed here."""
    session = MeasurementSession.from_settings(settings)
    session.unit_system = UnitSystem(state.unit_system)
    session.declination_deg = state.declination_deg
    session.scale_overlay = overlay_from_record(state.scale_overlay)
    session.map_mode = state.map_mode
    session.calibration = calibration_from_record(state.calibration)
    session.load_measurements([measurement_from_record(r) for r in state.measurements])
    return session


class LocalSessionStore:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def save(self, key: str, session: MeasurementSession) -> str:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(session_state(session).model_dump_json(indent=2), encoding="utf-8")
        logger.debug("Saved session {} ({} measurements)", key, len(session.measurements))
        return str(path)

    def load(self, key: str, settings: Settings | None = None) -> MeasurementSession:
        path = self.path_for(key)
        if not path.exists():
            raise StorageError(f"No saved session: {key}", {"path": str(path)})
        return load_session_file(path, settings)

    def exists(self, key: str) -> bool:
        return self.path_for(key).exists()

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        if not path.exists():
            return False
        path.unlink()
        return True


def load_session_file(path: Path, settings: Settings | None = None) -> MeasurementSession:
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise StorageError(f"Cannot read session file: {path}", {"path": str(path)}) from exc
    try:
        state = SessionState.model_validate_json(raw)
    except ValidationError as exc:
        raise SessionFormatError(
            f"Invalid session file: {path}",
            {"errors": str(exc.error_count())},
        ) from exc
    return restore_session(state, settings)


__all__ = ["LocalSessionStore", "session_state", "restore_session", "load_session_file"]
