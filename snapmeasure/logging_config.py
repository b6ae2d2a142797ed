"""Structured logging configuration for snapmeasure."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger


class JSONFormatter:
    """One JSON object per line: time, level, component and message."""

    def __call__(self, record: dict[str, Any]) -> str:
        extra = dict(record["extra"])
        log_data = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name,
            "component": extra.pop("name", record["module"]),
            "message": record["message"],
        }
        if record["exception"] is not None:
            log_data["error"] = repr(record["exception"].value)
        log_data.update(extra)

        # loguru treats the returned string as a format template
        return json.dumps(log_data, ensure_ascii=False, default=str).replace("{", "{{").replace("}", "}}") + "\n"


def setup_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: Path | None = None,
) -> None:
    """Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Whether to use JSON formatting.
        log_file: Optional path to log file. If None, logs only to stderr.
    """
    logger.remove()

    if json_format:
        formatter: Any = JSONFormatter()
    else:
        formatter = (
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

    logger.add(
        sys.stderr,
        format=formatter,
        level=level,
        colorize=not json_format,
    )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=formatter,
            level=level,
            rotation="10 MB",
        )


def get_logger(name: str | None = None) -> Any:
    """Get a logger instance, optionally bound to a component name."""
    if name:
        return logger.bind(name=name)
    return logger
