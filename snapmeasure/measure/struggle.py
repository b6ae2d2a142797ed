from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass

from loguru import logger

from snapmeasure.geometry.primitives import Point
from snapmeasure.settings import StruggleSettings


@dataclass(frozen=True)
class _Attempt:
    mode: str
    point: Point
    timestamp: float


class StruggleDetector:
    """Raise a one-shot calibration hint when placements keep restarting in one spot.

    Fires once per photo when ``min_attempts`` placements of the same mode start
    within ``radius_px`` of each other inside ``window_s`` seconds.
    """

    def __init__(self, settings: StruggleSettings | None = None) -> None:
        self.settings = settings or StruggleSettings()
        self._attempts: deque[_Attempt] = deque()
        self.fired = False

    def reset(self) -> None:
        self._attempts.clear()
        self.fired = False

    def record(self, mode: str, point: Point, timestamp: float) -> bool:
        """Record a placement start; True only on the call that triggers the hint."""
        if self.fired or not self.settings.enabled:
            return False
        window = self.settings.window_s
        while self._attempts and timestamp - self._attempts[0].timestamp > window:
            self._attempts.popleft()
        self._attempts.append(_Attempt(mode, point, timestamp))

        cluster = [
            a for a in self._attempts
            if a.mode == mode and math.hypot(a.point.x - point.x, a.point.y - point.y) <= self.settings.radius_px
        ]
        if len(cluster) >= self.settings.min_attempts:
            self.fired = True
            logger.info("Calibration hint raised after {} {} attempts", len(cluster), mode)
            return True
        return False
