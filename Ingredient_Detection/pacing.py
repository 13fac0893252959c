from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class FramePacingConfig:
    min_interval_s: float = 0.2

    def __post_init__(self) -> None:
        if self.min_interval_s < 0:
            raise ValueError("min_interval_s must be >= 0")


class FramePacer:
    """
    Decides whether a new frame may enter the pipeline.

    A frame is dropped while the previous one is still in flight, or when less
    than `min_interval_s` has passed since the last admitted frame started.
    """

    def __init__(self, cfg: FramePacingConfig = FramePacingConfig(), clock: Callable[[], float] = time.monotonic):
        self.cfg = cfg
        self._clock = clock
        self.in_flight = False
        self._last_start: Optional[float] = None
        self.admitted = 0
        self.dropped_busy = 0
        self.dropped_interval = 0

    def try_acquire(self, now: Optional[float] = None) -> bool:
        if now is None:
            now = self._clock()
        if self.in_flight:
            self.dropped_busy += 1
            return False
        if self._last_start is not None and (now - self._last_start) < self.cfg.min_interval_s:
            self.dropped_interval += 1
            return False

        self.in_flight = True
        self._last_start = now
        self.admitted += 1
        return True

    def release(self) -> None:
        self.in_flight = False

    def reset(self) -> None:
        self.in_flight = False
        self._last_start = None
        self.admitted = 0
        self.dropped_busy = 0
        self.dropped_interval = 0
