#!/usr/bin/env python3

from __future__ import annotations

import time
from collections import deque
from typing import Optional

from examgaze.config import LENIENT_WINDOW_MAX
from examgaze.direction import GazeDirection


def now_ms() -> int:
    return int(time.perf_counter_ns() // 1_000_000)


class DirectionSmoother:
    """Majority vote over the last N raw gaze directions.

    Ties go to whichever direction first reaches the winning count while the
    buffer is scanned oldest to newest, so [a, b, a, b] smooths to a.
    """

    def __init__(self, window: int = 15, require_full_buffer: Optional[bool] = None) -> None:
        self.window = int(window)
        if self.window < 1:
            raise ValueError("window must be at least 1")
        if require_full_buffer is None:
            require_full_buffer = self.window > LENIENT_WINDOW_MAX
        self.require_full_buffer = bool(require_full_buffer)
        self._history: deque[GazeDirection] = deque(maxlen=self.window)

    def __len__(self) -> int:
        return len(self._history)

    @property
    def history(self) -> tuple[GazeDirection, ...]:
        return tuple(self._history)

    @property
    def is_full(self) -> bool:
        return len(self._history) >= self.window

    def push(self, direction: GazeDirection) -> GazeDirection:
        self._history.append(GazeDirection(direction))
        return self.current()

    def current(self) -> GazeDirection:
        if not self._history:
            return GazeDirection.UNKNOWN
        if self.require_full_buffer and not self.is_full:
            return GazeDirection.UNKNOWN
        return self._mode()

    def _mode(self) -> GazeDirection:
        counts: dict[GazeDirection, int] = {}
        best = GazeDirection.UNKNOWN
        best_count = 0
        for direction in self._history:
            counts[direction] = counts.get(direction, 0) + 1
            if counts[direction] > best_count:
                best = direction
                best_count = counts[direction]
        return best

    def reset(self) -> None:
        self._history.clear()
