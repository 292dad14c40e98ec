#!/usr/bin/env python3

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from examgaze.direction import GazeDirection

logger = logging.getLogger(__name__)


class FocusStats:
    """Running share of frames where the user looked at the screen."""

    def __init__(self, log_interval_ms: int = 10_000) -> None:
        self.log_interval_ms = int(log_interval_ms)
        self.focused = 0
        self.not_focused = 0
        self._last_log_ms: Optional[int] = None

    @property
    def total(self) -> int:
        return self.focused + self.not_focused

    def update(self, raw_direction: GazeDirection) -> None:
        if raw_direction == GazeDirection.CENTER:
            self.focused += 1
        else:
            self.not_focused += 1

    def percentages(self) -> tuple[float, float]:
        if self.total == 0:
            return 0.0, 0.0
        focused = 100.0 * self.focused / self.total
        return focused, 100.0 - focused

    def snapshot(self) -> Dict[str, Any]:
        focused_pct, not_focused_pct = self.percentages()
        return {
            "focused": self.focused,
            "notFocused": self.not_focused,
            "total": self.total,
            "focusedPercent": round(focused_pct, 1),
            "notFocusedPercent": round(not_focused_pct, 1),
        }

    def maybe_log(self, now_ms: int) -> bool:
        if self.total == 0:
            return False
        if self._last_log_ms is not None and now_ms - self._last_log_ms < self.log_interval_ms:
            return False
        self._last_log_ms = int(now_ms)
        focused_pct, not_focused_pct = self.percentages()
        logger.info(
            "[Tracker] Focus stats: focused %.1f%%, not focused %.1f%%",
            focused_pct,
            not_focused_pct,
        )
        return True

    def reset(self) -> None:
        self.focused = 0
        self.not_focused = 0
        self._last_log_ms = None
