#!/usr/bin/env python3

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from examgaze.direction import GazeDirection

logger = logging.getLogger(__name__)

CENTER_MESSAGE = "User is looking at the screen"


class EventSink(Protocol):
    def emit(
        self, event_type: str, category: str, message: str, data: Optional[Dict[str, Any]] = None
    ) -> None:
        ...


def gaze_message(direction: GazeDirection) -> str:
    if direction == GazeDirection.CENTER:
        return CENTER_MESSAGE
    return f"User eyes are not focused on screen (looking {GazeDirection(direction).value})"


@dataclass(frozen=True)
class GazeEvent:
    timestamp: int
    message: str
    direction: GazeDirection

    def to_log_data(self) -> Dict[str, Any]:
        return {"direction": self.direction.value, "timestamp": self.timestamp}

    def emit_to(self, sink: EventSink) -> None:
        sink.emit("gaze", "gaze", self.message, self.to_log_data())


class EmissionGate:
    """Rate limit and per-direction cooldown in front of the event log.

    A smoothed direction is reported only when it is known, the global log
    interval has passed since the last report of any direction, and the
    direction's own cooldown has passed (or it was never reported).
    """

    def __init__(self, log_interval_ms: int = 1000, cooldown_ms: int = 5000) -> None:
        self.log_interval_ms = int(log_interval_ms)
        self.cooldown_ms = int(cooldown_ms)
        self._last_emit_ms: Optional[int] = None
        self._cooldowns: Dict[GazeDirection, int] = {}

    @property
    def last_emit_ms(self) -> Optional[int]:
        return self._last_emit_ms

    def last_emitted(self, direction: GazeDirection) -> Optional[int]:
        return self._cooldowns.get(GazeDirection(direction))

    def should_emit(self, direction: GazeDirection, now_ms: int) -> bool:
        direction = GazeDirection(direction)
        if direction == GazeDirection.UNKNOWN:
            return False
        if self._last_emit_ms is not None and now_ms - self._last_emit_ms < self.log_interval_ms:
            return False
        last = self._cooldowns.get(direction)
        if last is not None and now_ms - last < self.cooldown_ms:
            return False
        return True

    def offer(self, direction: GazeDirection, now_ms: int) -> Optional[GazeEvent]:
        if not self.should_emit(direction, now_ms):
            return None
        direction = GazeDirection(direction)
        self._last_emit_ms = int(now_ms)
        self._cooldowns[direction] = int(now_ms)
        event = GazeEvent(timestamp=int(now_ms), message=gaze_message(direction), direction=direction)
        logger.info("[Gaze] %s (%s)", event.message, direction.value)
        return event

    def reset(self) -> None:
        self._last_emit_ms = None
        self._cooldowns.clear()
