#!/usr/bin/env python3

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

from examgaze.filters import now_ms
from examgaze.gaze_processing import FrameResult, GazeSession

logger = logging.getLogger(__name__)


class LatestLandmarks:
    """Single-slot mailbox: the landmark producer overwrites, the frame loop peeks."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Optional[Any] = None
        self._seq = 0

    def put(self, face_landmarks: Optional[Any]) -> None:
        with self._lock:
            self._value = face_landmarks
            self._seq += 1

    def get(self) -> Optional[Any]:
        with self._lock:
            return self._value

    def snapshot(self) -> tuple[int, Optional[Any]]:
        with self._lock:
            return self._seq, self._value

    def clear(self) -> None:
        self.put(None)


class FrameLoop:
    """Fixed-interval consumer that feeds the latest landmarks through a session."""

    def __init__(
        self,
        session: GazeSession,
        slot: LatestLandmarks,
        on_result: Optional[Callable[[FrameResult], None]] = None,
        interval_ms: int = 33,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.session = session
        self.slot = slot
        self.on_result = on_result
        self.interval_ms = max(0, int(interval_ms))
        self.clock = clock
        self._stop = threading.Event()
        self.frames = 0

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def reset(self) -> None:
        self._stop.clear()
        self.frames = 0

    def run_once(self) -> FrameResult:
        result = self.session.process(self.slot.get(), self.clock())
        self.frames += 1
        if self.on_result is not None:
            self.on_result(result)
        return result

    def run(self, max_frames: Optional[int] = None) -> None:
        interval_s = self.interval_ms / 1000.0
        while not self._stop.is_set():
            started = time.monotonic()
            self.run_once()
            if max_frames is not None and self.frames >= max_frames:
                break
            remaining = interval_s - (time.monotonic() - started)
            if remaining > 0 and self._stop.wait(remaining):
                break
        logger.debug("[Tracker] frame loop exited after %d frames", self.frames)
