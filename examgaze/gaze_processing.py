#!/usr/bin/env python3

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from examgaze.config import GazeConfig
from examgaze.direction import GazeDirection, classify_direction
from examgaze.emission import EmissionGate, GazeEvent
from examgaze.filters import DirectionSmoother
from examgaze.gaze_geometry import compute_eye_box, normalized_iris_position, require_landmarks
from examgaze.head_pose import head_yaw_offset, is_head_turned

logger = logging.getLogger(__name__)

REASON_NO_FACE = "no_face"
REASON_DEGENERATE = "degenerate_eye_box"
REASON_HEAD_TURNED = "head_turned"


@dataclass(frozen=True)
class FrameResult:
    raw_direction: GazeDirection
    direction: GazeDirection
    event: Optional[GazeEvent] = None
    reason: Optional[str] = None
    left_iris: Optional[tuple[float, float]] = None
    right_iris: Optional[tuple[float, float]] = None
    yaw_offset: Optional[float] = None
    head_turned: bool = False


class GazeSession:
    """Per-frame gaze pipeline for one tracking session.

    Owns the direction history and the cooldown table; call reset() whenever
    tracking restarts so nothing carries over from a previous session.
    """

    def __init__(self, config: Optional[GazeConfig] = None) -> None:
        self.config = config or GazeConfig()
        self.smoother = DirectionSmoother(
            window=self.config.smoothing_window_size,
            require_full_buffer=self.config.full_buffer_required,
        )
        self.gate = EmissionGate(
            log_interval_ms=self.config.log_interval_ms,
            cooldown_ms=self.config.cooldown_ms,
        )
        self._max_index = self.config.max_landmark_index

    def reset(self) -> None:
        self.smoother.reset()
        self.gate.reset()

    def _raw_direction(self, face_landmarks: Any) -> tuple[GazeDirection, dict[str, Any]]:
        cfg = self.config
        if face_landmarks is None or len(face_landmarks) == 0:
            return GazeDirection.UNKNOWN, {"reason": REASON_NO_FACE}

        require_landmarks(face_landmarks, self._max_index)

        left_box = compute_eye_box(face_landmarks, cfg.eye_indexes("left"), cfg.eye_box_strategy)
        right_box = compute_eye_box(face_landmarks, cfg.eye_indexes("right"), cfg.eye_box_strategy)
        left_iris = normalized_iris_position(face_landmarks[cfg.left_iris_index], left_box)
        right_iris = normalized_iris_position(face_landmarks[cfg.right_iris_index], right_box)

        offset = head_yaw_offset(face_landmarks, cfg.nose_tip_index, cfg.eye_center_indexes)
        turned = is_head_turned(offset, cfg.head_turn_threshold)
        details: dict[str, Any] = {
            "left_iris": left_iris,
            "right_iris": right_iris,
            "yaw_offset": offset,
            "head_turned": turned,
        }
        if turned:
            details["reason"] = REASON_HEAD_TURNED
            return GazeDirection.UNKNOWN, details
        if left_iris is None or right_iris is None:
            details["reason"] = REASON_DEGENERATE
            return GazeDirection.UNKNOWN, details

        direction = classify_direction(
            left_iris,
            right_iris,
            cfg.iris_margin_threshold,
            policy=cfg.classification_policy,
            mirror_x=cfg.mirror_x,
        )
        return direction, details

    def process(self, face_landmarks: Any, now_ms: int) -> FrameResult:
        raw, details = self._raw_direction(face_landmarks)
        if raw == GazeDirection.UNKNOWN:
            logger.debug("[Gaze] raw direction unknown: %s", details.get("reason", "unclassified"))
        smoothed = self.smoother.push(raw)
        event = self.gate.offer(smoothed, now_ms)
        return FrameResult(
            raw_direction=raw,
            direction=smoothed,
            event=event,
            reason=details.get("reason"),
            left_iris=details.get("left_iris"),
            right_iris=details.get("right_iris"),
            yaw_offset=details.get("yaw_offset"),
            head_turned=bool(details.get("head_turned", False)),
        )
