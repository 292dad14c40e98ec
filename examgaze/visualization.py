#!/usr/bin/env python3

from __future__ import annotations

from typing import Any, Optional

import cv2
import numpy as np

from examgaze.config import GazeConfig
from examgaze.direction import DIRECTION_LABELS, GazeDirection
from examgaze.gaze_geometry import EyeBox, compute_eye_box
from examgaze.gaze_processing import FrameResult

STATUS_COLORS = {
    GazeDirection.CENTER: (0, 200, 0),
    GazeDirection.UNKNOWN: (160, 160, 160),
}
AWAY_COLOR = (0, 80, 255)
BOX_COLOR = (255, 200, 0)
IRIS_COLOR = (0, 255, 255)


def status_text(direction: GazeDirection) -> str:
    return DIRECTION_LABELS.get(GazeDirection(direction), DIRECTION_LABELS[GazeDirection.UNKNOWN])


def _to_px(x: float, y: float, w: int, h: int) -> tuple[int, int]:
    return int(round(x * (w - 1))), int(round(y * (h - 1)))


def _draw_box(frame: np.ndarray, box: EyeBox) -> None:
    if not box.usable:
        return
    h, w = frame.shape[:2]
    cv2.rectangle(frame, _to_px(box.left, box.top, w, h), _to_px(box.right, box.bottom, w, h), BOX_COLOR, 1)


def draw_overlay(
    frame: np.ndarray,
    result: Optional[FrameResult],
    face_landmarks: Any = None,
    config: Optional[GazeConfig] = None,
) -> np.ndarray:
    """Draw the status label, eye boxes and iris points onto a BGR frame in place."""
    config = config or GazeConfig()
    h, w = frame.shape[:2]

    if face_landmarks is not None and len(face_landmarks) > config.max_landmark_index:
        for side, iris_index in (("left", config.left_iris_index), ("right", config.right_iris_index)):
            _draw_box(frame, compute_eye_box(face_landmarks, config.eye_indexes(side), config.eye_box_strategy))
            iris = face_landmarks[iris_index]
            if np.isfinite(iris.x) and np.isfinite(iris.y):
                cv2.circle(frame, _to_px(float(iris.x), float(iris.y), w, h), 2, IRIS_COLOR, -1)

    direction = result.direction if result is not None else GazeDirection.UNKNOWN
    color = STATUS_COLORS.get(direction, AWAY_COLOR)
    cv2.putText(frame, status_text(direction), (20, 28), cv2.FONT_HERSHEY_SIMPLEX, 0.65, color, 2, cv2.LINE_AA)

    if result is not None and result.reason:
        cv2.putText(
            frame,
            result.reason.replace("_", " "),
            (20, 52),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.5,
            (200, 200, 200),
            1,
            cv2.LINE_AA,
        )
    return frame
