#!/usr/bin/env python3

from __future__ import annotations

from typing import Any, Sequence

import numpy as np

from examgaze.gaze_geometry import landmark_centroid


def yaw_offset(nose_tip: Any, eye_center: Sequence[float]) -> float:
    """Horizontal nose-tip offset from the eye center, a cheap stand-in for yaw."""
    return float(nose_tip.x) - float(eye_center[0])


def is_head_turned(offset: float, threshold: float) -> bool:
    # Non-finite offsets count as turned; the frame carries no usable pose.
    if not np.isfinite(offset):
        return True
    return abs(offset) > threshold


def head_yaw_offset(face_landmarks: Any, nose_tip_index: int, eye_center_indexes: Sequence[int]) -> float:
    eye_center = landmark_centroid(face_landmarks, eye_center_indexes)
    return yaw_offset(face_landmarks[nose_tip_index], eye_center)
