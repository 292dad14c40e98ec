#!/usr/bin/env python3

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numpy as np

from examgaze.errors import IncompleteLandmarksError


@dataclass(frozen=True)
class EyeBox:
    left: float
    right: float
    top: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def usable(self) -> bool:
        return bool(
            np.isfinite([self.left, self.right, self.top, self.bottom]).all()
            and self.width > 0.0
            and self.height > 0.0
        )


def _point(face_landmarks: Any, index: int) -> np.ndarray:
    pt = face_landmarks[index]
    return np.array([float(pt.x), float(pt.y)], dtype=float)


def _clamp_unit(v: float) -> float:
    return float(max(0.0, min(1.0, v)))


def require_landmarks(face_landmarks: Sequence[Any], max_index: int) -> None:
    count = len(face_landmarks)
    if count <= max_index:
        raise IncompleteLandmarksError(count, max_index + 1)


def eye_box_from_corners(face_landmarks: Any, indexes: Sequence[int]) -> EyeBox:
    """Box edges taken directly from the two corner and two eyelid landmarks."""
    left_corner, right_corner, upper_lid, lower_lid = (_point(face_landmarks, i) for i in indexes)
    return EyeBox(
        left=float(left_corner[0]),
        right=float(right_corner[0]),
        top=float(upper_lid[1]),
        bottom=float(lower_lid[1]),
    )


def eye_box_from_extent(face_landmarks: Any, indexes: Sequence[int]) -> EyeBox:
    """Box edges taken as the min/max over an extended landmark set."""
    pts = np.stack([_point(face_landmarks, i) for i in indexes], axis=0)
    lo = pts.min(axis=0)
    hi = pts.max(axis=0)
    return EyeBox(left=float(lo[0]), right=float(hi[0]), top=float(lo[1]), bottom=float(hi[1]))


def compute_eye_box(face_landmarks: Any, indexes: Sequence[int], strategy: str = "corners") -> EyeBox:
    if strategy == "extent":
        return eye_box_from_extent(face_landmarks, indexes)
    return eye_box_from_corners(face_landmarks, indexes)


def normalized_iris_position(iris: Any, box: EyeBox) -> Optional[tuple[float, float]]:
    """Iris center inside its eye box, (0, 0) top-left to (1, 1) bottom-right.

    Returns None when the box is degenerate or the iris is not a finite point, so
    callers never see NaN or infinity.
    """
    if not box.usable:
        return None
    x, y = float(iris.x), float(iris.y)
    if not (np.isfinite(x) and np.isfinite(y)):
        return None
    return (
        _clamp_unit((x - box.left) / box.width),
        _clamp_unit((y - box.top) / box.height),
    )


def landmark_centroid(face_landmarks: Any, indexes: Sequence[int]) -> np.ndarray:
    pts = np.stack([_point(face_landmarks, i) for i in indexes], axis=0)
    return pts.mean(axis=0)
