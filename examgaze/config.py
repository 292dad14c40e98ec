#!/usr/bin/env python3

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

# Eye corner quadruples are ordered (left corner, right corner, upper lid, lower lid)
# in image coordinates.
LEFT_EYE_CORNERS = (33, 133, 159, 145)
RIGHT_EYE_CORNERS = (362, 263, 386, 374)

LEFT_EYE_EXTENT = (33, 133, 159, 145, 160, 144, 153, 154)
RIGHT_EYE_EXTENT = (362, 263, 386, 374, 387, 373, 380, 381)

LEFT_IRIS_INDEX = 468
RIGHT_IRIS_INDEX = 473
NOSE_TIP_INDEX = 1
EYE_CENTER_INDEXES = (33, 133, 362, 263)

CLASSIFICATION_POLICIES = ("sequential", "banded")
EYE_BOX_STRATEGIES = ("corners", "extent")

# Windows at or below this size default to the lenient cold start.
LENIENT_WINDOW_MAX = 5


def _check_indexes(name: str, indexes: tuple[int, ...]) -> None:
    if not indexes:
        raise ValueError(f"{name} must not be empty")
    for idx in indexes:
        if int(idx) < 0:
            raise ValueError(f"{name} contains a negative landmark index: {idx}")


@dataclass(frozen=True)
class GazeConfig:
    smoothing_window_size: int = 15
    require_full_buffer: Optional[bool] = None
    head_turn_threshold: float = 0.05
    iris_margin_threshold: float = 0.15
    classification_policy: str = "sequential"
    eye_box_strategy: str = "corners"
    log_interval_ms: int = 1000
    cooldown_ms: int = 5000
    mirror_x: bool = False

    left_eye_corners: tuple[int, int, int, int] = LEFT_EYE_CORNERS
    right_eye_corners: tuple[int, int, int, int] = RIGHT_EYE_CORNERS
    left_eye_extent: tuple[int, ...] = LEFT_EYE_EXTENT
    right_eye_extent: tuple[int, ...] = RIGHT_EYE_EXTENT
    left_iris_index: int = LEFT_IRIS_INDEX
    right_iris_index: int = RIGHT_IRIS_INDEX
    nose_tip_index: int = NOSE_TIP_INDEX
    eye_center_indexes: tuple[int, ...] = EYE_CENTER_INDEXES

    def __post_init__(self) -> None:
        if int(self.smoothing_window_size) < 1:
            raise ValueError("smoothing_window_size must be at least 1")
        if self.head_turn_threshold < 0.0:
            raise ValueError("head_turn_threshold must be non-negative")
        if self.iris_margin_threshold < 0.0:
            raise ValueError("iris_margin_threshold must be non-negative")
        if self.log_interval_ms < 0 or self.cooldown_ms < 0:
            raise ValueError("log_interval_ms and cooldown_ms must be non-negative")
        if self.classification_policy not in CLASSIFICATION_POLICIES:
            raise ValueError(
                f"unknown classification_policy {self.classification_policy!r}; "
                f"expected one of {', '.join(CLASSIFICATION_POLICIES)}"
            )
        if self.eye_box_strategy not in EYE_BOX_STRATEGIES:
            raise ValueError(
                f"unknown eye_box_strategy {self.eye_box_strategy!r}; "
                f"expected one of {', '.join(EYE_BOX_STRATEGIES)}"
            )
        for name in ("left_eye_corners", "right_eye_corners"):
            corners = getattr(self, name)
            if len(corners) != 4:
                raise ValueError(f"{name} must hold exactly four indexes")
            _check_indexes(name, corners)
        _check_indexes("left_eye_extent", self.left_eye_extent)
        _check_indexes("right_eye_extent", self.right_eye_extent)
        _check_indexes("eye_center_indexes", self.eye_center_indexes)
        _check_indexes(
            "iris/nose indexes",
            (self.left_iris_index, self.right_iris_index, self.nose_tip_index),
        )

    @property
    def full_buffer_required(self) -> bool:
        if self.require_full_buffer is not None:
            return bool(self.require_full_buffer)
        return self.smoothing_window_size > LENIENT_WINDOW_MAX

    def eye_indexes(self, side: str) -> tuple[int, ...]:
        if side not in ("left", "right"):
            raise ValueError(f"side must be 'left' or 'right', got {side!r}")
        if self.eye_box_strategy == "extent":
            return self.left_eye_extent if side == "left" else self.right_eye_extent
        return self.left_eye_corners if side == "left" else self.right_eye_corners

    @property
    def max_landmark_index(self) -> int:
        return max(
            *self.eye_indexes("left"),
            *self.eye_indexes("right"),
            self.left_iris_index,
            self.right_iris_index,
            self.nose_tip_index,
            *self.eye_center_indexes,
        )

    @classmethod
    def from_args(cls, args: Any) -> "GazeConfig":
        """Build a config from the tracker's argparse namespace, ignoring unset options."""
        fields = {}
        for name in (
            "smoothing_window_size",
            "require_full_buffer",
            "head_turn_threshold",
            "iris_margin_threshold",
            "classification_policy",
            "eye_box_strategy",
            "log_interval_ms",
            "cooldown_ms",
            "mirror_x",
        ):
            value = getattr(args, name, None)
            if value is not None:
                fields[name] = value
        return cls(**fields)
