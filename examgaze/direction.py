#!/usr/bin/env python3

from __future__ import annotations

from enum import Enum
from typing import Sequence


class GazeDirection(str, Enum):
    CENTER = "center"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


DIRECTION_LABELS = {
    GazeDirection.CENTER: "Looking Center",
    GazeDirection.UP: "Looking Up",
    GazeDirection.DOWN: "Looking Down",
    GazeDirection.LEFT: "Looking Left",
    GazeDirection.RIGHT: "Looking Right",
    GazeDirection.UNKNOWN: "Unknown",
}


def average_iris_position(
    left: Sequence[float], right: Sequence[float], mirror_x: bool = False
) -> tuple[float, float]:
    avg_x = (float(left[0]) + float(right[0])) * 0.5
    avg_y = (float(left[1]) + float(right[1])) * 0.5
    if mirror_x:
        avg_x = 1.0 - avg_x
    return avg_x, avg_y


def classify_sequential(avg_x: float, avg_y: float, margin: float) -> GazeDirection:
    """Check up, down, left, right in that order; anything left over is center.

    Total over its inputs: never returns UNKNOWN.
    """
    if avg_y < 0.5 - margin:
        return GazeDirection.UP
    if avg_y > 0.5 + margin:
        return GazeDirection.DOWN
    if avg_x < 0.5 - margin:
        return GazeDirection.LEFT
    if avg_x > 0.5 + margin:
        return GazeDirection.RIGHT
    return GazeDirection.CENTER


def classify_banded(avg_x: float, avg_y: float, margin: float) -> GazeDirection:
    """Center only when both axes sit strictly inside the band, then per-axis checks.

    A point exactly on the band edge is neither inside nor outside and yields UNKNOWN.
    """
    x_off = avg_x - 0.5
    y_off = avg_y - 0.5
    if abs(x_off) < margin and abs(y_off) < margin:
        return GazeDirection.CENTER
    if y_off < -margin:
        return GazeDirection.UP
    if y_off > margin:
        return GazeDirection.DOWN
    if x_off < -margin:
        return GazeDirection.LEFT
    if x_off > margin:
        return GazeDirection.RIGHT
    return GazeDirection.UNKNOWN


def classify_direction(
    left: Sequence[float],
    right: Sequence[float],
    margin: float,
    policy: str = "sequential",
    mirror_x: bool = False,
) -> GazeDirection:
    avg_x, avg_y = average_iris_position(left, right, mirror_x=mirror_x)
    if policy == "banded":
        return classify_banded(avg_x, avg_y, margin)
    return classify_sequential(avg_x, avg_y, margin)
