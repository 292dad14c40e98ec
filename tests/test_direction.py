from __future__ import annotations

import itertools

import pytest

from examgaze.direction import (
    DIRECTION_LABELS,
    GazeDirection,
    average_iris_position,
    classify_banded,
    classify_direction,
    classify_sequential,
)


@pytest.mark.parametrize(
    "avg_x, avg_y, expected",
    [
        (0.5, 0.5, GazeDirection.CENTER),
        (0.6, 0.4, GazeDirection.CENTER),
        (0.5, 0.2, GazeDirection.UP),
        (0.5, 0.8, GazeDirection.DOWN),
        (0.2, 0.5, GazeDirection.LEFT),
        (0.8, 0.5, GazeDirection.RIGHT),
        # Vertical wins when both axes are out of band.
        (0.1, 0.1, GazeDirection.UP),
        (0.9, 0.9, GazeDirection.DOWN),
    ],
)
def test_sequential_policy(avg_x, avg_y, expected):
    assert classify_sequential(avg_x, avg_y, 0.15) == expected


def test_sequential_policy_is_total_and_deterministic():
    grid = [i / 20.0 for i in range(21)]
    allowed = {
        GazeDirection.CENTER,
        GazeDirection.UP,
        GazeDirection.DOWN,
        GazeDirection.LEFT,
        GazeDirection.RIGHT,
    }
    for avg_x, avg_y, margin in itertools.product(grid, grid, (0.0, 0.15, 0.23, 0.5)):
        first = classify_sequential(avg_x, avg_y, margin)
        assert first in allowed
        assert classify_sequential(avg_x, avg_y, margin) == first


def test_banded_policy_matches_sequential_off_the_edges():
    assert classify_banded(0.5, 0.5, 0.23) == GazeDirection.CENTER
    assert classify_banded(0.5, 0.2, 0.23) == GazeDirection.UP
    assert classify_banded(0.9, 0.5, 0.23) == GazeDirection.RIGHT


def test_banded_policy_edge_is_unknown():
    # Exactly on the band edge: not inside the band and not beyond it.
    assert classify_banded(0.75, 0.5, 0.25) == GazeDirection.UNKNOWN
    assert classify_sequential(0.75, 0.5, 0.25) == GazeDirection.CENTER


def test_average_and_mirror():
    assert average_iris_position((0.2, 0.4), (0.4, 0.6)) == pytest.approx((0.3, 0.5))
    assert average_iris_position((0.2, 0.4), (0.4, 0.6), mirror_x=True) == pytest.approx((0.7, 0.5))
    assert classify_direction((0.2, 0.5), (0.2, 0.5), 0.15) == GazeDirection.LEFT
    assert classify_direction((0.2, 0.5), (0.2, 0.5), 0.15, mirror_x=True) == GazeDirection.RIGHT
    assert classify_direction((0.5, 0.5), (0.5, 0.5), 0.15, policy="banded") == GazeDirection.CENTER


def test_direction_values_and_labels():
    assert str(GazeDirection.LEFT) == "left"
    assert GazeDirection("center") is GazeDirection.CENTER
    assert set(DIRECTION_LABELS) == set(GazeDirection)
