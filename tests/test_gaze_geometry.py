from __future__ import annotations

import math
from types import SimpleNamespace

import pytest

from examgaze.config import LEFT_EYE_CORNERS, LEFT_EYE_EXTENT
from examgaze.errors import IncompleteLandmarksError
from examgaze.gaze_geometry import (
    EyeBox,
    compute_eye_box,
    eye_box_from_corners,
    eye_box_from_extent,
    landmark_centroid,
    normalized_iris_position,
    require_landmarks,
)


def _iris(x, y):
    return SimpleNamespace(x=x, y=y)


def test_corner_box_uses_corners_and_lids(centered_face):
    box = eye_box_from_corners(centered_face, LEFT_EYE_CORNERS)
    assert box.left == pytest.approx(0.30)
    assert box.right == pytest.approx(0.40)
    assert box.top == pytest.approx(0.37)
    assert box.bottom == pytest.approx(0.43)
    assert box.width == pytest.approx(0.10)
    assert box.height == pytest.approx(0.06)
    assert box.usable


def test_extent_box_covers_every_point(make_face):
    face = make_face()
    # Push one extended eyelid point outside the corner box.
    face[160] = SimpleNamespace(x=0.29, y=0.36)
    box = eye_box_from_extent(face, LEFT_EYE_EXTENT)
    assert box.left == pytest.approx(0.29)
    assert box.top == pytest.approx(0.36)
    assert compute_eye_box(face, LEFT_EYE_EXTENT, "extent") == box
    assert compute_eye_box(face, LEFT_EYE_CORNERS, "corners").left == pytest.approx(0.30)


@pytest.mark.parametrize(
    "iris, expected",
    [
        ((0.35, 0.40), (0.5, 0.5)),
        ((0.30, 0.37), (0.0, 0.0)),
        ((0.40, 0.43), (1.0, 1.0)),
        ((0.32, 0.42), (0.2, 5.0 / 6.0)),
    ],
)
def test_normalized_iris_position_inside_box(iris, expected):
    box = EyeBox(left=0.30, right=0.40, top=0.37, bottom=0.43)
    x, y = normalized_iris_position(_iris(*iris), box)
    assert 0.0 <= x <= 1.0 and 0.0 <= y <= 1.0
    assert (x, y) == pytest.approx(expected)


def test_normalized_iris_position_is_clamped():
    box = EyeBox(left=0.30, right=0.40, top=0.37, bottom=0.43)
    assert normalized_iris_position(_iris(0.1, 0.9), box) == (0.0, 1.0)
    assert normalized_iris_position(_iris(0.9, 0.1), box) == (1.0, 0.0)


@pytest.mark.parametrize(
    "box",
    [
        EyeBox(left=0.3, right=0.3, top=0.37, bottom=0.43),
        EyeBox(left=0.4, right=0.3, top=0.37, bottom=0.43),
        EyeBox(left=0.3, right=0.4, top=0.40, bottom=0.40),
        EyeBox(left=0.3, right=0.4, top=0.45, bottom=0.40),
        EyeBox(left=math.nan, right=0.4, top=0.37, bottom=0.43),
    ],
)
def test_degenerate_box_yields_no_position(box):
    assert not box.usable
    assert normalized_iris_position(_iris(0.35, 0.40), box) is None


def test_non_finite_iris_yields_no_position():
    box = EyeBox(left=0.30, right=0.40, top=0.37, bottom=0.43)
    assert normalized_iris_position(_iris(math.inf, 0.40), box) is None


def test_require_landmarks_rejects_short_sets(make_face):
    face = make_face(count=468)
    with pytest.raises(IncompleteLandmarksError) as excinfo:
        require_landmarks(face, 473)
    assert excinfo.value.count == 468
    assert excinfo.value.required == 474
    require_landmarks(make_face(), 473)


def test_landmark_centroid(centered_face):
    center = landmark_centroid(centered_face, (33, 133, 362, 263))
    assert center[0] == pytest.approx(0.5)
    assert center[1] == pytest.approx(0.40)
