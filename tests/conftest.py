from __future__ import annotations

from types import SimpleNamespace

import pytest

NUM_LANDMARKS = 478

# Synthetic eyes: each box is 0.10 wide and 0.06 tall.
LEFT_BOX = (0.30, 0.40, 0.37, 0.43)
RIGHT_BOX = (0.60, 0.70, 0.37, 0.43)


def _pt(x: float, y: float) -> SimpleNamespace:
    return SimpleNamespace(x=x, y=y, z=0.0)


def _eye_points(box, corners, extras):
    left, right, top, bottom = box
    mid_x = (left + right) / 2.0
    mid_y = (top + bottom) / 2.0
    points = {
        corners[0]: _pt(left, mid_y),
        corners[1]: _pt(right, mid_y),
        corners[2]: _pt(mid_x, top),
        corners[3]: _pt(mid_x, bottom),
    }
    inner = [
        _pt(left + 0.03, top + 0.01),
        _pt(left + 0.03, bottom - 0.01),
        _pt(right - 0.03, bottom - 0.01),
        _pt(right - 0.02, bottom - 0.01),
    ]
    points.update(zip(extras, inner))
    return points


def build_face(iris=(0.5, 0.5), nose_dx=0.0, count=NUM_LANDMARKS):
    """A frontal face whose irises sit at the given normalized eye-box position."""
    u, v = iris
    landmarks = [_pt(0.5, 0.6) for _ in range(count)]

    def put(index, point):
        if index < count:
            landmarks[index] = point

    for index, point in _eye_points(LEFT_BOX, (33, 133, 159, 145), (160, 144, 153, 154)).items():
        put(index, point)
    for index, point in _eye_points(RIGHT_BOX, (362, 263, 386, 374), (387, 373, 380, 381)).items():
        put(index, point)

    put(468, _pt(LEFT_BOX[0] + u * 0.10, LEFT_BOX[2] + v * 0.06))
    put(473, _pt(RIGHT_BOX[0] + u * 0.10, RIGHT_BOX[2] + v * 0.06))
    # Eye corners average to x = 0.5.
    put(1, _pt(0.5 + nose_dx, 0.55))
    return landmarks


@pytest.fixture
def make_face():
    return build_face


@pytest.fixture
def centered_face():
    return build_face()


class RecordingSink:
    def __init__(self):
        self.calls = []

    def emit(self, event_type, category, message, data=None):
        self.calls.append((event_type, category, message, dict(data or {})))


@pytest.fixture
def recording_sink():
    return RecordingSink()
