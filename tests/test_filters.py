from __future__ import annotations

import pytest

from examgaze.direction import GazeDirection as D
from examgaze.filters import DirectionSmoother, now_ms


def _feed(smoother, directions):
    return [smoother.push(d) for d in directions]


def test_tie_goes_to_first_direction_to_reach_the_max():
    smoother = DirectionSmoother(window=4, require_full_buffer=True)
    assert _feed(smoother, [D.LEFT, D.RIGHT, D.LEFT, D.RIGHT])[-1] == D.LEFT


def test_tie_break_follows_buffer_order_not_first_appearance():
    smoother = DirectionSmoother(window=4, require_full_buffer=True)
    # right appears first, but left is the first to reach two.
    assert _feed(smoother, [D.RIGHT, D.LEFT, D.LEFT, D.RIGHT])[-1] == D.LEFT


def test_mode_wins_over_recency():
    smoother = DirectionSmoother(window=5, require_full_buffer=True)
    assert _feed(smoother, [D.UP, D.CENTER, D.CENTER, D.CENTER, D.UP])[-1] == D.CENTER


def test_strict_cold_start_reports_unknown_until_full():
    smoother = DirectionSmoother(window=15, require_full_buffer=True)
    outputs = _feed(smoother, [D.CENTER] * 15)
    assert outputs[:14] == [D.UNKNOWN] * 14
    assert outputs[14] == D.CENTER


def test_lenient_cold_start_uses_partial_buffer():
    smoother = DirectionSmoother(window=3, require_full_buffer=False)
    assert smoother.current() == D.UNKNOWN
    assert smoother.push(D.LEFT) == D.LEFT
    assert smoother.push(D.CENTER) == D.LEFT
    assert smoother.push(D.CENTER) == D.CENTER


@pytest.mark.parametrize("window, strict", [(3, False), (5, False), (6, True), (15, True)])
def test_full_buffer_default_depends_on_window(window, strict):
    assert DirectionSmoother(window=window).require_full_buffer is strict


def test_oldest_entry_is_evicted():
    smoother = DirectionSmoother(window=3, require_full_buffer=True)
    _feed(smoother, [D.UP, D.UP, D.DOWN, D.DOWN])
    assert smoother.history == (D.UP, D.DOWN, D.DOWN)
    assert len(smoother) == 3
    assert smoother.current() == D.DOWN


def test_reset_clears_history():
    smoother = DirectionSmoother(window=3, require_full_buffer=True)
    _feed(smoother, [D.UP, D.UP, D.UP])
    smoother.reset()
    assert len(smoother) == 0
    assert smoother.push(D.UP) == D.UNKNOWN


def test_accepts_plain_strings_and_rejects_bad_window():
    smoother = DirectionSmoother(window=1)
    assert smoother.push("right") == D.RIGHT
    with pytest.raises(ValueError):
        DirectionSmoother(window=0)


def test_now_ms_is_monotonic():
    first = now_ms()
    assert now_ms() >= first
