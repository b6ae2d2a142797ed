from __future__ import annotations

import math

from snapmeasure.geometry import Point
from snapmeasure.measure.lasso import ClosureDecision, LassoBuffer, crosses_itself
from snapmeasure.settings import LassoSettings


def _circle(n=40, r=100.0, cx=200.0, cy=200.0):
    return [Point(cx + r * math.cos(2 * math.pi * i / n), cy + r * math.sin(2 * math.pi * i / n)) for i in range(n)]


def _bow_tie():
    # diagonal down, up the right side, diagonal back across the first, up the left side
    pts = [Point(10 * k, 10 * k) for k in range(11)]
    pts += [Point(100, 100 - 10 * k) for k in range(1, 11)]
    pts += [Point(100 - 10 * k, 10 * k) for k in range(1, 11)]
    pts += [Point(0, 100 - 10 * k) for k in range(1, 10)]
    return pts


def test_loop_closes_when_returning_to_start():
    """A long path returning near its start closes."""
    lasso = LassoBuffer(LassoSettings())
    decisions = [lasso.add(p) for p in _circle()]
    assert all(d is ClosureDecision.NOT_ELIGIBLE for d in decisions)

    assert lasso.add(Point(300, 202)) is ClosureDecision.CLOSE
    # samples after closure are ignored
    lasso.add(Point(500, 500))
    result = lasso.release()
    assert result.is_closed
    assert result.points[0] == result.points[-1]
    assert len(result.points) == 41
    assert not lasso.active


def test_short_path_near_start_does_not_close():
    """Paths with too few samples cannot close."""
    lasso = LassoBuffer(LassoSettings())
    for p in _circle(n=40)[:10]:
        lasso.add(p)
    assert lasso.add(Point(301, 200)) is ClosureDecision.NOT_ELIGIBLE


def test_self_crossing_path_stays_open():
    """A closure that would cross the path is refused."""
    lasso = LassoBuffer(LassoSettings())
    for p in _bow_tie():
        lasso.add(p)
    assert lasso.add(Point(0, 3)) is ClosureDecision.REJECT_SELF_INTERSECTING
    result = lasso.release()
    assert result is not None
    assert not result.is_closed


def test_crosses_itself():
    """Self-crossing is detected for a bow tie but not a circle."""
    assert crosses_itself(_bow_tie(), 0.05)
    assert not crosses_itself(_circle(), 0.05)


def test_samples_closer_than_spacing_are_dropped():
    """Samples closer than the minimum spacing are skipped."""
    lasso = LassoBuffer(LassoSettings(min_spacing_px=2.0))
    lasso.add(Point(0, 0))
    lasso.add(Point(1, 0))
    lasso.add(Point(3, 0))
    assert lasso.points == [Point(0, 0), Point(3, 0)]


def test_single_sample_is_discarded_on_release():
    """A tap without a drag leaves nothing behind."""
    lasso = LassoBuffer(LassoSettings())
    lasso.add(Point(5, 5))
    assert lasso.release() is None


def test_two_sample_drag_is_discarded_on_release():
    """An open path needs three samples to be kept."""
    lasso = LassoBuffer(LassoSettings())
    lasso.add(Point(0, 0))
    lasso.add(Point(50, 0))
    assert lasso.release() is None
    assert lasso.points == []
