from __future__ import annotations

import pytest

from snapmeasure.geometry import Point
from snapmeasure.measure.entities import CircleMeasurement, DistanceMeasurement
from snapmeasure.measure.polygon_detector import find_closed_chain


def _edge(x0, y0, x1, y1):
    return DistanceMeasurement([Point(x0, y0), Point(x1, y1)])


def _square():
    return [
        _edge(0, 0, 100, 0),
        _edge(100, 0, 100, 100),
        _edge(100, 100, 0, 100),
        _edge(0, 100, 0, 0),
    ]


@pytest.mark.parametrize("newest", [0, 1, 2, 3])
def test_square_closes_from_any_newest_edge(newest):
    """A square closes whichever edge was drawn last."""
    edges = _square()
    match = find_closed_chain(edges, edges[newest].id)
    assert match is not None
    assert sorted(match.consumed_ids) == sorted(e.id for e in edges)
    assert match.area_px2 == pytest.approx(10_000.0)
    assert len(match.vertices) == 4


def test_reversed_edges_still_chain():
    """Edges drawn backwards are flipped to continue the chain."""
    edges = [
        _edge(0, 0, 100, 0),
        _edge(100, 100, 100, 0),  # drawn backwards
        _edge(0, 100, 100, 100),  # drawn backwards
        _edge(0, 100, 0, 0),
    ]
    match = find_closed_chain(edges, edges[3].id)
    assert match is not None
    assert match.area_px2 == pytest.approx(10_000.0)


def test_endpoints_within_tolerance_join():
    """Endpoints join only within the configured tolerance."""
    edges = [
        _edge(0, 0, 200, 0),
        _edge(210, 5, 200, 200),
        _edge(195, 210, 0, 200),
        _edge(-8, 190, 5, 12),
    ]
    assert find_closed_chain(edges, edges[-1].id, tolerance=30.0) is not None
    assert find_closed_chain(edges, edges[-1].id, tolerance=5.0) is None


def test_open_chain_and_too_few_edges_are_ignored():
    """Open chains and two-edge loops are not polygons."""
    open_chain = _square()[:3]
    assert find_closed_chain(open_chain, open_chain[-1].id) is None
    # two edges back and forth close geometrically but are below the minimum
    pair = [_edge(0, 0, 100, 0), _edge(100, 0, 0, 0)]
    assert find_closed_chain(pair, pair[1].id) is None


def test_degenerate_loop_is_rejected():
    """Loops with no area are rejected."""
    flat = [_edge(0, 0, 100, 0), _edge(100, 0, 50, 0), _edge(50, 0, 0, 0)]
    assert find_closed_chain(flat, flat[-1].id) is None


def test_non_distance_measurements_do_not_participate():
    """Only distance edges take part in chains."""
    edges = _square()[:3]
    circle = CircleMeasurement([Point(0, 100), Point(0, 0)])
    assert find_closed_chain(edges + [circle], edges[-1].id) is None
    assert find_closed_chain(edges + [circle], circle.id) is None


def test_detection_is_repeatable():
    """The same input yields the same polygon."""
    edges = _square()
    first = find_closed_chain(edges, edges[2].id)
    second = find_closed_chain(edges, edges[2].id)
    assert first.vertices == second.vertices
    assert first.consumed_ids == second.consumed_ids


def _scaled_square(side):
    return [
        _edge(0, 0, side, 0),
        _edge(side, 0, side, side),
        _edge(side, side, 0, side),
        _edge(0, side, 0, 0),
    ]


@pytest.mark.parametrize("side", [1, 20])
@pytest.mark.parametrize("newest", [0, 1, 2, 3])
def test_square_smaller_than_tolerance_uses_every_edge(side, newest):
    """Squares with sides below the join tolerance still close on all four edges."""
    edges = _scaled_square(side)
    match = find_closed_chain(edges, edges[newest].id, tolerance=30.0)
    assert match is not None
    assert len(match.consumed_ids) == 4
    assert match.area_px2 == pytest.approx(side * side)


def test_three_short_edges_do_not_close_across_the_missing_side():
    """A gap as long as the edges it would join is a missing edge, not a sloppy joint."""
    edges = _scaled_square(10)[:3]
    assert find_closed_chain(edges, edges[-1].id, tolerance=30.0) is None


def test_edge_hanging_off_the_origin_is_not_consumed():
    """Edges chased past the closing point stay as distance measurements."""
    edges = _square()
    spur = _edge(0, 0, -4, -3)
    match = find_closed_chain(edges + [spur], edges[0].id)
    assert match is not None
    assert spur.id not in match.consumed_ids
    assert len(match.consumed_ids) == 4
