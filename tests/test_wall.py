from __future__ import annotations

import itertools

from turbo_loader.geometry import boxes_overlap
from turbo_loader.models import Container
from turbo_loader.packing import wall
from turbo_loader.packing.wall import (
    SearchBudget,
    best_stack,
    build_wall,
    candidate_orientations,
    order_by_frequency,
    search_layout,
)

DETERMINISTIC = SearchBudget(time_limit=None)


def test_candidate_orientations_closure_sorted_by_width() -> None:
    """All fitting permutations of the given orientations, widest first."""
    candidates = candidate_orientations([(600, 300, 400)], (12030, 2700, 2340))

    assert len(candidates) == 6
    widths = [w for _, _, w in candidates]
    assert widths == sorted(widths, reverse=True)


def test_candidate_orientations_drops_what_does_not_fit() -> None:
    candidates = candidate_orientations([(3000, 100, 100)], (5900, 2390, 2340))

    assert all(w <= 2340 and h <= 2390 for _, h, w in candidates)
    assert (100, 100, 3000) not in candidates


def test_search_layout_maximizes_covered_area() -> None:
    """6 + 4 beats 4 + 4 and 6 alone on h x w area."""
    candidates = [(1, 2, 6), (1, 1, 4)]

    layout = search_layout(candidates, 10, DETERMINISTIC)

    assert layout == ((1, 2, 6), (1, 1, 4))


def test_search_layout_respects_node_budget() -> None:
    """With room for the root only, the empty layout is the best seen."""
    layout = search_layout([(1, 2, 6), (1, 1, 4)], 10, SearchBudget(max_nodes=1, time_limit=None))

    assert layout == ()


def test_search_layout_respects_depth() -> None:
    layout = search_layout([(1, 1, 1)], 10, SearchBudget(max_depth=3, time_limit=None))

    assert len(layout) == 3


def test_best_stack_same_width_tallest_column() -> None:
    candidates = [(100, 300, 400), (100, 600, 400), (100, 200, 500)]

    stack = best_stack(candidates, 1000, 400)

    assert sum(h for _, h, _ in stack) == 900
    assert all(w == 400 for _, _, w in stack)


def test_best_stack_no_candidate() -> None:
    assert best_stack([(100, 300, 400)], 200, 400) == []
    assert best_stack([(100, 300, 400)], 1000, 500) == []


def test_order_by_frequency_is_stable() -> None:
    a, b, c = (1, 1, 1), (2, 2, 2), (3, 3, 3)

    assert order_by_frequency([a, b, c, b]) == [b, b, a, c]


def test_build_wall_cubes() -> None:
    """Three columns of two cubes at length 0."""
    container = Container(length=1000, width=900, height=600)

    wall = build_wall(container, [(300, 300, 300)], DETERMINISTIC)

    assert len(wall) == 6
    assert all(p.x == 0 for p in wall)
    assert sorted({p.z for p in wall}) == [0, 300, 600]
    assert sorted({p.y for p in wall}) == [0, 300]
    bounds = [p.bounds for p in wall]
    for i in range(len(bounds)):
        for j in range(i + 1, len(bounds)):
            assert not boxes_overlap(bounds[i], bounds[j])


def test_build_wall_empty_when_nothing_fits() -> None:
    container = Container(length=1000, width=900, height=600)

    assert build_wall(container, [], DETERMINISTIC) == []
    assert build_wall(container, [(2000, 2000, 2000)], DETERMINISTIC) == []


def test_search_layout_returns_best_so_far_at_deadline(monkeypatch) -> None:
    """Each clock read advances one second; the deadline hits after two layouts."""
    clock = itertools.count()
    monkeypatch.setattr(wall.time, "perf_counter", lambda: next(clock))

    layout = search_layout([(1, 2, 6), (1, 1, 4)], 10, SearchBudget(time_limit=2.5))

    assert layout == ((1, 2, 6),)

