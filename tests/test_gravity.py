from __future__ import annotations

import time

import pytest

from turbo_loader.models import Container, Placement
from turbo_loader.packing.gravity import PullDirection, compact, settle

CUBE = (100, 100, 100)


def test_pull_down_to_floor_and_onto_boxes() -> None:
    """A floating box drops to the floor, or onto the box under it."""
    placements = [
        Placement(x=0, y=0, z=0, rotation=CUBE),
        Placement(x=50, y=300, z=0, rotation=CUBE),
        Placement(x=500, y=400, z=0, rotation=CUBE),
    ]

    pulled = compact(placements, PullDirection.DOWN)

    assert [p.y for p in pulled] == [0, 100, 0]
    assert [p.x for p in pulled] == [0, 50, 500]


def test_pull_left_chains_in_one_call() -> None:
    placements = [
        Placement(x=400, y=0, z=0, rotation=CUBE),
        Placement(x=200, y=0, z=0, rotation=CUBE),
    ]

    pulled = compact(placements, "left")

    # input order is kept
    assert [p.x for p in pulled] == [100, 0]


def test_pull_back_ignores_boxes_on_other_rows() -> None:
    placements = [
        Placement(x=0, y=0, z=0, rotation=CUBE),
        Placement(x=100, y=0, z=250, rotation=CUBE),
    ]

    pulled = compact(placements, PullDirection.BACK)

    assert [p.z for p in pulled] == [0, 0]


def test_pull_away_needs_container() -> None:
    placements = [Placement(x=0, y=0, z=0, rotation=CUBE)]

    with pytest.raises(ValueError):
        compact(placements, PullDirection.RIGHT)

    container = Container(length=1000, width=300, height=300)
    pulled = compact(
        placements + [Placement(x=500, y=0, z=0, rotation=CUBE)],
        PullDirection.RIGHT,
        container,
    )
    assert [p.x for p in pulled] == [800, 900]


def test_unchanged_placements_are_reused() -> None:
    p = Placement(x=0, y=0, z=0, rotation=CUBE)

    assert compact([p], PullDirection.DOWN)[0] is p
    assert compact([], PullDirection.DOWN) == []


def test_settle_applies_pulls_in_order() -> None:
    placements = [Placement(x=300, y=200, z=150, rotation=CUBE)]

    settled = settle(placements, [PullDirection.LEFT, PullDirection.BACK, PullDirection.DOWN])

    assert (settled[0].x, settled[0].y, settled[0].z) == (0, 0, 0)
    assert (placements[0].x, placements[0].y, placements[0].z) == (300, 200, 150)


def test_pull_down_collapses_a_floating_column() -> None:
    placements = [
        Placement(x=0, y=600, z=0, rotation=CUBE),
        Placement(x=0, y=0, z=0, rotation=CUBE),
        Placement(x=0, y=250, z=0, rotation=CUBE),
    ]

    pulled = compact(placements, PullDirection.DOWN)

    assert [p.y for p in pulled] == [200, 0, 100]


def test_overlapping_boxes_still_settle() -> None:
    placements = [
        Placement(x=0, y=300, z=0, rotation=CUBE),
        Placement(x=50, y=350, z=0, rotation=CUBE),
    ]

    pulled = compact(placements, PullDirection.DOWN)

    assert [p.y for p in pulled] == [0, 100]


def test_pull_down_large_layout() -> None:
    """10,000 floating cubes with gaps between the layers land in one sweep."""
    cube = (10, 10, 10)
    placements = [
        Placement(x=i * 10, y=j * 15 + 5, z=k * 10, rotation=cube)
        for i in range(100)
        for j in range(10)
        for k in range(10)
    ]

    started = time.perf_counter()
    pulled = compact(placements, PullDirection.DOWN)
    elapsed = time.perf_counter() - started

    assert [p.y for p in pulled] == [j * 10 for _ in range(100) for j in range(10) for _ in range(10)]
    assert elapsed < 2.0
