from __future__ import annotations

import time

import pytest

from turbo_loader.geometry import (
    OccupancyIndex,
    boxes_overlap,
    find_overlapping_pairs,
    generate_orientations,
    overlaps,
    rotations_6,
    within_container,
)
from turbo_loader.models import Box, Container, Placement
from turbo_loader.units import to_mm


def test_boxes_overlap_overlapping() -> None:
    """Test that overlapping boxes are detected."""
    # Box a: (0, 0, 0) to (2, 2, 2)
    a = (0, 0, 0, 2, 2, 2)
    # Box b: (1, 1, 1) to (3, 3, 3) - overlaps with a
    b = (1, 1, 1, 3, 3, 3)

    assert boxes_overlap(a, b) is True


def test_boxes_overlap_not_overlapping() -> None:
    """Test that non-overlapping boxes are detected."""
    # Box a: (0, 0, 0) to (1, 1, 1)
    a = (0, 0, 0, 1, 1, 1)
    # Box b: (2, 2, 2) to (3, 3, 3) - does not overlap with a
    b = (2, 2, 2, 3, 3, 3)

    assert boxes_overlap(a, b) is False


def test_touching_faces_do_not_overlap() -> None:
    """Boxes sharing a face are disjoint."""
    a = Placement(x=0, y=0, z=0, rotation=(100, 100, 100))
    b = Placement(x=100, y=0, z=0, rotation=(100, 100, 100))
    on_top = Placement(x=0, y=100, z=0, rotation=(100, 100, 100))

    assert overlaps(a, b) is False
    assert overlaps(a, on_top) is False
    assert overlaps(a, a) is True


def test_rotations_6_first_seen_order_and_dedup() -> None:
    """Distinct permutations only, in permutation order."""
    assert rotations_6((1, 2, 3)) == [(1, 2, 3), (1, 3, 2), (2, 1, 3), (2, 3, 1), (3, 1, 2), (3, 2, 1)]
    assert rotations_6((5, 5, 5)) == [(5, 5, 5)]
    assert len(rotations_6((5, 5, 2))) == 3


def test_generate_orientations_all_distinct_for_small_box() -> None:
    """A small box with three different edges stands in all six orientations."""
    box = Box(length=60, width=40, height=30, unit="cm")
    container = Container(length=12030, width=2340, height=2700)

    orientations = generate_orientations(box, container)

    assert len(orientations) == 6
    assert len(set(orientations)) == 6
    # first one keeps the box as given: (length, height, width)
    assert orientations[0] == (600, 300, 400)
    for o in orientations:
        assert sorted(o) == [300, 400, 600]


def test_generate_orientations_cube_and_square_face() -> None:
    container = Container(length=5900, width=2340, height=2390)

    assert generate_orientations(Box(length=500, width=500, height=500), container) == [(500, 500, 500)]
    assert len(generate_orientations(Box(length=500, width=500, height=200), container)) == 3


def test_generate_orientations_height_must_fit() -> None:
    """Orientations taller than the container are dropped."""
    box = Box(length=3000, width=200, height=100)
    container = Container(length=5900, width=2340, height=2390)

    orientations = generate_orientations(box, container)

    assert orientations
    assert all(h <= 2390 for _, h, _ in orientations)
    assert all(h != 3000 for _, h, _ in orientations)


def test_generate_orientations_floor_fit_either_way() -> None:
    """A footprint that only fits turned by 90 degrees is still kept."""
    box = Box(length=3000, width=100, height=100)
    container = Container(length=2000, width=3500, height=2000)

    assert (3000, 100, 100) in generate_orientations(box, container)


def test_generate_orientations_nothing_fits() -> None:
    box = Box(length=13000, width=3000, height=3000)
    container = Container(length=5900, width=2340, height=2390)

    assert generate_orientations(box, container) == []


def test_unit_conversion_rounds_half_up() -> None:
    assert to_mm(79.45, "cm") == 795
    assert to_mm(1.2344, "m") == 1234
    assert to_mm(0.04, "cm") == 0
    with pytest.raises(ValueError):
        to_mm(1, "inch")


def test_within_container() -> None:
    extent = (1000, 500, 400)

    assert within_container((0, 0, 0, 1000, 500, 400), extent)
    assert not within_container((1, 0, 0, 1001, 500, 400), extent)
    assert not within_container((0, 0, -1, 10, 10, 10), extent)


def test_occupancy_index_collides() -> None:
    index = OccupancyIndex(100, [Placement(x=0, y=0, z=0, rotation=(100, 100, 100))])

    assert len(index) == 1
    assert index.collides((50, 50, 50, 150, 150, 150))
    assert not index.collides((100, 0, 0, 200, 100, 100))
    assert not index.collides((0, 100, 0, 100, 200, 100))


def test_find_overlapping_pairs() -> None:
    placements = [
        Placement(x=0, y=0, z=0, rotation=(100, 100, 100)),
        Placement(x=300, y=0, z=0, rotation=(100, 100, 100)),
        Placement(x=50, y=0, z=0, rotation=(100, 100, 100)),
        Placement(x=350, y=50, z=50, rotation=(100, 100, 100)),
        Placement(x=100, y=0, z=0, rotation=(100, 100, 100)),
    ]

    assert find_overlapping_pairs(placements) == [(0, 2), (1, 3), (2, 4)]


def test_unit_conversion_rejects_infinity() -> None:
    with pytest.raises(ValueError):
        to_mm(float("inf"), "cm")
    with pytest.raises(ValueError):
        to_mm(float("nan"), "mm")
    with pytest.raises(ValueError):
        Box(length=float("inf"), width=10, height=10)
    with pytest.raises(ValueError):
        Container(length=1000, width=float("nan"), height=1000)


def test_find_overlapping_pairs_on_large_lattice() -> None:
    """10,000 touching cubes are checked in well under the pairwise cost."""
    cube = (10, 10, 10)
    placements = [
        Placement(x=i * 10, y=j * 10, z=k * 10, rotation=cube)
        for i in range(100)
        for j in range(10)
        for k in range(10)
    ]
    placements.append(Placement(x=5, y=5, z=5, rotation=cube))

    started = time.perf_counter()
    pairs = find_overlapping_pairs(placements)
    elapsed = time.perf_counter() - started

    # the intruder straddles eight lattice cubes
    assert len(pairs) == 8
    assert all(j == len(placements) - 1 for _, j in pairs)
    assert elapsed < 2.0
