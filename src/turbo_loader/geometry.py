"""Geometry utilities for the turbo packing pipeline.

Coordinates are integer millimeters. Axis order everywhere is
(length, height, width), i.e. x along the container length, y vertical and
z across the container width.
"""

from __future__ import annotations

from collections import defaultdict
from itertools import permutations
from typing import TYPE_CHECKING, Iterable, Iterator, Sequence

if TYPE_CHECKING:
    from .models import Box, Container, Orientation, Placement

Bounds = tuple[int, int, int, int, int, int]


def boxes_overlap(a: Bounds, b: Bounds) -> bool:
    """
    Axis-aligned bounding box (AABB) overlap test.

    a, b are bounds: (x1, y1, z1, x2, y2, z2)

    Overlap exists only if they overlap on ALL 3 axes with positive volume.
    Touching faces/edges (ax2 == bx1) is NOT considered overlap.
    """
    ax1, ay1, az1, ax2, ay2, az2 = a
    bx1, by1, bz1, bx2, by2, bz2 = b

    return (ax1 < bx2 and ax2 > bx1) and (ay1 < by2 and ay2 > by1) and (az1 < bz2 and az2 > bz1)


def overlaps(a: "Placement", b: "Placement") -> bool:
    """True iff the two placed boxes share a positive volume."""
    return boxes_overlap(a.bounds, b.bounds)


def footprints_intersect(a: Bounds, b: Bounds) -> bool:
    """Positive-area intersection of the floor projections (length x width)."""
    return a[0] < b[3] and a[3] > b[0] and a[2] < b[5] and a[5] > b[2]


def placement_bounds(x: int, y: int, z: int, dims: "Orientation") -> Bounds:
    length, height, width = dims
    return (x, y, z, x + length, y + height, z + width)


def container_extent(container: "Container") -> tuple[int, int, int]:
    """Container size on the (length, height, width) axes in mm."""
    length, width, height = container.dims_mm()
    return (length, height, width)


def rotations_6(dims: Sequence[int]) -> list["Orientation"]:
    """All distinct axis assignments of three dimensions, first-seen order."""
    seen: set[tuple[int, int, int]] = set()
    out: list[tuple[int, int, int]] = []
    for perm in permutations(dims):
        key = (int(perm[0]), int(perm[1]), int(perm[2]))
        if key not in seen:
            seen.add(key)
            out.append(key)
    return out


def fits_extent(dims: "Orientation", extent: tuple[int, int, int]) -> bool:
    return dims[0] <= extent[0] and dims[1] <= extent[1] and dims[2] <= extent[2]


def generate_orientations(box: "Box", container: "Container") -> list["Orientation"]:
    """
    Distinct (length, height, width) orientations of the box that can stand in the container.

    An orientation is kept when its height fits under the roof and its
    footprint fits the floor in at least one of the two horizontal assignments.
    """
    box_length, box_width, box_height = box.dims_mm()
    c_length, c_height, c_width = container_extent(container)

    out: list[tuple[int, int, int]] = []
    for length, height, width in rotations_6((box_length, box_height, box_width)):
        if height > c_height:
            continue
        floor_fit = (length <= c_length and width <= c_width) or (length <= c_width and width <= c_length)
        if floor_fit:
            out.append((length, height, width))
    return out


def within_container(bounds: Bounds, extent: tuple[int, int, int]) -> bool:
    x1, y1, z1, x2, y2, z2 = bounds
    return (
        x1 >= 0 and y1 >= 0 and z1 >= 0
        and x2 <= extent[0] and y2 <= extent[1] and z2 <= extent[2]
    )


def placement_volume(p: "Placement") -> int:
    length, height, width = p.rotation
    return length * height * width


class OccupancyIndex:
    """
    Bucket grid over the floor plane for collision queries.

    Each accepted box is registered in every (length, width) cell its
    footprint touches, so a query only inspects nearby boxes.
    """

    def __init__(self, cell: int, placements: Iterable["Placement"] = ()):
        self.cell = max(1, int(cell))
        self._buckets: dict[tuple[int, int], list[Bounds]] = defaultdict(list)
        self._count = 0
        for p in placements:
            self.add(p)

    def __len__(self) -> int:
        return self._count

    def _cells(self, x1: int, z1: int, x2: int, z2: int) -> Iterator[tuple[int, int]]:
        c = self.cell
        for cx in range(x1 // c, (x2 - 1) // c + 1):
            for cz in range(z1 // c, (z2 - 1) // c + 1):
                yield cx, cz

    def add(self, placement: "Placement") -> None:
        self.add_bounds(placement.bounds)

    def add_bounds(self, bounds: Bounds) -> None:
        for key in self._cells(bounds[0], bounds[2], bounds[3], bounds[5]):
            self._buckets[key].append(bounds)
        self._count += 1

    def collides(self, bounds: Bounds) -> bool:
        for key in self._cells(bounds[0], bounds[2], bounds[3], bounds[5]):
            bucket = self._buckets.get(key)
            if not bucket:
                continue
            for other in bucket:
                if boxes_overlap(bounds, other):
                    return True
        return False

    def near(self, bounds: Bounds) -> Iterator[Bounds]:
        """Registered bounds sharing a floor cell with bounds, each once."""
        seen: set[Bounds] = set()
        for key in self._cells(bounds[0], bounds[2], bounds[3], bounds[5]):
            for other in self._buckets.get(key, ()):
                if other not in seen:
                    seen.add(other)
                    yield other


def _cell_range(lo: int, hi: int, cell: int) -> range:
    return range(lo // cell, (hi - 1) // cell + 1)


def find_overlapping_pairs(placements: Sequence["Placement"]) -> list[tuple[int, int]]:
    """
    Index pairs (i < j) of overlapping placements.

    Boxes are hashed into cubic cells as large as the longest edge, so a box
    touches at most two cells per axis and is only compared with the boxes
    sharing one of them. A valid layout costs one pass.
    """
    bounds = [p.bounds for p in placements]
    if not bounds:
        return []
    cell = max(1, max(max(b[3] - b[0], b[4] - b[1], b[5] - b[2]) for b in bounds))

    buckets: dict[tuple[int, int, int], list[int]] = defaultdict(list)
    found: set[tuple[int, int]] = set()
    for i, b in enumerate(bounds):
        for cx in _cell_range(b[0], b[3], cell):
            for cy in _cell_range(b[1], b[4], cell):
                for cz in _cell_range(b[2], b[5], cell):
                    bucket = buckets[(cx, cy, cz)]
                    for j in bucket:
                        if (j, i) not in found and boxes_overlap(b, bounds[j]):
                            found.add((j, i))
                    bucket.append(i)

    return sorted(found)
