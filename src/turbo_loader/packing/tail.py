# src/turbo_loader/packing/tail.py

"""Residual space past the repeated wall: analysis and filling."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence

from turbo_loader.geometry import (
    OccupancyIndex,
    container_extent,
    placement_bounds,
    rotations_6,
    fits_extent,
)
from turbo_loader.models import Container, Orientation, Placement

logger = logging.getLogger(__name__)

MIN_GRID_MM = 5
MAX_GRID_MM = 50


def grid_resolution(orientations: Sequence[Orientation]) -> int:
    """Smallest box edge, clamped to [MIN_GRID_MM, MAX_GRID_MM]."""
    min_edge = min(min(o) for o in orientations)
    return max(MIN_GRID_MM, min(MAX_GRID_MM, int(min_edge)))


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


@dataclass
class Gap:
    """Empty box-shaped void under a placement that overhangs into the tail."""

    x: int
    y: int
    z: int
    length: int
    height: int
    width: int


@dataclass
class TailArea:
    """
    Free remainder of the container past the solid region.

    clearance[row][col] is the overhang into the tail (mm past start_x) of
    whatever occupies the grid cell whose sample point is (row * grid,
    col * grid) on the height x width plane; a candidate covering that cell
    must start at start_x + clearance or later.
    """

    start_x: int
    length: int
    grid: int
    clearance: list[list[int]]
    gaps: list[Gap] = field(default_factory=list)

    def _rows(self, y: int, height: int) -> tuple[int, int]:
        return _ceil_div(y, self.grid), min(_ceil_div(y + height, self.grid), len(self.clearance))

    def _cols(self, z: int, width: int) -> tuple[int, int]:
        cols = len(self.clearance[0]) if self.clearance else 0
        return _ceil_div(z, self.grid), min(_ceil_div(z + width, self.grid), cols)

    def required_x(self, y: int, z: int, height: int, width: int) -> int:
        """Smallest x at which a height x width face anchored at (y, z) is clear."""
        r0, r1 = self._rows(y, height)
        c0, c1 = self._cols(z, width)
        worst = 0
        for row in self.clearance[r0:r1]:
            if c0 < c1:
                worst = max(worst, max(row[c0:c1]))
        return self.start_x + worst

    def blocked_at(self, x: int, y: int, z: int) -> bool:
        """True when the cell at (y, z) is still occupied at length offset x."""
        r, c = _ceil_div(y, self.grid), _ceil_div(z, self.grid)
        if r >= len(self.clearance) or not self.clearance or c >= len(self.clearance[0]):
            return False
        return x < self.start_x + self.clearance[r][c]

    def free_fronts(self) -> set[int]:
        """Distinct x positions where recorded obstructions end."""
        return {self.start_x + v for row in self.clearance for v in row}


def analyze_tail(placements: Sequence[Placement], container: Container, grid: int) -> TailArea:
    """
    Locate the tail and map what still sticks into it.

    The densest bucket of the start-position histogram (the farthest one on
    ties) marks the end of the solid region; the tail begins at that
    bucket's far edge.
    """
    c_length, c_height, c_width = container_extent(container)
    rows, cols = _ceil_div(c_height, grid), _ceil_div(c_width, grid)
    clearance = [[0] * cols for _ in range(rows)]

    if not placements:
        return TailArea(start_x=0, length=c_length, grid=grid, clearance=clearance)

    counts = Counter(p.x // grid for p in placements)
    peak = max(counts.values())
    bucket = max(b for b, c in counts.items() if c == peak)
    start_x = min((bucket + 1) * grid, c_length)

    tail = TailArea(start_x=start_x, length=c_length - start_x, grid=grid, clearance=clearance)

    overhanging = [p for p in placements if p.end_x > start_x]
    for p in overhanging:
        overhang = p.end_x - start_x
        r0, r1 = tail._rows(p.y, p.rotation[1])
        c0, c1 = tail._cols(p.z, p.rotation[2])
        for row in clearance[r0:r1]:
            for c in range(c0, c1):
                if row[c] < overhang:
                    row[c] = overhang

    below = OccupancyIndex(max(max(p.rotation) for p in placements), placements)
    for p in overhanging:
        if p.y <= 0:
            continue
        front = max(p.x, start_x)
        beneath_end = front
        for q in below.near((front, 0, p.z, p.end_x, p.y, p.end_z)):
            if (
                q[4] <= p.y
                and q[2] < p.end_z and q[5] > p.z
                and q[0] < p.end_x and q[3] > front
            ):
                beneath_end = max(beneath_end, q[3])
        if beneath_end < p.end_x:
            tail.gaps.append(Gap(
                x=beneath_end,
                y=0,
                z=p.z,
                length=p.end_x - beneath_end,
                height=p.y,
                width=p.rotation[2],
            ))

    logger.debug(
        "Tail starts at %d mm (%d mm long), %d overhanging boxes, %d gaps",
        tail.start_x, tail.length, len(overhanging), len(tail.gaps),
    )
    return tail


def fill_tail(
    tail: TailArea,
    container: Container,
    orientations: Sequence[Orientation],
    existing: Sequence[Placement],
) -> list[Placement]:
    """
    Greedily add boxes in the tail: recorded gaps first, then a grid sweep.

    The sweep runs from the back wall toward the tail start. At each
    position every orientation that is clear is scored by how many copies
    of it would fit one behind the other walking back toward the wall; the
    longest run wins and a single box is committed.
    """
    extent = container_extent(container)
    c_length, c_height, c_width = extent

    shapes: list[Orientation] = []
    for dims in orientations:
        for rot in rotations_6(dims):
            if rot not in shapes and fits_extent(rot, extent):
                shapes.append(rot)
    if not shapes:
        return []
    shapes.sort(key=lambda o: o[0] * o[1] * o[2], reverse=True)

    index = OccupancyIndex(max(max(o) for o in shapes), existing)
    added: list[Placement] = []

    def acceptable(x: int, y: int, z: int, dims: Orientation) -> bool:
        length, height, width = dims
        if x < tail.start_x or y < 0 or z < 0:
            return False
        if x + length > c_length or y + height > c_height or z + width > c_width:
            return False
        if x < tail.required_x(y, z, height, width):
            return False
        return not index.collides(placement_bounds(x, y, z, dims))

    def commit(x: int, y: int, z: int, dims: Orientation) -> Placement:
        placement = Placement(x=x, y=y, z=z, rotation=dims)
        added.append(placement)
        index.add(placement)
        return placement

    for gap in tail.gaps:
        for dims in shapes:
            length, height, width = dims
            if length <= gap.length and height <= gap.height and width <= gap.width:
                if acceptable(gap.x, gap.y, gap.z, dims):
                    commit(gap.x, gap.y, gap.z, dims)
                    break
    from_gaps = len(added)

    grid = tail.grid
    xs = set(range(tail.start_x, c_length, grid))
    xs.update(c_length - o[0] for o in shapes)
    xs.update(tail.free_fronts())
    xs = sorted((x for x in xs if tail.start_x <= x < c_length), reverse=True)

    zs = set(range(0, c_width, grid))
    zs.update(c_width - o[2] for o in shapes)
    zs = sorted(z for z in zs if 0 <= z < c_width)

    # the anchor cell is always covered when the grid is no coarser than the smallest edge
    anchor_covered = grid <= min(min(o) for o in shapes)
    heights: set[int] = {0}

    for x in xs:
        for z in zs:
            for y in sorted(heights):
                if anchor_covered and tail.blocked_at(x, y, z):
                    continue
                if index.collides((x, y, z, x + 1, y + 1, z + 1)):
                    continue

                best_dims = None
                best_run = 0
                for dims in shapes:
                    if not acceptable(x, y, z, dims):
                        continue
                    run = 1
                    sim_x = x - dims[0]
                    while sim_x >= tail.start_x and acceptable(sim_x, y, z, dims):
                        run += 1
                        sim_x -= dims[0]
                    if run > best_run:
                        best_dims, best_run = dims, run

                if best_dims is not None:
                    placed = commit(x, y, z, best_dims)
                    heights.add(placed.end_y)

    logger.debug("Tail fill added %d boxes (%d in gaps)", len(added), from_gaps)
    return added
