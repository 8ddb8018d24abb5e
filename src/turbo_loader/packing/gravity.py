# src/turbo_loader/packing/gravity.py

from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from typing import Iterable, Optional, Sequence

from turbo_loader.geometry import container_extent, find_overlapping_pairs
from turbo_loader.models import Container, Orientation, Placement

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 10


class PullDirection(str, Enum):
    DOWN = "down"
    UP = "up"
    LEFT = "left"
    RIGHT = "right"
    BACK = "back"
    FORWARD = "forward"


# direction -> (axis index in (length, height, width) order, sign)
DIRECTION_AXES: dict[PullDirection, tuple[int, int]] = {
    PullDirection.DOWN: (1, -1),
    PullDirection.UP: (1, 1),
    PullDirection.LEFT: (0, -1),
    PullDirection.RIGHT: (0, 1),
    PullDirection.BACK: (2, -1),
    PullDirection.FORWARD: (2, 1),
}


def _intervals_overlap(a1: int, a2: int, b1: int, b2: int) -> bool:
    return a1 < b2 and a2 > b1


def _overlap_on(pos: list[list[int]], dims: Sequence[Orientation], i: int, j: int, axis: int) -> bool:
    return _intervals_overlap(pos[i][axis], pos[i][axis] + dims[i][axis], pos[j][axis], pos[j][axis] + dims[j][axis])


def _covers(pos: list[list[int]], dims: Sequence[Orientation], i: int, j: int, o1: int, o2: int) -> bool:
    """True when the footprint of i on the two other axes contains the one of j."""
    return (
        pos[i][o1] <= pos[j][o1] and pos[j][o1] + dims[j][o1] <= pos[i][o1] + dims[i][o1]
        and pos[i][o2] <= pos[j][o2] and pos[j][o2] + dims[j][o2] <= pos[i][o2] + dims[i][o2]
    )


def _sweep(pos: list[list[int]], dims: Sequence[Orientation], axis: int, sign: int, far_wall: int) -> None:
    """
    One ordered pass for a layout without overlaps.

    Boxes are taken nearest-to-the-target-wall first, so everything a box can
    land on has already settled. Each floor cell keeps only the settled boxes
    not hidden behind a later one with a footprint covering theirs.
    """
    n = len(pos)
    o1, o2 = [a for a in (0, 1, 2) if a != axis]
    cell = max(1, max(max(d[o1], d[o2]) for d in dims))

    if sign < 0:
        order = sorted(range(n), key=lambda i: pos[i][axis])
    else:
        order = sorted(range(n), key=lambda i: pos[i][axis] + dims[i][axis], reverse=True)

    frontier: dict[tuple[int, int], list[int]] = defaultdict(list)
    for i in order:
        own = [
            (c1, c2)
            for c1 in range(pos[i][o1] // cell, (pos[i][o1] + dims[i][o1] - 1) // cell + 1)
            for c2 in range(pos[i][o2] // cell, (pos[i][o2] + dims[i][o2] - 1) // cell + 1)
        ]
        size = dims[i][axis]
        target = 0 if sign < 0 else far_wall - size
        seen: set[int] = set()
        for key in own:
            for j in frontier.get(key, ()):
                if j in seen:
                    continue
                seen.add(j)
                if not (_overlap_on(pos, dims, i, j, o1) and _overlap_on(pos, dims, i, j, o2)):
                    continue
                if sign < 0:
                    target = max(target, pos[j][axis] + dims[j][axis])
                else:
                    target = min(target, pos[j][axis] - size)
        pos[i][axis] = target

        for key in own:
            bucket = frontier[key]
            bucket[:] = [j for j in bucket if not _covers(pos, dims, i, j, o1, o2)]
            bucket.append(i)


def _relax(
    pos: list[list[int]],
    dims: Sequence[Orientation],
    axis: int,
    sign: int,
    far_wall: int,
    max_iterations: int,
) -> int:
    """Repeated snapping passes until nothing moves; copes with overlapping input."""
    n = len(pos)
    o1, o2 = [a for a in (0, 1, 2) if a != axis]

    # The footprint on the orthogonal axes never changes during this pull,
    # so blockers can be bucketed once.
    cell = max(max(d) for d in dims)
    buckets: dict[tuple[int, int], list[int]] = defaultdict(list)
    cells: list[list[tuple[int, int]]] = []
    for i in range(n):
        own = [
            (c1, c2)
            for c1 in range(pos[i][o1] // cell, (pos[i][o1] + dims[i][o1] - 1) // cell + 1)
            for c2 in range(pos[i][o2] // cell, (pos[i][o2] + dims[i][o2] - 1) // cell + 1)
        ]
        cells.append(own)
        for key in own:
            buckets[key].append(i)

    blockers: list[list[int]] = []
    for i in range(n):
        near: set[int] = set()
        for key in cells[i]:
            near.update(buckets[key])
        near.discard(i)
        blockers.append([
            j for j in sorted(near)
            if _overlap_on(pos, dims, i, j, o1) and _overlap_on(pos, dims, i, j, o2)
        ])

    if sign < 0:
        order = sorted(range(n), key=lambda i: pos[i][axis])
    else:
        order = sorted(range(n), key=lambda i: pos[i][axis] + dims[i][axis], reverse=True)

    iterations = 0
    for iterations in range(1, max_iterations + 1):
        moved = False
        for i in order:
            current = pos[i][axis]
            size = dims[i][axis]
            if sign < 0:
                target = 0
                for j in blockers[i]:
                    edge = pos[j][axis] + dims[j][axis]
                    if target < edge <= current:
                        target = edge
            else:
                target = far_wall - size
                for j in blockers[i]:
                    edge = pos[j][axis] - size
                    if current <= edge < target:
                        target = edge
            if target != current:
                pos[i][axis] = target
                moved = True
        if not moved:
            break
    return iterations


def compact(
    placements: Sequence[Placement],
    direction: PullDirection | str,
    container: Optional[Container] = None,
    max_iterations: int = MAX_ITERATIONS,
) -> list[Placement]:
    """
    Slide every box along one axis until it rests against another box or a wall.

    Each pass snaps a box to the nearest edge of the boxes that share its
    footprint on the two other axes (or to the wall when nothing is in the
    way). Moving one box can free room for another, so passes repeat until
    nothing moves or max_iterations is reached. Pulls away from the origin
    need the container to know where the far wall is.

    A layout without overlaps reaches the same fixed point in a single
    ordered sweep, which is what it gets.

    Returns new placements in input order; the input is not modified.
    """
    direction = PullDirection(direction)
    axis, sign = DIRECTION_AXES[direction]
    if sign > 0 and container is None:
        raise ValueError(f"Pull '{direction.value}' needs the container to bound the move")
    far_wall = container_extent(container)[axis] if container is not None else 0

    if not placements or max_iterations < 1:
        return list(placements)

    pos = [[p.x, p.y, p.z] for p in placements]
    dims = [p.rotation for p in placements]

    if find_overlapping_pairs(placements):
        iterations = _relax(pos, dims, axis, sign, far_wall, max_iterations)
        logger.debug("Pull %s settled after %d pass(es)", direction.value, iterations)
    else:
        _sweep(pos, dims, axis, sign, far_wall)
        logger.debug("Pull %s settled in one sweep", direction.value)

    out: list[Placement] = []
    for p, (x, y, z) in zip(placements, pos):
        out.append(p if (x, y, z) == (p.x, p.y, p.z) else p.moved(x=x, y=y, z=z))
    return out


def settle(
    placements: Sequence[Placement],
    directions: Iterable[PullDirection | str],
    container: Optional[Container] = None,
) -> list[Placement]:
    """Apply several pulls one after the other."""
    current = list(placements)
    for direction in directions:
        current = compact(current, direction, container)
    return current
