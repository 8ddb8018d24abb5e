# src/turbo_loader/packing/insertion.py

"""Late stages that push single boxes into whatever room is left."""

from __future__ import annotations

import heapq
import logging
from collections import Counter
from typing import Sequence

from turbo_loader.geometry import (
    OccupancyIndex,
    container_extent,
    placement_bounds,
    within_container,
)
from turbo_loader.models import Container, Orientation, Placement

logger = logging.getLogger(__name__)

MAX_SWEEP_POINTS = 50_000


def wall_end(placements: Sequence[Placement]) -> int:
    """Largest start x shared by more than one box, 0 when none is."""
    counts = Counter(p.x for p in placements)
    shared = [x for x, n in counts.items() if n > 1]
    return max(shared) if shared else 0


def _axis_points(start: int, stop: int, step: int) -> range:
    return range(start, stop + 1, step) if stop >= start else range(0)


def insertion_sweep(
    placements: Sequence[Placement],
    container: Container,
    orientations: Sequence[Orientation],
) -> list[Placement]:
    """
    Sample the space past the wall on a fine grid and drop in any box that fits.

    The grid step is an eighth of the smallest edge, coarsened until the
    sweep stays under MAX_SWEEP_POINTS samples. At each point the first
    orientation that is inside the container and clear of every box is
    placed. Boxes may be left floating; the final settle brings them down.
    """
    if not orientations:
        return []
    c_length, c_height, c_width = container_extent(container)
    start = wall_end(placements)
    if c_length - start < min(o[0] for o in orientations):
        return []

    step = max(1, min(min(o) for o in orientations) // 8)
    x_stop = c_length - min(o[0] for o in orientations)
    y_stop = c_height - min(o[1] for o in orientations)
    z_stop = c_width - min(o[2] for o in orientations)
    while True:
        xs = _axis_points(start, min(x_stop, c_length - step), step)
        ys = _axis_points(0, min(y_stop, c_height - step), step)
        zs = _axis_points(0, min(z_stop, c_width - step), step)
        if len(xs) * len(ys) * len(zs) <= MAX_SWEEP_POINTS:
            break
        step *= 2

    extent = (c_length, c_height, c_width)
    index = OccupancyIndex(max(max(o) for o in orientations), placements)
    added: list[Placement] = []
    for x in xs:
        for y in ys:
            for z in zs:
                if index.collides((x, y, z, x + 1, y + 1, z + 1)):
                    continue
                for dims in orientations:
                    bounds = placement_bounds(x, y, z, dims)
                    if within_container(bounds, extent) and not index.collides(bounds):
                        placement = Placement(x=x, y=y, z=z, rotation=dims)
                        added.append(placement)
                        index.add(placement)
                        break

    logger.debug("Insertion sweep from x=%d (step %d mm) added %d boxes", start, step, len(added))
    return added


def _resting(index: OccupancyIndex, x: int, y: int, z: int) -> bool:
    """True when (x, y, z) is on the floor or on the top face of a box."""
    if y == 0:
        return True
    for b in index.near((x, y - 1, z, x + 1, y, z + 1)):
        if b[4] == y and b[0] <= x < b[3] and b[2] <= z < b[5]:
            return True
    return False


def _corners(p: Placement) -> list[tuple[int, int, int]]:
    # (y, x, z) so the heap hands out the lowest anchors first
    return [(p.end_y, p.x, p.z), (p.y, p.end_x, p.z), (p.y, p.x, p.end_z)]


def patch_gaps(
    placements: Sequence[Placement],
    container: Container,
    orientations: Sequence[Orientation],
) -> list[Placement]:
    """
    Fill small holes bottom-up from the corners of the existing boxes.

    Candidate anchors are the origin and, for every box, the points just
    above it, past it along the length and behind it across the width. An
    anchor is used only when it rests on the floor or on a box top; the
    first orientation that fits there is placed and its own corners join
    the queue.
    """
    if not orientations:
        return []
    extent = container_extent(container)
    index = OccupancyIndex(max(max(o) for o in orientations), placements)

    heap: list[tuple[int, int, int]] = [(0, 0, 0)]
    for p in placements:
        heap.extend(_corners(p))
    heapq.heapify(heap)
    seen: set[tuple[int, int, int]] = set()
    added: list[Placement] = []

    while heap:
        anchor = heapq.heappop(heap)
        if anchor in seen:
            continue
        seen.add(anchor)
        y, x, z = anchor
        if x >= extent[0] or y >= extent[1] or z >= extent[2]:
            continue
        if index.collides((x, y, z, x + 1, y + 1, z + 1)) or not _resting(index, x, y, z):
            continue
        for dims in orientations:
            bounds = placement_bounds(x, y, z, dims)
            if within_container(bounds, extent) and not index.collides(bounds):
                placement = Placement(x=x, y=y, z=z, rotation=dims)
                added.append(placement)
                index.add(placement)
                for corner in _corners(placement):
                    heapq.heappush(heap, corner)
                break

    logger.debug("Gap patching added %d boxes", len(added))
    return added
