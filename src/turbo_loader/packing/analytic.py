# src/turbo_loader/packing/analytic.py

"""
Closed-form block filling for boxes the turbo stages handle poorly.

Small boxes (10 dm3 or less) would make the wall search and the sweeps
walk tens of thousands of boxes; flat boxes (shortest edge under a tenth
of the longest) tend to end up standing on their thinnest face. Both are
packed as lattice blocks carved out of the container instead.
"""

from __future__ import annotations

import logging
from itertools import permutations
from typing import Optional, Sequence

from turbo_loader.geometry import container_extent
from turbo_loader.models import Container, Orientation, Placement
from turbo_loader.packing.grid_fit import lattice_count

logger = logging.getLogger(__name__)

SMALL_BOX_MM3 = 10_000_000
FLAT_RATIO = 0.1

Extent = tuple[int, int, int]
Block = tuple[Orientation, tuple[int, int, int]]


def is_flat_box(box_dims: Sequence[int]) -> bool:
    return min(box_dims) / max(box_dims) < FLAT_RATIO


def is_small_box(box_dims: Sequence[int]) -> bool:
    length, width, height = box_dims
    return length * width * height <= SMALL_BOX_MM3 and not is_flat_box(box_dims)


def best_block(box_dims: Sequence[int], space: Extent, allow_all: bool = True) -> Optional[Block]:
    """
    Orientation and per-axis counts of the largest lattice that fits space.

    With allow_all False, orientations standing on the smallest face are
    skipped. The first orientation wins on ties; None when nothing fits.
    """
    faces = (box_dims[0] * box_dims[1], box_dims[0] * box_dims[2], box_dims[1] * box_dims[2])
    smallest = min(faces)

    best: Optional[Block] = None
    best_count = 0
    for length, width, height in permutations(box_dims):
        if not allow_all and length * width == smallest:
            continue
        dims = (int(length), int(height), int(width))
        count = lattice_count(dims, space)
        if count > best_count:
            fit = (space[0] // dims[0], space[1] // dims[1], space[2] // dims[2])
            best, best_count = (dims, fit), count
    return best


def block_fill(box_dims: Sequence[int], extent: Extent, upright_first: bool = False) -> list[Placement]:
    """
    Fill extent with lattice blocks, splitting what each block leaves over.

    Free spaces are taken in order of their distance from the back wall.
    Each gets its best lattice; the rest of the space is split into three
    disjoint parts (above the block, past it along the length, and behind
    it across the width) that go back on the queue. upright_first keeps the
    first block off the smallest face when any other orientation fits.
    """
    min_edge = min(box_dims)
    queue: list[tuple[Extent, Extent]] = [((0, 0, 0), extent)]
    placements: list[Placement] = []

    while queue:
        queue.sort(key=lambda item: item[0][2])
        (ox, oy, oz), space = queue.pop(0)

        block = None
        if upright_first and not placements:
            block = best_block(box_dims, space, allow_all=False)
        if block is None:
            block = best_block(box_dims, space)
        if block is None:
            continue

        dims, (fx, fy, fz) = block
        length, height, width = dims
        placements.extend(
            Placement(x=ox + i * length, y=oy + j * height, z=oz + k * width, rotation=dims)
            for i in range(fx)
            for k in range(fz)
            for j in range(fy)
        )

        used_x, used_y, used_z = fx * length, fy * height, fz * width
        sl, sh, sw = space
        for origin, size in (
            ((ox, oy + used_y, oz), (sl, sh - used_y, sw)),
            ((ox + used_x, oy, oz), (sl - used_x, used_y, sw)),
            ((ox, oy, oz + used_z), (used_x, used_y, sw - used_z)),
        ):
            if min(size) >= min_edge:
                queue.append((origin, size))

    return placements


def analytic_fill(box_dims: Sequence[int], container: Container) -> list[Placement]:
    """Block fill of the whole container; flat boxes start upright."""
    flat = is_flat_box(box_dims)
    placements = block_fill(box_dims, container_extent(container), upright_first=flat)
    logger.debug(
        "Analytic fill (%s box) placed %d boxes",
        "flat" if flat else "small", len(placements),
    )
    return placements
