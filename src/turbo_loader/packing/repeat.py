# src/turbo_loader/packing/repeat.py

from __future__ import annotations

from typing import Sequence

from turbo_loader.geometry import OccupancyIndex, container_extent, placement_bounds
from turbo_loader.models import Container, Placement


def repeat_pattern(wall: Sequence[Placement], container: Container) -> list[Placement]:
    """
    Tile the wall along the container length.

    Each wall element is copied at x0, x0 + L, x0 + 2L, ... (L = its own
    length) while the copy fits and does not overlap a copy accepted earlier.
    Elements are processed in wall order, so earlier elements win conflicts.
    """
    c_length = container_extent(container)[0]
    cell = max((max(p.rotation) for p in wall), default=1)
    index = OccupancyIndex(cell)

    repeated: list[Placement] = []
    for p in wall:
        length = p.rotation[0]
        x = p.x
        while x + length <= c_length:
            bounds = placement_bounds(x, p.y, p.z, p.rotation)
            if not index.collides(bounds):
                index.add_bounds(bounds)
                repeated.append(p if x == p.x else p.moved(x=x))
            x += length

    return repeated
