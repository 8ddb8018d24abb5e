# src/turbo_loader/packing/grid_fit.py

from __future__ import annotations

from typing import Sequence

from turbo_loader.geometry import rotations_6
from turbo_loader.models import Orientation, Placement


def lattice_count(dims: Orientation, extent: Sequence[int]) -> int:
    return (extent[0] // dims[0]) * (extent[1] // dims[1]) * (extent[2] // dims[2])


def grid_fit(box_dims: Sequence[int], extent: Sequence[int]) -> list[Placement]:
    """
    Plain lattice of one orientation, the one that gives the most boxes.

    box_dims is any permutation of the box edges and extent the container
    size on the (length, height, width) axes, both in mm. The first
    orientation wins on ties.
    """
    best: Orientation | None = None
    best_count = 0
    for dims in rotations_6(box_dims):
        count = lattice_count(dims, extent)
        if count > best_count:
            best, best_count = dims, count

    if best is None:
        return []

    length, height, width = best
    return [
        Placement(x=i * length, y=j * height, z=k * width, rotation=best)
        for i in range(extent[0] // length)
        for k in range(extent[2] // width)
        for j in range(extent[1] // height)
    ]
