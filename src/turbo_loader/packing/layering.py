# src/turbo_loader/packing/layering.py

from __future__ import annotations

import logging
from collections import Counter
from typing import Sequence

from turbo_loader.geometry import (
    OccupancyIndex,
    container_extent,
    placement_bounds,
    within_container,
)
from turbo_loader.models import Container, Placement

logger = logging.getLogger(__name__)

MIN_SUPPORT = 0.8


def add_layer(placements: Sequence[Placement], container: Container) -> list[Placement]:
    """
    Repeat the floor layer's dominant orientation on top of the floor layer.

    The layer goes in at the height of the tallest floor box. Above every
    floor box a copy in the dominant orientation is tried; it is kept when
    floor box tops at that height carry at least MIN_SUPPORT of its
    footprint and it is clear of everything else.
    """
    bottom = [p for p in placements if p.y == 0]
    if not bottom:
        return []

    dominant = Counter(p.rotation for p in bottom).most_common(1)[0][0]
    layer_y = max(p.rotation[1] for p in bottom)
    extent = container_extent(container)
    if layer_y + dominant[1] > extent[1]:
        return []

    cell = max(max(p.rotation) for p in placements)
    index = OccupancyIndex(cell, placements)
    tops = OccupancyIndex(cell, [p for p in bottom if p.end_y == layer_y])
    footprint = dominant[0] * dominant[2]
    added: list[Placement] = []

    for base in bottom:
        bounds = placement_bounds(base.x, layer_y, base.z, dominant)
        if not within_container(bounds, extent) or index.collides(bounds):
            continue
        supported = 0
        for t in tops.near(bounds):
            dx = min(bounds[3], t[3]) - max(bounds[0], t[0])
            dz = min(bounds[5], t[5]) - max(bounds[2], t[2])
            if dx > 0 and dz > 0:
                supported += dx * dz
        if supported < MIN_SUPPORT * footprint:
            continue
        placement = Placement(x=base.x, y=layer_y, z=base.z, rotation=dominant)
        added.append(placement)
        index.add(placement)

    logger.debug(
        "Layer at y=%d in %s added %d boxes over %d floor boxes",
        layer_y, dominant, len(added), len(bottom),
    )
    return added
