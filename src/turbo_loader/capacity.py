"""Capacity post-processing: weight limits and volumetric utilization per container."""

from __future__ import annotations

import math
from typing import Any, Optional

from turbo_loader.models import Box, Container, PackResult


def apply_weight_limit(
    total_boxes: int,
    unit_weight: Optional[float],
    max_load: Optional[float],
) -> tuple[int, bool]:
    """
    Clip a box count to what the container may carry.

    Args:
        total_boxes: Geometric capacity (boxes that fit)
        unit_weight: Weight of one box in kg, or None when unknown
        max_load: Container max load in kg, or None when unlimited

    Returns:
        (count, weight_restricted). The count is floor(max_load / unit_weight)
        when the full load would exceed max_load, otherwise total_boxes.
    """
    if unit_weight is None or unit_weight <= 0 or max_load is None:
        return total_boxes, False
    if total_boxes * unit_weight > max_load:
        return math.floor(max_load / unit_weight), True
    return total_boxes, False


def volumetric_utilization(box: Box, container: Container, count: int) -> float:
    """Share of the container volume taken by count boxes, in percent with one decimal."""
    container_volume = container.volume_mm3
    if container_volume <= 0:
        return 0.0
    return round(box.volume_mm3 * count / container_volume * 100.0, 1)


def evaluate_capacity(
    box: Box,
    container: Container,
    quantity: int,
    result: PackResult,
) -> dict[str, Any]:
    """
    Turn a packing result into the per-container figures used by the batch driver.

    Args:
        box: The packed box (its weight drives the weight limit)
        container: Container the result was computed for
        quantity: Units per box; capacity is reported in units
        result: Output of pack(box, container)

    Returns:
        dict with:
            - container_id
            - boxes: geometric count
            - loadable_boxes: count after the weight limit
            - units: loadable_boxes * quantity
            - weight_restricted: True when max load, not volume, is the limit
            - utilization: volumetric utilization in percent of the geometric count
    """
    loadable, restricted = apply_weight_limit(result.total_boxes, box.weight, container.max_load)
    return {
        "container_id": container.id,
        "boxes": result.total_boxes,
        "loadable_boxes": loadable,
        "units": loadable * quantity,
        "weight_restricted": restricted,
        "utilization": volumetric_utilization(box, container, result.total_boxes),
    }


def best_container(evaluations: list[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """
    Container holding the most units among those not limited by weight.

    Falls back to the first evaluation when every container is weight
    restricted; ties keep the earlier container.
    """
    if not evaluations:
        return None
    unrestricted = [e for e in evaluations if not e["weight_restricted"]]
    if not unrestricted:
        return evaluations[0]
    return max(unrestricted, key=lambda e: e["units"])
