# src/turbo_loader/packing/turbo.py

"""
Turbo packing pipeline for one box type in one container.

Stages: wall search -> repeat along the length -> re-level lines ->
compact -> tail analysis and filling -> insertion sweep -> gap patching ->
second layer -> settle -> overlap resolution. Small and flat boxes skip
the stages and get an analytic block fill instead. A plain
single-orientation lattice is computed alongside and returned instead
when it holds more boxes.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from turbo_loader.geometry import container_extent, generate_orientations
from turbo_loader.metrics import compute_metrics
from turbo_loader.models import Box, Container, Orientation, PackResult, Placement, StageReport
from turbo_loader.packing.analytic import analytic_fill, is_flat_box, is_small_box
from turbo_loader.packing.gravity import PullDirection, settle
from turbo_loader.packing.grid_fit import grid_fit
from turbo_loader.packing.insertion import insertion_sweep, patch_gaps
from turbo_loader.packing.layering import add_layer
from turbo_loader.packing.leveling import level_layers
from turbo_loader.packing.repeat import repeat_pattern
from turbo_loader.packing.tail import analyze_tail, fill_tail, grid_resolution
from turbo_loader.packing.validation import resolve_overlaps
from turbo_loader.packing.wall import SearchBudget, build_wall

logger = logging.getLogger(__name__)

PRE_TAIL_PULLS = (PullDirection.DOWN, PullDirection.LEFT, PullDirection.BACK)
FINAL_PULLS = (PullDirection.LEFT, PullDirection.BACK, PullDirection.DOWN)


class _StageTimer:
    def __init__(self) -> None:
        self.reports: list[StageReport] = []

    @contextmanager
    def stage(self, name: str) -> Iterator[dict]:
        info: dict = {"boxes_added": None}
        started = time.perf_counter()
        yield info
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        self.reports.append(StageReport(stage=name, time_ms=elapsed_ms, boxes_added=info["boxes_added"]))
        logger.debug("Stage %s took %.1f ms (boxes added: %s)", name, elapsed_ms, info["boxes_added"])


def _result(container: Container, placements: list[Placement], stages: list[StageReport]) -> PackResult:
    used_volume, container_volume, fill_rate = compute_metrics(container, placements)
    return PackResult(
        total_boxes=len(placements),
        placements=placements,
        used_volume=used_volume,
        container_volume=container_volume,
        fill_rate=fill_rate,
        stages=stages,
    )


def _turbo_stages(
    timer: _StageTimer,
    container: Container,
    orientations: list[Orientation],
    budget: Optional[SearchBudget],
) -> list[Placement]:
    with timer.stage("wall") as info:
        wall = build_wall(container, orientations, budget)
        info["boxes_added"] = len(wall)

    with timer.stage("repeat") as info:
        placements = repeat_pattern(wall, container)
        info["boxes_added"] = len(placements) - len(wall)

    with timer.stage("level"):
        placements = level_layers(placements)

    with timer.stage("compact"):
        placements = settle(placements, PRE_TAIL_PULLS, container)

    with timer.stage("tail") as info:
        grid = grid_resolution(orientations)
        tail = analyze_tail(placements, container, grid)
        added = fill_tail(tail, container, orientations, placements)
        placements = placements + added
        info["boxes_added"] = len(added)

    with timer.stage("insert") as info:
        added = insertion_sweep(placements, container, orientations)
        placements = placements + added
        info["boxes_added"] = len(added)

    with timer.stage("patch") as info:
        added = patch_gaps(placements, container, orientations)
        placements = placements + added
        info["boxes_added"] = len(added)

    with timer.stage("layer") as info:
        added = add_layer(placements, container)
        placements = placements + added
        info["boxes_added"] = len(added)

    with timer.stage("settle"):
        placements = settle(placements, FINAL_PULLS, container)

    return placements


def pack(box: Box, container: Container, budget: Optional[SearchBudget] = None) -> PackResult:
    """
    Pack as many copies of box into container as the pipeline finds room for.

    Args:
        box: Box dimensions (any supported unit)
        container: Container dimensions (any supported unit)
        budget: Wall search bounds; None uses the default (1 s wall clock)

    Returns:
        PackResult with placements in integer mm. A box that fits in no
        orientation gives an empty result that still carries the validate
        stage report.

    Raises:
        ValueError: if a dimension is not positive or rounds to 0 mm.
    """
    started = time.perf_counter()
    box_dims = box.dims_mm()
    extent = container_extent(container)
    timer = _StageTimer()

    orientations = generate_orientations(box, container)
    if not orientations:
        logger.info(
            "Box %s mm does not fit container %s (%s mm) in any orientation",
            box_dims, container.id, container.dims_mm(),
        )
        placements: list[Placement] = []
    elif is_small_box(box_dims) or is_flat_box(box_dims):
        with timer.stage("analytic") as info:
            placements = analytic_fill(box_dims, container)
            info["boxes_added"] = len(placements)
    else:
        placements = _turbo_stages(timer, container, orientations, budget)

    with timer.stage("validate") as info:
        before = len(placements)
        placements = resolve_overlaps(placements, container)
        info["boxes_added"] = len(placements) - before

    if orientations:
        with timer.stage("grid_fit"):
            baseline = grid_fit(box_dims, extent)
    else:
        baseline = []
    if len(baseline) > len(placements):
        logger.info(
            "Plain lattice (%d boxes) beats the turbo layout (%d boxes); using the lattice",
            len(baseline), len(placements),
        )
        placements = baseline

    result = _result(container, placements, timer.reports)
    logger.info(
        "Packed %d boxes of %s mm into %s in %.0f ms (fill rate %.1f%%)",
        result.total_boxes,
        box_dims,
        container.id,
        (time.perf_counter() - started) * 1000.0,
        result.fill_rate * 100.0,
    )
    return result
