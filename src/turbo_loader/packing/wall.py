# src/turbo_loader/packing/wall.py

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass
from typing import Optional, Sequence

from turbo_loader.geometry import (
    Bounds,
    boxes_overlap,
    container_extent,
    fits_extent,
    placement_bounds,
    rotations_6,
)
from turbo_loader.models import Container, Orientation, Placement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchBudget:
    """
    Bounds for the cross-section search.

    max_depth: longest sequence of wall elements explored.
    max_nodes: capacity of the visited-layout table; the search stops expanding once it is full.
    time_limit: wall-clock seconds, or None for a purely node-bounded (reproducible) search.
    """

    max_depth: int = 30
    max_nodes: int = 50_000
    time_limit: Optional[float] = 1.0


def candidate_orientations(
    orientations: Sequence[Orientation],
    extent: tuple[int, int, int],
) -> list[Orientation]:
    """Permutation closure of the orientations that fit the container, widest first."""
    seen: set[Orientation] = set()
    out: list[Orientation] = []
    for dims in orientations:
        for rot in rotations_6(dims):
            if rot in seen:
                continue
            seen.add(rot)
            if fits_extent(rot, extent):
                out.append(rot)
    out.sort(key=lambda o: o[2], reverse=True)
    return out


def search_layout(
    candidates: Sequence[Orientation],
    width: int,
    budget: SearchBudget,
) -> tuple[Orientation, ...]:
    """
    Depth-first search for the sequence of elements across the width with the largest h x w area.

    The visited table is keyed by the (height, width) signature in emission
    order and lives only for this call. Deadline, depth and table size are
    checked at every node; the best layout seen so far is returned when any
    of them runs out.
    """
    deadline = None if budget.time_limit is None else time.perf_counter() + budget.time_limit
    visited: set[tuple[tuple[int, int], ...]] = set()

    best: tuple[Orientation, ...] = ()
    best_score = 0
    stop_reason = "exhausted"

    # (layout, signature, score, width_left, depth)
    work: list[tuple[tuple[Orientation, ...], tuple[tuple[int, int], ...], int, int, int]] = [
        ((), (), 0, width, 0)
    ]
    while work:
        if deadline is not None and time.perf_counter() > deadline:
            stop_reason = "deadline"
            break
        if len(visited) >= budget.max_nodes:
            stop_reason = "node budget"
            break

        layout, signature, score, width_left, depth = work.pop()
        if depth > budget.max_depth or signature in visited:
            continue
        visited.add(signature)

        if score > best_score:
            best, best_score = layout, score

        children = [o for o in candidates if o[2] <= width_left]
        for o in reversed(children):
            _, h, w = o
            work.append((layout + (o,), signature + ((h, w),), score + h * w, width_left - w, depth + 1))

    logger.debug(
        "Wall search stopped (%s) after %d layouts; best score %d with %d elements",
        stop_reason, len(visited), best_score, len(best),
    )
    return best


def best_stack(candidates: Sequence[Orientation], height: int, width: int) -> list[Orientation]:
    """
    Tallest column of orientations with exactly this width that fits under the given height.

    Every element of a column shares the width, so maximizing the h x w area
    is maximizing the stacked height. States are de-duplicated by the height
    still free, which bounds the work-list by the number of reachable sums.
    """
    fits = [o for o in candidates if o[2] == width and o[1] <= height]
    if not fits:
        return []
    max_depth = height // min(o[1] for o in fits)

    best: tuple[Orientation, ...] = ()
    best_height = 0
    seen_remaining: set[int] = set()
    work: list[tuple[tuple[Orientation, ...], int, int]] = [((), height, 0)]
    while work:
        stack, remaining, depth = work.pop()
        if remaining in seen_remaining:
            continue
        seen_remaining.add(remaining)

        used = height - remaining
        if used > best_height:
            best, best_height = stack, used
            if best_height == height:
                break
        if depth >= max_depth:
            continue

        for o in reversed(fits):
            if o[1] <= remaining:
                work.append((stack + (o,), remaining - o[1], depth + 1))

    return list(best)


def order_by_frequency(layout: Sequence[Orientation]) -> list[Orientation]:
    """Most frequent orientations first; equal counts keep their layout order."""
    counts = Counter(layout)
    return sorted(layout, key=lambda o: counts[o], reverse=True)


def build_wall(
    container: Container,
    orientations: Sequence[Orientation],
    budget: Optional[SearchBudget] = None,
) -> list[Placement]:
    """
    Cross-section of columns at length offset 0.

    Finds the best sequence of elements across the container width, then
    realizes each element as the tallest same-width column, bottom-up.
    Returns an empty wall when nothing fits.
    """
    budget = budget or SearchBudget()
    extent = container_extent(container)
    _, c_height, c_width = extent

    candidates = candidate_orientations(orientations, extent)
    if not candidates:
        return []

    layout = search_layout(candidates, c_width, budget)
    if not layout:
        return []

    columns: dict[int, list[Orientation]] = {}
    emitted: list[Bounds] = []
    placements: list[Placement] = []
    z = 0
    for element in order_by_frequency(layout):
        width = element[2]
        if width not in columns:
            columns[width] = best_stack(candidates, c_height, width)

        y = 0
        for dims in columns[width]:
            bounds = placement_bounds(0, y, z, dims)
            if any(boxes_overlap(bounds, other) for other in emitted):
                continue
            emitted.append(bounds)
            placements.append(Placement(x=0, y=y, z=z, rotation=dims))
            y += dims[1]
        z += width

    return placements
