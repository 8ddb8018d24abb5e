# src/turbo_loader/packing/validation.py

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from typing import Optional, Sequence

from turbo_loader.geometry import (
    container_extent,
    find_overlapping_pairs,
    footprints_intersect,
    within_container,
)
from turbo_loader.models import Container, Placement

logger = logging.getLogger(__name__)


def supports(lower: Placement, upper: Placement) -> bool:
    """True if upper rests directly on lower (flush faces, overlapping footprints)."""
    return upper.y == lower.end_y and footprints_intersect(lower.bounds, upper.bounds)


def support_graph(placements: Sequence[Placement]) -> dict[int, list[int]]:
    """
    Map each index to the indices of the boxes resting directly on it.

    Boxes are bucketed by (bottom height, floor cell), so every box only
    looks at the boxes starting at its own top in the cells its footprint
    touches.
    """
    bounds = [p.bounds for p in placements]
    cell = max(1, max((max(b[3] - b[0], b[5] - b[2]) for b in bounds), default=1))

    def floor_cells(b: tuple[int, ...]) -> list[tuple[int, int]]:
        return [
            (cx, cz)
            for cx in range(b[0] // cell, (b[3] - 1) // cell + 1)
            for cz in range(b[2] // cell, (b[5] - 1) // cell + 1)
        ]

    by_bottom: dict[tuple[int, int, int], list[int]] = defaultdict(list)
    for i, b in enumerate(bounds):
        for cx, cz in floor_cells(b):
            by_bottom[(b[1], cx, cz)].append(i)

    graph: dict[int, list[int]] = {}
    for i, b in enumerate(bounds):
        above: set[int] = set()
        for cx, cz in floor_cells(b):
            above.update(by_bottom.get((b[4], cx, cz), ()))
        graph[i] = [j for j in sorted(above) if j != i and supports(placements[i], placements[j])]
    return graph


def _with_dependents(start: int, graph: dict[int, list[int]], alive: set[int]) -> set[int]:
    removed = {start}
    work = [start]
    while work:
        i = work.pop()
        for j in graph.get(i, []):
            if j in alive and j not in removed:
                removed.add(j)
                work.append(j)
    return removed


def resolve_overlaps(placements: Sequence[Placement], container: Container) -> list[Placement]:
    """
    Make the layout valid by removing boxes.

    While overlaps remain, the box involved in the most overlapping pairs
    (the latest one on ties) is removed together with everything resting on
    it, directly or through other boxes. Placements outside the container
    are dropped at the end. A valid layout comes back unchanged.
    """
    items = list(placements)
    graph: Optional[dict[int, list[int]]] = None
    alive = set(range(len(items)))

    for _ in range(len(items)):
        current = sorted(alive)
        pairs = find_overlapping_pairs([items[i] for i in current])
        if not pairs:
            break

        counts: Counter[int] = Counter()
        for a, b in pairs:
            counts[current[a]] += 1
            counts[current[b]] += 1
        worst = max(counts.items(), key=lambda kv: (kv[1], kv[0]))[0]
        if graph is None:
            graph = support_graph(items)

        removed = _with_dependents(worst, graph, alive)
        alive -= removed
        logger.warning(
            "Removed box %d (%d overlaps) and %d supported box(es) to resolve overlaps",
            worst, counts[worst], len(removed) - 1,
        )

    extent = container_extent(container)
    result = [items[i] for i in sorted(alive) if within_container(items[i].bounds, extent)]
    dropped = len(alive) - len(result)
    if dropped:
        logger.warning("Dropped %d placement(s) outside the container", dropped)
    return result


def layout_problems(placements: Sequence[Placement], container: Container) -> list[str]:
    """Human-readable list of overlaps and out-of-bounds placements; empty when valid."""
    extent = container_extent(container)
    problems = [
        f"placement {i} at ({p.x}, {p.y}, {p.z}) size {p.rotation} is outside the container"
        for i, p in enumerate(placements)
        if not within_container(p.bounds, extent)
    ]
    problems.extend(
        f"placements {i} and {j} overlap"
        for i, j in find_overlapping_pairs(placements)
    )
    return problems
