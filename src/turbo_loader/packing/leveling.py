# src/turbo_loader/packing/leveling.py

from __future__ import annotations

from typing import Sequence

from turbo_loader.models import Placement


def line_span(line: Sequence[Placement]) -> int:
    return max(p.end_x for p in line) - min(p.x for p in line)


def level_layers(placements: Sequence[Placement]) -> list[Placement]:
    """
    Re-stack horizontal lines so the longest ones sit at the bottom.

    Placements are grouped by depth (z), then by height (y) into lines. In
    every depth group the lines are stacked again from the floor in order of
    descending span; a line takes up the height of its tallest box. Returns
    new placements, the input is left untouched.
    """
    depth_groups: dict[int, dict[int, list[Placement]]] = {}
    for p in placements:
        depth_groups.setdefault(p.z, {}).setdefault(p.y, []).append(p)

    result: list[Placement] = []
    for lines in depth_groups.values():
        # sorted() is stable: equal spans keep first-seen order
        ordered = sorted(lines.values(), key=line_span, reverse=True)

        current_y = 0
        for line in ordered:
            for p in sorted(line, key=lambda b: b.x):
                result.append(p if p.y == current_y else p.moved(y=current_y))
            current_y += max(p.rotation[1] for p in line)

    return result
