"""Unit conversion helpers.

The engine works in integer millimeters. Boxes usually arrive in
centimeters from forms and spreadsheets, containers in millimeters from the
catalog, and renderers want meters.
"""

from __future__ import annotations

import math

MM_PER_UNIT: dict[str, float] = {
    "mm": 1.0,
    "cm": 10.0,
    "m": 1000.0,
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def to_mm(value: float, unit: str = "mm") -> int:
    """Convert a length to whole millimeters (half-up rounding)."""
    try:
        factor = MM_PER_UNIT[unit]
    except KeyError:
        raise ValueError(f"Unknown unit '{unit}'. Valid: {sorted(MM_PER_UNIT)}") from None
    scaled = float(value) * factor
    if not math.isfinite(scaled):
        raise ValueError(f"Length must be a finite number, got {value!r} {unit}")
    return round_half_up(scaled)


def mm_to_m(value: float) -> float:
    return float(value) / 1000.0


def mm3_to_m3(value: float) -> float:
    return float(value) / 1e9
