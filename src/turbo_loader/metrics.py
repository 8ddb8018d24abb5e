from __future__ import annotations

from typing import Sequence

from turbo_loader.geometry import placement_volume
from turbo_loader.models import Container, Placement


def compute_metrics(container: Container, placements: Sequence[Placement]) -> tuple[float, float, float]:
    """(used_volume, container_volume, fill_rate); volumes in mm3, fill rate in [0, 1]."""
    used_volume = float(sum(placement_volume(p) for p in placements))
    container_volume = float(container.volume_mm3)
    fill_rate = 0.0 if container_volume == 0 else used_volume / container_volume
    return used_volume, container_volume, fill_rate
