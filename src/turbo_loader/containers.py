# src/turbo_loader/containers.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from turbo_loader.models import Container

logger = logging.getLogger(__name__)

# Internal usable dims (mm) and max load (kg).
CONTAINER_PRESETS_MM: dict[str, dict[str, Any]] = {
    "K20":   {"name": "20' standard",  "length": 5900,  "width": 2340, "height": 2390, "maxLoad": 28200},
    "K40":   {"name": "40' standard",  "length": 12030, "width": 2340, "height": 2390, "maxLoad": 26600},
    "K40HC": {"name": "40' high cube", "length": 12030, "width": 2340, "height": 2700, "maxLoad": 28600},
    "K45HC": {"name": "45' high cube", "length": 13556, "width": 2352, "height": 2698, "maxLoad": 29600},
}


def container_from_entry(entry: dict[str, Any]) -> Container:
    """Build a Container from a catalog entry ({id, name, length, width, height, maxLoad}, mm)."""
    return Container(
        id=str(entry["id"]).strip().upper(),
        name=entry.get("name") or str(entry["id"]),
        length=entry["length"],
        width=entry["width"],
        height=entry["height"],
        max_load=entry.get("maxLoad", entry.get("max_load")),
        unit="mm",
    )


def default_catalog() -> dict[str, Container]:
    return {key: container_from_entry({"id": key, **entry}) for key, entry in CONTAINER_PRESETS_MM.items()}


def load_catalog(path: str | Path) -> dict[str, Container]:
    """
    Read a JSON catalog of the form {"containers": [{id, name, length, width, height, maxLoad}, ...]}.

    Raises:
        ValueError: if the file is not a valid catalog.
        FileNotFoundError: if the file does not exist.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    entries = data.get("containers") if isinstance(data, dict) else None
    if not isinstance(entries, list) or not entries:
        raise ValueError(f"Catalog {path} must contain a non-empty 'containers' list")

    catalog: dict[str, Container] = {}
    for entry in entries:
        try:
            container = container_from_entry(entry)
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid container entry in {path}: {entry!r}") from e
        catalog[container.id] = container

    logger.info("Loaded %d containers from %s", len(catalog), path)
    return catalog


def get_catalog(path: Optional[str | Path] = None) -> dict[str, Container]:
    """The JSON catalog at path when given, otherwise the built-in presets."""
    return load_catalog(path) if path else default_catalog()


def list_containers(catalog: Optional[dict[str, Container]] = None) -> list[Container]:
    catalog = catalog if catalog is not None else default_catalog()
    return [catalog[key] for key in sorted(catalog)]


def get_container(container_id: str, catalog: Optional[dict[str, Container]] = None) -> Container:
    catalog = catalog if catalog is not None else default_catalog()
    key = container_id.strip().upper()
    if key not in catalog:
        raise ValueError(f"Unknown container '{container_id}'. Valid: {sorted(catalog.keys())}")
    return catalog[key]
