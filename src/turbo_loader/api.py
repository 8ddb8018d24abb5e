"""FastAPI endpoint for turbo loader."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from turbo_loader.capacity import evaluate_capacity
from turbo_loader.config import get_settings
from turbo_loader.containers import get_catalog, get_container
from turbo_loader.models import Box, Container, Placement
from turbo_loader.packing.turbo import pack
from turbo_loader.units import mm3_to_m3, mm_to_m

logger = logging.getLogger(__name__)

# FastAPI app instance (exactly one)
app = FastAPI(
    title="Turbo Loader API",
    description="Single box type container loading: how many boxes fit, and where",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)


def invalid_input(details: list[str]) -> Response:
    """Friendly 422 error body."""
    error_response = {
        "error": "INVALID_INPUT",
        "summary": "Invalid box or container. Please check the dimensions and try again.",
        "details": details,
    }
    return Response(
        content=json.dumps(error_response),
        status_code=422,
        media_type="application/json",
    )


def _validation_details(e: ValidationError, prefix: str) -> list[str]:
    details = []
    for err in e.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        details.append(f"{prefix}.{loc}: {err.get('msg')}" if loc else f"{prefix}: {err.get('msg')}")
    return details


def container_summary(container: Container) -> dict[str, Any]:
    length, width, height = container.dims_mm()
    return {
        "id": container.id,
        "name": container.name,
        "length_mm": length,
        "width_mm": width,
        "height_mm": height,
        "max_load_kg": container.max_load,
    }


def build_placements_render(placements: Sequence[Placement]) -> list[dict[str, Any]]:
    """
    Build placements_render from Placement objects (JSON primitives only).

    Returns:
        List of dicts with x, y, z, dims in meters; dims follow the x, y, z
        axes (length, height, width).
    """
    return [
        {
            "x": mm_to_m(p.x),
            "y": mm_to_m(p.y),
            "z": mm_to_m(p.z),
            "dims": [mm_to_m(d) for d in p.rotation],
        }
        for p in placements
    ]


def extract_render_data(container: Container) -> dict[str, float]:
    """Container size in meters as {L, W, H}."""
    length, width, height = container.dims_mm()
    return {"L": mm_to_m(length), "W": mm_to_m(width), "H": mm_to_m(height)}


def parse_pack_request(request: dict[str, Any], catalog: dict[str, Container]) -> tuple[Optional[Box], Optional[Container], list[str]]:
    """
    Validate the /pack body.

    Returns:
        (box, container, details). details lists input problems; a None
        container with no details means the container id is unknown.
    """
    details: list[str] = []

    box_data = request.get("box")
    box = None
    if not isinstance(box_data, dict):
        details.append("box: required object with length, width, height (cm)")
    else:
        try:
            box = Box(**{"unit": "cm", **box_data})
            box.dims_mm()
        except ValidationError as e:
            details.extend(_validation_details(e, "box"))
            box = None
        except ValueError as e:
            details.append(f"box: {e}")
            box = None

    container = None
    if isinstance(request.get("container"), dict):
        try:
            container = Container(**request["container"])
            container.dims_mm()
        except ValidationError as e:
            details.extend(_validation_details(e, "container"))
            container = None
        except ValueError as e:
            details.append(f"container: {e}")
            container = None
    elif isinstance(request.get("container_id"), str) and request["container_id"].strip():
        try:
            container = get_container(request["container_id"], catalog)
        except ValueError:
            container = None
    else:
        details.append("container_id or container: one is required")

    return box, container, details


@app.get("/health")
async def health() -> dict[str, Any]:
    """Health check endpoint."""
    return {"ok": True}


@app.get("/containers")
def containers() -> dict[str, Any]:
    """Container catalog (built-in presets or the configured JSON file)."""
    catalog = get_catalog(get_settings().containers_file)
    return {"containers": [container_summary(catalog[key]) for key in sorted(catalog)]}


@app.post("/pack")
def pack_endpoint(
    request: dict[str, Any],
    render: int = Query(0, description="Include rendering data (1) or not (0)"),
) -> Any:
    """
    Pack one box type into one container.

    Input (request body):
        {
            "box": { "length": 60, "width": 40, "height": 30, "weight": 12 },
            "container_id": "K40HC"
        }

    Box dimensions default to cm; an explicit "container" object
    (mm by default) can replace container_id.

    Returns:
        Counts, volumes (m3), fill rate, stage timings and placements (mm);
        with render=1 also placements_render and container_render (m).
    """
    settings = get_settings()
    catalog = get_catalog(settings.containers_file)

    box, container, details = parse_pack_request(request, catalog)
    if details:
        return invalid_input(details)
    if container is None:
        raise HTTPException(
            status_code=404,
            detail={
                "error": "UNKNOWN_CONTAINER",
                "summary": f"Unknown container '{request.get('container_id')}'",
                "details": sorted(catalog.keys()),
            },
        )

    result = pack(box, container, settings.search_budget())
    capacity = evaluate_capacity(box, container, 1, result)

    response: dict[str, Any] = {
        "container": container_summary(container),
        "box_mm": list(box.dims_mm()),
        "total_boxes": result.total_boxes,
        "loadable_boxes": capacity["loadable_boxes"],
        "weight_restricted": capacity["weight_restricted"],
        "used_volume_m3": mm3_to_m3(result.used_volume),
        "container_volume_m3": mm3_to_m3(result.container_volume),
        "fill_rate": result.fill_rate,
        "stages": [s.model_dump() for s in result.stages],
        "placements": [p.model_dump() for p in result.placements],
    }

    include_render = render == 1 or request.get("render") == 1
    if include_render:
        response["placements_render"] = build_placements_render(result.placements)
        response["container_render"] = extract_render_data(container)

    logger.info(
        "pack container=%s boxes=%d loadable=%d fill_rate=%.3f",
        container.id, result.total_boxes, capacity["loadable_boxes"], result.fill_rate,
    )
    return response
