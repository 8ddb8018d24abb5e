from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from turbo_loader.batch import process_workbook
from turbo_loader.capacity import evaluate_capacity
from turbo_loader.config import Settings, get_settings
from turbo_loader.containers import get_catalog, get_container, list_containers
from turbo_loader.logger import configure_logging
from turbo_loader.models import Box, Container, PackResult
from turbo_loader.packing.turbo import pack
from turbo_loader.runner import ParallelPacker


def write_plan(plan: dict, path: str = "plan.json") -> None:
    """
    Write a plan dictionary to a JSON file.

    Creates parent folders if needed, writes JSON with indent=2 and sort_keys=True,
    and overwrites the file on every run.
    """
    output_path = Path(path).resolve()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(plan, f, indent=2, sort_keys=True)


def build_plan(box: Box, container: Container, result: PackResult) -> dict:
    capacity = evaluate_capacity(box, container, 1, result)
    return {
        "container": {
            "id": container.id,
            "name": container.name,
            "dims_mm": list(container.dims_mm()),
            "max_load_kg": container.max_load,
        },
        "box_mm": list(box.dims_mm()),
        "summary": {
            "total_boxes": result.total_boxes,
            "loadable_boxes": capacity["loadable_boxes"],
            "weight_restricted": capacity["weight_restricted"],
            "utilization": capacity["utilization"],
            "fill_rate": result.fill_rate,
        },
        "stages": [s.model_dump() for s in result.stages],
        "placements": [p.model_dump() for p in result.placements],
    }


def _settings_with_overrides(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    overrides = {}
    if getattr(args, "time_limit", None) is not None:
        overrides["wall_time_limit"] = None if args.time_limit <= 0 else args.time_limit
    if getattr(args, "max_nodes", None) is not None:
        overrides["wall_max_nodes"] = args.max_nodes
    if getattr(args, "workers", None) is not None:
        overrides["batch_workers"] = args.workers
    return replace(settings, **overrides)


def cmd_pack(args: argparse.Namespace, settings: Settings) -> int:
    box = Box(
        length=args.length,
        width=args.width,
        height=args.height,
        weight=args.weight,
        unit=args.unit,
    )
    if args.container_dims:
        length, width, height = args.container_dims
        container = Container(length=length, width=width, height=height, max_load=args.max_load)
    else:
        container = get_container(args.container, get_catalog(settings.containers_file))

    result = pack(box, container, settings.search_budget())
    plan = build_plan(box, container, result)
    if args.output:
        write_plan(plan, args.output)
        print(f"Plan written to {Path(args.output).resolve()}")
    print(json.dumps(plan["summary"], indent=2, sort_keys=True))
    return 0


def cmd_batch(args: argparse.Namespace, settings: Settings) -> int:
    catalog = get_catalog(settings.containers_file)
    ids = args.containers or sorted(catalog.keys())
    packer = ParallelPacker(workers=settings.batch_workers, budget=settings.search_budget())
    summary = process_workbook(args.input, args.output, ids, packer, catalog)
    print(
        f"{summary.rows_packed} row(s) packed, {len(summary.skipped)} skipped "
        f"-> {summary.output_path}"
    )
    return 0


def cmd_containers(args: argparse.Namespace, settings: Settings) -> int:
    for c in list_containers(get_catalog(settings.containers_file)):
        length, width, height = c.dims_mm()
        max_load = f"{c.max_load:g} kg" if c.max_load is not None else "-"
        print(f"{c.id:<8} {c.name:<20} {length} x {width} x {height} mm  max load {max_load}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="turbo-loader", description="Turbo Loader CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    p_pack = sub.add_parser("pack", help="Pack one box type into one container")
    p_pack.add_argument("length", type=float, help="Box length")
    p_pack.add_argument("width", type=float, help="Box width")
    p_pack.add_argument("height", type=float, help="Box height")
    p_pack.add_argument("--unit", choices=["mm", "cm", "m"], default="cm", help="Unit of the box dimensions (default cm)")
    p_pack.add_argument("--weight", type=float, help="Box weight in kg")
    group = p_pack.add_mutually_exclusive_group()
    group.add_argument("--container", default="K40HC", help="Catalog container id (default K40HC)")
    group.add_argument(
        "--container-dims",
        type=float,
        nargs=3,
        metavar=("LENGTH", "WIDTH", "HEIGHT"),
        help="Custom container inner size in mm",
    )
    p_pack.add_argument("--max-load", type=float, help="Max load (kg) of a custom container")
    p_pack.add_argument("--output", help="Output plan JSON file")
    p_pack.add_argument("--time-limit", type=float, help="Wall search time limit in seconds (0 = node budget only)")
    p_pack.add_argument("--max-nodes", type=int, help="Wall search node budget")
    p_pack.set_defaults(func=cmd_pack)

    p_batch = sub.add_parser("batch", help="Compute capacities for every row of a spreadsheet")
    p_batch.add_argument("input", help="Input .xlsx file")
    p_batch.add_argument("output", help="Output .xlsx file")
    p_batch.add_argument("--containers", nargs="+", help="Container ids (default: whole catalog)")
    p_batch.add_argument("--workers", type=int, help="Worker processes")
    p_batch.add_argument("--time-limit", type=float, help="Wall search time limit in seconds (0 = node budget only)")
    p_batch.add_argument("--max-nodes", type=int, help="Wall search node budget")
    p_batch.set_defaults(func=cmd_batch)

    p_list = sub.add_parser("containers", help="List the container catalog")
    p_list.set_defaults(func=cmd_containers)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = _settings_with_overrides(args)
        configure_logging(settings.log_level, settings.log_file)
        return args.func(args, settings)
    except (ValidationError, ValueError, FileNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
