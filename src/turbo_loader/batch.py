"""Spreadsheet batch driver: box rows in, per-container capacities out (.xlsx)."""

from __future__ import annotations

import logging
import math
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.styles import Font
from openpyxl.utils import column_index_from_string, get_column_letter
from pydantic import ValidationError

from turbo_loader.capacity import best_container, evaluate_capacity
from turbo_loader.containers import get_container
from turbo_loader.models import Box, Container
from turbo_loader.runner import ParallelPacker

logger = logging.getLogger(__name__)

RESTRICTED_FONT = Font(bold=True, color="FFFF0000")
HEADER_FONT = Font(bold=True)
COUNT_FORMAT = "#,##0"
UTILIZATION_FORMAT = "0.0"


@dataclass(frozen=True)
class BatchColumns:
    """Spreadsheet columns (letters) holding box data; dimensions in cm, weight in kg."""

    length: str = "J"
    width: str = "K"
    height: str = "L"
    weight: str = "M"
    quantity: str = "N"


@dataclass
class BatchRow:
    row: int
    box: Box
    quantity: int


@dataclass
class BatchSummary:
    rows_total: int = 0
    rows_packed: int = 0
    skipped: list[int] = field(default_factory=list)
    output_path: Optional[Path] = None


def parse_number(value: Any) -> Optional[float]:
    """Cell value as a float; accepts decimal commas. None for blanks, text, inf and nan."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    text = str(value).strip().replace(",", ".")
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def read_row(ws, row: int, columns: BatchColumns) -> Optional[BatchRow]:
    """The row as a box, or None when a cell is missing, not numeric or not positive."""
    values = [
        parse_number(ws[f"{letter}{row}"].value)
        for letter in (columns.length, columns.width, columns.height, columns.weight, columns.quantity)
    ]
    if any(v is None or v <= 0 for v in values):
        return None
    length, width, height, weight, quantity = values
    if int(quantity) < 1:
        return None
    try:
        box = Box(length=length, width=width, height=height, weight=weight, unit="cm")
        box.dims_mm()
    except (ValidationError, ValueError):
        return None
    return BatchRow(row=row, box=box, quantity=int(quantity))


def _write_header(ws, col: int, title: str) -> None:
    cell = ws.cell(row=1, column=col, value=title)
    cell.font = HEADER_FONT


def process_workbook(
    input_path: str | Path,
    output_path: str | Path,
    container_ids: Sequence[str],
    packer: ParallelPacker,
    catalog: Optional[dict[str, Container]] = None,
    columns: BatchColumns = BatchColumns(),
    start_row: int = 2,
) -> BatchSummary:
    """
    Compute per-container capacities for every valid row of the first sheet.

    For each container two columns are appended after the existing data:
    the loadable units (bold red when the max load is the limit) and a
    W/O flag (weight / volume limited). Three more columns follow: the best
    container not limited by weight, what limits it, and its volumetric
    utilization in percent. The workbook is written to a temporary file
    and renamed into place.

    Raises:
        ValueError: on an unknown container id or an empty container list.
    """
    if not container_ids:
        raise ValueError("At least one container id is required")
    containers = [get_container(cid, catalog) for cid in container_ids]
    for letter in (columns.length, columns.width, columns.height, columns.weight, columns.quantity):
        column_index_from_string(letter)

    wb = load_workbook(input_path)
    ws = wb.worksheets[0]
    logger.info("Loaded sheet %r from %s (%d rows)", ws.title, input_path, ws.max_row)

    summary = BatchSummary()
    rows: list[BatchRow] = []
    for r in range(start_row, ws.max_row + 1):
        summary.rows_total += 1
        parsed = read_row(ws, r, columns)
        if parsed is None:
            summary.skipped.append(r)
            logger.warning("Row %d: missing or invalid box data, skipping", r)
            continue
        rows.append(parsed)

    first_col = ws.max_column + 1
    for idx, container in enumerate(containers):
        _write_header(ws, first_col + 2 * idx, f"{container.id} units")
        _write_header(ws, first_col + 2 * idx + 1, f"{container.id} limit")
    best_col = first_col + 2 * len(containers)
    _write_header(ws, best_col, "Best container")
    _write_header(ws, best_col + 1, "Limited by")
    _write_header(ws, best_col + 2, "Utilization %")

    t0 = time.perf_counter()
    jobs = [(item.box, container) for item in rows for container in containers]
    results = packer.pack_many(jobs)

    for n, item in enumerate(rows):
        evaluations = []
        for idx, container in enumerate(containers):
            result = results[n * len(containers) + idx]
            evaluation = evaluate_capacity(item.box, container, item.quantity, result)
            evaluations.append(evaluation)

            count_cell = ws.cell(row=item.row, column=first_col + 2 * idx, value=evaluation["units"])
            count_cell.number_format = COUNT_FORMAT
            if evaluation["weight_restricted"]:
                count_cell.font = RESTRICTED_FONT
            ws.cell(
                row=item.row,
                column=first_col + 2 * idx + 1,
                value="W" if evaluation["weight_restricted"] else "O",
            )

        best = best_container(evaluations)
        ws.cell(row=item.row, column=best_col, value=best["container_id"])
        ws.cell(row=item.row, column=best_col + 1, value="weight" if best["weight_restricted"] else "volume")
        util_cell = ws.cell(row=item.row, column=best_col + 2, value=best["utilization"])
        util_cell.number_format = UTILIZATION_FORMAT

        summary.rows_packed += 1
        logger.info(
            "Row %d: %s cm x%d -> best %s (%d units, %.1f%%)",
            item.row,
            (item.box.length, item.box.width, item.box.height),
            item.quantity,
            best["container_id"],
            best["units"],
            best["utilization"],
        )

    for col in range(first_col, best_col + 3):
        ws.column_dimensions[get_column_letter(col)].width = 16

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = output_path.with_name(output_path.name + ".tmp")
    wb.save(temp_path)
    os.replace(temp_path, output_path)
    summary.output_path = output_path

    logger.info(
        "Wrote %s: %d row(s) packed, %d skipped, %.1f s",
        output_path, summary.rows_packed, len(summary.skipped), time.perf_counter() - t0,
    )
    return summary
