"""Tests for the spreadsheet batch driver."""

from __future__ import annotations

import pytest
from openpyxl import Workbook, load_workbook

from turbo_loader.batch import BatchColumns, parse_number, process_workbook, read_row
from turbo_loader.containers import get_container
from turbo_loader.models import Box
from turbo_loader.packing.turbo import pack
from turbo_loader.packing.wall import SearchBudget
from turbo_loader.runner import ParallelPacker

BUDGET = SearchBudget(time_limit=None)


def make_source(path) -> None:
    wb = Workbook()
    ws = wb.active
    ws.title = "items"
    ws["A1"] = "Item"
    for letter, title in zip("JKLMN", ["Length cm", "Width cm", "Height cm", "Weight kg", "Qty"]):
        ws[f"{letter}1"] = title

    rows = [
        ("light", 120, 100, 100, 10, 2),
        ("broken", "abc", 100, 100, 10, 2),
        ("heavy", 120, 100, 100, 10000, 1),
        ("comma", "120,0", "100", 100, 10, 1),
        ("zero", 120, 100, 0, 10, 1),
    ]
    for r, (name, *values) in enumerate(rows, start=2):
        ws[f"A{r}"] = name
        for letter, value in zip("JKLMN", values):
            ws[f"{letter}{r}"] = value
    wb.save(path)


def test_parse_number() -> None:
    assert parse_number(12) == 12.0
    assert parse_number("12,5") == 12.5
    assert parse_number(" 7 ") == 7.0
    assert parse_number("") is None
    assert parse_number("abc") is None
    assert parse_number(None) is None
    assert parse_number(True) is None
    assert parse_number("inf") is None
    assert parse_number(float("nan")) is None
    assert parse_number(float("inf")) is None


def test_read_row_skips_invalid(tmp_path) -> None:
    source = tmp_path / "source.xlsx"
    make_source(source)
    ws = load_workbook(source).worksheets[0]

    row = read_row(ws, 2, BatchColumns())
    assert row is not None
    assert row.box.dims_mm() == (1200, 1000, 1000)
    assert row.quantity == 2
    assert read_row(ws, 3, BatchColumns()) is None
    assert read_row(ws, 5, BatchColumns()).box.dims_mm() == (1200, 1000, 1000)
    assert read_row(ws, 6, BatchColumns()) is None


def test_process_workbook(tmp_path) -> None:
    source = tmp_path / "source.xlsx"
    output = tmp_path / "out" / "results.xlsx"
    make_source(source)
    packer = ParallelPacker(workers=1, budget=BUDGET)

    summary = process_workbook(source, output, ["K20"], packer)

    assert summary.rows_total == 5
    assert summary.rows_packed == 3
    assert summary.skipped == [3, 6]
    assert summary.output_path == output
    assert output.exists()
    assert not (tmp_path / "out" / "results.xlsx.tmp").exists()
    # the light and comma rows describe the same box and are packed once
    assert len(packer) == 2

    k20 = get_container("K20")
    boxes = pack(Box(length=120, width=100, height=100, unit="cm"), k20, BUDGET).total_boxes

    ws = load_workbook(output).worksheets[0]
    assert [ws.cell(row=1, column=c).value for c in range(15, 20)] == [
        "K20 units", "K20 limit", "Best container", "Limited by", "Utilization %",
    ]
    assert ws.cell(row=1, column=15).font.bold

    # light row: volume limited, units = boxes * qty
    assert ws["O2"].value == boxes * 2
    assert ws["P2"].value == "O"
    assert ws["Q2"].value == "K20"
    assert ws["R2"].value == "volume"
    assert ws["S2"].value > 0
    assert not ws["O2"].font.bold

    # heavy row: floor(28200 / 10000) = 2, bold red
    assert ws["O4"].value == 2
    assert ws["P4"].value == "W"
    assert ws["O4"].font.bold
    assert ws["O4"].font.color.rgb == "FFFF0000"
    assert ws["Q4"].value == "K20"
    assert ws["R4"].value == "weight"

    # skipped rows get nothing
    assert ws["O3"].value is None


def test_process_workbook_unknown_container(tmp_path) -> None:
    source = tmp_path / "source.xlsx"
    make_source(source)

    with pytest.raises(ValueError):
        process_workbook(source, tmp_path / "out.xlsx", ["K99"], ParallelPacker())
    with pytest.raises(ValueError):
        process_workbook(source, tmp_path / "out.xlsx", [], ParallelPacker())


def test_infinite_dimensions_are_skipped(tmp_path) -> None:
    source = tmp_path / "source.xlsx"
    wb = Workbook()
    ws = wb.active
    for r, values in enumerate([(120, 100, 100, 10, 1), ("inf", 100, 100, 10, 1), (120, "1e400", 100, 10, 1)], start=2):
        for letter, value in zip("JKLMN", values):
            ws[f"{letter}{r}"] = value
    wb.save(source)

    summary = process_workbook(source, tmp_path / "out.xlsx", ["K20"], ParallelPacker(workers=1, budget=BUDGET))

    assert summary.rows_packed == 1
    assert summary.skipped == [3, 4]
