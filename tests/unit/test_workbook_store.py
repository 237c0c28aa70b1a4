from __future__ import annotations

from pathlib import Path

import pytest
from openpyxl import load_workbook

from agency_sync.excel.workbook import MissingDestinationSheetError, WorkbookNotFoundError, WorkbookStore


def test_open_missing_workbook(tmp_path: Path):
    with pytest.raises(WorkbookNotFoundError):
        WorkbookStore.open(tmp_path / "master.xlsx")


def test_open_corrupt_workbook(tmp_path: Path):
    bad = tmp_path / "master.xlsx"
    bad.write_bytes(b"not a zip")
    with pytest.raises(WorkbookNotFoundError, match="cannot load"):
        WorkbookStore.open(bad)


def test_table_missing_sheet(master_workbook: Path):
    store = WorkbookStore.open(master_workbook)
    assert store.sheet_names == ["Stores", "Tablets"]
    with pytest.raises(MissingDestinationSheetError, match="Shipping"):
        store.table("Shipping")


def test_snapshot_header_and_display_value(make_workbook, tmp_path: Path):
    path = make_workbook(
        tmp_path / "m.xlsx",
        {"Stores": [["Store ID", "Agency ID"], [101, " A1 "], [None, None], ["S3", "A3"]]},
    )
    table = WorkbookStore.open(path).table("Stores")
    assert table.header_row() == ["Store ID", "Agency ID"]
    snap = table.snapshot()
    assert snap[0] == ["Store ID", "Agency ID"]
    assert snap[1] == [101, " A1 "]
    assert snap[2] == [None, None]
    assert table.display_value(2, 1) == "101"
    assert table.display_value(2, 2) == "A1"
    assert table.display_value(9, 9) == ""


def test_empty_sheet_snapshot(make_workbook, tmp_path: Path):
    path = make_workbook(tmp_path / "m.xlsx", {"Empty": []})
    table = WorkbookStore.open(path).table("Empty")
    assert table.last_row == 0
    assert table.snapshot() == []
    assert table.header_row() == []


def test_write_append_and_save_roundtrip(master_workbook: Path):
    store = WorkbookStore.open(master_workbook)
    table = store.table("Tablets")
    table.write_cell(2, 1, "A1")
    table.write_cell(2, 2, "S1")
    assert table.append_row(["A2", "S2"]) == 3
    store.save()

    ws = load_workbook(master_workbook)["Tablets"]
    assert ws.cell(2, 1).value == "A1"
    assert ws.cell(3, 2).value == "S2"


def test_ensure_table_creates_once(master_workbook: Path):
    store = WorkbookStore.open(master_workbook)
    t1 = store.ensure_table("SyncLog", ["Timestamp", "Context", "Message"])
    t1.append_row(["t", "c", "m"])
    t2 = store.ensure_table("SyncLog", ["ignored"])
    assert t2.header_row() == ["Timestamp", "Context", "Message"]
    assert t2.last_row == 2


def test_formula_cells_read_as_cached_values(make_workbook, cached_formula, tmp_path: Path):
    path = make_workbook(tmp_path / "m.xlsx", {"Stores": [["Store ID", "Agency ID"], [101, "A1"]]})
    cached_formula(path, 101, "100+1")

    store = WorkbookStore.open(path)
    table = store.table("Stores")
    assert table.snapshot()[1] == [101, "A1"]
    assert table.display_value(2, 1) == "101"
    # 書き戻し用の値は数式のまま
    assert table.value(2, 1) == "=100+1"

    table.write_cell(2, 2, "A2")
    store.save()
    ws = load_workbook(path)["Stores"]
    assert ws.cell(2, 1).value == "=100+1"
    assert ws.cell(2, 2).value == "A2"


def test_write_none_clears_cell(master_workbook: Path):
    table = WorkbookStore.open(master_workbook).table("Stores")
    table.write_cell(2, 3, "T-1")
    table.write_cell(2, 3, None)
    assert table.value(2, 3) is None
    assert table.snapshot()[1][2] is None
