# Shared pytest fixtures
from __future__ import annotations

import logging
import tempfile
import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest
from openpyxl import Workbook

from agency_sync.logging.init import reset_logging

SOURCE_HEADER = ["Agency ID", "Store ID", "Temp Store ID", "Store Name", "Tablet Device ID", "Tablet SN"]
STORES_HEADER = ["Store ID", "Agency ID", "Temp Store ID", "Store Name", "Tablet Device ID", "Tablet SN"]
TABLETS_HEADER = ["Agency ID", "Store ID", "Tablet Device ID", "Tablet SN"]

WorkbookFactory = Callable[[Path, dict[str, list[list[object]]]], Path]


def write_workbook(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
    """Create an .xlsx with the given sheets (rows written from row 1)."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for r_idx, row in enumerate(rows, start=1):
            for c_idx, value in enumerate(row, start=1):
                if value is not None:
                    ws.cell(row=r_idx, column=c_idx, value=value)
    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    return path


def put_cached_formula(path: Path, value: int, formula: str) -> Path:
    """Turn the numeric cell(s) holding ``value`` into ``=formula`` with ``value`` cached.

    openpyxl never writes computed results, so the cached value Excel would
    have saved is added to the sheet XML directly.
    """
    tmp = path.with_suffix(".tmp")
    with zipfile.ZipFile(path) as src, zipfile.ZipFile(tmp, "w", zipfile.ZIP_DEFLATED) as dst:
        for item in src.infolist():
            data = src.read(item.filename)
            if item.filename.startswith("xl/worksheets/"):
                data = data.replace(f"<v>{value}</v>".encode(), f"<f>{formula}</f><v>{value}</v>".encode())
            dst.writestr(item, data)
    tmp.replace(path)
    return path


def build_agency_rows(*data_rows: list[object]) -> list[list[object]]:
    """Header row + notes row + data rows (data starts at row 3)."""
    return [list(SOURCE_HEADER), ["notes: one row per store"], *[list(r) for r in data_rows]]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "agencies").mkdir()
        monkeypatch.chdir(p)
        # 実環境の .env / 環境変数が混ざらないように
        for name in ("ROOT_FOLDER_ID", "MASTER_WORKBOOK", "WEBHOOK_URL"):
            monkeypatch.delenv(name, raising=False)
        yield p


@pytest.fixture(autouse=True)
def _propagate_package_logs(monkeypatch):
    # setup_logging() で propagate=False になるため caplog 用に戻す
    monkeypatch.setattr(logging.getLogger("agency_sync"), "propagate", True)
    yield
    # capsys のストリームに結び付いたハンドラを残さない
    reset_logging()


@pytest.fixture()
def make_workbook() -> WorkbookFactory:
    return write_workbook


@pytest.fixture()
def cached_formula() -> Callable[[Path, int, str], Path]:
    return put_cached_formula


@pytest.fixture()
def agency_rows() -> Callable[..., list[list[object]]]:
    return build_agency_rows


@pytest.fixture()
def master_workbook(temp_workdir: Path) -> Path:
    return write_workbook(
        temp_workdir / "master.xlsx",
        {"Stores": [list(STORES_HEADER)], "Tablets": [list(TABLETS_HEADER)]},
    )


@pytest.fixture()
def sample_config_yaml() -> str:
    return """root_folder: ./agencies
master_workbook: ./master.xlsx
source_name_filter: Agency
audit_sheet: SyncLog
destinations:
  - sheet: Stores
  - sheet: Tablets
notify:
  workbook: ./cards.xlsx
  sheet: Requests
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "sync.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg
