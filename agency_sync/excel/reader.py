from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl import load_workbook

"""Read-only snapshots of agency (source) workbooks via pandas.

Sheets are parsed without a header and with dtype=object so that row numbers
line up with the sheet (rows[0] is row 1) and ids like 0012 or 42 keep their
cell type instead of being coerced to float columns.

Trailing empty rows are dropped by the Excel engine; blank rows in between are
kept as all-None rows.

The pandas engine turns error cells (#REF!, #N/A, ...) into NaN, so their
text is put back from an openpyxl pass over the same sheet. A broken
reference in a key column must stay distinguishable from an empty cell.
"""


class SheetReadError(Exception):
    """Raised when a workbook or the requested sheet can't be read."""


def _error_cells(path: Path, sheet: str) -> list[tuple[int, int, str]]:
    """(row index, column index, error text) of every error cell, 0-based."""
    wb = load_workbook(path, read_only=True, data_only=True)
    try:
        found: list[tuple[int, int, str]] = []
        for r_idx, row in enumerate(wb[sheet].iter_rows()):
            for c_idx, cell in enumerate(row):
                if cell.data_type == "e" and cell.value is not None:
                    found.append((r_idx, c_idx, str(cell.value)))
        return found
    finally:
        wb.close()


def _overlay_errors(rows: list[list[Any]], errors: list[tuple[int, int, str]]) -> None:
    width = max((len(r) for r in rows), default=0)
    for r_idx, c_idx, text in errors:
        while len(rows) <= r_idx:
            rows.append([None] * width)
        row = rows[r_idx]
        if len(row) <= c_idx:
            row.extend([None] * (c_idx + 1 - len(row)))
        row[c_idx] = text


def read_table_snapshot(path: Path, sheet: str | None = None) -> list[list[Any]]:
    """Read one sheet as a list of rows of raw values (NaN -> None).

    Error cells come back as their error text, e.g. ``"#REF!"``.

    Parameters
    ----------
    path: workbook path
    sheet: sheet name (None なら先頭シート)
    """
    try:
        with pd.ExcelFile(path) as xls:
            names = [str(n) for n in xls.sheet_names]
            if sheet is None:
                if not names:
                    raise SheetReadError(f"workbook '{path.name}' has no sheets")
                target = names[0]
            elif sheet in names:
                target = sheet
            else:
                raise SheetReadError(f"sheet '{sheet}' not found in {path.name}")
            df = xls.parse(target, header=None, dtype=object)
        errors = _error_cells(path, target)
    except SheetReadError:
        raise
    except Exception as e:
        raise SheetReadError(f"cannot read {path.name}: {e}") from e

    rows: list[list[Any]] = []
    for raw in df.itertuples(index=False, name=None):
        rows.append([None if pd.isna(v) else v for v in raw])
    _overlay_errors(rows, errors)
    return rows


def preview_table(path: Path, sheet: str | None = None, limit: int = 3) -> dict[str, Any]:
    """Header row and the first data rows (row 3 onward) for ``inspect``."""
    rows = read_table_snapshot(path, sheet)
    header = rows[0] if rows else []
    # rows 1-2 はヘッダ/注記、データは 3 行目から
    sample = rows[2 : 2 + limit]
    safe_rows = [[v.isoformat() if hasattr(v, "isoformat") else v for v in r] for r in sample]
    return {"header": header, "rows": safe_rows, "row_count": max(len(rows) - 2, 0)}
