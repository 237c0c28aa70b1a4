from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from ..services.key_index import to_text

"""Workbook-backed tabular store (master workbook / card request workbook).

The sync core only talks to this module through a small grid API:
read a snapshot, read one display value, write one cell, append a row, save.
Nothing here knows about agencies or keys.
"""

__all__ = [
    "WorkbookNotFoundError",
    "MissingDestinationSheetError",
    "SheetTable",
    "WorkbookStore",
]


class WorkbookNotFoundError(Exception):
    """Raised when the workbook file does not exist or can't be loaded."""


class MissingDestinationSheetError(Exception):
    """Raised when a named sheet is not present in the workbook."""


class SheetTable:
    """Row/column addressable view (1-based) over one worksheet.

    ``cached`` is the same sheet loaded with ``data_only=True``. Snapshots and
    display values come from it, so a formula cell reads as its last computed
    value; ``value()`` and every write go to the formula-preserving sheet.
    """

    def __init__(self, worksheet: Worksheet, cached: Worksheet | None = None) -> None:
        self._ws = worksheet
        self._cached = cached if cached is not None else worksheet

    @property
    def name(self) -> str:
        return self._ws.title

    @property
    def last_row(self) -> int:
        """Last row openpyxl considers used (may include formatted blank rows)."""
        if self._ws.max_row == 1 and self._ws.max_column == 1 and self._ws.cell(1, 1).value is None:
            return 0
        return self._ws.max_row

    def snapshot(self) -> list[list[Any]]:
        """All rows as display values; rows[0] is sheet row 1."""
        if self.last_row == 0:
            return []
        return [list(r) for r in self._cached.iter_rows(values_only=True)]

    def header_row(self) -> list[Any]:
        if self.last_row == 0:
            return []
        return [c.value for c in self._cached[1]]

    def value(self, row: int, column: int) -> Any:
        """Stored cell content (formula text for formula cells)."""
        return self._ws.cell(row=row, column=column).value

    def display_value(self, row: int, column: int) -> str:
        return to_text(self._cached.cell(row=row, column=column).value)

    def write_cell(self, row: int, column: int, value: Any) -> None:
        # cell(value=None) は代入しないので .value に直接入れる
        self._ws.cell(row=row, column=column).value = value
        if self._cached is not self._ws:
            self._cached.cell(row=row, column=column).value = value

    def append_row(self, values: Sequence[Any]) -> int:
        """Append below the last used row; returns the new row number."""
        row = self._ws.max_row + 1 if self.last_row else 1
        for col, value in enumerate(values, start=1):
            self.write_cell(row, col, value)
        return row


class WorkbookStore:
    """An opened workbook file; save() is the only commit point."""

    def __init__(self, path: Path, workbook: Workbook, cached: Workbook | None = None) -> None:
        self.path = path
        self._wb = workbook
        self._cached = cached

    @classmethod
    def open(cls, path: Path | str) -> WorkbookStore:
        p = Path(path)
        if not p.is_file():
            raise WorkbookNotFoundError(f"workbook not found: {p}")
        try:
            wb = load_workbook(p, keep_vba=p.suffix.lower() == ".xlsm")
            # 数式セルは最後に計算された値で読む
            cached = load_workbook(p, data_only=True)
        except Exception as e:
            raise WorkbookNotFoundError(f"cannot load workbook {p}: {e}") from e
        return cls(p, wb, cached)

    @property
    def sheet_names(self) -> list[str]:
        return list(self._wb.sheetnames)

    def _sheet(self, name: str) -> SheetTable:
        cached = None
        if self._cached is not None:
            if name not in self._cached.sheetnames:
                self._cached.create_sheet(title=name)
            cached = self._cached[name]
        return SheetTable(self._wb[name], cached)

    def table(self, name: str) -> SheetTable:
        if name not in self._wb.sheetnames:
            raise MissingDestinationSheetError(f"sheet '{name}' not found in {self.path.name}")
        return self._sheet(name)

    def ensure_table(self, name: str, header: Sequence[str]) -> SheetTable:
        """Return the named sheet, creating it with ``header`` in row 1 if absent."""
        if name not in self._wb.sheetnames:
            self._wb.create_sheet(title=name)
            table = self._sheet(name)
            table.append_row(list(header))
            return table
        return self._sheet(name)

    def save(self) -> None:
        self._wb.save(self.path)
