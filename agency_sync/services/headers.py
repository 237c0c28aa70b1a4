from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..models.fields import ColumnMap, Field
from .key_index import to_text

"""Header resolution: logical field -> 1-based column index for one table snapshot.

Resolution is done once per table per run and never cached across runs, so a
header row edited between two runs is always picked up.
"""

__all__ = [
    "MissingRequiredHeaderError",
    "resolve_headers",
    "find_missing_headers",
    "header_positions",
]


class MissingRequiredHeaderError(Exception):
    """Raised when a required display name is absent from a header row."""

    def __init__(self, table: str, missing: Sequence[str]) -> None:
        self.table = table
        self.missing = list(missing)
        super().__init__(f"table '{table}' missing required columns: {self.missing}")


def header_positions(header_row: Sequence[Any]) -> dict[str, int]:
    positions: dict[str, int] = {}
    for idx, cell in enumerate(header_row, start=1):
        name = to_text(cell)
        if name and name not in positions:  # 重複ヘッダは先勝ち
            positions[name] = idx
    return positions


def find_missing_headers(
    header_row: Sequence[Any],
    display_names: Mapping[Field, str],
    required: Iterable[Field],
) -> list[str]:
    """Display names of required fields that do not appear in header_row."""
    positions = header_positions(header_row)
    missing = []
    for f in required:
        name = display_names.get(f, "").strip()
        if not name or name not in positions:
            missing.append(name or f.value)
    return sorted(missing)


def resolve_headers(
    header_row: Sequence[Any],
    display_names: Mapping[Field, str],
    required: Iterable[Field] = (),
) -> ColumnMap | None:
    """Map each field whose display name is present in header_row to its column.

    Returns None (not a partial map) when any required field is missing.
    Optional fields that are missing are simply left out of the result; callers
    treat that as "do not write this field".
    """
    if find_missing_headers(header_row, display_names, required):
        return None
    positions = header_positions(header_row)
    columns: ColumnMap = {}
    for f, name in display_names.items():
        idx = positions.get(name.strip())
        if idx is not None:
            columns[f] = idx
    return columns
