from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..models.config_models import DEFAULT_BLANK_STREAK_LIMIT, DEFAULT_MAX_ROWS
from ..models.fields import ColumnMap, Field
from ..models.row_data import FieldRecord, RejectedRow
from .key_index import key_problem, to_text

"""Source row transformer / validator.

Agency sheets keep rows 1-2 for header and notes; data always starts at row 3.
Scanning stops early after a run of blank rows (heuristic, default 10) and in
any case after max_rows data rows (default 2000).
"""

__all__ = [
    "DATA_START_ROW",
    "RowScan",
    "extract_record",
    "scan_source_rows",
]

DATA_START_ROW = 3


@dataclass
class RowScan:
    """Outcome of scanning one source table."""
    records: list[FieldRecord] = field(default_factory=list)
    rejected: list[RejectedRow] = field(default_factory=list)
    scanned_rows: int = 0
    stopped_early: bool = False  # blank streak limit reached


def extract_record(raw_row: Sequence[Any], columns: ColumnMap, row_number: int) -> FieldRecord:
    """Pull the six tracked fields out of a raw row as trimmed strings.

    A field whose column is not in ``columns`` or lies beyond the end of the
    row comes back as "".
    """
    values: dict[Field, str] = {}
    for f in Field:
        col = columns.get(f)
        raw = raw_row[col - 1] if col is not None and 0 < col <= len(raw_row) else None
        values[f] = to_text(raw)
    return FieldRecord(row_number=row_number, values=values)


def scan_source_rows(
    rows: Sequence[Sequence[Any]],
    columns: ColumnMap,
    *,
    blank_streak_limit: int = DEFAULT_BLANK_STREAK_LIMIT,
    max_rows: int = DEFAULT_MAX_ROWS,
) -> RowScan:
    """Turn a source snapshot (rows[0] is sheet row 1) into accepted / rejected rows.

    - all six fields empty      -> blank; blank_streak_limit consecutive ones stop the scan
    - non-blank, key invalid    -> rejected (resets the streak, not counted as blank)
    - otherwise                 -> FieldRecord
    """
    scan = RowScan()
    last_row = min(len(rows), DATA_START_ROW + max_rows - 1)
    blank_streak = 0
    for row_number in range(DATA_START_ROW, last_row + 1):
        scan.scanned_rows += 1
        record = extract_record(rows[row_number - 1], columns, row_number)
        if record.is_blank:
            blank_streak += 1
            if blank_streak >= blank_streak_limit:
                scan.stopped_early = True
                break
            continue
        blank_streak = 0
        problem = key_problem(record.agency_id, record.store_id)
        if problem is not None:
            scan.rejected.append(RejectedRow(row_number=row_number, reason=problem))
            continue
        scan.records.append(record)
    return scan
