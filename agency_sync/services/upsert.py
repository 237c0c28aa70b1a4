from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..excel.workbook import SheetTable
from ..models.config_models import DestinationConfig
from ..models.fields import ColumnMap, Field
from ..models.row_data import FieldRecord
from ..models.sync_result import DestinationStat
from .headers import MissingRequiredHeaderError, find_missing_headers, resolve_headers
from .key_index import KeyIndex, build_key_index, make_valid_key

"""Upsert writer: insert-or-update of field records into destination sheets.

Every destination keeps its own key index and next-append counter, so one
record can be an update in one sheet and an insert in another.

Writes are staged in memory per source table and flushed once at the end of the
table. A blank field value is never staged (stored data is not blanked out) and
a field without a column in a destination is dropped for that destination only.
If a table fails, abort_table() throws the staged writes away (or puts back the
old cell values when they were already flushed) and restores the
indexes/counters to their state before the table started.
"""

__all__ = [
    "DestinationState",
    "UpsertOutcome",
    "UpsertWriter",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpsertOutcome:
    destination: str
    row: int
    inserted: bool


@dataclass(frozen=True)
class _Checkpoint:
    key_rows: dict[str, int]
    next_row: int
    inserted: int
    updated: int


@dataclass
class DestinationState:
    """Run-scoped state for one destination sheet."""
    table: SheetTable
    columns: ColumnMap
    index: KeyIndex
    next_row: int
    stat: DestinationStat
    pending: dict[tuple[int, int], str] = field(default_factory=dict)
    _checkpoint: _Checkpoint | None = None
    _undo: list[tuple[int, int, Any]] = field(default_factory=list)

    @classmethod
    def open(cls, table: SheetTable, config: DestinationConfig) -> DestinationState:
        """Resolve the destination header and pre-build its key index.

        Raises:
            MissingRequiredHeaderError: agencyId / storeId column absent
        """
        header = table.header_row()
        columns = resolve_headers(header, config.columns, config.required)
        if columns is None:
            raise MissingRequiredHeaderError(
                table.name, find_missing_headers(header, config.columns, config.required)
            )
        index = build_key_index(table.snapshot(), columns)
        logger.debug(
            "destination=%s keys=%d last_data_row=%d columns=%s",
            table.name,
            len(index),
            index.last_data_row,
            sorted(f.value for f in columns),
        )
        return cls(
            table=table,
            columns=columns,
            index=index,
            next_row=index.last_data_row + 1,
            stat=DestinationStat(sheet_name=table.name),
        )

    @property
    def name(self) -> str:
        return self.table.name

    def target_row(self, key: str) -> tuple[int, bool]:
        """Existing row for key (update) or the next append slot (insert)."""
        existing = self.index.rows.get(key)
        if existing is not None:
            self.stat.updated += 1
            return existing, False
        row = self.next_row
        self.index.rows[key] = row
        self.next_row += 1
        self.stat.inserted += 1
        return row, True

    def stage(self, record: FieldRecord, row: int) -> int:
        """Stage non-blank fields that have a column here; returns cells staged."""
        staged = 0
        for f in Field:
            col = self.columns.get(f)
            if col is None:
                continue
            value = record.get(f).strip()
            if not value:
                continue
            self.pending[(row, col)] = value  # 同一セルは後勝ち
            staged += 1
        return staged

    def checkpoint(self) -> None:
        self._checkpoint = _Checkpoint(
            key_rows=dict(self.index.rows),
            next_row=self.next_row,
            inserted=self.stat.inserted,
            updated=self.stat.updated,
        )
        self.pending.clear()
        self._undo.clear()

    def rollback(self) -> None:
        self.pending.clear()
        # flush 済みならセルを元の値に戻す
        for row, col, old in reversed(self._undo):
            self.table.write_cell(row, col, old)
        self._undo.clear()
        cp = self._checkpoint
        if cp is None:
            return
        self.index.rows = dict(cp.key_rows)
        self.next_row = cp.next_row
        self.stat.inserted = cp.inserted
        self.stat.updated = cp.updated

    def flush(self) -> int:
        """Write staged cells into the sheet; returns the number written.

        Overwritten values are remembered until the next checkpoint so that a
        failed save can still be rolled back.
        """
        for (row, col), value in sorted(self.pending.items()):
            self._undo.append((row, col, self.table.value(row, col)))
            self.table.write_cell(row, col, value)
        written = len(self.pending)
        self.pending.clear()
        return written


class UpsertWriter:
    """Fans each field record out to all destination sheets."""

    def __init__(self, destinations: Sequence[DestinationState]) -> None:
        self.destinations = list(destinations)

    def begin_table(self) -> None:
        for d in self.destinations:
            d.checkpoint()

    def upsert(self, record: FieldRecord) -> list[UpsertOutcome]:
        """Decide insert/update per destination and stage the record's fields.

        Raises:
            InvalidCompositeKeyError: record key is empty or #REF!
        """
        key = make_valid_key(record.agency_id, record.store_id)
        outcomes = []
        for d in self.destinations:
            row, inserted = d.target_row(key)
            d.stage(record, row)
            outcomes.append(UpsertOutcome(destination=d.name, row=row, inserted=inserted))
        return outcomes

    def commit_table(self) -> int:
        return sum(d.flush() for d in self.destinations)

    def abort_table(self) -> None:
        for d in self.destinations:
            d.rollback()

    @property
    def stats(self) -> list[DestinationStat]:
        return [d.stat for d in self.destinations]
