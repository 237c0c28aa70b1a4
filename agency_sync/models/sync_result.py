from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

"""Run result models for the agency sync.

TableStat is the per-table line of the result; DestinationStat aggregates the
insert/update decisions for one destination sheet; SyncResult is what
run_sync() hands back to the CLI for the SUMMARY line and exit code.
"""


@dataclass(frozen=True)
class TableStat:
    """Per-table processing statistics."""
    table_name: str
    status: str  # TableStatus.value
    records: int
    rejected_rows: int
    inserted: int
    updated: int
    elapsed_seconds: float
    error: str | None = None


@dataclass
class DestinationStat:
    """Insert/update counts for one destination sheet."""
    sheet_name: str
    inserted: int = 0
    updated: int = 0


@dataclass(frozen=True)
class SyncResult:
    """Aggregated result of a sync run."""
    total_tables: int
    done_tables: int
    failed_tables: int  # header_invalid + done_with_error
    filtered_tables: int
    header_invalid_tables: int
    inserted_rows: int
    updated_rows: int
    rejected_rows: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    table_stats: list[TableStat] = field(default_factory=list)
    destination_stats: list[DestinationStat] = field(default_factory=list)
    aborted: bool = False  # run-level (configuration / destination) failure
    error: str | None = None

    @staticmethod
    def aborted_run(start_time: datetime, end_time: datetime, error: str) -> SyncResult:
        """Result for a run stopped before any table was processed."""
        return SyncResult(
            total_tables=0,
            done_tables=0,
            failed_tables=0,
            filtered_tables=0,
            header_invalid_tables=0,
            inserted_rows=0,
            updated_rows=0,
            rejected_rows=0,
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - start_time).total_seconds(),
            aborted=True,
            error=error,
        )
