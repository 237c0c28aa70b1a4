from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

"""SourceTable domain model and TableStatus enum.

SourceTable is the processing context for one agency workbook found under the
root folder, tracking it from discovery through completion.
"""


class TableStatus(Enum):
    """Status of a source table during a sync run.

    State transitions:
        discovered → filtered_out                 (name does not match the filter)
        discovered → header_invalid               (required source column missing)
        discovered → processing → done
        processing → done_with_error              (exception; the run moves on)

    There is no retry state: a failed table is picked up again on the next run.
    """
    DISCOVERED = "discovered"
    FILTERED_OUT = "filtered_out"
    HEADER_INVALID = "header_invalid"
    PROCESSING = "processing"
    DONE = "done"
    DONE_WITH_ERROR = "done_with_error"

    @property
    def is_failure(self) -> bool:
        return self in (TableStatus.HEADER_INVALID, TableStatus.DONE_WITH_ERROR)


@dataclass(frozen=True)
class SourceTable:
    """Processing context for a single agency workbook."""
    path: Path                          # workbook path (table identity)
    name: str                           # display name used by the name filter
    status: TableStatus = TableStatus.DISCOVERED
    start_time: datetime | None = None
    end_time: datetime | None = None
    records: int = 0                    # accepted rows
    rejected_rows: int = 0              # rows with an invalid composite key
    inserted: int = 0                   # new destination rows (all destinations)
    updated: int = 0                    # existing destination rows touched
    error: str | None = None            # failure reason summary
