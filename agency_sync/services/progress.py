from __future__ import annotations

import sys
from collections import Counter
from pathlib import Path
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.source_table import TableStatus

"""Progress display over source tables with tqdm (TTY only).

In non-TTY environments (cron, CI) the bar is disabled so logs stay free of
ANSI control sequences; the SUMMARY line is printed either way.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """One bar for the whole run, one tick per source table.

    The postfix shows running done / failed counts; filtered tables only tick.
    """

    def __init__(self, total_tables: int, *, description: str = "Syncing tables") -> None:
        self.total_tables = total_tables
        self.description = description
        self.current_table = 0
        self.statuses: Counter[TableStatus] = Counter()

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None = None
        if self.enabled:
            self.pbar = tqdm(
                total=total_tables,
                desc=description,
                unit="table",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def start_table(self, path: Path) -> None:
        self.current_table += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({path.name})")

    def finish_table(self, status: TableStatus) -> None:
        self.statuses[status] += 1
        if self.pbar is None:
            return
        failed = sum(n for s, n in self.statuses.items() if s.is_failure)
        self.pbar.set_postfix(done=self.statuses[TableStatus.DONE], failed=failed)
        self.pbar.update(1)
        self.pbar.set_description(self.description)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
