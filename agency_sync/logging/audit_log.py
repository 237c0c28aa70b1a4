from __future__ import annotations

import logging

from ..excel.workbook import WorkbookStore
from ..models.audit_record import AUDIT_HEADER, AuditRecord

"""Audit sink: buffered, append-only (timestamp, context, message) rows.

Records are kept in memory and appended to the audit sheet of a workbook on
flush(); the sheet is created with a header row when missing. A failure while
writing the sheet is never raised: the records go to the console logger as JSON
lines instead.
"""

__all__ = [
    "AuditRecord",
    "AuditLog",
]

logger = logging.getLogger(__name__)


class AuditLog:
    """In-memory buffer of audit records, flushed into ``sheet_name``.

    With store=None (workbook could not be opened) flush() only logs.
    Not thread safe (serial execution).
    """

    def __init__(self, store: WorkbookStore | None, sheet_name: str) -> None:
        self.store = store
        self.sheet_name = sheet_name
        self._records: list[AuditRecord] = []

    def append(self, context: str, message: str) -> AuditRecord:
        record = AuditRecord.create(context, message)
        self._records.append(record)
        return record

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    @property
    def records(self) -> list[AuditRecord]:
        return list(self._records)

    def flush(self, save: bool = True) -> int:
        """Append buffered records to the audit sheet; returns how many were written.

        save=False leaves the workbook unsaved (the caller saves it together with
        other changes).
        """
        if not self._records:
            return 0
        pending = list(self._records)
        self._records.clear()
        if self.store is None:
            self._fallback(pending, "no audit workbook")
            return 0
        try:
            table = self.store.ensure_table(self.sheet_name, AUDIT_HEADER)
            for r in pending:
                table.append_row(r.as_row())
            if save:
                self.store.save()
        except Exception as e:
            self._fallback(pending, str(e))
            return 0
        return len(pending)

    @staticmethod
    def _fallback(records: list[AuditRecord], reason: str) -> None:
        logger.warning("audit sheet write failed (%s); %d records follow", reason, len(records))
        for r in records:
            logger.warning("audit %s", r.to_json_line())
