from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""AuditRecord model for the append-only audit sheet.

Each record becomes one row (timestamp, context, message) in the audit sheet of
the master workbook. The same record serializes to a JSON line when the sheet
cannot be written and the record falls back to the console logger.
"""

__all__ = [
    "AuditRecord",
    "AUDIT_HEADER",
]

AUDIT_HEADER = ["Timestamp", "Context", "Message"]


@dataclass(frozen=True)
class AuditRecord:
    """Structured audit entry.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        context: where it happened, e.g. ``sync:agency_north.xlsx`` or ``sync:run``
        message: human readable error / event description
    """
    timestamp: str  # ISO8601 UTC
    context: str
    message: str

    @staticmethod
    def create(context: str, message: str) -> AuditRecord:
        """Create a new AuditRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")
        return AuditRecord(timestamp=ts, context=context, message=message)

    def as_row(self) -> list[str]:
        """Cell values in AUDIT_HEADER order."""
        return [self.timestamp, self.context, self.message]

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
