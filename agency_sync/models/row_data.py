from __future__ import annotations

from dataclasses import dataclass

from .fields import Field

"""Row-level models produced by the source row scanner.

FieldRecord is the fixed-shape record extracted from one agency sheet row.
RejectedRow carries the reason a non-blank row was dropped.
"""

__all__ = [
    "FieldRecord",
    "RejectedRow",
]


@dataclass(frozen=True)
class FieldRecord:
    """Trimmed string values of the six tracked fields for one source row.

    The row_number refers to the sheet row (3rd row = 1st data row).
    Every field is present; blank cells are stored as "".
    """
    row_number: int
    values: dict[Field, str]

    def get(self, field: Field) -> str:
        return self.values.get(field, "")

    @property
    def is_blank(self) -> bool:
        return all(v == "" for v in self.values.values())

    @property
    def agency_id(self) -> str:
        return self.get(Field.AGENCY_ID)

    @property
    def store_id(self) -> str:
        return self.get(Field.STORE_ID)


@dataclass(frozen=True)
class RejectedRow:
    """A non-blank source row skipped because its composite key is invalid."""
    row_number: int
    reason: str
