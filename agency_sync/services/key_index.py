from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..models.fields import ColumnMap, Field

"""Composite key helpers and the destination key index builder.

Composite key: ``agencyId|storeId`` (both trimmed). A key part that is empty or
equals the broken-reference marker ``#REF!`` makes the key invalid.

The key index maps every composite key found in a destination sheet to its row
number, scanning rows 2..last top to bottom (a later duplicate overwrites an
earlier one), and records the last row holding any non-blank cell so that
appends go right below it.
"""

__all__ = [
    "KEY_SEPARATOR",
    "BROKEN_REF",
    "InvalidCompositeKeyError",
    "KeyIndex",
    "to_text",
    "make_key",
    "key_problem",
    "make_valid_key",
    "build_key_index",
]

KEY_SEPARATOR = "|"
BROKEN_REF = "#REF!"


class InvalidCompositeKeyError(ValueError):
    """Raised when a key part is empty or a broken reference."""


def to_text(value: Any) -> str:
    """Render a raw cell value the way it is displayed, trimmed.

    None / NaN -> "", integral float -> "1", bool -> TRUE / FALSE.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def make_key(agency_id: Any, store_id: Any) -> str:
    """Join the trimmed key parts with KEY_SEPARATOR (no validation)."""
    return f"{to_text(agency_id)}{KEY_SEPARATOR}{to_text(store_id)}"


def key_problem(agency_id: Any, store_id: Any) -> str | None:
    """Return why the key parts are invalid, or None when they are fine."""
    agency = to_text(agency_id)
    store = to_text(store_id)
    if not agency:
        return "missing agencyId"
    if not store:
        return "missing storeId"
    if agency == BROKEN_REF or store == BROKEN_REF:
        return f"broken reference in key ({agency}{KEY_SEPARATOR}{store})"
    return None


def make_valid_key(agency_id: Any, store_id: Any) -> str:
    """make_key() after validation.

    Raises:
        InvalidCompositeKeyError: when either part is empty or #REF!
    """
    problem = key_problem(agency_id, store_id)
    if problem is not None:
        raise InvalidCompositeKeyError(problem)
    return make_key(agency_id, store_id)


@dataclass
class KeyIndex:
    """Composite key -> destination row, plus the last used row (1 = header only)."""
    rows: dict[str, int] = field(default_factory=dict)
    last_data_row: int = 1

    def __contains__(self, key: object) -> bool:
        return key in self.rows

    def __len__(self) -> int:
        return len(self.rows)


def _cell(row: Sequence[Any], column: int) -> Any:
    return row[column - 1] if 0 < column <= len(row) else None


def build_key_index(rows: Sequence[Sequence[Any]], columns: ColumnMap) -> KeyIndex:
    """Scan a destination snapshot (rows[0] is the header row) into a KeyIndex.

    Rows whose agencyId or storeId is blank are not indexed but still count
    toward last_data_row when any of their cells is non-blank.
    """
    agency_col = columns[Field.AGENCY_ID]
    store_col = columns[Field.STORE_ID]
    index = KeyIndex()
    for row_number, row in enumerate(rows[1:], start=2):
        if any(to_text(v) for v in row):
            index.last_data_row = row_number
        agency = to_text(_cell(row, agency_col))
        store = to_text(_cell(row, store_col))
        if not agency or not store:
            continue
        index.rows[make_key(agency, store)] = row_number  # 後勝ち
    return index
