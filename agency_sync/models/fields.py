from __future__ import annotations

from enum import Enum

"""Logical field schema shared by source and destination tables.

Display names (the header text found in row 1) are configurable per table shape;
the logical names below are fixed and are what the rest of the code works with.
"""

__all__ = [
    "Field",
    "ColumnMap",
    "KEY_FIELDS",
    "DEFAULT_DISPLAY_NAMES",
    "field_from_name",
]


class Field(Enum):
    """Logical columns carried from an agency sheet into the master."""
    STORE_ID = "storeId"
    AGENCY_ID = "agencyId"
    TEMP_STORE_ID = "tempStoreId"
    STORE_NAME = "storeName"
    TABLET_DEVICE_ID = "tabletDeviceId"
    TABLET_SN = "tabletSn"


# Field -> 1-based column index (one table snapshot)
ColumnMap = dict[Field, int]

# 複合キーの構成順 (agencyId|storeId)
KEY_FIELDS: tuple[Field, Field] = (Field.AGENCY_ID, Field.STORE_ID)

DEFAULT_DISPLAY_NAMES: dict[Field, str] = {
    Field.STORE_ID: "Store ID",
    Field.AGENCY_ID: "Agency ID",
    Field.TEMP_STORE_ID: "Temp Store ID",
    Field.STORE_NAME: "Store Name",
    Field.TABLET_DEVICE_ID: "Tablet Device ID",
    Field.TABLET_SN: "Tablet SN",
}


def field_from_name(name: str) -> Field:
    """Look up a Field by its logical name (``storeId``) or enum name (``STORE_ID``).

    Raises:
        ValueError: if the name matches no field
    """
    for f in Field:
        if name == f.value or name.upper() == f.name:
            return f
    raise ValueError(f"unknown field: {name!r}")
