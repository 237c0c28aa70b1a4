from __future__ import annotations

from agency_sync.models.fields import DEFAULT_DISPLAY_NAMES, KEY_FIELDS, Field
from agency_sync.services.headers import (
    MissingRequiredHeaderError,
    find_missing_headers,
    resolve_headers,
)

FULL_HEADER = ["Agency ID", "Store ID", "Temp Store ID", "Store Name", "Tablet Device ID", "Tablet SN"]


def test_resolve_all_present_returns_complete_map():
    columns = resolve_headers(FULL_HEADER, DEFAULT_DISPLAY_NAMES, required=set(Field))
    assert columns == {
        Field.AGENCY_ID: 1,
        Field.STORE_ID: 2,
        Field.TEMP_STORE_ID: 3,
        Field.STORE_NAME: 4,
        Field.TABLET_DEVICE_ID: 5,
        Field.TABLET_SN: 6,
    }


def test_resolve_missing_required_returns_none_even_if_optional_resolve():
    header = ["Store Name", "Tablet SN", "Agency ID", "Temp Store ID"]  # Store ID 欠落
    assert resolve_headers(header, DEFAULT_DISPLAY_NAMES, required=KEY_FIELDS) is None


def test_resolve_optional_missing_is_omitted():
    header = ["Store ID", "Agency ID", "Store Name", "Tablet SN"]
    columns = resolve_headers(header, DEFAULT_DISPLAY_NAMES, required=KEY_FIELDS)
    assert columns is not None
    assert Field.TABLET_DEVICE_ID not in columns
    assert Field.TEMP_STORE_ID not in columns
    assert columns[Field.TABLET_SN] == 4


def test_resolve_trims_header_cells_and_ignores_blanks():
    header = [None, "  Agency ID ", "", "Store ID\n"]
    columns = resolve_headers(header, DEFAULT_DISPLAY_NAMES, required=KEY_FIELDS)
    assert columns == {Field.AGENCY_ID: 2, Field.STORE_ID: 4}


def test_resolve_duplicate_header_first_occurrence_wins():
    header = ["Agency ID", "Store ID", "Agency ID"]
    columns = resolve_headers(header, DEFAULT_DISPLAY_NAMES, required=KEY_FIELDS)
    assert columns[Field.AGENCY_ID] == 1


def test_resolve_custom_display_names():
    names = dict(DEFAULT_DISPLAY_NAMES)
    names[Field.AGENCY_ID] = "代理店ID"
    columns = resolve_headers(["代理店ID", "Store ID"], names, required=KEY_FIELDS)
    assert columns == {Field.AGENCY_ID: 1, Field.STORE_ID: 2}


def test_find_missing_headers_lists_display_names():
    missing = find_missing_headers(["Store Name"], DEFAULT_DISPLAY_NAMES, KEY_FIELDS)
    assert missing == ["Agency ID", "Store ID"]


def test_find_missing_headers_empty_header_row():
    assert find_missing_headers([], DEFAULT_DISPLAY_NAMES, ()) == []
    assert resolve_headers([], DEFAULT_DISPLAY_NAMES, ()) == {}


def test_missing_required_header_error_message():
    err = MissingRequiredHeaderError("agency_north.xlsx", ["Store ID"])
    assert err.table == "agency_north.xlsx"
    assert err.missing == ["Store ID"]
    assert "Store ID" in str(err)
