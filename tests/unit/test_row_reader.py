from __future__ import annotations

from agency_sync.models.fields import Field
from agency_sync.services.row_reader import DATA_START_ROW, extract_record, scan_source_rows

COLUMNS = {
    Field.AGENCY_ID: 1,
    Field.STORE_ID: 2,
    Field.TEMP_STORE_ID: 3,
    Field.STORE_NAME: 4,
    Field.TABLET_DEVICE_ID: 5,
    Field.TABLET_SN: 6,
}
HEADER = ["Agency ID", "Store ID", "Temp Store ID", "Store Name", "Tablet Device ID", "Tablet SN"]
NOTES = ["notes"]
BLANK = [None] * 6


def _sheet(*data_rows):
    return [HEADER, NOTES, *data_rows]


def test_data_start_row_is_three():
    assert DATA_START_ROW == 3


def test_extract_record_trims_and_stringifies():
    rec = extract_record([" A1 ", 42, None, "Acme  ", 1234.0, True], COLUMNS, row_number=3)
    assert rec.row_number == 3
    assert rec.values == {
        Field.AGENCY_ID: "A1",
        Field.STORE_ID: "42",
        Field.TEMP_STORE_ID: "",
        Field.STORE_NAME: "Acme",
        Field.TABLET_DEVICE_ID: "1234",
        Field.TABLET_SN: "TRUE",
    }
    assert not rec.is_blank


def test_extract_record_short_row_and_missing_columns():
    rec = extract_record(["A1"], {Field.AGENCY_ID: 1, Field.STORE_ID: 2}, row_number=7)
    assert rec.agency_id == "A1"
    assert rec.store_id == ""
    assert rec.get(Field.TABLET_SN) == ""


def test_scan_accepts_valid_rows_from_row_three():
    rows = _sheet(["A1", "S1", "", "One", "", "SN1"], ["A1", "S2", "", "Two", "", ""])
    scan = scan_source_rows(rows, COLUMNS)
    assert [r.row_number for r in scan.records] == [3, 4]
    assert scan.rejected == []
    assert scan.scanned_rows == 2
    assert not scan.stopped_early


def test_scan_ignores_header_and_notes_rows():
    rows = [["A0", "S0"], ["A0", "S0"], ["A1", "S1"]]
    scan = scan_source_rows(rows, COLUMNS)
    assert [r.store_id for r in scan.records] == ["S1"]


def test_scan_blank_streak_stops_before_valid_row():
    rows = _sheet(*([BLANK] * 12), ["A1", "S9", "", "Acme", "", "SN1"])
    scan = scan_source_rows(rows, COLUMNS)
    assert scan.records == []
    assert scan.stopped_early
    assert scan.scanned_rows == 10


def test_scan_blank_rows_below_limit_do_not_stop():
    rows = _sheet(*([BLANK] * 9), ["A1", "S9", "", "", "", ""])
    scan = scan_source_rows(rows, COLUMNS)
    assert [r.row_number for r in scan.records] == [12]


def test_scan_custom_blank_streak_limit():
    rows = _sheet(BLANK, BLANK, ["A1", "S1", "", "", "", ""])
    scan = scan_source_rows(rows, COLUMNS, blank_streak_limit=2)
    assert scan.records == []
    assert scan.stopped_early


def test_scan_rejects_invalid_keys_without_counting_blank():
    rows = _sheet(
        ["#REF!", "S1", "", "Broken", "", ""],
        ["", "S2", "", "No agency", "", ""],
        ["A1", "", "", "No store", "", ""],
        ["A1", "S4", "", "Good", "", ""],
    )
    scan = scan_source_rows(rows, COLUMNS, blank_streak_limit=2)
    assert [r.row_number for r in scan.rejected] == [3, 4, 5]
    assert "broken reference" in scan.rejected[0].reason
    assert scan.rejected[1].reason == "missing agencyId"
    assert scan.rejected[2].reason == "missing storeId"
    assert [r.row_number for r in scan.records] == [6]


def test_scan_rejected_row_resets_blank_streak():
    rows = _sheet(BLANK, ["#REF!", "S1", "", "", "", ""], BLANK, ["A1", "S1", "", "", "", ""])
    scan = scan_source_rows(rows, COLUMNS, blank_streak_limit=2)
    assert [r.row_number for r in scan.records] == [6]


def test_scan_row_cap():
    data = [["A1", f"S{i}", "", "", "", ""] for i in range(30)]
    scan = scan_source_rows(_sheet(*data), COLUMNS, max_rows=25)
    assert len(scan.records) == 25
    assert scan.records[-1].row_number == 27
    assert scan.scanned_rows == 25


def test_scan_empty_table():
    assert scan_source_rows([], COLUMNS).records == []
    assert scan_source_rows([HEADER], COLUMNS).scanned_rows == 0
