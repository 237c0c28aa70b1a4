from __future__ import annotations

import json
import re

from agency_sync.models.audit_record import AUDIT_HEADER, AuditRecord

"""Audit record contract: sheet columns and the console JSON line."""

TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")


def test_audit_sheet_columns():
    assert AUDIT_HEADER == ["Timestamp", "Context", "Message"]


def test_audit_record_json_line():
    rec = AuditRecord.create("sync:Agency North.xlsx", "row 7 skipped: missing agencyId")
    data = json.loads(rec.to_json_line())
    assert list(data) == ["timestamp", "context", "message"]
    assert TIMESTAMP_PATTERN.match(data["timestamp"])
    assert data["context"] == "sync:Agency North.xlsx"
    assert rec.as_row() == [data["timestamp"], data["context"], data["message"]]
