from __future__ import annotations

from dataclasses import dataclass, field

from .fields import DEFAULT_DISPLAY_NAMES, KEY_FIELDS, Field

"""Config dataclasses for the agency sync.

These are built by agency_sync.config.loader from config/sync.yml plus the
environment overrides, and passed explicitly into each workflow.
"""

DEFAULT_AUDIT_SHEET = "SyncLog"
DEFAULT_BLANK_STREAK_LIMIT = 10
DEFAULT_MAX_ROWS = 2000


@dataclass(frozen=True)
class SourceConfig:
    """Shape of the agency (source) workbooks."""
    sheet: str | None = None  # None -> first sheet
    header_row: int = 1
    blank_streak_limit: int = DEFAULT_BLANK_STREAK_LIMIT
    max_rows: int = DEFAULT_MAX_ROWS
    columns: dict[Field, str] = field(default_factory=lambda: dict(DEFAULT_DISPLAY_NAMES))
    # 既定では6列すべて必須
    required: frozenset[Field] = frozenset(Field)


@dataclass(frozen=True)
class DestinationConfig:
    """One destination sheet inside the master workbook."""
    sheet: str
    columns: dict[Field, str] = field(default_factory=lambda: dict(DEFAULT_DISPLAY_NAMES))
    required: frozenset[Field] = frozenset(KEY_FIELDS)


@dataclass(frozen=True)
class NotifyConfig:
    """Business-card request sheet watched by the notifier."""
    workbook: str | None = None
    sheet: str = "Requests"
    notified_column: str = "Notified"
    message_columns: tuple[str, ...] = ("Name", "Email", "Title", "Phone")
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class SyncConfig:
    """Root configuration object.

    Required for a sync run: root_folder, master_workbook, destinations.
    Optional: everything else (webhook_url absent -> notifier is a no-op).
    """
    root_folder: str | None
    master_workbook: str | None
    destinations: list[DestinationConfig]
    source_name_filter: str = ""
    audit_sheet: str = DEFAULT_AUDIT_SHEET
    source: SourceConfig = field(default_factory=SourceConfig)
    webhook_url: str | None = None
    notify: NotifyConfig = field(default_factory=NotifyConfig)
