"""Domain models for the agency sync.

This package contains the dataclasses and enums shared by the config loader,
the sync services and the CLI.
"""

from .audit_record import AuditRecord
from .config_models import DestinationConfig, NotifyConfig, SourceConfig, SyncConfig
from .fields import DEFAULT_DISPLAY_NAMES, KEY_FIELDS, ColumnMap, Field, field_from_name
from .row_data import FieldRecord, RejectedRow
from .source_table import SourceTable, TableStatus
from .sync_result import DestinationStat, SyncResult, TableStat

__all__ = [
    # Configuration models
    "DestinationConfig",
    "NotifyConfig",
    "SourceConfig",
    "SyncConfig",
    # Schema
    "ColumnMap",
    "DEFAULT_DISPLAY_NAMES",
    "Field",
    "KEY_FIELDS",
    "field_from_name",
    # Processing models
    "AuditRecord",
    "FieldRecord",
    "RejectedRow",
    "SourceTable",
    "TableStatus",
    # Results
    "DestinationStat",
    "SyncResult",
    "TableStat",
]
