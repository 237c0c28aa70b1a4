from __future__ import annotations

import logging
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

from ..config.loader import ConfigError, require_master_workbook, require_root_folder
from ..excel.reader import read_table_snapshot
from ..excel.workbook import MissingDestinationSheetError, WorkbookNotFoundError, WorkbookStore
from ..logging.audit_log import AuditLog
from ..models.config_models import SyncConfig
from ..models.source_table import SourceTable, TableStatus
from ..models.sync_result import SyncResult, TableStat
from .collector import CollectorError, collect_tables, matches_name_filter
from .headers import MissingRequiredHeaderError, find_missing_headers, resolve_headers
from .progress import ProgressTracker
from .row_reader import scan_source_rows
from .upsert import DestinationState, UpsertWriter

"""Agency -> master sync orchestration.

Flow per run:
1. Resolve root folder / master workbook (missing -> run aborted)
2. Open every destination sheet, resolve its header, pre-build its key index
3. Collect workbooks under the root folder (the master / request workbook excluded)
4. Per workbook: name filter -> header check -> row scan -> upsert -> flush + save
5. Flush the audit sheet and return SyncResult

A table-level failure only affects that table; its staged writes are dropped.
Run-level failures are logged and returned as SyncResult(aborted=True), never raised.
"""

logger = logging.getLogger(__name__)

RUN_CONTEXT = "sync:run"


class SyncAbortedError(Exception):
    """Run-level failure: nothing can be synced in this invocation."""


def _open_destinations(store: WorkbookStore, config: SyncConfig, audit: AuditLog) -> UpsertWriter:
    """DestinationState for every usable destination sheet.

    A destination whose key headers are missing is skipped (audited).

    Raises:
        MissingDestinationSheetError: a configured sheet does not exist
        SyncAbortedError: no destination is usable
    """
    states: list[DestinationState] = []
    for dest in config.destinations:
        table = store.table(dest.sheet)
        try:
            states.append(DestinationState.open(table, dest))
        except MissingRequiredHeaderError as e:
            logger.error("destination: %s", e)
            audit.append(f"sync:destination:{dest.sheet}", str(e))
    if not states:
        raise SyncAbortedError("no usable destination sheet")
    return UpsertWriter(states)


def _table_context(table: SourceTable) -> str:
    return f"sync:{table.path.name}"


def _exclude_own_workbooks(paths: list[Path], config: SyncConfig, master_path: Path) -> list[Path]:
    """Drop the master (and card request) workbook when it lives under the root folder."""
    own = {master_path.resolve()}
    if config.notify.workbook:
        own.add(Path(config.notify.workbook).resolve())
    kept = []
    for path in paths:
        if path.resolve() in own:
            logger.debug("table=%s skipped: destination workbook", path.name)
            continue
        kept.append(path)
    return kept


def process_table(
    path: Path,
    config: SyncConfig,
    writer: UpsertWriter,
    store: WorkbookStore,
    audit: AuditLog,
) -> SourceTable:
    """Run one agency workbook through the state machine and return its final state."""
    table = SourceTable(path=path, name=path.stem, start_time=datetime.now(UTC))

    if not matches_name_filter(path, config.source_name_filter):
        logger.debug("table=%s filtered out (filter=%r)", path.name, config.source_name_filter)
        return replace(table, status=TableStatus.FILTERED_OUT, end_time=datetime.now(UTC))

    try:
        rows = read_table_snapshot(path, config.source.sheet)
    except Exception as e:
        logger.error("table=%s read failed: %s", path.name, e)
        audit.append(_table_context(table), f"read failed: {e}")
        return replace(table, status=TableStatus.DONE_WITH_ERROR, end_time=datetime.now(UTC), error=str(e))

    src = config.source
    header = rows[src.header_row - 1] if len(rows) >= src.header_row else []
    columns = resolve_headers(header, src.columns, src.required)
    if columns is None:
        err = MissingRequiredHeaderError(path.name, find_missing_headers(header, src.columns, src.required))
        logger.warning("table=%s %s", path.name, err)
        audit.append(_table_context(table), str(err))
        return replace(table, status=TableStatus.HEADER_INVALID, end_time=datetime.now(UTC), error=str(err))

    table = replace(table, status=TableStatus.PROCESSING)
    before = {s.sheet_name: (s.inserted, s.updated) for s in writer.stats}
    writer.begin_table()
    try:
        scan = scan_source_rows(
            rows,
            columns,
            blank_streak_limit=src.blank_streak_limit,
            max_rows=src.max_rows,
        )
        for rejected in scan.rejected:
            logger.debug("table=%s row=%d rejected: %s", path.name, rejected.row_number, rejected.reason)
            audit.append(_table_context(table), f"row {rejected.row_number} skipped: {rejected.reason}")
        for record in scan.records:
            writer.upsert(record)
        inserted = sum(s.inserted - before[s.sheet_name][0] for s in writer.stats)
        updated = sum(s.updated - before[s.sheet_name][1] for s in writer.stats)
        written = writer.commit_table()
        store.save()
    except Exception as e:
        writer.abort_table()
        logger.error("table=%s failed: %s", path.name, e)
        audit.append(_table_context(table), f"processing failed: {e}")
        return replace(
            table,
            status=TableStatus.DONE_WITH_ERROR,
            end_time=datetime.now(UTC),
            error=str(e),
        )

    logger.debug(
        "table=%s records=%d rejected=%d inserted=%d updated=%d cells=%d stopped_early=%s",
        path.name,
        len(scan.records),
        len(scan.rejected),
        inserted,
        updated,
        written,
        scan.stopped_early,
    )
    return replace(
        table,
        status=TableStatus.DONE,
        end_time=datetime.now(UTC),
        records=len(scan.records),
        rejected_rows=len(scan.rejected),
        inserted=inserted,
        updated=updated,
    )


def _abort(start_time: datetime, error: Exception, audit: AuditLog | None) -> SyncResult:
    logger.error("sync aborted: %s", error)
    if audit is not None:
        audit.append(RUN_CONTEXT, f"aborted: {error}")
        audit.flush()
    return SyncResult.aborted_run(start_time, datetime.now(UTC), str(error))


def run_sync(config: SyncConfig) -> SyncResult:
    """Synchronize every matching agency workbook into the master destinations.

    Returns:
        SyncResult; ``aborted`` is set for configuration / destination failures
    """
    start_time = datetime.now(UTC)
    audit: AuditLog | None = None

    try:
        root = require_root_folder(config)
        master_path = require_master_workbook(config)
        store = WorkbookStore.open(master_path)
    except (ConfigError, WorkbookNotFoundError) as e:
        return _abort(start_time, e, AuditLog(None, config.audit_sheet))

    audit = AuditLog(store, config.audit_sheet)
    try:
        writer = _open_destinations(store, config, audit)
        paths = _exclude_own_workbooks(collect_tables(root), config, master_path)
    except (MissingDestinationSheetError, SyncAbortedError, CollectorError) as e:
        return _abort(start_time, e, audit)

    logger.info("sync: %d workbooks under %s", len(paths), root)

    table_stats: list[TableStat] = []
    rejected_total = 0

    with ProgressTracker(len(paths), description="Syncing tables") as progress:
        for path in paths:
            progress.start_table(path)
            table = process_table(path, config, writer, store, audit)
            rejected_total += table.rejected_rows
            elapsed = (
                (table.end_time - table.start_time).total_seconds()
                if table.start_time and table.end_time
                else 0.0
            )
            table_stats.append(
                TableStat(
                    table_name=path.name,
                    status=table.status.value,
                    records=table.records,
                    rejected_rows=table.rejected_rows,
                    inserted=table.inserted,
                    updated=table.updated,
                    elapsed_seconds=elapsed,
                    error=table.error,
                )
            )
            progress.finish_table(table.status)
    counts = progress.statuses

    # 監査ログは最後に一括書き出し (失敗しても run は止めない)
    audit.flush()

    for stat in writer.stats:
        logger.info("destination=%s inserted=%d updated=%d", stat.sheet_name, stat.inserted, stat.updated)

    end_time = datetime.now(UTC)
    return SyncResult(
        total_tables=len(paths),
        done_tables=counts[TableStatus.DONE],
        failed_tables=sum(n for s, n in counts.items() if s.is_failure),
        filtered_tables=counts[TableStatus.FILTERED_OUT],
        header_invalid_tables=counts[TableStatus.HEADER_INVALID],
        inserted_rows=sum(s.inserted for s in writer.stats),
        updated_rows=sum(s.updated for s in writer.stats),
        rejected_rows=rejected_total,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        table_stats=table_stats,
        destination_stats=writer.stats,
    )
