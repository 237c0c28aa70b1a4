from __future__ import annotations

from ..models.sync_result import SyncResult

"""SUMMARY line rendering for a sync run."""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.2f}".rstrip("0").rstrip(".")


def render_summary_line(result: SyncResult) -> str:
    """Render the SUMMARY line.

    Format:
    SUMMARY tables={processed}/{total} done={d} failed={f} filtered={x}
    header_invalid={h} inserted={i} updated={u} rejected={r} elapsed_sec={s}

    ``processed`` counts tables that passed the name filter.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = SyncResult(
        ...     total_tables=3, done_tables=2, failed_tables=0, filtered_tables=1,
        ...     header_invalid_tables=0, inserted_rows=5, updated_rows=1, rejected_rows=0,
        ...     start_time=start, end_time=end, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY tables=2/3 done=2 failed=0 filtered=1 header_invalid=0 inserted=5 updated=1 rejected=0 elapsed_sec=2'
    """
    processed = result.total_tables - result.filtered_tables
    return (
        f"SUMMARY tables={processed}/{result.total_tables} "
        f"done={result.done_tables} "
        f"failed={result.failed_tables} "
        f"filtered={result.filtered_tables} "
        f"header_invalid={result.header_invalid_tables} "
        f"inserted={result.inserted_rows} "
        f"updated={result.updated_rows} "
        f"rejected={result.rejected_rows} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
