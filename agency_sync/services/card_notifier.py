from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..excel.workbook import MissingDestinationSheetError, WorkbookNotFoundError, WorkbookStore
from ..logging.audit_log import AuditLog
from ..models.config_models import SyncConfig
from ..webhook.client import post_webhook
from .headers import header_positions

"""Business-card request notifier.

Every request row that has content and an empty "Notified" cell is posted to
the webhook. A 2xx answer stamps the cell with the UTC time; anything else
leaves it empty so the row goes out again on the next run.
Without a webhook URL the whole workflow is a silent no-op.
"""

__all__ = [
    "NotifyResult",
    "build_request_message",
    "notify_card_requests",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotifyResult:
    skipped: bool = False     # webhook URL not configured
    pending: int = 0          # rows that needed a notification
    notified: int = 0
    failed: int = 0
    error: str | None = None  # request sheet could not be used


def build_request_message(row_number: int, values: dict[str, str]) -> tuple[str, list[dict[str, Any]]]:
    """Text + Slack style blocks for one request row (blank values left out)."""
    filled = {k: v for k, v in values.items() if v}
    title = filled.get("Name") or f"row {row_number}"
    text = f"New business card request: {title}"
    lines = [f"*{k}:* {v}" for k, v in filled.items()]
    blocks = [
        {"type": "header", "text": {"type": "plain_text", "text": "New business card request"}},
        {"type": "section", "text": {"type": "mrkdwn", "text": "\n".join(lines) or title}},
    ]
    return text, blocks


def _timestamp(now: datetime | None) -> str:
    return (now or datetime.now(UTC)).isoformat(timespec="seconds").replace("+00:00", "Z")


def notify_card_requests(config: SyncConfig, *, now: datetime | None = None) -> NotifyResult:
    """Post every un-notified request row and mark the delivered ones."""
    url = config.webhook_url
    if not url:
        logger.debug("notify: webhook URL not configured, nothing to do")
        return NotifyResult(skipped=True)

    ncfg = config.notify
    if not ncfg.workbook:
        logger.error("notify: request workbook is not configured (notify.workbook)")
        return NotifyResult(error="request workbook not configured")

    try:
        store = WorkbookStore.open(Path(ncfg.workbook))
        table = store.table(ncfg.sheet)
    except (WorkbookNotFoundError, MissingDestinationSheetError) as e:
        logger.error("notify: %s", e)
        return NotifyResult(error=str(e))

    audit = AuditLog(store, config.audit_sheet)
    rows = table.snapshot()
    positions = header_positions(rows[0] if rows else [])
    notified_col = positions.get(ncfg.notified_column)
    if notified_col is None:
        msg = f"sheet '{ncfg.sheet}' has no '{ncfg.notified_column}' column"
        logger.error("notify: %s", msg)
        audit.append("notify", msg)
        audit.flush()
        return NotifyResult(error=msg)
    message_cols = {name: positions[name] for name in ncfg.message_columns if name in positions}

    pending = notified = failed = 0
    for row_number in range(2, len(rows) + 1):
        if table.display_value(row_number, notified_col):
            continue
        values = {name: table.display_value(row_number, col) for name, col in message_cols.items()}
        if not any(values.values()):
            continue
        pending += 1
        text, blocks = build_request_message(row_number, values)
        if post_webhook(url, text, blocks, timeout=ncfg.timeout_seconds):
            table.write_cell(row_number, notified_col, _timestamp(now))
            notified += 1
        else:
            failed += 1
            audit.append("notify", f"row {row_number} not delivered")

    if notified:
        try:
            store.save()
        except Exception as e:
            logger.error("notify: failed to save %s: %s", store.path.name, e)
            return NotifyResult(pending=pending, notified=0, failed=pending, error=str(e))
    audit.flush()
    logger.info("notify: pending=%d notified=%d failed=%d", pending, notified, failed)
    return NotifyResult(pending=pending, notified=notified, failed=failed)
