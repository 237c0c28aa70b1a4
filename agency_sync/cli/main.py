from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config, require_root_folder
from ..logging.init import log_summary, set_debug, setup_logging
from ..models.config_models import SyncConfig
from ..services.card_notifier import notify_card_requests
from ..services.orchestrator import run_sync
from ..services.summary import render_summary_line

"""CLI entrypoint.

    python -m agency_sync.cli [sync|notify|inspect] [--config PATH] [--debug]

sync     agency workbooks -> master destinations (default)
notify   post pending business-card requests to the webhook
inspect  print each agency workbook's header and first data rows, then exit

Exit codes: 0 everything done, 2 some tables failed, 1 fatal (config / aborted run).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values win over the process environment."""
    try:
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
    except Exception as e:  # pragma: no cover
        print(f"WARNING: failed to load .env via python-dotenv: {e}")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="agency-sync", description="Agency workbooks -> master workbook sync")
    p.add_argument("command", nargs="?", default="sync", choices=["sync", "notify", "inspect"])
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config file")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _inspect_data(cfg: SyncConfig) -> int:
    from ..excel.reader import preview_table
    from ..services.collector import CollectorError, collect_tables, matches_name_filter
    from ..services.headers import find_missing_headers

    try:
        paths = collect_tables(require_root_folder(cfg))
    except (ConfigError, CollectorError) as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not paths:
        print("inspect: no workbooks")
        return EXIT_SUCCESS_ALL
    for path in paths:
        marker = "" if matches_name_filter(path, cfg.source_name_filter) else " (filtered out)"
        print(f"TABLE: {path}{marker}")
        try:
            preview = preview_table(path, cfg.source.sheet)
        except Exception as e:  # pragma: no cover
            print(f"  read_error: {e}")
            continue
        rows = preview["rows"]
        missing = find_missing_headers(preview["header"], cfg.source.columns, cfg.source.required)
        print(f"  header={preview['header']}")
        print(f"  missing_required={missing} data_rows={preview['row_count']}")
        print("  sample_rows=", rows)
    return EXIT_SUCCESS_ALL


def _run_notify(cfg: SyncConfig) -> int:
    logger = setup_logging()
    result = notify_card_requests(cfg)
    if result.skipped:
        return EXIT_SUCCESS_ALL
    if result.error is not None:
        return EXIT_FATAL
    log_summary(f"notify pending={result.pending} notified={result.notified} failed={result.failed}")
    if result.failed:
        logger.info("notify: %d rows stay un-notified until the next run", result.failed)
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # [] を渡されたときに sys.argv (pytest の引数) を読まないよう None のみ判定
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(logger)

    try:
        cfg = load_config(args.config, env=os.environ)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "inspect":
        return _inspect_data(cfg)
    if args.command == "notify":
        return _run_notify(cfg)

    result = run_sync(cfg)
    if result.aborted:
        return EXIT_FATAL

    log_summary(render_summary_line(result))

    if result.failed_tables > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL
