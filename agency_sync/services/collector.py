from __future__ import annotations

import logging
from pathlib import Path

"""Source collector: find agency workbooks under the root folder.

The walk is recursive and depth-first, sorted per directory so runs are
repeatable. Directories are tracked by resolved path so a symlink pointing back
up the tree is visited only once.
"""

__all__ = [
    "CollectorError",
    "WORKBOOK_SUFFIXES",
    "collect_tables",
    "matches_name_filter",
]

logger = logging.getLogger(__name__)

WORKBOOK_SUFFIXES = frozenset({".xlsx", ".xlsm"})
LOCK_FILE_PREFIX = "~$"  # Office のロックファイル


class CollectorError(Exception):
    """Raised when the root folder cannot be walked."""


def _is_workbook(path: Path) -> bool:
    return (
        path.is_file()
        and path.suffix.lower() in WORKBOOK_SUFFIXES
        and not path.name.startswith(LOCK_FILE_PREFIX)
    )


def collect_tables(root: Path) -> list[Path]:
    """Return every workbook beneath root (any depth) as a flat list.

    Raises:
        CollectorError: root does not exist, is not a directory or can't be read
    """
    if not root.exists():
        raise CollectorError(f"Root folder not found: {root}")
    if not root.is_dir():
        raise CollectorError(f"Root folder is not a directory: {root}")

    found: list[Path] = []
    visited: set[Path] = set()

    def _walk(directory: Path) -> None:
        resolved = directory.resolve()
        if resolved in visited:
            logger.debug("collector: already visited %s (cycle)", directory)
            return
        visited.add(resolved)
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            if directory == root:
                raise CollectorError(f"Error reading root folder {root}: {e}") from e
            logger.warning("collector: cannot read %s: %s", directory, e)
            return
        for entry in entries:
            if entry.is_dir():
                _walk(entry)
            elif _is_workbook(entry):
                found.append(entry)

    _walk(root)
    logger.debug("collector: %d workbooks under %s", len(found), root)
    return found


def matches_name_filter(path: Path, name_filter: str) -> bool:
    """Substring match of name_filter against the workbook display name (stem).

    An empty filter matches everything.
    """
    if not name_filter:
        return True
    return name_filter in path.stem
