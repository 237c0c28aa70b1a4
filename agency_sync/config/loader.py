from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_AUDIT_SHEET,
    DEFAULT_BLANK_STREAK_LIMIT,
    DEFAULT_MAX_ROWS,
    DestinationConfig,
    NotifyConfig,
    SourceConfig,
    SyncConfig,
)
from ..models.fields import DEFAULT_DISPLAY_NAMES, KEY_FIELDS, Field, field_from_name

"""Config loader.

Responsibilities:
- Load YAML (default config/sync.yml)
- Validate against the packaged JSON schema (config_schema.json)
- Apply defaults and environment overrides (environment wins over YAML):
    ROOT_FOLDER_ID  -> root_folder
    MASTER_WORKBOOK -> master_workbook
    WEBHOOK_URL     -> webhook_url
- Build the SyncConfig dataclass tree handed to every workflow
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/sync.yml")

ENV_OVERRIDES = {
    "root_folder": "ROOT_FOLDER_ID",
    "master_workbook": "MASTER_WORKBOOK",
    "webhook_url": "WEBHOOK_URL",
}


class ConfigError(Exception):
    pass


class MissingConfigurationError(ConfigError):
    """A setting required by the requested workflow is absent."""


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing / not JSON, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _columns(raw: Mapping[str, str] | None, base: Mapping[Field, str]) -> dict[Field, str]:
    merged = dict(base)
    for name, display in (raw or {}).items():
        merged[field_from_name(name)] = display
    return merged


def _env_value(name: str, env: Mapping[str, str]) -> str | None:
    val = env.get(name)
    if val is None or not val.strip():
        return None
    return val.strip()


def load_config(path: Path = DEFAULT_CONFIG_PATH, env: Mapping[str, str] | None = None) -> SyncConfig:
    """Load, validate and resolve the sync configuration.

    Args:
        path: YAML config file
        env: environment mapping for overrides (default: os.environ)
    """
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)

    env = os.environ if env is None else env
    resolved: dict[str, str | None] = {}
    for key, env_name in ENV_OVERRIDES.items():
        # .env / 環境変数を最優先
        resolved[key] = _env_value(env_name, env) or data.get(key) or None

    src_raw = data.get("source", {})
    source = SourceConfig(
        sheet=src_raw.get("sheet"),
        header_row=src_raw.get("header_row", 1),
        blank_streak_limit=src_raw.get("blank_streak_limit", DEFAULT_BLANK_STREAK_LIMIT),
        max_rows=src_raw.get("max_rows", DEFAULT_MAX_ROWS),
        columns=_columns(src_raw.get("columns"), DEFAULT_DISPLAY_NAMES),
        required=(
            frozenset(field_from_name(n) for n in src_raw["required"])
            if "required" in src_raw
            else frozenset(Field)
        ),
    )

    dest_base = _columns(data.get("destination_columns"), DEFAULT_DISPLAY_NAMES)
    destinations = [
        DestinationConfig(
            sheet=d["sheet"],
            columns=_columns(d.get("columns"), dest_base),
            required=frozenset(KEY_FIELDS),
        )
        for d in data["destinations"]
    ]
    sheet_names = [d.sheet for d in destinations]
    if len(set(sheet_names)) != len(sheet_names):
        raise ConfigError(f"duplicate destination sheets: {sheet_names}")

    notify_raw = data.get("notify", {})
    notify = NotifyConfig(
        workbook=notify_raw.get("workbook"),
        sheet=notify_raw.get("sheet", "Requests"),
        notified_column=notify_raw.get("notified_column", "Notified"),
        message_columns=tuple(notify_raw.get("message_columns", NotifyConfig.message_columns)),
        timeout_seconds=float(notify_raw.get("timeout_seconds", 10.0)),
    )

    return SyncConfig(
        root_folder=resolved["root_folder"],
        master_workbook=resolved["master_workbook"],
        destinations=destinations,
        source_name_filter=data.get("source_name_filter", ""),
        audit_sheet=data.get("audit_sheet", DEFAULT_AUDIT_SHEET),
        source=source,
        webhook_url=resolved["webhook_url"],
        notify=notify,
    )


def require_root_folder(config: SyncConfig) -> Path:
    """Root folder for the sync run.

    Raises:
        MissingConfigurationError: neither ROOT_FOLDER_ID nor root_folder is set
    """
    if not config.root_folder:
        raise MissingConfigurationError("root folder is not configured (ROOT_FOLDER_ID / root_folder)")
    return Path(config.root_folder)


def require_master_workbook(config: SyncConfig) -> Path:
    """Master workbook path.

    Raises:
        MissingConfigurationError: master_workbook is empty
    """
    if not config.master_workbook:
        raise MissingConfigurationError("master workbook is not configured (MASTER_WORKBOOK / master_workbook)")
    return Path(config.master_workbook)
