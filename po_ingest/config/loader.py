from __future__ import annotations

import json
import os
from datetime import UTC, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    ORPHAN_DROP,
    PipelineConfig,
    StoreConfig,
)

"""Config loader.

Responsibilities:
- Load YAML (config/ingest.yml by default)
- Validate against the packaged JSON schema (config_schema.json)
- Apply defaults (logs_dir=./logs, orphan_policy=drop, timezone=UTC)
- PO_INGEST_STORE_PATH overrides store.path
"""

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "STORE_PATH_ENV",
    "ConfigError",
    "load_config",
    "resolve_timezone",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/ingest.yml")
STORE_PATH_ENV = "PO_INGEST_STORE_PATH"


class ConfigError(Exception):
    pass


def resolve_timezone(name: str) -> tzinfo:
    # UTC はシステムの tz データベースなしで解決
    if name.upper() == "UTC":
        return UTC
    return ZoneInfo(name)


def _validate_config_schema(data: Any) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file unreadable, or the data violates it
    """
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    try:
        jsonschema.validate(data, schema)
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path | str = DEFAULT_CONFIG_PATH) -> PipelineConfig:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    tz = data.get("timezone", "UTC")
    try:
        resolve_timezone(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"config validation failed: unknown timezone {tz!r}") from e

    store_path = os.environ.get(STORE_PATH_ENV) or data["store"]["path"]
    return PipelineConfig(
        store=StoreConfig(path=store_path),
        logs_dir=data.get("logs_dir", "./logs"),
        orphan_policy=data.get("orphan_policy", ORPHAN_DROP),
        header_label_min_matches=data.get("header_label_min_matches", 2),
        timezone=tz,
    )
