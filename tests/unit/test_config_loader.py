from __future__ import annotations

from datetime import UTC
from pathlib import Path

import pytest

from po_ingest.config.loader import ConfigError, load_config, resolve_timezone


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.store.path == "./data/store.xlsx"
    assert cfg.logs_dir == "./logs"
    assert cfg.orphan_policy == "drop"
    assert cfg.header_label_min_matches == 2
    assert cfg.timezone == "UTC"


def test_load_config_defaults(temp_workdir: Path):
    path = temp_workdir / "config" / "ingest.yml"
    path.write_text("store:\n  path: store.xlsx\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.logs_dir == "./logs"
    assert cfg.orphan_policy == "drop"
    assert cfg.header_label_min_matches == 2
    assert cfg.timezone == "UTC"


def test_load_config_default_path(write_config: Path):
    # 引数なしは config/ingest.yml
    assert load_config().store.path == "./data/store.xlsx"


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError) as e:
        load_config(temp_workdir / "config" / "not_exists.yml")
    assert "config file not found" in str(e.value)


def test_load_config_invalid_yaml(write_config: Path):
    write_config.write_text("store: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "invalid yaml" in str(e.value)


def test_load_config_missing_store(write_config: Path):
    write_config.write_text("logs_dir: ./logs\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value) and "required property" in str(e.value)


def test_load_config_extra_field(write_config: Path):
    text = write_config.read_text(encoding="utf-8") + "\nextra_field: not_allowed\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_load_config_bad_orphan_policy(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("orphan_policy: drop", "orphan_policy: keep")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(write_config)


def test_load_config_unknown_timezone(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("timezone: UTC", "timezone: Mars/Olympus")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "timezone" in str(e.value)


def test_store_path_env_override(write_config: Path, monkeypatch):
    monkeypatch.setenv("PO_INGEST_STORE_PATH", "/tmp/other.xlsx")
    assert load_config(write_config).store.path == "/tmp/other.xlsx"


def test_resolve_timezone_utc():
    assert resolve_timezone("UTC") is UTC
    assert resolve_timezone("utc") is UTC
