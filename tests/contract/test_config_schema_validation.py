from __future__ import annotations

import json

import jsonschema
import pytest
import yaml
from jsonschema.exceptions import ValidationError

from po_ingest.config.loader import SCHEMA_PATH

"""Config schema contract test (config/config_schema.json)."""


def _schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_config_schema_valid_example():
    config = {
        "store": {"path": "./data/procurement_store.xlsx"},
        "logs_dir": "./logs",
        "orphan_policy": "unknown",
        "header_label_min_matches": 3,
        "timezone": "Asia/Bangkok",
    }
    jsonschema.validate(config, _schema())


def test_config_schema_minimal_example():
    jsonschema.validate({"store": {"path": "store.xlsx"}}, _schema())


def test_sample_config_file_is_valid(sample_config_yaml: str):
    jsonschema.validate(yaml.safe_load(sample_config_yaml), _schema())


@pytest.mark.parametrize(
    "config",
    [
        {},
        {"store": {}},
        {"store": {"path": ""}},
        {"store": {"path": "s.xlsx"}, "orphan_policy": "keep"},
        {"store": {"path": "s.xlsx"}, "header_label_min_matches": 0},
        {"store": {"path": "s.xlsx"}, "batch_size": 100},
        {"store": {"path": "s.xlsx", "dsn": "postgres://"}},
    ],
)
def test_config_schema_rejects(config):
    with pytest.raises(ValidationError):
        jsonschema.validate(config, _schema())
