# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from po_ingest.logging.init import reset_logging


@pytest.fixture(autouse=True)
def _fresh_logging():
    # handler は setup 時の sys.stdout を掴むため、テストごとに作り直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("PO_INGEST_STORE_PATH", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """store:
  path: ./data/store.xlsx
logs_dir: ./logs
orphan_policy: drop
header_label_min_matches: 2
timezone: UTC
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "ingest.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def make_workbook(temp_workdir: Path) -> Callable[[str, dict[str, list[list[object]]]], Path]:
    """Build an .xlsx under data/ from raw rows (no header applied)."""

    def _make(name: str, sheets: dict[str, list[list[object]]]) -> Path:
        p = temp_workdir / "data" / name
        with pd.ExcelWriter(p, engine="openpyxl") as writer:
            for sheet, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
        return p

    return _make


@pytest.fixture()
def po_sheet_rows() -> list[list[object]]:
    """A small PO export: banner row, label row, two POs with lines."""
    return [
        ["ใบสั่งซื้อ ประจำเดือน มีนาคม 2566", None, None, None, None, None, None],
        ["PO.NO.", "Date", "Supplier", "Description", "Qty", "Unit", "Price"],
        ["PO-001", "15/03/2566", "บริษัท ABC จำกัด", None, None, None, None],
        [None, None, None, "CCTV camera", 2, "EA", 1500],
        [None, None, None, "Cable 100m", 1, None, 800],
        ["PO-002", "16/03/2566", "หจก. XYZ", None, None, None, None],
        [None, None, None, "A4 paper", 10, "REAM", 120],
    ]
