from __future__ import annotations

from dataclasses import dataclass

"""Config dataclasses for the procurement ingest pipeline.

Built by po_ingest.config.loader from YAML; everything here is immutable.
"""

ORPHAN_DROP = "drop"
ORPHAN_UNKNOWN = "unknown"


@dataclass(frozen=True)
class StoreConfig:
    """Spreadsheet store location.

    PO_INGEST_STORE_PATH in the environment takes precedence over ``path``.
    """
    path: str  # .xlsx workbook, one worksheet per table


@dataclass(frozen=True)
class PipelineConfig:
    """Root configuration object for an ingest run."""
    store: StoreConfig
    logs_dir: str = "./logs"
    # drop: 先行ヘッダなしの明細行は破棄 / unknown: PO "Unknown" に紐付け
    orphan_policy: str = ORPHAN_DROP
    header_label_min_matches: int = 2  # 列名ラベル行と判定する一致セル数
    timezone: str = "UTC"
