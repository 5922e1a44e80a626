from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

from .records import CanonicalRecord

"""Named output tables produced by the partitioner."""

__all__ = [
    "HEAD_TABLE",
    "LINE_TABLE",
    "SUPPLIERS_TABLE",
    "CATEGORIES_TABLE",
    "UPLOAD_LOGS_TABLE",
    "TABLE_NAMES",
    "SupplierRecord",
    "CategoryRecord",
    "UploadLogRecord",
    "TableSet",
    "normalize_key",
]

HEAD_TABLE = "procurement_head"
LINE_TABLE = "procurement_line"
SUPPLIERS_TABLE = "suppliers_master"
CATEGORIES_TABLE = "categories_master"
UPLOAD_LOGS_TABLE = "upload_logs"

# 書き込み順 (publisher はこの順で処理)
TABLE_NAMES: tuple[str, ...] = (
    HEAD_TABLE,
    LINE_TABLE,
    SUPPLIERS_TABLE,
    CATEGORIES_TABLE,
    UPLOAD_LOGS_TABLE,
)


@dataclass(frozen=True)
class SupplierRecord:
    name: str
    last_seen: str  # "YYYY-MM-DD HH:MM:SS"

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CategoryRecord:
    name: str
    description: str

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UploadLogRecord:
    """One row per pipeline run, always appended."""
    timestamp: str
    filename: str
    row_count: int  # line records written
    status: str
    sheets_processed: int
    sheet_details: tuple[tuple[str, int], ...] = ()  # (sheet, records)

    def to_row(self) -> dict[str, Any]:
        # sheet_details はセル 1 つに収めるため JSON 文字列化
        details = [{"sheet": s, "rows": n} for s, n in self.sheet_details]
        return {
            "timestamp": self.timestamp,
            "filename": self.filename,
            "row_count": self.row_count,
            "status": self.status,
            "sheets_processed": self.sheets_processed,
            "sheet_details": json.dumps(details, ensure_ascii=False),
        }


@dataclass(frozen=True)
class TableSet:
    """The five named tables of one upload."""
    procurement_head: list[CanonicalRecord] = field(default_factory=list)
    procurement_line: list[CanonicalRecord] = field(default_factory=list)
    suppliers_master: list[SupplierRecord] = field(default_factory=list)
    categories_master: list[CategoryRecord] = field(default_factory=list)
    upload_logs: list[UploadLogRecord] = field(default_factory=list)

    def rows(self, table: str) -> list[dict[str, Any]]:
        if table not in TABLE_NAMES:
            raise KeyError(f"unknown table: {table}")
        return [r.to_row() for r in getattr(self, table)]

    def as_rows(self) -> dict[str, list[dict[str, Any]]]:
        return {name: self.rows(name) for name in TABLE_NAMES}

    def counts(self) -> dict[str, int]:
        return {name: len(getattr(self, name)) for name in TABLE_NAMES}


def normalize_key(name: object) -> str:
    """Dimension key: trimmed, case-insensitive."""
    return str(name if name is not None else "").strip().lower()
