from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from .diagnostic import Diagnostic
from .records import CanonicalRecord
from .tables import TableSet

"""Result models for sheet normalization, storage publishing and whole runs."""

__all__ = [
    "SheetResult",
    "UploadResult",
    "WriteStatus",
    "TableWriteResult",
    "PublishResult",
    "IngestResult",
]


@dataclass(frozen=True)
class SheetResult:
    """Outcome of normalizing one source sheet."""
    sheet_name: str
    records: list[CanonicalRecord]
    diagnostics: list[Diagnostic] = field(default_factory=list)
    header_rows: int = 0
    line_rows: int = 0
    skipped_rows: int = 0  # orphan lines + header-label rows
    cancelled_pos: frozenset[str] = frozenset()


@dataclass(frozen=True)
class UploadResult:
    """Outcome of normalizing and partitioning every sheet of one upload."""
    filename: str
    sheets: list[SheetResult]
    tables: TableSet

    @property
    def records(self) -> list[CanonicalRecord]:
        return [r for s in self.sheets for r in s.records]

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return [d for s in self.sheets for d in s.diagnostics]

    @property
    def skipped_rows(self) -> int:
        return sum(s.skipped_rows for s in self.sheets)


class WriteStatus:
    SUCCESS = "success"
    SKIPPED = "skipped"  # 書き込む行なし
    NO_NEW_DATA = "no_new_data"  # upsert で新規キーなし
    FAILED = "failed"
    NOT_ATTEMPTED = "not_attempted"  # 先行テーブル失敗で中断


@dataclass(frozen=True)
class TableWriteResult:
    table: str
    status: str
    rows: int = 0  # rows actually written
    error: str | None = None


@dataclass(frozen=True)
class PublishResult:
    """Per-table outcome of writing a TableSet to storage."""
    tables: list[TableWriteResult]

    @property
    def ok(self) -> bool:
        return all(
            t.status not in (WriteStatus.FAILED, WriteStatus.NOT_ATTEMPTED) for t in self.tables
        )

    @property
    def succeeded(self) -> list[str]:
        return [
            t.table
            for t in self.tables
            if t.status in (WriteStatus.SUCCESS, WriteStatus.SKIPPED, WriteStatus.NO_NEW_DATA)
        ]

    @property
    def failed(self) -> list[str]:
        return [t.table for t in self.tables if t.status == WriteStatus.FAILED]

    @property
    def not_attempted(self) -> list[str]:
        return [t.table for t in self.tables if t.status == WriteStatus.NOT_ATTEMPTED]


@dataclass(frozen=True)
class IngestResult:
    """Aggregated result of one file ingest run (read -> normalize -> publish)."""
    upload: UploadResult
    publish: PublishResult | None  # None = dry run
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    diagnostics_path: Path | None = None
    # 正規化 + 書き込み失敗を含む全診断
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.publish is None or self.publish.ok
