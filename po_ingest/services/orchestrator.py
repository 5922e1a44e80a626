from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import UTC, date, datetime
from pathlib import Path

from ..config.loader import resolve_timezone
from ..excel.reader import SheetReadError, SheetRows, read_workbook, sheet_to_rows
from ..logging.diagnostic_log import DiagnosticLogBuffer
from ..models.config_models import PipelineConfig, StoreConfig
from ..models.diagnostic import Diagnostic, DiagnosticKind
from ..models.records import CanonicalRecord
from ..models.results import IngestResult, SheetResult, UploadResult
from ..store.gateway import StorageGateway, WorkbookStore
from .classifier import classify_rows
from .fields import RawRow
from .partitioner import partition_for_storage
from .progress import ProgressTracker
from .projector import project
from .publisher import publish

"""Service orchestration: rows -> records -> tables -> storage.

- normalize_sheet / normalize: one sheet, fresh parse context each call
- process_upload: every sheet of one upload, then partition
- ingest_file: read a workbook, process_upload, publish, flush diagnostics

Sheets never share fill-down state; a PO open at the end of one sheet does
not continue into the next.
"""

__all__ = [
    "IngestError",
    "normalize_sheet",
    "normalize",
    "process_upload",
    "ingest_file",
]

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = PipelineConfig(store=StoreConfig(path=""))


class IngestError(Exception):
    """Fatal error: the source file could not be processed at all."""


def normalize_sheet(
    raw_rows: Sequence[RawRow],
    source_sheet: str,
    *,
    config: PipelineConfig | None = None,
    first_row_number: int = 1,
    today: date | None = None,
) -> SheetResult:
    """Classify and project one sheet's rows.

    Returns the canonical records in source order together with the
    diagnostics raised while classifying / projecting and the row counts.
    """
    cfg = config or _DEFAULT_CONFIG
    if not raw_rows:
        note = Diagnostic.create(source_sheet, -1, DiagnosticKind.SHEET_EMPTY, "sheet has no data rows")
        return SheetResult(sheet_name=source_sheet, records=[], diagnostics=[note])

    classification = classify_rows(
        raw_rows,
        source_sheet,
        orphan_policy=cfg.orphan_policy,
        header_label_min_matches=cfg.header_label_min_matches,
        first_row_number=first_row_number,
    )
    issues = list(classification.diagnostics)
    records = [project(row, source_sheet, issues=issues, today=today) for row in classification.rows]
    return SheetResult(
        sheet_name=source_sheet,
        records=records,
        diagnostics=issues,
        header_rows=classification.header_rows,
        line_rows=classification.line_rows,
        skipped_rows=classification.skipped_rows,
        cancelled_pos=classification.cancelled_pos,
    )


def normalize(raw_rows: Sequence[RawRow], source_sheet: str) -> list[CanonicalRecord]:
    """Canonical records of one sheet (diagnostics discarded)."""
    return normalize_sheet(raw_rows, source_sheet).records


def process_upload(
    sheets: Mapping[str, Sequence[RawRow] | SheetRows],
    filename: str,
    config: PipelineConfig | None = None,
    *,
    now: datetime | None = None,
    progress: ProgressTracker | None = None,
) -> UploadResult:
    """Normalize every sheet of one upload and partition the records.

    Parameters
    ----------
    sheets: sheet name -> raw rows (or SheetRows from the reader), in upload order
    filename: upload filename, stamped on diagnostics and the upload log
    config: orphan policy / label threshold / timezone (defaults when None)
    now: run timestamp (default: now in the configured timezone)
    progress: optional tracker advanced once per sheet
    """
    cfg = config or _DEFAULT_CONFIG
    now = now or datetime.now(resolve_timezone(cfg.timezone))

    results: list[SheetResult] = []
    for name, rows in sheets.items():
        if progress is not None:
            progress.start_sheet(name)
        if isinstance(rows, SheetRows):
            raw_rows, first_row = rows.rows, rows.first_row_number
        else:
            raw_rows, first_row = list(rows), 1
        result = normalize_sheet(
            raw_rows, name, config=cfg, first_row_number=first_row, today=now.date()
        )
        result = replace(result, diagnostics=[d.with_file(filename) for d in result.diagnostics])
        results.append(result)
        logger.info(
            "sheet=%s heads=%d lines=%d skipped=%d cancelled=%d",
            name,
            result.header_rows,
            result.line_rows,
            result.skipped_rows,
            len(result.cancelled_pos),
        )
        if progress is not None:
            progress.finish_sheet(records=len(result.records))

    records = [r for s in results for r in s.records]
    tables = partition_for_storage(
        records, filename, sheet_names=[s.sheet_name for s in results], now=now
    )
    return UploadResult(filename=filename, sheets=results, tables=tables)


def _flush(buffer: DiagnosticLogBuffer) -> Path | None:
    try:
        return buffer.flush()
    except OSError as e:
        # 診断ログ書き出し失敗で処理全体は失敗させない
        logger.warning("cannot write diagnostics log: %s", e)
        return None


def ingest_file(
    path: str | Path,
    config: PipelineConfig,
    store: StorageGateway | None = None,
    *,
    dry_run: bool = False,
) -> IngestResult:
    """Read ``path``, normalize every sheet and publish the tables.

    Parameters
    ----------
    path: .xlsx / .xls / .csv upload
    config: pipeline configuration
    store: storage gateway (default: WorkbookStore at ``config.store.path``)
    dry_run: normalize and partition only; nothing is written to storage

    Raises
    ------
    IngestError: the file cannot be read
    """
    path = Path(path)
    start_time = datetime.now(UTC)
    buffer = DiagnosticLogBuffer(config.logs_dir)

    try:
        frames = read_workbook(path)
    except SheetReadError as e:
        buffer.append(
            Diagnostic.create("", -1, DiagnosticKind.SHEET_READ_ERROR, str(e), file=path.name)
        )
        _flush(buffer)
        raise IngestError(str(e)) from e

    sheets = {name: sheet_to_rows(df, name) for name, df in frames.items()}
    logger.info("file=%s sheets=%d", path.name, len(sheets))

    with ProgressTracker(len(sheets)) as progress:
        upload = process_upload(sheets, path.name, config, progress=progress)

    diagnostics = list(upload.diagnostics)
    publish_result = None
    if dry_run:
        logger.info("dry run: storage not written")
    else:
        gateway = store if store is not None else WorkbookStore(config.store.path)
        publish_result = publish(upload.tables, gateway, issues=diagnostics, filename=path.name)
        for t in publish_result.tables:
            logger.info("table=%s status=%s rows=%d", t.table, t.status, t.rows)

    buffer.extend(diagnostics)
    diagnostics_path = _flush(buffer)
    if diagnostics_path is not None:
        logger.info("diagnostics=%d written to %s", len(diagnostics), diagnostics_path)

    end_time = datetime.now(UTC)
    return IngestResult(
        upload=upload,
        publish=publish_result,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        diagnostics_path=diagnostics_path,
        diagnostics=diagnostics,
    )
