from __future__ import annotations

import logging

from ..models.diagnostic import Diagnostic, DiagnosticKind
from ..models.results import PublishResult, TableWriteResult, WriteStatus
from ..models.tables import (
    CATEGORIES_TABLE,
    HEAD_TABLE,
    LINE_TABLE,
    SUPPLIERS_TABLE,
    UPLOAD_LOGS_TABLE,
    TableSet,
)
from ..store.gateway import StorageError, StorageGateway

"""Publisher: write a TableSet through the storage gateway.

Tables are written in a fixed order. Fact tables and the upload log are
appended; dimension tables are upserted on ``name`` so a supplier or
category is never stored twice. The first StorageError stops the run: that
table is reported ``failed`` and the remaining ones ``not_attempted``.
"""

__all__ = [
    "WRITE_PLAN",
    "publish",
]

logger = logging.getLogger(__name__)

# (table, upsert key) ; key None = append
WRITE_PLAN: tuple[tuple[str, str | None], ...] = (
    (HEAD_TABLE, None),
    (LINE_TABLE, None),
    (SUPPLIERS_TABLE, "name"),
    (CATEGORIES_TABLE, "name"),
    (UPLOAD_LOGS_TABLE, None),
)


def publish(
    tables: TableSet,
    store: StorageGateway,
    *,
    issues: list[Diagnostic] | None = None,
    filename: str = "",
) -> PublishResult:
    """Write every table of ``tables`` to ``store``.

    Parameters
    ----------
    tables: partitioned tables of one upload
    store: storage gateway
    issues: optional sink for a STORAGE_WRITE_FAILED diagnostic
    filename: upload filename recorded in that diagnostic
    """
    results: list[TableWriteResult] = []
    failed = False
    for table, key in WRITE_PLAN:
        if failed:
            results.append(TableWriteResult(table=table, status=WriteStatus.NOT_ATTEMPTED))
            continue
        rows = tables.rows(table)
        if not rows:
            results.append(TableWriteResult(table=table, status=WriteStatus.SKIPPED))
            continue
        try:
            if key is None:
                written = store.append_table(table, rows)
            else:
                written = store.upsert_table(table, rows, key)
        except StorageError as e:
            failed = True
            logger.error("storage write failed table=%s: %s", table, e)
            results.append(TableWriteResult(table=table, status=WriteStatus.FAILED, error=str(e)))
            if issues is not None:
                issues.append(
                    Diagnostic.create(
                        "",
                        -1,
                        DiagnosticKind.STORAGE_WRITE_FAILED,
                        f"write to {table} failed: {e}",
                        file=filename,
                    )
                )
            continue
        status = WriteStatus.SUCCESS if written else WriteStatus.NO_NEW_DATA
        logger.debug("table=%s status=%s rows=%d", table, status, written)
        results.append(TableWriteResult(table=table, status=status, rows=written))
    return PublishResult(tables=results)
