from __future__ import annotations

from ..models.results import IngestResult

"""SUMMARY line rendering.

Format (one line per run):
SUMMARY file=<name> sheets=<n> heads=<h> lines=<l> skipped=<s>
diagnostics=<d> tables=<ok>/<total> elapsed_sec=<e>

``tables`` counts tables written without failure; a dry run reports 0/0.
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: IngestResult) -> str:
    """Render the SUMMARY line of one ingest run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> from po_ingest.models.results import UploadResult
        >>> from po_ingest.models.tables import TableSet
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> upload = UploadResult(filename="po.xlsx", sheets=[], tables=TableSet())
        >>> render_summary_line(IngestResult(upload, None, t, t, 2.0))
        'SUMMARY file=po.xlsx sheets=0 heads=0 lines=0 skipped=0 diagnostics=0 tables=0/0 elapsed_sec=2'
    """
    upload = result.upload
    records = upload.records
    heads = sum(1 for r in records if r.is_head)
    if result.publish is None:
        ok_tables, total_tables = 0, 0
    else:
        ok_tables, total_tables = len(result.publish.succeeded), len(result.publish.tables)
    return (
        f"SUMMARY file={upload.filename} "
        f"sheets={len(upload.sheets)} "
        f"heads={heads} "
        f"lines={len(records) - heads} "
        f"skipped={upload.skipped_rows} "
        f"diagnostics={len(result.diagnostics)} "
        f"tables={ok_tables}/{total_tables} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
