from __future__ import annotations

from datetime import UTC, datetime

from po_ingest.models.results import (
    IngestResult,
    PublishResult,
    SheetResult,
    TableWriteResult,
    UploadResult,
    WriteStatus,
)
from po_ingest.models.diagnostic import Diagnostic, DiagnosticKind
from po_ingest.services.orchestrator import process_upload
from po_ingest.services.summary import render_summary_line

START = datetime(2024, 1, 1, 10, 0, 0, tzinfo=UTC)


def _upload():
    return process_upload(
        {
            "S1": [
                {"PO": "PO-1", "Date": "01/01/2566", "Supplier": "บริษัท A"},
                {"Description": "cable", "Qty": 1, "Price": 10},
                {"Description": "switch", "Qty": 1, "Price": 10},
            ],
            "S2": [{"Description": "orphan"}],
        },
        "po.xlsx",
        now=START,
    )


def _publish(*statuses: str) -> PublishResult:
    names = ["procurement_head", "procurement_line", "suppliers_master", "categories_master", "upload_logs"]
    return PublishResult([TableWriteResult(n, s) for n, s in zip(names, statuses, strict=True)])


def test_render_success_line():
    upload = _upload()
    diagnostics = upload.diagnostics
    result = IngestResult(
        upload=upload,
        publish=_publish(*[WriteStatus.SUCCESS] * 5),
        start_time=START,
        end_time=START,
        elapsed_seconds=0.84,
        diagnostics=diagnostics,
    )
    assert render_summary_line(result) == (
        f"SUMMARY file=po.xlsx sheets=2 heads=1 lines=2 skipped=1 diagnostics={len(diagnostics)} "
        "tables=5/5 elapsed_sec=0.84"
    )


def test_render_partial_failure_counts_ok_tables():
    upload = _upload()
    publish = _publish(
        WriteStatus.SUCCESS,
        WriteStatus.FAILED,
        WriteStatus.NOT_ATTEMPTED,
        WriteStatus.NOT_ATTEMPTED,
        WriteStatus.NOT_ATTEMPTED,
    )
    failure = Diagnostic.create("", -1, DiagnosticKind.STORAGE_WRITE_FAILED, "boom")
    result = IngestResult(upload, publish, START, START, 2.0, diagnostics=[failure])
    line = render_summary_line(result)
    assert "tables=1/5" in line
    assert "diagnostics=1" in line
    assert line.endswith("elapsed_sec=2")


def test_render_dry_run_and_small_elapsed():
    upload = UploadResult(filename="x.csv", sheets=[SheetResult("x", [])], tables=_upload().tables)
    result = IngestResult(upload, None, START, START, 0.0012345)
    line = render_summary_line(result)
    assert "sheets=1 heads=0 lines=0" in line
    assert "tables=0/0" in line
    assert line.endswith("elapsed_sec=0.001234") or line.endswith("elapsed_sec=0.001235")
