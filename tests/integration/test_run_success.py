from __future__ import annotations

import json
from pathlib import Path

import pandas as pd

from po_ingest.cli.__main__ import main as cli_main

"""End-to-end: workbook upload -> CLI -> workbook store.

Runs the CLI twice over the same upload: header / line tables are appended
again, the supplier and category dimensions must not gain duplicates.
"""


def _store(temp_workdir: Path) -> dict[str, pd.DataFrame]:
    return pd.read_excel(temp_workdir / "data" / "store.xlsx", sheet_name=None)


def test_full_run_populates_every_table(write_config, make_workbook, po_sheet_rows, temp_workdir: Path, capsys):
    path = make_workbook(
        "po_march.xlsx",
        {
            "March": po_sheet_rows,
            "Notes": [["No", "Supplier"]],
        },
    )
    code = cli_main([str(path)])
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY file=po_march.xlsx sheets=2 heads=2 lines=3" in out

    store = _store(temp_workdir)
    head = store["procurement_head"]
    line = store["procurement_line"]
    assert list(head["poNumber"]) == ["PO-001", "PO-002"]
    assert set(head["itemDescription"]) == {"HEADER"}
    assert list(head["date"]) == ["2023-03-15", "2023-03-16"]

    assert list(line["itemDescription"]) == ["CCTV camera", "Cable 100m", "A4 paper"]
    assert list(line["poNumber"]) == ["PO-001", "PO-001", "PO-002"]
    assert list(line["supplierName"]) == ["บริษัท ABC จำกัด", "บริษัท ABC จำกัด", "หจก. XYZ"]
    assert list(line["totalPrice"]) == [3000, 800, 1200]

    assert sorted(store["suppliers_master"]["name"]) == sorted(["บริษัท ABC จำกัด", "หจก. XYZ"])
    assert set(store["categories_master"]["name"]) == {"CCTV", "Network", "Office Supplies"}

    log = store["upload_logs"].iloc[0]
    assert log["filename"] == "po_march.xlsx"
    assert log["row_count"] == 3
    assert log["status"] == "Success"
    assert log["sheets_processed"] == 2
    assert json.loads(log["sheet_details"]) == [
        {"sheet": "March", "rows": 5},
        {"sheet": "Notes", "rows": 0},
    ]


def test_second_run_does_not_duplicate_dimensions(write_config, make_workbook, po_sheet_rows, temp_workdir: Path, capsys):
    path = make_workbook("po_march.xlsx", {"March": po_sheet_rows})
    assert cli_main([str(path)]) == 0
    assert cli_main([str(path)]) == 0
    capsys.readouterr()

    store = _store(temp_workdir)
    assert len(store["procurement_head"]) == 4
    assert len(store["procurement_line"]) == 6
    assert len(store["suppliers_master"]) == 2
    assert len(store["categories_master"]) == 3
    assert len(store["upload_logs"]) == 2


def test_cancelled_po_tagged_in_store(write_config, make_workbook, temp_workdir: Path, capsys):
    rows = [
        ["PO.NO.", "Date", "Supplier", "Description", "Qty", "Unit", "Price"],
        ["PO-100", "01/04/2566", "บริษัท ABC จำกัด", None, None, None, None],
        [None, None, None, "Switch 24 port", 1, "EA", 5000],
        ["PO-101", "02/04/2566", "หจก. XYZ", None, None, None, None],
        [None, None, None, "A4 paper", 5, "REAM", 120],
        ["PO-100 (ยกเลิก)", None, None, None, None, None, None],
    ]
    path = make_workbook("po_april.xlsx", {"April": rows})
    assert cli_main([str(path)]) == 0
    capsys.readouterr()

    store = _store(temp_workdir)
    assert list(store["procurement_head"]["poNumber"]) == ["PO-100 [POยกเลิก]", "PO-101"]
    assert list(store["procurement_line"]["poNumber"]) == ["PO-100 [POยกเลิก]", "PO-101"]

    log_file = next((temp_workdir / "logs").glob("diagnostics-*.log"))
    kinds = [json.loads(x)["kind"] for x in log_file.read_text(encoding="utf-8").splitlines()]
    assert "PO_CANCELLED" in kinds
