from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from po_ingest.excel.reader import (
    SheetReadError,
    detect_header_row,
    read_workbook,
    sheet_to_rows,
)


def test_read_workbook_all_sheets_in_order(make_workbook, po_sheet_rows):
    path = make_workbook("po.xlsx", {"March": po_sheet_rows, "April": [["No", "Supplier"], [1, "บริษัท A"]]})
    frames = read_workbook(path)
    assert list(frames) == ["March", "April"]


def test_sheet_to_rows_skips_banner_and_names_columns(make_workbook, po_sheet_rows):
    frames = read_workbook(make_workbook("po.xlsx", {"March": po_sheet_rows}))
    sheet = sheet_to_rows(frames["March"], "March")
    assert sheet.columns == ["PO.NO.", "Date", "Supplier", "Description", "Qty", "Unit", "Price"]
    assert sheet.first_row_number == 3
    assert len(sheet.rows) == 5
    first = sheet.rows[0]
    assert first["PO.NO."] == "PO-001"
    assert first["Description"] is None
    assert sheet.rows[1]["Qty"] == 2


def test_blank_header_cells_get_positional_names():
    df = pd.DataFrame([["เลขที่", None, None, "Qty", None], [1, "PO-9", 45000, 3, "x"]])
    sheet = sheet_to_rows(df, "S")
    assert sheet.columns == ["เลขที่", "__EMPTY", "__EMPTY_1", "Qty", "__EMPTY_2"]
    assert sheet.rows[0]["__EMPTY"] == "PO-9"


def test_duplicate_header_labels_suffixed():
    df = pd.DataFrame([["No", "Price", "Price"], [1, 10, 20]])
    assert sheet_to_rows(df, "S").columns == ["No", "Price", "Price_1"]


def test_detect_header_row():
    df = pd.DataFrame([["Report"], ["Company"], ["no", "x"], [1, 2]])
    assert detect_header_row(df) == 2
    # アンカーなし -> 先頭行
    assert detect_header_row(pd.DataFrame([["a", "b"], [1, 2]])) == 0


def test_strings_stripped_and_blanks_none():
    df = pd.DataFrame([["No", "Supplier"], [1, "  บริษัท A  "], [2, "   "], [None, None], [3, "B"], [None, None]])
    sheet = sheet_to_rows(df, "S")
    assert sheet.rows[0]["Supplier"] == "บริษัท A"
    assert sheet.rows[1]["Supplier"] is None
    # 途中の空行は保持 (行番号維持)、末尾の空行は除去
    assert len(sheet.rows) == 4
    assert all(v is None for v in sheet.rows[2].values())


def test_empty_frame():
    sheet = sheet_to_rows(pd.DataFrame(), "Empty")
    assert sheet.columns == []
    assert sheet.rows == []


def test_read_csv_single_sheet(temp_workdir: Path):
    path = temp_workdir / "data" / "po_export.csv"
    path.write_text("PO,Date,Supplier\nPO-1,15/03/2566,บริษัท A\n", encoding="utf-8")
    frames = read_workbook(path)
    assert list(frames) == ["po_export"]
    sheet = sheet_to_rows(frames["po_export"], "po_export")
    assert sheet.rows == [{"PO": "PO-1", "Date": "15/03/2566", "Supplier": "บริษัท A"}]


def test_read_missing_file(temp_workdir: Path):
    with pytest.raises(SheetReadError):
        read_workbook(temp_workdir / "data" / "nope.xlsx")


def test_read_unsupported_type(temp_workdir: Path):
    path = temp_workdir / "data" / "notes.txt"
    path.write_text("hello", encoding="utf-8")
    with pytest.raises(SheetReadError):
        read_workbook(path)


def test_read_corrupt_workbook(temp_workdir: Path):
    path = temp_workdir / "data" / "broken.xlsx"
    path.write_bytes(b"not a zip file")
    with pytest.raises(SheetReadError):
        read_workbook(path)
