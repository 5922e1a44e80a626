from __future__ import annotations

import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

"""Workbook reader: source file -> per-sheet raw rows.

Sheets are read without a header (``header=None``) and the column label row
is located afterwards, because exports carry title / PO banner rows above
the real labels. Blank label cells get positional names (``__EMPTY``,
``__EMPTY_1``, ...) so merged-header columns stay addressable by the field
synonym table.
"""

__all__ = [
    "ANCHOR_LABELS",
    "HEADER_SCAN_ROWS",
    "EMPTY_COLUMN",
    "SheetReadError",
    "SheetRows",
    "read_workbook",
    "detect_header_row",
    "sheet_to_rows",
]

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv"}

# 実ヘッダ行の目印 (大文字小文字無視)
ANCHOR_LABELS = frozenset({"no", "เลขที่", "เลขใบสำคัญ", "po.no.", "ผู้ขาย"})
HEADER_SCAN_ROWS = 10
EMPTY_COLUMN = "__EMPTY"


class SheetReadError(Exception):
    """Raised when a source file or sheet cannot be decoded."""


@dataclass
class SheetRows:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]] = field(default_factory=list)  # 列名 -> 値 (空セルは None)
    first_row_number: int = 1  # rows[0] のシート上の行番号 (1 始まり)


def read_workbook(path: str | Path) -> dict[str, pd.DataFrame]:
    """Read every sheet of ``path`` as raw DataFrames keyed by sheet name.

    ``.xlsx`` / ``.xls`` keep workbook order; ``.csv`` is a single sheet named
    after the file stem.
    """
    path = Path(path)
    if not path.exists():
        raise SheetReadError(f"file not found: {path}")
    suffix = path.suffix.lower()
    try:
        if suffix in CSV_SUFFIXES:
            df = pd.read_csv(path, header=None, dtype=str, skip_blank_lines=False, encoding="utf-8-sig")
            return {path.stem: df}
        if suffix in EXCEL_SUFFIXES:
            dfs: dict[str, pd.DataFrame] = {}
            with pd.ExcelFile(path) as xls:
                for name in xls.sheet_names:
                    dfs[str(name)] = xls.parse(name, header=None)
            return dfs
    except pd.errors.EmptyDataError:
        return {path.stem: pd.DataFrame()}
    except (OSError, ValueError, zipfile.BadZipFile, pd.errors.ParserError) as e:
        raise SheetReadError(f"cannot read {path}: {e}") from e
    raise SheetReadError(f"unsupported file type: {path.suffix or path.name}")


def _clean(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _label(value: Any) -> str:
    value = _clean(value)
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def detect_header_row(df: pd.DataFrame, scan_rows: int = HEADER_SCAN_ROWS) -> int:
    """Index of the first row (within ``scan_rows``) holding an anchor label; 0 if none."""
    for idx in range(min(scan_rows, df.shape[0])):
        if any(_label(v).lower() in ANCHOR_LABELS for v in df.iloc[idx].tolist()):
            return idx
    return 0


def _column_names(labels: list[str]) -> list[str]:
    names: list[str] = []
    used: set[str] = set()
    blanks = 0
    for label in labels:
        if not label:
            name = EMPTY_COLUMN if blanks == 0 else f"{EMPTY_COLUMN}_{blanks}"
            blanks += 1
        else:
            name = label
            n = 1
            while name in used:
                name = f"{label}_{n}"
                n += 1
        used.add(name)
        names.append(name)
    return names


def sheet_to_rows(df: pd.DataFrame, sheet_name: str) -> SheetRows:
    """Turn a raw (header-less) sheet into named rows.

    Steps:
    1. Locate the column label row (detect_header_row)
    2. Name columns; blank labels become ``__EMPTY``, ``__EMPTY_1``, ...
    3. Rows below become dicts; strings stripped, blanks / NaN -> None
    4. Drop fully empty rows at the end of the sheet

    Empty rows in the middle are kept (all None) so row numbers stay
    contiguous; the classifier skips them.
    """
    if df.shape[0] == 0:
        return SheetRows(sheet_name=sheet_name, columns=[], rows=[], first_row_number=1)

    header_idx = detect_header_row(df)
    columns = _column_names([_label(v) for v in df.iloc[header_idx].tolist()])

    rows: list[dict[str, Any]] = []
    for values in df.iloc[header_idx + 1 :].itertuples(index=False, name=None):
        rows.append({col: _clean(val) for col, val in zip(columns, values, strict=False)})
    while rows and all(v is None for v in rows[-1].values()):
        rows.pop()

    return SheetRows(
        sheet_name=sheet_name,
        columns=columns,
        rows=rows,
        first_row_number=header_idx + 2,
    )
