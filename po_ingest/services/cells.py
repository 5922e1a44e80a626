from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd

"""Cell normalizers.

Pure functions turning one raw cell (str / number / date-like / None) into a
canonical value. None of them raise on bad input: parsers return None (the
``try_*`` / ``parse_date`` forms) or a documented default, and the caller
decides whether that is worth a diagnostic.
"""

__all__ = [
    "BE_OFFSET",
    "DEFAULT_VAT",
    "UNKNOWN_ITEM",
    "OTHER_CATEGORY",
    "CATEGORY_KEYWORDS",
    "CATEGORY_VOCABULARY",
    "FieldShape",
    "cell_text",
    "parse_date",
    "try_parse_number",
    "parse_number",
    "split_compound",
    "classify_shape",
    "split_supplier_item",
    "split_vendor_description",
    "split_description_quantity",
    "split_unit_project",
    "sniff_price_cell",
    "split_vat_engineer",
    "format_vat",
    "canonical_category",
    "categorize",
    "has_cancel_marker",
    "strip_cancel_marker",
]

BE_OFFSET = 543  # Buddhist Era = Gregorian + 543
BE_THRESHOLD = 2500
# serial s -> SERIAL_EPOCH + (s - 1) days (serial 45000 = 2023-03-15)
SERIAL_EPOCH = date(1899, 12, 31)
SERIAL_MAX = 2958465  # 9999-12-31

DEFAULT_VAT = "7%"
UNKNOWN_ITEM = "Unknown"
OTHER_CATEGORY = "Other"

FALLBACK_DATE_FORMATS = (
    "%d/%m/%Y",
    "%Y-%m-%d",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%Y/%m/%d",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
)

# (category, keywords) 先頭一致優先。โต๊ะ/เก้าอี้ は Office Supplies が先に勝つ
CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("CCTV", ("cctv", "camera", "กล้อง", "วงจร", "กล้องวงจร")),
    ("IT Equipment", ("computer", "laptop", "server", "คอม", "เซิร์ฟเวอร์", "คอมพิวเตอร์")),
    ("Office Supplies", ("paper", "pen", "desk", "กระดาษ", "ปากกา", "โต๊ะ", "เก้าอี้")),
    ("Network", ("router", "switch", "cable", "เน็ตเวิร์ก", "สายแลน", "สายเครือข่าย")),
    ("Software", ("license", "software", "ซอฟต์แวร์", "ลิขสิทธิ์", "โปรแกรม")),
    ("Construction", ("เหล็ก", "ปูน", "material", "วัสดุ", "ก่อสร้าง")),
    ("Services", ("ค่าแรง", "labor", "service", "บริการ", "ติดตั้ง")),
    ("Furniture", ("โต๊ะ", "เก้าอี้", "furniture", "เฟอร์นิเจอร์")),
)
CATEGORY_VOCABULARY: tuple[str, ...] = tuple(c for c, _ in CATEGORY_KEYWORDS) + (OTHER_CATEGORY,)

_COMPOUND_SPLIT = re.compile(r"[-–—]")
_NUMERIC_TEXT = re.compile(r"^\d+(\.\d+)?$")
_VENDOR_CODE = re.compile(r"^[A-Z]{1,3}\d{2,}$")
_PROJECT_CODE = re.compile(r"^P\d+")
_UNIT_CODE = re.compile(r"^[A-Z]{2,5}$")
_LETTERS_ONLY = re.compile(r"^[A-Z]+$")
_FIRST_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_CANCEL_MARKER = re.compile(r"[\[(]?\s*(?:PO)?\s*(?:ยกเลิก|cancelled)\s*[\])]?", re.IGNORECASE)


class FieldShape(Enum):
    """Shape of a supplier-column cell."""
    SUPPLIER_LIKE = "supplier_like"
    ITEM_CODE_LIKE = "item_code_like"
    UNKNOWN = "unknown"


# Ordered shape table: first matching pattern wins, otherwise UNKNOWN
SHAPE_PATTERNS: tuple[tuple[FieldShape, re.Pattern[str]], ...] = (
    (FieldShape.SUPPLIER_LIKE, re.compile(r"บริษัท|หจก|Mr|Ms|Ltd|Co", re.IGNORECASE)),
    (FieldShape.ITEM_CODE_LIKE, re.compile(r"^[A-Z0-9-]+$")),
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(
        value, (bool, np.bool_)
    )


def cell_text(value: Any) -> str:
    """Render a cell as trimmed text; integral floats lose their ``.0``."""
    if value is None or value is pd.NaT:
        return ""
    if _is_number(value):
        number = float(value)
        if math.isnan(number):
            return ""
        if math.isfinite(number) and number.is_integer():
            return str(int(number))
        return str(number)
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def _gregorian_date(year: int, month: int, day: int) -> date | None:
    if year > BE_THRESHOLD:
        year -= BE_OFFSET
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _from_serial(serial: float) -> date | None:
    days = int(serial)
    if days < 1 or days > SERIAL_MAX:
        return None
    d = SERIAL_EPOCH + timedelta(days=days - 1)
    return _gregorian_date(d.year, d.month, d.day)


def _from_slashed(text: str) -> date | None:
    parts = text.split("/")
    if len(parts) != 3 or not all(p.strip().isdigit() for p in parts):
        return None
    day, month, year = (int(p) for p in parts)
    if year < 100:
        return None
    # DD/MM/YYYY のみ (月が 12 超なら MM/DD に読み替えず None)
    return _gregorian_date(year, month, day)


def _from_dashed(text: str) -> date | None:
    parts = text.split("-")
    if len(parts) != 3 or not all(p.strip().isdigit() for p in parts):
        return None
    if len(parts[0].strip()) == 4:
        year, month, day = (int(p) for p in parts)
    elif len(parts[2].strip()) == 4:
        day, month, year = (int(p) for p in parts)
    else:
        return None
    return _gregorian_date(year, month, day)


def parse_date(value: Any) -> str | None:
    """Parse a date cell into an ISO ``YYYY-MM-DD`` string.

    Accepts spreadsheet serial numbers (epoch 1899-12-31, day ``serial - 1``),
    ``DD/MM/YYYY``, ``YYYY-MM-DD`` and the FALLBACK_DATE_FORMATS list; any
    year above 2500 is treated as Buddhist Era and shifted by 543. Returns None
    when the value is empty or cannot be parsed.
    """
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, datetime):
        parsed = _gregorian_date(value.year, value.month, value.day)
        return parsed.isoformat() if parsed else None
    if isinstance(value, date):
        parsed = _gregorian_date(value.year, value.month, value.day)
        return parsed.isoformat() if parsed else None
    if isinstance(value, (bool, np.bool_)):
        return None
    if _is_number(value):
        number = float(value)
        if not math.isfinite(number):
            return None
        parsed = _from_serial(number)
        return parsed.isoformat() if parsed else None

    text = str(value).strip()
    if not text:
        return None
    if _NUMERIC_TEXT.match(text):
        parsed = _from_serial(float(text))
        return parsed.isoformat() if parsed else None

    head = text.split()[0]
    parsed = None
    if "/" in head:
        parsed = _from_slashed(head)
    elif "-" in head:
        parsed = _from_dashed(head)
    if parsed is not None:
        return parsed.isoformat()

    for fmt in FALLBACK_DATE_FORMATS:
        try:
            dt = datetime.strptime(text, fmt)
        except ValueError:
            continue
        parsed = _gregorian_date(dt.year, dt.month, dt.day)
        if parsed is not None:
            return parsed.isoformat()
    return None


def try_parse_number(value: Any) -> float | None:
    """Parse a numeric cell; None when empty or not a number.

    Thousands separators, whitespace and any character outside ``[0-9.-]``
    are stripped first (so ``"1,250.50 บาท"`` -> 1250.5).
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    if _is_number(value):
        number = float(value)
        return number if math.isfinite(number) else None
    text = re.sub(r"\s+", "", str(value).replace(",", ""))
    cleaned = re.sub(r"[^0-9.\-]", "", text)
    if not cleaned or not any(ch.isdigit() for ch in cleaned):
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_number(value: Any) -> float:
    """Like try_parse_number but returns 0.0 for empty / unparseable cells."""
    number = try_parse_number(value)
    return 0.0 if number is None else number


def split_compound(value: Any) -> tuple[str, str]:
    """Split on the first hyphen / en-dash / em-dash.

    First segment -> first field, the rest re-joined with ``-`` -> second
    field. Without a delimiter the whole text is the first field.
    """
    text = cell_text(value)
    parts = _COMPOUND_SPLIT.split(text)
    if len(parts) < 2:
        return text, ""
    return parts[0].strip(), "-".join(parts[1:]).strip()


def classify_shape(value: Any) -> FieldShape:
    text = cell_text(value)
    if not text:
        return FieldShape.UNKNOWN
    for shape, pattern in SHAPE_PATTERNS:
        if pattern.search(text):
            return shape
    return FieldShape.UNKNOWN


def split_supplier_item(value: Any, last_supplier: str | None) -> tuple[str, str, FieldShape]:
    """Resolve a supplier-column cell into (supplier, item_code, shape).

    Company-like text and unrecognised text are supplier names (item code
    "Unknown"); bare upper-case codes are item codes paired with the last seen
    supplier. An empty cell keeps the last supplier.
    """
    text = cell_text(value)
    if not text:
        return last_supplier or "", UNKNOWN_ITEM, FieldShape.UNKNOWN
    shape = classify_shape(text)
    if shape is FieldShape.ITEM_CODE_LIKE:
        return last_supplier or "", text, shape
    return text, UNKNOWN_ITEM, shape


def split_vendor_description(value: Any, last_vendor: str | None) -> tuple[str, str]:
    """``รหัสผู้ขาย`` cell -> (vendor_code, description)."""
    text = cell_text(value)
    if not text:
        return last_vendor or "", ""
    if _VENDOR_CODE.match(text):
        return text, ""
    return last_vendor or "", text


def split_description_quantity(value: Any) -> tuple[str, str]:
    """``คำอธิบาย`` cell -> (description, quantity_text)."""
    text = cell_text(value)
    if _NUMERIC_TEXT.match(text):
        return "", text
    return text, ""


def split_unit_project(value: Any) -> tuple[str, str]:
    """Unit/project cell -> (unit, project_code).

    Dash-delimited cells use split_compound; otherwise ``P<digits>`` is a
    project code, 2-5 upper-case letters a unit, anything else project text.
    """
    text = cell_text(value)
    if not text:
        return "", ""
    if _COMPOUND_SPLIT.search(text):
        return split_compound(text)
    upper = text.upper()
    if _PROJECT_CODE.match(upper):
        return "", upper
    if _UNIT_CODE.match(upper):
        return upper, ""
    return "", text


def sniff_price_cell(value: Any) -> tuple[float | None, str | None]:
    """Price cell -> (price, unit). Letter-only content is a unit, not a price."""
    if isinstance(value, str):
        compact = re.sub(r"\s+", "", value.replace(",", ""))
        if _LETTERS_ONLY.match(compact):
            return None, compact
    return try_parse_number(value), None


def split_vat_engineer(value: Any) -> tuple[Any, str]:
    """VAT cell -> (vat_value, engineer). Digit-free text is an engineer name."""
    if value is None or isinstance(value, (date, datetime)):
        return None, ""
    if _is_number(value):
        return value, ""
    text = cell_text(value)
    if not text:
        return None, ""
    if any(ch.isdigit() for ch in text):
        return text, ""
    return None, text


def format_vat(value: Any) -> str:
    """Format a VAT cell as ``"<int>%"``; default ``"7%"``."""
    if _is_number(value):
        number = float(value)
        if not math.isfinite(number):
            return DEFAULT_VAT
        if 0 < abs(number) < 1:
            number = round(number * 100, 6)  # percent-formatted cell (0.07)
        return f"{int(abs(number))}%"
    text = cell_text(value).replace(",", "")
    match = _FIRST_NUMBER.search(text)
    if match is None:
        return DEFAULT_VAT
    number = float(match.group())
    if 0 < number < 1 and "%" not in text:
        number = round(number * 100, 6)  # CSV (dtype=str) の "0.07"
    return f"{int(number)}%"


def canonical_category(value: Any) -> str | None:
    """Map a category cell onto the vocabulary (case-insensitive), else None."""
    text = cell_text(value).lower()
    if not text:
        return None
    for name in CATEGORY_VOCABULARY:
        if name.lower() == text:
            return name
    return None


def categorize(text: Any) -> str:
    """Keyword classifier: first category whose keyword occurs in the text."""
    lowered = cell_text(text).lower()
    if lowered:
        for name, keywords in CATEGORY_KEYWORDS:
            if any(k in lowered for k in keywords):
                return name
    return OTHER_CATEGORY


def has_cancel_marker(value: Any) -> bool:
    lowered = cell_text(value).lower()
    return "ยกเลิก" in lowered or "cancelled" in lowered


def strip_cancel_marker(value: Any) -> str:
    """Remove cancellation markers: ``"PO-002 [POยกเลิก]"`` -> ``"PO-002"``."""
    text = _CANCEL_MARKER.sub("", cell_text(value))
    return text.strip(" -:\t")
