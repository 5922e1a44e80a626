from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

"""Field locator and the column synonym table.

Source exports name the same column differently (English, Thai, or a
positional ``__EMPTY_n`` placeholder for merged header cells). Each canonical
field has one ordered synonym tuple; the order is the lookup priority and
must not be reshuffled.
"""

__all__ = [
    "RawRow",
    "FIELD_SYNONYMS",
    "PO_KEYS",
    "DATE_KEYS",
    "SUPPLIER_KEYS",
    "DESCRIPTION_KEYS",
    "PROJECT_KEYS",
    "UNIT_KEYS",
    "QUANTITY_KEYS",
    "PRICE_KEYS",
    "TOTAL_KEYS",
    "VAT_KEYS",
    "ENGINEER_KEYS",
    "CATEGORY_KEYS",
    "STATUS_KEYS",
    "VENDOR_KEYS",
    "DESCRIPTION_QTY_KEYS",
    "HEADER_LABEL_KEYWORDS",
    "find_value",
    "is_blank",
    "is_header_label_row",
]

RawRow = Mapping[str, Any]

PO_KEYS = ("PO", "PO_Number", "เลขที่ PO", "PO.NO.", "PO NO", "NO.PO", "No.PO", "__EMPTY_1")
DATE_KEYS = ("DATE", "Date", "วันที่", "PO Date", "__EMPTY_2")
SUPPLIER_KEYS = (
    "Supplier",
    "ผู้ขาย",
    "ชื่อผู้ขาย",
    "Supplier Name",
    "Vendor",
    "__EMPTY_3",
    "__EMPTY_4",
    "__EMPTY_5",
    "__EMPTY_6",
)
DESCRIPTION_KEYS = (
    "Description",
    "รายละเอียด",
    "รายการ",
    "Item Description",
    "Item_Description",
    "__EMPTY_3",
    "__EMPTY_4",
)
PROJECT_KEYS = ("Project", "Project Code", "โครงการ", "Project_Code", "ProjectNo", "รหัสงาน")
UNIT_KEYS = ("Unit", "หน่วย", "UOM")
QUANTITY_KEYS = ("Qty", "Quantity", "จำนวน", "__EMPTY_5")
# "Total Amount" 系は TOTAL_KEYS 側 (明示合計が qty*price より優先)
PRICE_KEYS = (
    "Price",
    "Amount",
    "ราคา",
    "จำนวนเงิน",
    "Unit_Price",
    "Unit Price",
    "__EMPTY_6",
    "__EMPTY_7",
    "__EMPTY_8",
    "__EMPTY_9",
    "__EMPTY_10",
)
TOTAL_KEYS = ("Total Amount", "TotalValue", "ยอดรวม")
VAT_KEYS = ("VAT", "ภาษี", "VAT_Rate", "__EMPTY_11", "__EMPTY_12")
ENGINEER_KEYS = ("Engineer", "ผู้อนุมัติ", "วิศวกร", "Engineer_Name", "__EMPTY_13", "__EMPTY_14")
CATEGORY_KEYS = (
    "Category",
    "หมวดหมู่",
    "ประเภท",
    "__EMPTY_15",
    "__EMPTY_16",
    "__EMPTY_17",
    "__EMPTY_18",
)
STATUS_KEYS = ("PO Status", "Status")
VENDOR_KEYS = ("รหัสผู้ขาย", "Vendor Code")
DESCRIPTION_QTY_KEYS = ("คำอธิบาย",)

FIELD_SYNONYMS: dict[str, tuple[str, ...]] = {
    "po_number": PO_KEYS,
    "date": DATE_KEYS,
    "supplier": SUPPLIER_KEYS,
    "description": DESCRIPTION_KEYS,
    "project": PROJECT_KEYS,
    "unit": UNIT_KEYS,
    "quantity": QUANTITY_KEYS,
    "unit_price": PRICE_KEYS,
    "total_price": TOTAL_KEYS,
    "vat": VAT_KEYS,
    "engineer": ENGINEER_KEYS,
    "category": CATEGORY_KEYS,
    "status": STATUS_KEYS,
    "vendor": VENDOR_KEYS,
    "description_qty": DESCRIPTION_QTY_KEYS,
}

HEADER_LABEL_KEYWORDS = (
    "ผู้ขาย",
    "supplier",
    "วันที่",
    "date",
    "po",
    "รายการ",
    "description",
    "จำนวน",
    "quantity",
)


def _label_vocabulary() -> frozenset[str]:
    words = {k.lower() for k in HEADER_LABEL_KEYWORDS}
    for names in FIELD_SYNONYMS.values():
        words.update(n.strip().lower() for n in names if not n.startswith("__EMPTY"))
    return frozenset(words)


_LABELS = _label_vocabulary()


def is_blank(value: Any) -> bool:
    """None, NaN and whitespace-only strings count as empty cells."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def find_value(row: RawRow, candidates: Sequence[str]) -> Any:
    """Return the first non-null cell whose column matches a candidate name.

    Column matching is case-insensitive; candidates are tried in order and a
    matching column holding null/NaN falls through to the next candidate.
    Returns None when nothing matches.
    """
    lookup: dict[str, str] = {}
    for key in row.keys():
        lookup.setdefault(str(key).lower(), key)
    for name in candidates:
        key = lookup.get(name.lower())
        if key is None:
            continue
        value = row[key]
        if value is None or (isinstance(value, float) and math.isnan(value)):
            continue
        return value
    return None


def is_header_label_row(row: RawRow | Iterable[Any], min_matches: int = 2) -> bool:
    """Detect a repeated column-label row (e.g. "เลขที่ PO", "ผู้ขาย", "Date").

    Counts text cells that are exactly a known label (case-insensitive); rows
    with ``min_matches`` or more such cells are labels, not data.
    """
    values = row.values() if isinstance(row, Mapping) else row
    matches = 0
    for value in values:
        if isinstance(value, str) and value.strip().lower() in _LABELS:
            matches += 1
            if matches >= min_matches:
                return True
    return False
