from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any

from ..models.diagnostic import Diagnostic, DiagnosticKind
from ..models.parse_context import ClassifiedRow
from ..models.records import CANCELLED_TAG, CanonicalRecord, RowKind
from .cells import (
    UNKNOWN_ITEM,
    canonical_category,
    categorize,
    cell_text,
    format_vat,
    parse_date,
    sniff_price_cell,
    split_compound,
    split_description_quantity,
    split_unit_project,
    split_vat_engineer,
    try_parse_number,
)
from .fields import (
    CATEGORY_KEYS,
    DATE_KEYS,
    DESCRIPTION_KEYS,
    DESCRIPTION_QTY_KEYS,
    ENGINEER_KEYS,
    PO_KEYS,
    PRICE_KEYS,
    PROJECT_KEYS,
    QUANTITY_KEYS,
    SUPPLIER_KEYS,
    TOTAL_KEYS,
    UNIT_KEYS,
    VAT_KEYS,
    find_value,
    is_blank,
)

"""Row projector: ClassifiedRow -> CanonicalRecord.

Applies the cell normalizers field by field. Context values resolved by the
classifier (PO number, date, supplier, project code) win over the row's own
cells. Numeric fields are clamped to >= 0, unparseable cells fall back to
documented defaults, and every such repair is appended to ``issues``.
"""

__all__ = [
    "DEFAULT_UNIT",
    "DEFAULT_PROJECT",
    "DEFAULT_ENGINEER",
    "UNKNOWN_SUPPLIER",
    "project",
    "as_classified_row",
]

DEFAULT_UNIT = "Unit"
DEFAULT_PROJECT = "N/A"
DEFAULT_ENGINEER = "Unassigned"
UNKNOWN_SUPPLIER = "Unknown"


class _Notes:
    def __init__(self, sheet: str, row_number: int, issues: list[Diagnostic] | None) -> None:
        self.sheet = sheet
        self.row_number = row_number
        self.issues = issues

    def add(self, kind: str, field: str, raw: Any, message: str) -> None:
        if self.issues is not None:
            self.issues.append(
                Diagnostic.create(self.sheet, self.row_number, kind, message, field=field, raw_value=raw)
            )


def _number(raw: Any, field: str, notes: _Notes) -> float | None:
    value = try_parse_number(raw)
    if value is None and not is_blank(raw):
        notes.add(DiagnosticKind.NUMBER_UNPARSEABLE, field, raw, f"unparseable {field}")
    return value


def _non_negative(value: float, field: str, notes: _Notes) -> float:
    if value < 0:
        notes.add(DiagnosticKind.NEGATIVE_CLAMPED, field, value, f"negative {field} clamped to 0")
        return 0.0
    return value


def project(
    row: ClassifiedRow,
    sheet: str = "",
    *,
    issues: list[Diagnostic] | None = None,
    today: date | None = None,
) -> CanonicalRecord:
    """Project one classified row into a CanonicalRecord.

    Parameters
    ----------
    row: classified row (HEADER or LINE) with its resolved context
    sheet: source sheet tag stored in ``sourceSheet``
    issues: optional sink for diagnostics about defaulted / clamped values
    today: date used when no date can be resolved (default: today, UTC)
    """
    ctx = row.context
    values = row.values
    notes = _Notes(sheet, row.row_number, issues)

    # PO number
    po_number = ctx.get("po_number") or cell_text(find_value(values, PO_KEYS))
    if row.cancelled and not po_number.endswith(CANCELLED_TAG):
        po_number += CANCELLED_TAG

    # Date
    iso = ctx["date"] if "date" in ctx else parse_date(find_value(values, DATE_KEYS))
    if iso is None:
        iso = (today or datetime.now(UTC).date()).isoformat()
        notes.add(
            DiagnosticKind.DATE_MISSING,
            "date",
            find_value(values, DATE_KEYS),
            f"no usable date, defaulted to {iso}",
        )

    # Supplier / item description
    supplier_text = ctx["supplier"] if "supplier" in ctx else cell_text(find_value(values, SUPPLIER_KEYS))
    supplier_name, supplier_tail = split_compound(supplier_text)
    description = cell_text(find_value(values, DESCRIPTION_KEYS))
    extra_description, qty_text = split_description_quantity(find_value(values, DESCRIPTION_QTY_KEYS))
    item_code = ctx.get("item_code") or UNKNOWN_ITEM
    item_description = (
        description
        or supplier_tail
        or extra_description
        or ctx.get("vendor_description")
        or (item_code if item_code != UNKNOWN_ITEM else "")
    )

    # Quantity
    raw_qty = find_value(values, QUANTITY_KEYS)
    if is_blank(raw_qty) and qty_text:
        raw_qty = qty_text
    quantity = _number(raw_qty, "quantity", notes)
    quantity = _non_negative(1.0 if quantity is None else quantity, "quantity", notes)

    # Unit price (letter-only price cells are really units)
    raw_price = find_value(values, PRICE_KEYS)
    price, price_unit = sniff_price_cell(raw_price)
    if price is None and price_unit is None and not is_blank(raw_price):
        notes.add(DiagnosticKind.NUMBER_UNPARSEABLE, "unit_price", raw_price, "unparseable unit_price")

    # Total: an explicit total cell wins over quantity * unit price
    raw_total = find_value(values, TOTAL_KEYS)
    explicit_total = _number(raw_total, "total_price", notes)
    if price is None and explicit_total is not None and quantity > 0:
        price = explicit_total / quantity
    unit_price = _non_negative(price or 0.0, "unit_price", notes)
    if explicit_total is not None:
        total_price = _non_negative(explicit_total, "total_price", notes)
    else:
        total_price = quantity * unit_price

    # Unit / project code
    if "project_code" in ctx:
        context_unit, project_code = ctx.get("unit") or "", ctx["project_code"]
    else:
        context_unit, project_code = split_unit_project(find_value(values, PROJECT_KEYS))
    unit = cell_text(find_value(values, UNIT_KEYS)) or price_unit or context_unit or DEFAULT_UNIT

    # VAT / engineer
    vat_value, vat_engineer = split_vat_engineer(find_value(values, VAT_KEYS))
    engineer = cell_text(find_value(values, ENGINEER_KEYS)) or vat_engineer or DEFAULT_ENGINEER

    # Category
    raw_category = find_value(values, CATEGORY_KEYS)
    category = canonical_category(raw_category) or categorize(
        f"{item_description} {cell_text(raw_category)}"
    )

    is_head = row.kind is RowKind.HEADER
    return CanonicalRecord(
        date=iso,
        po_number=po_number,
        supplier_name=supplier_name or UNKNOWN_SUPPLIER,
        item_description=item_description,
        quantity=quantity,
        unit=unit,
        project_code=project_code or DEFAULT_PROJECT,
        unit_price=unit_price,
        total_price=total_price,
        vat_rate=format_vat(vat_value),
        engineer_name=engineer,
        category=category,
        source_sheet=sheet,
        is_head=is_head,
        is_line=not is_head,
    )


def as_classified_row(record: CanonicalRecord, row_number: int = 1) -> ClassifiedRow:
    """Turn a canonical record back into a classified row.

    Projecting the result yields the same record; used to re-run stored
    records through the normalizers.
    """
    values = {
        "Description": record.item_description,
        "Qty": record.quantity,
        "Unit": record.unit,
        "Price": record.unit_price,
        "Total Amount": record.total_price,
        "VAT": record.vat_rate,
        "Engineer": record.engineer_name,
        "Category": record.category,
    }
    context = {
        "po_number": record.base_po_number,
        "date": record.date,
        "supplier": record.supplier_name,
        "item_code": UNKNOWN_ITEM,
        "project_code": record.project_code,
        "unit": record.unit,
        "cancelled": record.is_cancelled,
    }
    return ClassifiedRow(row_number=row_number, kind=record.kind, values=values, context=context)
