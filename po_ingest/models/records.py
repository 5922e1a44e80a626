from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Canonical procurement record model.

A CanonicalRecord is produced once per accepted source row by the projector
and never mutated afterwards. The persisted column names are the camelCase
names in CANONICAL_COLUMNS; dashboards key off these strings, so their order
is part of the storage contract.
"""

__all__ = [
    "RowKind",
    "CanonicalRecord",
    "CANONICAL_COLUMNS",
    "CANCELLED_TAG",
]

CANCELLED_TAG = " [POยกเลิก]"

CANONICAL_COLUMNS: tuple[str, ...] = (
    "date",
    "poNumber",
    "supplierName",
    "itemDescription",
    "quantity",
    "unit",
    "projectCode",
    "unitPrice",
    "totalPrice",
    "vatRate",
    "engineerName",
    "category",
    "sourceSheet",
    "isHead",
    "isLine",
)


class RowKind(Enum):
    """Classification tag assigned to a source row."""
    HEADER = "HEADER"
    LINE = "LINE"


@dataclass(frozen=True)
class CanonicalRecord:
    """Fully typed PO header or line record."""
    date: str  # ISO YYYY-MM-DD
    po_number: str
    supplier_name: str
    item_description: str
    quantity: float
    unit: str
    project_code: str
    unit_price: float
    total_price: float
    vat_rate: str  # "<int>%"
    engineer_name: str
    category: str
    source_sheet: str
    is_head: bool
    is_line: bool

    def __post_init__(self) -> None:
        if self.is_head == self.is_line:
            raise ValueError("record must be exactly one of head / line")

    @property
    def kind(self) -> RowKind:
        return RowKind.HEADER if self.is_head else RowKind.LINE

    @property
    def is_cancelled(self) -> bool:
        return self.po_number.endswith(CANCELLED_TAG)

    @property
    def base_po_number(self) -> str:
        """PO number without the cancellation tag."""
        if self.is_cancelled:
            return self.po_number[: -len(CANCELLED_TAG)]
        return self.po_number

    def to_row(self) -> dict[str, Any]:
        """Render as a storage row keyed by the persisted column names."""
        values = (
            self.date,
            self.po_number,
            self.supplier_name,
            self.item_description,
            self.quantity,
            self.unit,
            self.project_code,
            self.unit_price,
            self.total_price,
            self.vat_rate,
            self.engineer_name,
            self.category,
            self.source_sheet,
            self.is_head,
            self.is_line,
        )
        return dict(zip(CANONICAL_COLUMNS, values, strict=True))
