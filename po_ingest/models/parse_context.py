from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .records import RowKind

"""Fill-down state carried across one sheet's row walk.

A ParseContext is created per sheet by the classifier and discarded at the end
of the sheet; it is never shared between sheets or pipeline invocations.
"""

__all__ = [
    "ParseState",
    "ParseContext",
    "ClassifiedRow",
]


class ParseState(Enum):
    """Row walk state.

    SEEKING_HEADER: no PO header seen yet in this sheet
    IN_PO: a PO header is active; header-less rows become its lines
    """
    SEEKING_HEADER = "seeking_header"
    IN_PO = "in_po"


@dataclass
class ParseContext:
    """Most recent non-empty values seen so far in the current sheet."""
    last_po_number: str | None = None
    last_date: str | None = None  # ISO date
    last_vendor_code: str | None = None
    last_supplier_name: str | None = None
    last_project_code: str | None = None
    cancelled_pos: set[str] = field(default_factory=set)
    state: ParseState = ParseState.SEEKING_HEADER

    def open_po(self, po_number: str) -> None:
        self.last_po_number = po_number
        self.state = ParseState.IN_PO

    def remember(self, **values: str | None) -> None:
        """Update carry-forward fields, ignoring empty values."""
        for name, value in values.items():
            if value:
                setattr(self, f"last_{name}", value)


@dataclass(frozen=True)
class ClassifiedRow:
    """A raw row tagged HEADER / LINE with its resolved header context.

    ``context`` keys (all optional):
        po_number, date, supplier, item_code, vendor_code, vendor_description,
        project_code, unit, cancelled, running_no
    For LINE rows po_number / date / supplier are inherited from the active
    header and take precedence over the row's own cells.
    """
    row_number: int  # 1-based source row number
    kind: RowKind
    values: dict[str, Any]
    context: dict[str, Any]

    @property
    def po_number(self) -> str:
        return self.context.get("po_number") or ""

    @property
    def cancelled(self) -> bool:
        return bool(self.context.get("cancelled"))
