from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from ..models.config_models import ORPHAN_DROP, ORPHAN_UNKNOWN
from ..models.diagnostic import Diagnostic, DiagnosticKind
from ..models.parse_context import ClassifiedRow, ParseContext, ParseState
from ..models.records import RowKind
from .cells import (
    FieldShape,
    UNKNOWN_ITEM,
    cell_text,
    has_cancel_marker,
    parse_date,
    split_supplier_item,
    split_unit_project,
    split_vendor_description,
    strip_cancel_marker,
)
from .fields import (
    DATE_KEYS,
    PO_KEYS,
    PROJECT_KEYS,
    STATUS_KEYS,
    SUPPLIER_KEYS,
    VENDOR_KEYS,
    RawRow,
    find_value,
    is_blank,
    is_header_label_row,
)

"""Row classifier / fill-down state machine.

Walks one sheet's rows in order with a fresh ParseContext:

- a row carrying a PO number opens a PO and is tagged HEADER
- while a PO is open, rows without a PO number are its LINE rows and inherit
  PO number, date and supplier from the context
- rows before any header are orphans (dropped by default)
- repeated column-label rows are skipped

Cancellation markers may appear after the rows they cancel, so the cancelled
flag is applied in a second pass once the whole sheet has been walked.
"""

__all__ = [
    "ClassificationResult",
    "classify_rows",
    "UNKNOWN_PO",
]

logger = logging.getLogger(__name__)

UNKNOWN_PO = "Unknown"

# 明細行では位置プレースホルダ列 (__EMPTY_n) は説明/数量列と衝突するため使わない
_LINE_SUPPLIER_KEYS = tuple(k for k in SUPPLIER_KEYS if not k.startswith("__EMPTY"))


@dataclass(frozen=True)
class ClassificationResult:
    """Classified rows of one sheet plus what was skipped and why."""
    rows: list[ClassifiedRow]
    cancelled_pos: frozenset[str] = frozenset()
    diagnostics: list[Diagnostic] = field(default_factory=list)
    orphan_rows: int = 0
    label_rows: int = 0

    @property
    def skipped_rows(self) -> int:
        return self.orphan_rows + self.label_rows

    @property
    def header_rows(self) -> int:
        return sum(1 for r in self.rows if r.kind is RowKind.HEADER)

    @property
    def line_rows(self) -> int:
        return sum(1 for r in self.rows if r.kind is RowKind.LINE)


def _running_number(value: Any) -> str | None:
    """Small integers in the date column are running numbers, not dates."""
    if isinstance(value, bool):
        return None
    text = cell_text(value)
    if text.isdigit() and int(text) < 100:
        return text
    return None


class _RowWalker:
    """Holds the per-sheet state of one classify_rows() call."""

    def __init__(self, sheet: str, orphan_policy: str, label_min_matches: int) -> None:
        self.sheet = sheet
        self.orphan_policy = orphan_policy
        self.label_min_matches = label_min_matches
        self.ctx = ParseContext()
        self.rows: list[ClassifiedRow] = []
        self.diagnostics: list[Diagnostic] = []
        self.orphan_rows = 0
        self.label_rows = 0
        self.opened_pos: set[str] = set()

    def note(self, row_number: int, kind: str, message: str, **kwargs: Any) -> None:
        self.diagnostics.append(Diagnostic.create(self.sheet, row_number, kind, message, **kwargs))

    def cancel(self, po_number: str, row_number: int, raw: Any) -> None:
        if po_number not in self.ctx.cancelled_pos:
            self.ctx.cancelled_pos.add(po_number)
            self.note(
                row_number,
                DiagnosticKind.PO_CANCELLED,
                f"PO {po_number} marked cancelled",
                field="po_number",
                raw_value=raw,
            )

    # --- per-row handling -------------------------------------------------

    def walk(self, row_number: int, row: RawRow) -> None:
        if all(is_blank(v) for v in row.values()):
            return
        if is_header_label_row(row, self.label_min_matches):
            self.label_rows += 1
            self.note(row_number, DiagnosticKind.HEADER_LABEL_ROW_SKIPPED, "column label row skipped")
            return

        po_raw = find_value(row, PO_KEYS)
        po_text = cell_text(po_raw)
        status_raw = find_value(row, STATUS_KEYS)

        if po_text and has_cancel_marker(po_text):
            base = strip_cancel_marker(po_text)
            if not base or base == self.ctx.last_po_number or base in self.opened_pos:
                # 取消マーカー行: 対象 PO を取消、行自体はレコード化しない
                target = base or self.ctx.last_po_number
                if target:
                    self.cancel(target, row_number, po_raw)
                else:
                    self.orphan_rows += 1
                    self.note(
                        row_number,
                        DiagnosticKind.ORPHAN_LINE_DROPPED,
                        "cancellation marker before any PO header",
                        field="po_number",
                        raw_value=po_raw,
                    )
                return
            self.cancel(base, row_number, po_raw)
            po_text = base

        if po_text:
            self.rows.append(self._header(row_number, row, po_text))
        elif self.ctx.state is ParseState.IN_PO:
            self.rows.append(self._line(row_number, row, self.ctx.last_po_number or ""))
        elif self.orphan_policy == ORPHAN_UNKNOWN:
            self.rows.append(self._line(row_number, row, UNKNOWN_PO))
            self.note(row_number, DiagnosticKind.ORPHAN_LINE_ATTACHED, f"line before any PO header attached to PO {UNKNOWN_PO}")
            return
        else:
            self.orphan_rows += 1
            self.note(row_number, DiagnosticKind.ORPHAN_LINE_DROPPED, "line before any PO header dropped")
            return

        if has_cancel_marker(status_raw):
            self.cancel(self.rows[-1].po_number, row_number, status_raw)

    def _header(self, row_number: int, row: RawRow, po_number: str) -> ClassifiedRow:
        ctx = self.ctx
        date_raw = find_value(row, DATE_KEYS)
        running_no = _running_number(date_raw)
        if running_no is not None:
            date_raw = None
        iso = parse_date(date_raw)
        if iso is None and not is_blank(date_raw):
            self.note(
                row_number,
                DiagnosticKind.DATE_UNPARSEABLE,
                "unparseable PO date, carrying previous date",
                field="date",
                raw_value=date_raw,
            )
        iso = iso or ctx.last_date

        supplier, item_code, _ = split_supplier_item(find_value(row, SUPPLIER_KEYS), ctx.last_supplier_name)
        context = self._shared_context(row, supplier, item_code)
        context.update(po_number=po_number, date=iso, running_no=running_no)

        ctx.open_po(po_number)
        self.opened_pos.add(po_number)
        ctx.remember(date=iso, supplier_name=supplier)
        return ClassifiedRow(row_number=row_number, kind=RowKind.HEADER, values=dict(row), context=context)

    def _line(self, row_number: int, row: RawRow, po_number: str) -> ClassifiedRow:
        ctx = self.ctx
        raw_supplier = find_value(row, _LINE_SUPPLIER_KEYS)
        if is_blank(raw_supplier):
            supplier, item_code = ctx.last_supplier_name or "", UNKNOWN_ITEM
        else:
            supplier, item_code, shape = split_supplier_item(raw_supplier, ctx.last_supplier_name)
            if shape is not FieldShape.ITEM_CODE_LIKE:
                ctx.remember(supplier_name=supplier)

        context = self._shared_context(row, supplier, item_code)
        context.update(po_number=po_number, date=ctx.last_date)
        return ClassifiedRow(row_number=row_number, kind=RowKind.LINE, values=dict(row), context=context)

    def _shared_context(self, row: RawRow, supplier: str, item_code: str) -> dict[str, Any]:
        ctx = self.ctx
        vendor_raw = find_value(row, VENDOR_KEYS)
        vendor_code, vendor_description = split_vendor_description(vendor_raw, ctx.last_vendor_code)

        unit, project_code = split_unit_project(find_value(row, PROJECT_KEYS))
        if project_code:
            ctx.remember(project_code=project_code)
        else:
            project_code = ctx.last_project_code or ""
        ctx.remember(vendor_code=vendor_code)

        return {
            "supplier": supplier,
            "item_code": item_code,
            "vendor_code": vendor_code,
            "vendor_description": vendor_description,
            "project_code": project_code,
            "unit": unit,
        }

    # --- second pass ------------------------------------------------------

    def result(self) -> ClassificationResult:
        cancelled = frozenset(self.ctx.cancelled_pos)
        rows = [
            replace(r, context={**r.context, "cancelled": True}) if r.po_number in cancelled else r
            for r in self.rows
        ]
        return ClassificationResult(
            rows=rows,
            cancelled_pos=cancelled,
            diagnostics=self.diagnostics,
            orphan_rows=self.orphan_rows,
            label_rows=self.label_rows,
        )


def classify_rows(
    rows: Sequence[RawRow],
    sheet: str = "",
    *,
    orphan_policy: str = ORPHAN_DROP,
    header_label_min_matches: int = 2,
    first_row_number: int = 1,
) -> ClassificationResult:
    """Classify one sheet's rows as HEADER / LINE with fill-down context.

    Parameters
    ----------
    rows: raw rows in source order (one sheet)
    sheet: sheet name used in diagnostics
    orphan_policy: "drop" (default) or "unknown" for lines before any header
    header_label_min_matches: label cells needed to treat a row as column labels
    first_row_number: source row number of ``rows[0]`` for diagnostics
    """
    if orphan_policy not in (ORPHAN_DROP, ORPHAN_UNKNOWN):
        raise ValueError(f"unknown orphan policy: {orphan_policy}")
    walker = _RowWalker(sheet, orphan_policy, header_label_min_matches)
    for offset, row in enumerate(rows):
        walker.walk(first_row_number + offset, row)
    result = walker.result()
    logger.debug(
        "classified sheet=%s headers=%d lines=%d skipped=%d cancelled=%d",
        sheet,
        result.header_rows,
        result.line_rows,
        result.skipped_rows,
        len(result.cancelled_pos),
    )
    return result
