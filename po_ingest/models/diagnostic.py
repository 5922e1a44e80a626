from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

"""Diagnostic model for auditable soft failures.

Every value the pipeline defaults, clamps or drops is reported as a
Diagnostic so that silent data repair stays traceable. Serialised as JSON
Lines with a fixed key set; ``row`` is -1 for sheet or file level notes.
"""

__all__ = [
    "Diagnostic",
    "DiagnosticKind",
]


class DiagnosticKind:
    """UPPER_SNAKE identifiers used in ``Diagnostic.kind``."""
    DATE_UNPARSEABLE = "DATE_UNPARSEABLE"
    DATE_MISSING = "DATE_MISSING"
    NUMBER_UNPARSEABLE = "NUMBER_UNPARSEABLE"
    NEGATIVE_CLAMPED = "NEGATIVE_CLAMPED"
    ORPHAN_LINE_DROPPED = "ORPHAN_LINE_DROPPED"
    ORPHAN_LINE_ATTACHED = "ORPHAN_LINE_ATTACHED"
    HEADER_LABEL_ROW_SKIPPED = "HEADER_LABEL_ROW_SKIPPED"
    PO_CANCELLED = "PO_CANCELLED"
    SHEET_EMPTY = "SHEET_EMPTY"
    SHEET_READ_ERROR = "SHEET_READ_ERROR"
    STORAGE_WRITE_FAILED = "STORAGE_WRITE_FAILED"


def _printable(value: Any) -> str | None:
    if value is None:
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


@dataclass(frozen=True)
class Diagnostic:
    """Structured note about one skipped, defaulted or failed value.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: upload filename ("" when normalizing bare rows)
        sheet: source sheet name
        row: 1-based source row number, -1 when not row specific
        field: canonical field name ("" when not field specific)
        kind: UPPER_SNAKE classification (see DiagnosticKind)
        raw_value: offending cell rendered as text, or None
        message: human readable description
    """
    timestamp: str
    file: str
    sheet: str
    row: int
    field: str
    kind: str
    raw_value: str | None
    message: str

    @staticmethod
    def create(
        sheet: str,
        row: int,
        kind: str,
        message: str,
        *,
        field: str = "",
        raw_value: Any = None,
        file: str = "",
    ) -> Diagnostic:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return Diagnostic(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            field=field,
            kind=kind,
            raw_value=_printable(raw_value),
            message=message,
        )

    def with_file(self, file: str) -> Diagnostic:
        return Diagnostic(**{**asdict(self), "file": file})

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
