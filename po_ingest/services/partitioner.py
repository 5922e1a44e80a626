from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import UTC, datetime

from ..models.records import CanonicalRecord
from ..models.tables import CategoryRecord, SupplierRecord, TableSet, UploadLogRecord, normalize_key

"""Table partitioner: canonical records -> the five named storage tables.

Header / line tables are rebuilt from the records of this upload; the
supplier and category dimensions are deduplicated here by normalized name
and again against storage by the gateway's upsert.
"""

__all__ = [
    "HEADER_SENTINEL",
    "STATUS_SUCCESS",
    "TIMESTAMP_FMT",
    "partition_for_storage",
]

HEADER_SENTINEL = "HEADER"
STATUS_SUCCESS = "Success"
TIMESTAMP_FMT = "%Y-%m-%d %H:%M:%S"


def _as_header_row(record: CanonicalRecord) -> CanonicalRecord:
    # 金額は PO 合計側で管理するため明細金額はゼロ化
    return replace(
        record,
        item_description=HEADER_SENTINEL,
        quantity=0.0,
        unit=HEADER_SENTINEL,
        unit_price=0.0,
        total_price=0.0,
        category=HEADER_SENTINEL,
    )


def _distinct(names: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for name in names:
        key = normalize_key(name)
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(name.strip())
    return out


def _sheet_details(
    records: Sequence[CanonicalRecord], sheet_names: Sequence[str] | None
) -> tuple[tuple[str, int], ...]:
    counts: dict[str, int] = {name: 0 for name in sheet_names or ()}
    for r in records:
        counts[r.source_sheet] = counts.get(r.source_sheet, 0) + 1
    return tuple(counts.items())


def partition_for_storage(
    records: Sequence[CanonicalRecord],
    upload_filename: str,
    *,
    sheet_names: Sequence[str] | None = None,
    now: datetime | None = None,
) -> TableSet:
    """Split canonical records into the storage tables of one upload.

    Parameters
    ----------
    records: canonical records of every sheet, in source order
    upload_filename: recorded in the upload log
    sheet_names: processed sheets, so sheets without records still count
    now: timestamp for last_seen / upload log (default: now, UTC)

    Returns
    -------
    TableSet with procurement_head, procurement_line, suppliers_master,
    categories_master and exactly one upload_logs row. Empty input yields
    empty tables and a ``row_count=0`` / ``Success`` log row.
    """
    stamp = (now or datetime.now(UTC)).strftime(TIMESTAMP_FMT)

    head = [_as_header_row(r) for r in records if r.is_head]
    line = [r for r in records if r.is_line]

    suppliers = [SupplierRecord(name=n, last_seen=stamp) for n in _distinct(r.supplier_name for r in line)]
    categories = [
        CategoryRecord(name=n, description=f"Auto-generated category for {n}")
        for n in _distinct(r.category for r in line)
    ]

    details = _sheet_details(records, sheet_names)
    log = UploadLogRecord(
        timestamp=stamp,
        filename=upload_filename,
        row_count=len(line),
        status=STATUS_SUCCESS,
        sheets_processed=len(details),
        sheet_details=details,
    )
    return TableSet(
        procurement_head=head,
        procurement_line=line,
        suppliers_master=suppliers,
        categories_master=categories,
        upload_logs=[log],
    )
