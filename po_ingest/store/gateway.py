from __future__ import annotations

import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import pandas as pd

from ..models.tables import normalize_key

"""Storage gateway: named tables of rows with a header row.

The pipeline only depends on the ``StorageGateway`` protocol. Two backends:

- ``InMemoryStore``: DataFrames held in a dict (tests / dry runs)
- ``WorkbookStore``: one .xlsx workbook, one worksheet per table, written
  through pandas + openpyxl

Both share the table semantics of ``_FrameStore``:

- append keeps the existing header order; columns not seen before are
  added at the end
- upsert appends only rows whose key (trimmed, case-insensitive) is not
  already stored, and drops duplicate keys within the batch
"""

__all__ = [
    "StorageError",
    "StorageGateway",
    "InMemoryStore",
    "WorkbookStore",
]


class StorageError(Exception):
    """Raised when a table cannot be read or written."""


@runtime_checkable
class StorageGateway(Protocol):
    def read_table(self, name: str) -> list[dict[str, Any]]: ...

    def write_table(self, name: str, rows: Sequence[dict[str, Any]]) -> int: ...

    def append_table(self, name: str, rows: Sequence[dict[str, Any]]) -> int: ...

    def upsert_table(self, name: str, rows: Sequence[dict[str, Any]], key_field: str) -> int: ...


def _columns_of(rows: Sequence[dict[str, Any]], start: Sequence[str] = ()) -> list[str]:
    columns = list(start)
    for row in rows:
        for col in row:
            if col not in columns:
                columns.append(col)
    return columns


def _records(df: pd.DataFrame) -> list[dict[str, Any]]:
    # NaN -> None (空セル)
    return df.astype(object).where(pd.notna(df), None).to_dict("records")


class _FrameStore:
    """Table semantics over a ``dict[str, DataFrame]``; subclasses load / save it."""

    def _load(self) -> dict[str, pd.DataFrame]:  # pragma: no cover - abstract
        raise NotImplementedError

    def _save(self, frames: dict[str, pd.DataFrame]) -> None:  # pragma: no cover - abstract
        raise NotImplementedError

    def table_names(self) -> list[str]:
        return list(self._load())

    def read_table(self, name: str) -> list[dict[str, Any]]:
        """Rows of ``name`` as dicts (empty list when the table does not exist)."""
        df = self._load().get(name)
        if df is None:
            return []
        return _records(df)

    def write_table(self, name: str, rows: Sequence[dict[str, Any]]) -> int:
        """Replace ``name`` with ``rows``."""
        frames = self._load()
        frames[name] = pd.DataFrame(list(rows), columns=_columns_of(rows))
        self._save(frames)
        return len(rows)

    def append_table(self, name: str, rows: Sequence[dict[str, Any]]) -> int:
        """Append ``rows`` below the existing ones; returns rows appended."""
        if not rows:
            return 0
        frames = self._load()
        existing = frames.get(name)
        if existing is None or len(existing.columns) == 0:
            frames[name] = pd.DataFrame(list(rows), columns=_columns_of(rows))
        else:
            columns = _columns_of(rows, start=[str(c) for c in existing.columns])
            added = pd.DataFrame(list(rows), columns=columns)
            if existing.empty:
                frames[name] = added
            else:
                frames[name] = pd.concat([existing.reindex(columns=columns), added], ignore_index=True)
        self._save(frames)
        return len(rows)

    def upsert_table(self, name: str, rows: Sequence[dict[str, Any]], key_field: str) -> int:
        """Append rows whose ``key_field`` is new; returns rows appended (0 = nothing new)."""
        existing = self._load().get(name)
        seen: set[str] = set()
        if existing is not None and len(existing.columns) > 0:
            if key_field not in existing.columns:
                raise StorageError(f"table '{name}' has no key column '{key_field}'")
            seen = {normalize_key(v) for v in existing[key_field].tolist() if pd.notna(v)}

        fresh: list[dict[str, Any]] = []
        for row in rows:
            key = normalize_key(row.get(key_field))
            if not key or key in seen:
                continue
            seen.add(key)
            fresh.append(row)
        if not fresh:
            return 0
        return self.append_table(name, fresh)


class InMemoryStore(_FrameStore):
    """Tables held in memory; ``tables`` seeds initial content."""

    def __init__(self, tables: dict[str, Sequence[dict[str, Any]]] | None = None) -> None:
        self._frames: dict[str, pd.DataFrame] = {}
        for name, rows in (tables or {}).items():
            self._frames[name] = pd.DataFrame(list(rows), columns=_columns_of(rows))

    def _load(self) -> dict[str, pd.DataFrame]:
        return dict(self._frames)

    def _save(self, frames: dict[str, pd.DataFrame]) -> None:
        self._frames = dict(frames)


class WorkbookStore(_FrameStore):
    """Tables stored as worksheets of one .xlsx workbook."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, pd.DataFrame]:
        if not self.path.exists():
            return {}
        try:
            frames = pd.read_excel(self.path, sheet_name=None, dtype=object, engine="openpyxl")
        except Exception as e:  # noqa: BLE001 - openpyxl / zip errors vary
            raise StorageError(f"cannot read store workbook {self.path}: {e}") from e
        return {str(k): v for k, v in frames.items()}

    def _save(self, frames: dict[str, pd.DataFrame]) -> None:
        # 一時ファイルに書いてから置換 (失敗時に既存ブックを壊さない)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.stem}-", suffix=self.path.suffix or ".xlsx", dir=self.path.parent
            )
            os.close(fd)
        except OSError as e:
            raise StorageError(f"cannot write store workbook {self.path}: {e}") from e
        tmp_path = Path(tmp_name)
        try:
            with pd.ExcelWriter(tmp_path, engine="openpyxl") as writer:
                for name, df in frames.items():
                    df.to_excel(writer, sheet_name=name, index=False)
            os.replace(tmp_path, self.path)
        except Exception as e:  # noqa: BLE001 - openpyxl raises IllegalCharacterError etc.
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"cannot write store workbook {self.path}: {e}") from e
