from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.diagnostic import Diagnostic

"""Diagnostic log buffering.

- JSON Lines, one Diagnostic per line, fixed key set
- one ``<logs_dir>/diagnostics-YYYYMMDD-HHMMSS.log`` (UTC) per run
- buffered in memory and written on flush(); no file for a clean run
"""

__all__ = [
    "Diagnostic",
    "DiagnosticLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class DiagnosticLogBuffer:
    """In-memory buffer for diagnostics. Flush writes JSON Lines.

    The file path is fixed on first access; repeated flushes append to it.
    """

    def __init__(self, logs_dir: str | Path | None = None) -> None:
        self.logs_dir = Path(logs_dir) if logs_dir is not None else LOGS_DIR
        self._records: list[Diagnostic] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.logs_dir / f"diagnostics-{stamp}.log"
        return self._file_path

    def append(self, record: Diagnostic) -> None:
        self._records.append(record)

    def extend(self, records: Iterable[Diagnostic]) -> None:
        self._records.extend(records)

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered diagnostics; returns the file, or None when nothing was buffered."""
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
