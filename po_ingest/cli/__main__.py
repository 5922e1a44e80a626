from __future__ import annotations

import argparse
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from po_ingest.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from po_ingest.excel.reader import SheetReadError, read_workbook, sheet_to_rows
from po_ingest.logging.init import log_summary, setup_logging
from po_ingest.services.orchestrator import IngestError, ingest_file
from po_ingest.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env (overrides the process environment) and the YAML config
- Read the upload, normalize every sheet, publish the tables
- Print one SUMMARY line

Exit codes: 0 success, 1 fatal (config / unreadable file), 2 partial
storage failure.
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

INSPECT_SAMPLE_ROWS = 3


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv.

    override=True により .env の値 (PO_INGEST_STORE_PATH 等) を最優先化。
    """
    if not path.exists():
        return
    try:
        load_dotenv(dotenv_path=path, override=override)
    except OSError as e:
        print(f"WARNING: failed to load .env via python-dotenv: {e}")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="po_ingest", description="Procurement PO spreadsheet -> normalized tables"
    )
    p.add_argument("file", type=Path, help="Upload to ingest (.xlsx / .xls / .csv)")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--dry-run", action="store_true", help="Normalize and partition without writing")
    p.add_argument(
        "--inspect-data", action="store_true", help="Print detected columns & first rows then exit"
    )
    return p.parse_args(argv)


def _printable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _inspect_data(path: Path) -> int:
    try:
        frames = read_workbook(path)
    except SheetReadError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    print(f"FILE: {path.name}")
    for name, df in frames.items():
        sheet = sheet_to_rows(df, name)
        print(f"  SHEET: {name} header_row={sheet.first_row_number - 1} cols={sheet.columns}")
        sample = [
            {k: _printable(v) for k, v in row.items() if v is not None}
            for row in sheet.rows[:INSPECT_SAMPLE_ROWS]
        ]
        print("    sample_rows=", sample)
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    # NOTE: 空リスト [] はそのまま使う (None のときのみ sys.argv を読む)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    if args.inspect_data:
        return _inspect_data(args.file)

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    logger.info(f"Ingesting: {args.file}")
    try:
        result = ingest_file(args.file, cfg, dry_run=args.dry_run)
    except IngestError as e:
        logger.error(f"ingest: {e}")
        return EXIT_FATAL

    # log_summary が "SUMMARY " を付与するため先頭を除去
    summary_line = render_summary_line(result)
    log_summary(summary_line.removeprefix("SUMMARY "))

    if not result.ok:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
