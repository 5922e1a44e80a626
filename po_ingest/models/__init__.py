"""Domain models for the procurement spreadsheet ingest pipeline."""

from .config_models import PipelineConfig, StoreConfig
from .diagnostic import Diagnostic, DiagnosticKind
from .parse_context import ClassifiedRow, ParseContext, ParseState
from .records import CANCELLED_TAG, CANONICAL_COLUMNS, CanonicalRecord, RowKind
from .results import (
    IngestResult,
    PublishResult,
    SheetResult,
    TableWriteResult,
    UploadResult,
    WriteStatus,
)
from .tables import CategoryRecord, SupplierRecord, TableSet, UploadLogRecord

__all__ = [
    # Configuration models
    "PipelineConfig",
    "StoreConfig",
    # Row / record models
    "RowKind",
    "CanonicalRecord",
    "CANONICAL_COLUMNS",
    "CANCELLED_TAG",
    "ParseContext",
    "ParseState",
    "ClassifiedRow",
    # Tables
    "TableSet",
    "SupplierRecord",
    "CategoryRecord",
    "UploadLogRecord",
    # Results
    "SheetResult",
    "UploadResult",
    "WriteStatus",
    "TableWriteResult",
    "PublishResult",
    "IngestResult",
    # Diagnostics
    "Diagnostic",
    "DiagnosticKind",
]
