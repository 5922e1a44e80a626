"""Storage gateway implementations (named tables of row dicts)."""

from .gateway import InMemoryStore, StorageError, StorageGateway, WorkbookStore

__all__ = [
    "StorageGateway",
    "StorageError",
    "InMemoryStore",
    "WorkbookStore",
]
