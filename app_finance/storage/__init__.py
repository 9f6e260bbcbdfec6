"""
Local storage package.

Provides the abstract LocalStore interface and its in-memory and SQLite
implementations, plus the matching audit storages.
"""

from app_finance.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LocalStore,
    NotFoundError,
    StorageError,
    kind_of,
)
from app_finance.storage.memory import InMemoryAuditStorage, InMemoryStore
from app_finance.storage.sqlite_store import SQLiteAuditStorage, SQLiteStore, init_database

__all__ = [
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryStore",
    "LocalStore",
    "NotFoundError",
    "SQLiteAuditStorage",
    "SQLiteStore",
    "StorageError",
    "init_database",
    "kind_of",
]
