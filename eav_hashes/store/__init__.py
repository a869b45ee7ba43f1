"""
Storage module for eav_hashes - attribute row persistence.

This module handles:
- The EntryStorage protocol and EntryRow row shape
- SQLite storage for attribute rows and their key registry
- In-memory storage for tests and local development

Invariants:
    - One row per (owner_id, key_id)
    - Each flush is applied in a single transaction where the backend allows

How to change safely:
    - Test schema migrations thoroughly before deployment
    - Keep in-memory and SQLite backends behaviourally identical
"""

from .base import (
    EntryRow,
    EntryStorage,
    StorageError,
    StorageUnavailableError,
    StoreNotInitializedError,
)
from .memory import InMemoryEntryStore
from .sqlite_store import SqliteEntryStore, SqliteKeyRegistry, eav_table_name

__all__ = [
    "EntryRow",
    "EntryStorage",
    "StorageError",
    "StorageUnavailableError",
    "StoreNotInitializedError",
    "InMemoryEntryStore",
    "SqliteEntryStore",
    "SqliteKeyRegistry",
    "eav_table_name",
]
