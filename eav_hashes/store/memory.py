"""
In-memory attribute storage for testing.

This module provides a simple in-memory EntryStorage backend for:
- Unit tests
- Local development without a database file

It counts every fetch/upsert/delete so tests can assert how often an
AttributeStore actually touched storage, and can be told to fail the next
call to simulate an unavailable backend.

Invariants:
    - All data is lost on process exit
    - One row per (owner_id, key_id), like the SQLite backend
    - Rows are returned in insertion order

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with EntryStorage protocol
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from typing import Dict, List, Optional, Sequence

from .base import EntryRow, StorageUnavailableError

logger = logging.getLogger(__name__)


class InMemoryEntryStore:
    """In-memory implementation of EntryStorage.

    Attributes:
        fetch_count: Number of fetch_all_for_owner calls
        upsert_count: Number of rows upserted
        delete_count: Number of rows deleted

    Example:
        >>> storage = InMemoryEntryStore()
        >>> await storage.upsert(EntryRow(owner_id=1, key_id=1, entry_key="color",
        ...                               value="red", value_type=0))
        >>> storage.fetch_count
        0
    """

    def __init__(self) -> None:
        self._rows: Dict[int, EntryRow] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()
        self._fail_next: Optional[Exception] = None
        self.fetch_count = 0
        self.upsert_count = 0
        self.delete_count = 0

    def fail_next(self, error: Optional[Exception] = None) -> None:
        """Make the next storage call raise error (StorageUnavailableError by default)."""
        self._fail_next = error or StorageUnavailableError("In-memory storage unavailable")

    def _check_failure(self) -> None:
        if self._fail_next is not None:
            error, self._fail_next = self._fail_next, None
            raise error

    async def fetch_all_for_owner(self, owner_id: int) -> list[EntryRow]:
        """Fetch copies of all rows belonging to an owner."""
        self._check_failure()
        self.fetch_count += 1
        return [
            dataclasses.replace(row)
            for row in self._rows.values()
            if row.owner_id == owner_id
        ]

    async def upsert(self, row: EntryRow) -> EntryRow:
        """Insert or update a row, keyed by (owner_id, key_id)."""
        self._check_failure()
        async with self._lock:
            return self._upsert(row, int(time.time() * 1000))

    async def delete(self, row: EntryRow) -> bool:
        """Delete a row by entry_id, or by (owner_id, key_id)."""
        self._check_failure()
        async with self._lock:
            return self._delete(row)

    async def flush_rows(
        self,
        upserts: Sequence[EntryRow],
        deletes: Sequence[EntryRow],
    ) -> list[EntryRow]:
        """Apply deletes then upserts, failing before any change if told to."""
        self._check_failure()
        now = int(time.time() * 1000)
        async with self._lock:
            for row in deletes:
                self._delete(row)
            return [self._upsert(row, now) for row in upserts]

    def _find(self, row: EntryRow) -> Optional[EntryRow]:
        if row.entry_id is not None and row.entry_id in self._rows:
            return self._rows[row.entry_id]
        for existing in self._rows.values():
            if existing.owner_id == row.owner_id and existing.key_id == row.key_id:
                return existing
        return None

    def _upsert(self, row: EntryRow, now: int) -> EntryRow:
        if row.owner_id is None:
            raise ValueError(f"Cannot store attribute '{row.entry_key}' without an owner_id")

        existing = self._find(row)
        if existing is not None:
            stored = dataclasses.replace(
                row,
                entry_id=existing.entry_id,
                created_at=existing.created_at,
                updated_at=now,
            )
        else:
            stored = dataclasses.replace(
                row,
                entry_id=self._next_id,
                created_at=now,
                updated_at=now,
            )
            self._next_id += 1

        self._rows[stored.entry_id] = stored
        self.upsert_count += 1
        return dataclasses.replace(stored)

    def _delete(self, row: EntryRow) -> bool:
        existing = self._find(row)
        if existing is None:
            return False
        del self._rows[existing.entry_id]
        self.delete_count += 1
        return True

    def rows(self) -> List[EntryRow]:
        """All stored rows (testing helper)."""
        return [dataclasses.replace(row) for row in self._rows.values()]

    @property
    def write_count(self) -> int:
        """Total number of row writes (upserts + deletes)."""
        return self.upsert_count + self.delete_count
