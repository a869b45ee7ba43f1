"""
Base protocol and types for attribute row storage.

This module defines the EntryStorage protocol that all storage backends
must implement, along with the EntryRow persisted row shape.

Invariants:
    - One EntryRow per (owner_id, key_id)
    - value holds the codec's stored string, value_type its tag
    - entry_id is assigned by storage on first upsert and never changes

How to change safely:
    - Protocol changes require updating all implementations
    - Add columns with defaults so existing rows stay readable
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence, runtime_checkable
import logging

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage backends."""
    pass


class StoreNotInitializedError(StorageError):
    """Attribute database does not exist yet."""
    pass


class StorageUnavailableError(StorageError):
    """Storage backend cannot be reached."""
    pass


@dataclass
class EntryRow:
    """One persisted attribute row.

    Attributes:
        owner_id: Id of the owning record
        key_id: Id of the key descriptor
        entry_key: Key name (duplicated from the key descriptor)
        value: Stored value text
        value_type: ValueType tag
        symbol_key: Whether the key is a symbol
        entry_id: Surrogate row id (None until first upsert)
        created_at: Creation timestamp (Unix ms)
        updated_at: Last update timestamp (Unix ms)
    """

    owner_id: Optional[int]
    key_id: int
    entry_key: str
    value: str
    value_type: int
    symbol_key: bool = False
    entry_id: Optional[int] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "entry_id": self.entry_id,
            "owner_id": self.owner_id,
            "key_id": self.key_id,
            "entry_key": self.entry_key,
            "value": self.value,
            "value_type": self.value_type,
            "symbol_key": self.symbol_key,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EntryRow:
        """Create from dictionary."""
        return cls(
            owner_id=data["owner_id"],
            key_id=data["key_id"],
            entry_key=data["entry_key"],
            value=data["value"],
            value_type=data["value_type"],
            symbol_key=bool(data.get("symbol_key", False)),
            entry_id=data.get("entry_id"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


@runtime_checkable
class EntryStorage(Protocol):
    """Protocol for attribute row storage backends.

    AttributeStore fetches all rows of an owner once, and writes back
    through flush_rows on flush.

    Example:
        >>> storage = SqliteEntryStore("/var/lib/eav/eav.db", "product_tech_specs")
        >>> await storage.initialize()
        >>> rows = await storage.fetch_all_for_owner(42)
    """

    @abstractmethod
    async def fetch_all_for_owner(self, owner_id: int) -> list[EntryRow]:
        """Fetch every row belonging to an owner, in storage order."""
        ...

    @abstractmethod
    async def upsert(self, row: EntryRow) -> EntryRow:
        """Insert or update a row.

        Returns:
            The stored row with entry_id and timestamps filled in
        """
        ...

    @abstractmethod
    async def delete(self, row: EntryRow) -> bool:
        """Delete a row.

        Returns:
            True if a row was deleted, False if not found
        """
        ...

    @abstractmethod
    async def flush_rows(
        self,
        upserts: Sequence[EntryRow],
        deletes: Sequence[EntryRow],
    ) -> list[EntryRow]:
        """Apply a batch of deletes and upserts.

        Returns:
            The stored rows for upserts, in the same order
        """
        ...
