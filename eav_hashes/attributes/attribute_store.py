"""
AttributeStore - the lazily-loaded attribute bag of one owner record.

The store reads every attribute row of its owner in one request on first
access and keeps them in memory. Writes only change the in-memory entries
and mark the store dirty; nothing is written until flush(), which deletes
cleared entries and upserts the rest in one batch.

State machine:
    Unloaded -> Loaded(clean) -> Loaded(dirty) -> Loaded(clean)
                                   (flush)

Invariants:
    - Storage is fetched at most once per load (until reload())
    - flush() writes nothing when unloaded or clean
    - Setting a value to None schedules the row for deletion
    - set() and merge() reject values that cannot be stored before
      changing anything (merge checks every pair first)
    - Keys must already exist in the key registry

How to change safely:
    - Every mutating path must go through _apply so dirty tracking and
      owner.touch_modified() stay consistent
    - Never expose AttributeEntry objects to callers

Example:
    >>> attrs = AttributeStore(product, storage, registry)
    >>> await attrs.set("color", "red")
    >>> await attrs.get("color")
    'red'
    >>> await attrs.flush()
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

from ..codec import ValueCodec
from ..errors import (
    OwnerNotPersistedError,
    UnknownKeyError,
    UnsupportedShovelTypeError,
)
from ..schema.types import KeyDescriptor, KeyRegistry
from ..store.base import EntryRow, EntryStorage
from .entry import AttributeEntry, validate_key, validate_value
from .owner import Owner

logger = logging.getLogger(__name__)


class AttributeStore:
    """Write-buffered key/value attributes of one owner.

    Attributes:
        owner: The owning record
        storage: Row storage backend
        key_registry: Key lookup service
        codec: Value codec for encoding/decoding
        name: Bag name (used in logs and errors)

    Thread safety:
        None. One store is used by one owner context at a time.
    """

    def __init__(
        self,
        owner: Owner,
        storage: EntryStorage,
        key_registry: KeyRegistry,
        codec: Optional[ValueCodec] = None,
        name: str = "attributes",
    ) -> None:
        self.owner = owner
        self.storage = storage
        self.key_registry = key_registry
        self.codec = codec or ValueCodec()
        self.name = name
        # None until loaded; {} is "loaded, no attributes"
        self._entries: Optional[Dict[str, AttributeEntry]] = None
        self._dirty = False

    @property
    def is_loaded(self) -> bool:
        """Whether rows have been fetched from storage."""
        return self._entries is not None

    @property
    def dirty(self) -> bool:
        """Whether there are unflushed changes."""
        return self._dirty

    async def get(self, key: Any) -> Any:
        """Get the value of an attribute.

        Args:
            key: Attribute name (str or Symbol)

        Returns:
            The decoded value, or None if absent or cleared

        Raises:
            InvalidKeyError: If key is not a string
        """
        name = validate_key(key)
        entries = await self._load_entries_if_needed()
        entry = entries.get(name)
        return entry.value if entry is not None else None

    async def set(self, key: Any, value: Any) -> None:
        """Set the value of an attribute (None clears it).

        The change is buffered until flush().

        Raises:
            InvalidKeyError: If key is not a string
            UnknownKeyError: If key is not registered
            InvalidValueError: If value is an empty string
            ValueEncodeError: If the codec cannot encode value
        """
        name = validate_key(key)
        descriptor = await self.key_registry.find_by_name(name)
        if descriptor is None:
            raise UnknownKeyError([name])
        await self._apply(descriptor, value)

    async def delete(self, key: Any) -> bool:
        """Clear an attribute.

        Returns:
            True if the attribute existed, False otherwise
        """
        name = validate_key(key)
        entries = await self._load_entries_if_needed()
        entry = entries.get(name)
        if entry is None or entry.is_empty:
            return False
        entry.value = None
        self._mark_changed()
        return True

    async def merge(self, source: Any) -> AttributeStore:
        """Set every attribute of a mapping or another AttributeStore.

        All keys are checked against the registry before anything is
        applied, so an unknown key leaves this store untouched.

        Args:
            source: Mapping of key -> value, or an AttributeStore

        Returns:
            This store

        Raises:
            UnsupportedShovelTypeError: If source is of another type
            InvalidKeyError: If a key is not a string
            UnknownKeyError: If any key is not registered
            InvalidValueError: If value is an empty string
            ValueEncodeError: If the codec cannot encode value
        """
        if isinstance(source, AttributeStore):
            pairs = await source.items()
        elif isinstance(source, Mapping):
            pairs = list(source.items())
        else:
            raise UnsupportedShovelTypeError(source)

        pairs = [(validate_key(key), value) for key, value in pairs]
        if not pairs:
            return self

        known = {d.name: d for d in await self.key_registry.list_all()}
        missing: List[str] = []
        for name, _ in pairs:
            if name not in known and name not in missing:
                missing.append(name)
        if missing:
            raise UnknownKeyError(missing)

        for name, value in pairs:
            if value is not None:
                validate_value(name, value, self.codec)

        for name, value in pairs:
            await self._apply(known[name], value)

        logger.debug(
            "Merged attributes",
            extra={"bag": self.name, "owner_id": self.owner.id, "count": len(pairs)},
        )
        return self

    async def contains(self, key: Any) -> bool:
        """Whether a (non-cleared) value exists for key."""
        name = validate_key(key)
        entries = await self._load_entries_if_needed()
        entry = entries.get(name)
        return entry is not None and not entry.is_empty

    async def keys(self) -> List[str]:
        """All attribute keys, in load order (cleared ones included until flush)."""
        entries = await self._load_entries_if_needed()
        return [entry.key for entry in entries.values()]

    async def values(self) -> List[Any]:
        """All attribute values, in load order."""
        entries = await self._load_entries_if_needed()
        return [entry.value for entry in entries.values()]

    async def items(self) -> List[Tuple[str, Any]]:
        """All (key, value) pairs, in load order."""
        entries = await self._load_entries_if_needed()
        return [(entry.key, entry.value) for entry in entries.values()]

    async def as_dict(self) -> Dict[str, Any]:
        """The attributes as a plain key -> value dictionary."""
        return dict(await self.items())

    async def clear(self) -> None:
        """Clear every attribute (without committing)."""
        entries = await self._load_entries_if_needed()
        for entry in entries.values():
            entry.value = None
        if entries:
            self._mark_changed()

    async def flush(self) -> None:
        """Write buffered changes to storage.

        Cleared entries are deleted, every other entry is upserted with the
        owner's current id. Does nothing if the store was never loaded or
        has no changes.

        Raises:
            OwnerNotPersistedError: If there is something to upsert and the
                owner has no id yet
        """
        if self._entries is None or not self._dirty:
            return

        upsert_entries: List[AttributeEntry] = []
        upserts: List[EntryRow] = []
        deletes: List[EntryRow] = []

        for entry in self._entries.values():
            if entry.is_empty:
                if entry.is_persisted:
                    deletes.append(entry.to_delete_row())
            else:
                upsert_entries.append(entry)

        if upsert_entries:
            owner_id = self.owner.id
            if owner_id is None:
                raise OwnerNotPersistedError(self.name)
            for entry in upsert_entries:
                entry.owner_id = owner_id
                upserts.append(entry.to_row())

        saved = await self.storage.flush_rows(upserts, deletes)

        for entry, row in zip(upsert_entries, saved):
            entry.mark_persisted(row)
        self._entries = {
            name: entry for name, entry in self._entries.items() if not entry.is_empty
        }
        self._dirty = False

        logger.debug(
            "Flushed attributes",
            extra={
                "bag": self.name,
                "owner_id": self.owner.id,
                "upserts": len(upserts),
                "deletes": len(deletes),
            },
        )

    def reload(self) -> None:
        """Drop the cached entries; the next access fetches them again."""
        if self._dirty:
            logger.warning(
                f"Discarding unflushed changes to '{self.name}' of owner {self.owner.id}"
            )
        self._entries = None
        self._dirty = False

    async def _apply(self, descriptor: KeyDescriptor, value: Any) -> None:
        entries = await self._load_entries_if_needed()
        entry = entries.get(descriptor.name)

        if entry is not None:
            entry.value = value
        elif value is None:
            # Nothing stored under this key, nothing to clear
            return
        else:
            entries[descriptor.name] = AttributeEntry(
                descriptor.name,
                value,
                key_id=descriptor.key_id,
                owner_id=self.owner.id,
                symbol_key=descriptor.symbolic,
                codec=self.codec,
            )

        self._mark_changed()

    def _mark_changed(self) -> None:
        self._dirty = True
        self.owner.touch_modified()

    async def _load_entries_if_needed(self) -> Dict[str, AttributeEntry]:
        if self._entries is None:
            entries: Dict[str, AttributeEntry] = {}
            owner_id = self.owner.id
            # An unpersisted owner cannot have stored rows
            if owner_id is not None:
                for row in await self.storage.fetch_all_for_owner(owner_id):
                    entries[row.entry_key] = AttributeEntry.from_row(row, self.codec)
            self._entries = entries
            logger.debug(
                "Loaded attributes",
                extra={"bag": self.name, "owner_id": owner_id, "count": len(entries)},
            )
        return self._entries

    def __repr__(self) -> str:
        if self._entries is None:
            return f"<AttributeStore {self.name} owner={self.owner.id} unloaded>"
        shown = {entry.key: entry for entry in self._entries.values()}
        return f"<AttributeStore {self.name} owner={self.owner.id} {shown!r}>"
