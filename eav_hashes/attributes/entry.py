"""
A single attribute entry held by an AttributeStore.

Entries have three value states:
    - decoded: the in-memory value set by the caller or read back
    - undecoded: loaded from storage, decoded on first read
    - EMPTY: the value was set to None; the row is deleted on next flush

Invariants:
    - A live entry never holds None (None becomes EMPTY)
    - Construction rejects blank keys and None values
    - Every assigned value is checked: empty strings and values the codec
      cannot encode are rejected before the entry changes
    - Entries are never handed out of the owning AttributeStore
"""

from __future__ import annotations

import dataclasses
from typing import Any, Optional

from ..codec import Symbol, ValueCodec, ValueType
from ..errors import InvalidKeyError, InvalidValueError, ValueEncodeError
from ..store.base import EntryRow


class _Empty:
    """Marker stored in place of None for cleared entries."""

    _instance: Optional[_Empty] = None

    def __new__(cls) -> _Empty:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "EMPTY"

    def __bool__(self) -> bool:
        return False


EMPTY = _Empty()

# Loaded from storage, not decoded yet
_UNDECODED = object()


def validate_value(name: str, value: Any, codec: ValueCodec) -> None:
    """Check that a non-None value can be stored.

    Raises:
        InvalidValueError: If value is an empty string
        ValueEncodeError: If the codec cannot encode value
    """
    if isinstance(value, str) and not value:
        raise InvalidValueError("value should not be empty!", key=name)
    codec.encode(value)


def validate_key(key: Any) -> str:
    """Check that key is a non-blank string and return its plain name.

    Raises:
        InvalidKeyError: If key is not a str/Symbol or is blank
    """
    if not isinstance(key, str) or not key.strip():
        raise InvalidKeyError(key)
    return str(key)


class AttributeEntry:
    """One attribute (key + typed value) of an owner.

    Attributes:
        key: Key name (Symbol if symbol_key)
        key_id: Key descriptor id
        owner_id: Owner record id (None until the owner is persisted)
        symbol_key: Whether the key is a symbol
        row: Last row read from or written to storage (None if never stored)
    """

    def __init__(
        self,
        key: Any,
        value: Any,
        key_id: int,
        owner_id: Optional[int] = None,
        symbol_key: bool = False,
        codec: Optional[ValueCodec] = None,
    ) -> None:
        name = validate_key(key)
        if value is None:
            raise InvalidValueError("value should not be None!", key=name)
        self.codec = codec or ValueCodec()
        validate_value(name, value, self.codec)

        self.key: str = Symbol(name) if symbol_key else name
        self.key_id = key_id
        self.owner_id = owner_id
        self.symbol_key = symbol_key
        self.row: Optional[EntryRow] = None
        self._value: Any = value

    @classmethod
    def from_row(cls, row: EntryRow, codec: ValueCodec) -> AttributeEntry:
        """Wrap a stored row; its value is decoded on first read."""
        entry = cls.__new__(cls)
        entry.key = Symbol(row.entry_key) if row.symbol_key else row.entry_key
        entry.key_id = row.key_id
        entry.owner_id = row.owner_id
        entry.symbol_key = row.symbol_key
        entry.codec = codec
        entry.row = row
        entry._value = _UNDECODED
        return entry

    @property
    def value(self) -> Any:
        """The entry's value (None once cleared)."""
        if self._value is EMPTY:
            return None
        if self._value is _UNDECODED:
            self._value = self.codec.decode(self.row.value_type, self.row.value)
        return self._value

    @value.setter
    def value(self, value: Any) -> None:
        """Replace the value; None clears the entry.

        Raises:
            InvalidValueError: If value is an empty string
            ValueEncodeError: If the codec cannot encode value
        """
        if value is None:
            self._value = EMPTY
            return
        validate_value(str(self.key), value, self.codec)
        self._value = value

    @property
    def is_empty(self) -> bool:
        """Whether the entry was cleared and awaits deletion."""
        return self._value is EMPTY

    @property
    def is_persisted(self) -> bool:
        """Whether the entry has a row in storage."""
        return self.row is not None and self.row.entry_id is not None

    @property
    def value_type(self) -> Optional[ValueType]:
        """Tag the current value would be stored with (None if cleared)."""
        if self._value is _UNDECODED:
            return ValueType.from_value(self.row.value_type)
        return self.codec.classify(self.value)

    def to_row(self) -> EntryRow:
        """Encode the entry into a row for upserting.

        Raises:
            ValueEncodeError: If the entry is cleared or cannot be encoded
        """
        if self._value is EMPTY:
            raise ValueEncodeError(f"Tried to save attribute '{self.key}' with a None value!")

        if self._value is _UNDECODED:
            value_type, stored = self.row.value_type, self.row.value
        else:
            value_type, stored = self.codec.encode(self._value)

        return EntryRow(
            owner_id=self.owner_id,
            key_id=self.key_id,
            entry_key=str(self.key),
            value=stored,
            value_type=int(value_type),
            symbol_key=self.symbol_key,
            entry_id=self.row.entry_id if self.row else None,
            created_at=self.row.created_at if self.row else None,
        )

    def to_delete_row(self) -> EntryRow:
        """Row identifying this entry for deletion."""
        return dataclasses.replace(self.row, owner_id=self.row.owner_id or self.owner_id)

    def mark_persisted(self, row: EntryRow) -> None:
        """Record the row storage returned for this entry."""
        self.row = row
        self.owner_id = row.owner_id

    def __repr__(self) -> str:
        shown = "<undecoded>" if self._value is _UNDECODED else repr(self._value)
        return f"AttributeEntry(key={self.key!r}, value={shown})"
