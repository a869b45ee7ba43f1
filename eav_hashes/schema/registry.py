"""
In-memory key registry for eav_hashes.

The InMemoryKeyRegistry holds key descriptors defined in code. It
provides:
- Registration of keys (explicit or auto-assigned ids)
- Lookup by id or name
- Freeze mechanism to prevent runtime modifications

Invariants:
    - Registry is mutable during startup, frozen before serving
    - Once frozen, no new keys can be registered
    - key_id and name must be unique

Example:
    >>> registry = InMemoryKeyRegistry()
    >>> registry.register_key("color")
    KeyDescriptor(key_id=1, name='color', symbolic=False)
    >>> registry.freeze()
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Dict, Iterator, Optional, Union

from .types import KeyDescriptor

logger = logging.getLogger(__name__)


class RegistryFrozenError(Exception):
    """Raised when attempting to modify a frozen registry."""
    pass


class DuplicateKeyError(Exception):
    """Raised when attempting to register a duplicate key id or name."""
    pass


class InMemoryKeyRegistry:
    """Key registry backed by dictionaries.

    Thread-safety:
        - Registration is thread-safe (uses internal lock)
        - Lookups are lock-free

    Attributes:
        frozen: Whether the registry is frozen (immutable)
    """

    def __init__(self) -> None:
        """Initialize an empty, mutable registry."""
        self._keys: Dict[int, KeyDescriptor] = {}
        self._keys_by_name: Dict[str, KeyDescriptor] = {}
        self._frozen = False
        self._lock = threading.Lock()

    @property
    def frozen(self) -> bool:
        """Whether the registry is frozen."""
        return self._frozen

    def register(self, descriptor: KeyDescriptor) -> KeyDescriptor:
        """Register a key descriptor.

        Args:
            descriptor: The key to register

        Returns:
            The registered descriptor

        Raises:
            RegistryFrozenError: If registry is frozen
            DuplicateKeyError: If key_id or name is already registered
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(
                    f"Cannot register key '{descriptor.name}': registry is frozen"
                )

            if descriptor.key_id in self._keys:
                existing = self._keys[descriptor.key_id]
                raise DuplicateKeyError(
                    f"key_id {descriptor.key_id} already registered as '{existing.name}'"
                )

            if descriptor.name in self._keys_by_name:
                existing = self._keys_by_name[descriptor.name]
                raise DuplicateKeyError(
                    f"Key name '{descriptor.name}' already registered with key_id {existing.key_id}"
                )

            self._keys[descriptor.key_id] = descriptor
            self._keys_by_name[descriptor.name] = descriptor
            logger.debug(f"Registered key: {descriptor.name} (key_id={descriptor.key_id})")
            return descriptor

    def register_key(
        self,
        name: str,
        symbolic: bool = False,
        key_id: Optional[int] = None,
    ) -> KeyDescriptor:
        """Register a key by name, assigning the next free id if needed.

        Example:
            >>> registry.register_key("weight", key_id=7)
        """
        if key_id is None:
            key_id = max(self._keys, default=0) + 1
        return self.register(KeyDescriptor(key_id=key_id, name=name, symbolic=symbolic))

    def get(self, key_id_or_name: Union[int, str]) -> Optional[KeyDescriptor]:
        """Get a key by id or name."""
        if isinstance(key_id_or_name, int):
            return self._keys.get(key_id_or_name)
        return self._keys_by_name.get(str(key_id_or_name))

    def keys(self) -> Iterator[KeyDescriptor]:
        """Iterate over all registered keys."""
        yield from self._keys.values()

    async def find_by_name(self, name: str) -> Optional[KeyDescriptor]:
        return self._keys_by_name.get(str(name))

    async def list_all(self) -> list[KeyDescriptor]:
        return list(self._keys.values())

    def freeze(self) -> None:
        """Freeze the registry.

        Raises:
            RegistryFrozenError: If already frozen
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError("Registry is already frozen")
            self._frozen = True
            logger.info(f"Key registry frozen with {len(self._keys)} keys")

    def to_dict(self) -> dict:
        """Convert registry to dictionary representation, sorted by id."""
        return {
            "keys": [self._keys[kid].to_dict() for kid in sorted(self._keys)],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Convert registry to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    @classmethod
    def from_dict(cls, data: dict) -> InMemoryKeyRegistry:
        """Create registry from dictionary representation (not frozen)."""
        registry = cls()
        for key_data in data.get("keys", []):
            registry.register(KeyDescriptor.from_dict(key_data))
        return registry
