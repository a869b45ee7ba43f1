"""
Key descriptor types for the attribute key registry.

An attribute can only be stored under a key that has been registered
beforehand. The registry hands out KeyDescriptors which carry the stable
key id written to every attribute row.

Invariants:
    - key_id must be a positive integer
    - Names are unique within a registry
    - The symbolic flag is persisted with every row using the key

How to change safely:
    - Never reuse a key_id for a different name
    - Registry implementations must satisfy the KeyRegistry protocol
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from ..codec.types import Symbol


@dataclass(frozen=True)
class KeyDescriptor:
    """A registered attribute key.

    Attributes:
        key_id: Stable numeric identifier
        name: Canonical key name
        symbolic: Whether the key is a symbol (returned as Symbol)

    Example:
        >>> color = KeyDescriptor(key_id=1, name="color")
        >>> color.key_name
        'color'
    """

    key_id: int
    name: str
    symbolic: bool = False

    def __post_init__(self) -> None:
        if self.key_id <= 0:
            raise ValueError(f"key_id must be positive, got {self.key_id}")
        if not self.name or not self.name.strip():
            raise ValueError("Key name cannot be empty")

    @property
    def key_name(self) -> str:
        """The name as handed back to callers (Symbol if symbolic)."""
        return Symbol(self.name) if self.symbolic else self.name

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "key_id": self.key_id,
            "name": self.name,
            "symbolic": self.symbolic,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KeyDescriptor:
        """Create from dictionary representation."""
        return cls(
            key_id=data["key_id"],
            name=data["name"],
            symbolic=data.get("symbolic", False),
        )


@runtime_checkable
class KeyRegistry(Protocol):
    """Protocol for key lookup services.

    AttributeStore resolves every written key through find_by_name and
    validates merges against list_all.
    """

    @abstractmethod
    async def find_by_name(self, name: str) -> KeyDescriptor | None:
        """Resolve a key name to its descriptor (None if unregistered)."""
        ...

    @abstractmethod
    async def list_all(self) -> list[KeyDescriptor]:
        """List every registered key."""
        ...
