"""
Owner records for attribute stores.

An AttributeStore belongs to exactly one owner record. The store only needs
two things from it: its id (None until the record has been persisted) and
a way to bump its "last modified" timestamp whenever an attribute changes.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable


def _now_ms() -> int:
    return int(time.time() * 1000)


@runtime_checkable
class Owner(Protocol):
    """Protocol for records that own an attribute store."""

    @property
    def id(self) -> Optional[int]:
        ...

    def touch_modified(self) -> None:
        ...


@dataclass
class OwnerRecord:
    """Minimal owner record.

    Attributes:
        id: Record id (None until persisted)
        updated_at: Last modification timestamp (Unix ms)

    Example:
        >>> product = OwnerRecord()
        >>> attrs = AttributeStore(product, storage, registry)
        >>> await attrs.set("color", "red")
        >>> product.id = 42  # persisted by the application
        >>> await attrs.flush()
    """

    id: Optional[int] = None
    updated_at: int = field(default_factory=_now_ms)

    def touch_modified(self) -> None:
        """Set updated_at to now."""
        self.updated_at = _now_ms()
