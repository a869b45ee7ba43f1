"""
Key registry module for eav_hashes.

This module provides the attribute key namespace:
- KeyDescriptor: a registered key (id, name, symbolic flag)
- KeyRegistry: protocol consumed by AttributeStore
- InMemoryKeyRegistry: registry defined in code

A SQLite-backed registry lives in eav_hashes.store.sqlite_store.

Invariants:
    - key_id is immutable once assigned
    - Attributes can only be written under registered keys
"""

from .registry import DuplicateKeyError, InMemoryKeyRegistry, RegistryFrozenError
from .types import KeyDescriptor, KeyRegistry

__all__ = [
    "KeyDescriptor",
    "KeyRegistry",
    "InMemoryKeyRegistry",
    "DuplicateKeyError",
    "RegistryFrozenError",
]
