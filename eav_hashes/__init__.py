"""
eav_hashes - Entity-Attribute-Value attribute bags for Python records.

This package attaches a schema-less, typed key/value attribute bag to a
parent record, stored as one relational row per attribute:
- codec: type-tagged value encoding (str, Symbol, int, float, complex,
  Fraction, bool, YAML objects)
- schema: registry of allowed attribute keys
- store: SQLite and in-memory row storage
- attributes: the lazily-loaded, write-buffered AttributeStore

Invariants:
    - Values round-trip through (value_type, value) without changing type
    - An attribute bag is fetched once and written only on flush()
    - None is never stored; setting None deletes the row on flush()
    - Attributes can only be stored under registered keys

How to change safely:
    - value_type tags are part of the on-disk format; never renumber them
    - New keys are registered, never renamed or reused

Version: see _version.py.
"""

from ._version import __version__
from .attributes import AttributeBag, AttributeStore, OwnerRecord
from .codec import Symbol, ValueCodec, ValueType
from .config import EavConfig
from .errors import (
    EavError,
    InvalidKeyError,
    InvalidValueError,
    OwnerNotPersistedError,
    UnknownKeyError,
    UnsupportedShovelTypeError,
    ValueDecodeError,
    ValueEncodeError,
)

__all__ = [
    "__version__",
    "AttributeBag",
    "AttributeStore",
    "OwnerRecord",
    "EavConfig",
    "Symbol",
    "ValueCodec",
    "ValueType",
    "EavError",
    "InvalidKeyError",
    "InvalidValueError",
    "OwnerNotPersistedError",
    "UnknownKeyError",
    "UnsupportedShovelTypeError",
    "ValueDecodeError",
    "ValueEncodeError",
]
