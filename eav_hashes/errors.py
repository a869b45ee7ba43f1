"""
Error types for eav_hashes.

This module defines all exception types raised by the attribute layer:
- EavError: Base exception
- InvalidKeyError: Attribute key is not a string/symbol
- InvalidValueError: Entry constructed with a missing or empty value
- UnknownKeyError: Key is not present in the key registry
- UnsupportedShovelTypeError: Merge source is not a mapping or attribute store
- ValueEncodeError / ValueDecodeError: Codec failures
- OwnerNotPersistedError: Flush attempted before the owner has an id

Invariants:
    - All errors inherit from EavError
    - Errors include context for debugging
    - Storage-layer errors (sqlite3.Error etc.) are never wrapped
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class EavError(Exception):
    """Base exception for all eav_hashes errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "EAV_ERROR"
        self.details = details or {}


class InvalidKeyError(EavError):
    """Attribute key is invalid.

    Raised when:
    - Key is not a string or Symbol
    - Key is blank
    """

    def __init__(self, key: Any) -> None:
        super().__init__(
            f"Key must be a string or a symbol, got {key!r}",
            code="INVALID_KEY",
            details={"key": repr(key), "key_type": type(key).__name__},
        )
        self.key = key


class InvalidValueError(EavError):
    """Entry value is invalid at construction time.

    Raised when:
    - Value is None
    - Value is an empty string
    """

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="INVALID_VALUE",
            details={"key": key},
        )
        self.key = key


class UnknownKeyError(EavError):
    """One or more keys are not defined in the key registry.

    Attributes:
        missing_keys: Names of the keys that could not be resolved
    """

    def __init__(self, missing_keys: List[str]) -> None:
        super().__init__(
            f"Keys must already have been defined. Missing keys: {missing_keys}",
            code="UNKNOWN_KEY",
            details={"missing_keys": list(missing_keys)},
        )
        self.missing_keys = list(missing_keys)


class UnsupportedShovelTypeError(EavError):
    """Merge source is neither a mapping nor an AttributeStore."""

    def __init__(self, source: Any) -> None:
        super().__init__(
            f"Can't merge something that's not a mapping or AttributeStore: "
            f"{type(source).__name__}",
            code="UNSUPPORTED_SHOVEL_TYPE",
            details={"source_type": type(source).__name__},
        )
        self.source_type = type(source)


class ValueEncodeError(EavError):
    """Value could not be serialized for storage."""

    def __init__(self, message: str, value_type: Optional[int] = None) -> None:
        super().__init__(
            message,
            code="VALUE_ENCODE_ERROR",
            details={"value_type": value_type},
        )
        self.value_type = value_type


class ValueDecodeError(EavError):
    """Stored value could not be restored for its value_type tag.

    Raised when:
    - An INTEGER/FLOAT/COMPLEX/RATIONAL row holds unparseable text
    - An OBJECT row holds invalid YAML
    """

    def __init__(self, message: str, value_type: Optional[int] = None, stored: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="VALUE_DECODE_ERROR",
            details={"value_type": value_type, "stored": stored},
        )
        self.value_type = value_type
        self.stored = stored


class OwnerNotPersistedError(EavError):
    """Attributes were flushed for an owner that has no id yet."""

    def __init__(self, bag_name: Optional[str] = None) -> None:
        super().__init__(
            "Owner must be persisted (have an id) before its attributes are flushed",
            code="OWNER_NOT_PERSISTED",
            details={"bag": bag_name},
        )
        self.bag_name = bag_name
