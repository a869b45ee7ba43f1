"""
Value type tags for stored attribute values.

Every attribute row carries a value_type column holding one of the
ValueType tags below. The tag selects the decode path when the row is
read back, so the set is closed and the numbers are part of the on-disk
format.

Invariants:
    - Tag numbers are immutable once assigned
    - Classification uses the exact runtime type (bool is never INTEGER)
    - Anything not listed in PYTHON_TYPES is stored as OBJECT

How to change safely:
    - Append new tags with new numbers, never renumber
    - Unknown tags read from storage decode to the raw stored string
"""

from __future__ import annotations

import sys
from enum import IntEnum
from fractions import Fraction
from typing import Any


class ValueType(IntEnum):
    """Storage tag for an attribute value."""

    STRING = 0
    SYMBOL = 1
    INTEGER = 2
    FLOAT = 3
    COMPLEX = 4
    RATIONAL = 5
    BOOLEAN = 6
    OBJECT = 7  # Anything else (dicts, lists, ...) serialized as YAML

    @classmethod
    def from_value(cls, value: int) -> ValueType | None:
        """Look up a tag by its stored number.

        Args:
            value: Integer read from the value_type column

        Returns:
            Corresponding ValueType, or None for unrecognized tags
        """
        try:
            return cls(value)
        except ValueError:
            return None


class Symbol(str):
    """An interned string flagged as a symbol.

    Symbols compare and hash like the equivalent plain string, but are
    stored with the SYMBOL tag (and keys registered as symbolic come back
    as Symbol instances).

    Example:
        >>> Symbol("color") == "color"
        True
        >>> Symbol("color")
        :color
    """

    __slots__ = ()

    def __new__(cls, value: Any) -> Symbol:
        return super().__new__(cls, sys.intern(str(value)))

    def __repr__(self) -> str:
        return f":{str.__str__(self)}"


# Exact runtime type -> tag
PYTHON_TYPES: dict[type, ValueType] = {
    str: ValueType.STRING,
    Symbol: ValueType.SYMBOL,
    int: ValueType.INTEGER,
    float: ValueType.FLOAT,
    complex: ValueType.COMPLEX,
    Fraction: ValueType.RATIONAL,
    bool: ValueType.BOOLEAN,
}
