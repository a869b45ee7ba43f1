"""
Value codec for attribute rows.

Maps a runtime value to the (value_type, stored_value) pair persisted in
the value_type and value columns, and back again.

Encoding rules:
    - OBJECT values are dumped as YAML
    - BOOLEAN values are stored as "true" / "false"
    - FLOAT values use repr() so they parse back exactly
    - Everything else uses str()

Decoding is dispatched on the tag through a decoder table. Unknown tags
pass the stored string through unchanged.

Object formats:
    - safe: SafeDumper / SafeLoader. Plain mappings, sequences and
      scalars only. Default.
    - full: Dumper / UnsafeLoader. Restores arbitrary Python objects.
      Only use with trusted databases.

Both formats write Symbol values (including mapping keys) with a
!symbol tag and read them back as Symbol.

Example:
    >>> codec = ValueCodec()
    >>> codec.encode(12)
    (<ValueType.INTEGER: 2>, '12')
    >>> codec.decode(ValueType.INTEGER, "12")
    12
"""

from __future__ import annotations

import logging
from enum import Enum
from fractions import Fraction
from typing import Any, Callable

import yaml

from ..errors import ValueDecodeError, ValueEncodeError
from .types import PYTHON_TYPES, Symbol, ValueType

logger = logging.getLogger(__name__)


class ObjectFormat(Enum):
    """How OBJECT values are serialized."""

    SAFE = "safe"
    FULL = "full"

    @classmethod
    def from_str(cls, value: str) -> ObjectFormat:
        """Convert string representation to ObjectFormat.

        Raises:
            ValueError: If value is not a valid format
        """
        for fmt in cls:
            if fmt.value == value.lower():
                return fmt
        valid = [f.value for f in cls]
        raise ValueError(f"Invalid object format '{value}'. Valid formats: {valid}")


def classify(value: Any) -> ValueType | None:
    """Get the value_type tag for a value.

    Args:
        value: The value whose tag to determine

    Returns:
        The ValueType, or None if value is None
    """
    if value is None:
        return None
    return PYTHON_TYPES.get(type(value), ValueType.OBJECT)


SYMBOL_TAG = "!symbol"


class _SafeSymbolDumper(yaml.SafeDumper):
    pass


class _SafeSymbolLoader(yaml.SafeLoader):
    pass


class _FullSymbolDumper(yaml.Dumper):
    pass


class _FullSymbolLoader(yaml.UnsafeLoader):
    pass


def _represent_symbol(dumper: yaml.BaseDumper, data: Symbol) -> yaml.ScalarNode:
    return dumper.represent_scalar(SYMBOL_TAG, str.__str__(data))


def _construct_symbol(loader: yaml.BaseLoader, node: yaml.ScalarNode) -> Symbol:
    return Symbol(loader.construct_scalar(node))


for _dumper in (_SafeSymbolDumper, _FullSymbolDumper):
    _dumper.add_representer(Symbol, _represent_symbol)
for _loader in (_SafeSymbolLoader, _FullSymbolLoader):
    _loader.add_constructor(SYMBOL_TAG, _construct_symbol)


def _parse_complex(stored: str) -> complex:
    text = stored.strip()
    if text.startswith("(") and text.endswith(")"):
        text = text[1:-1].strip()
    # Accept "1+2i" as well as Python's "1+2j"
    if text.endswith("i"):
        text = text[:-1] + "j"
    return complex(text)


def _parse_bool(stored: str) -> bool:
    return stored == "true"


class ValueCodec:
    """Stateless converter between values and their stored form.

    Attributes:
        object_format: Serialization used for OBJECT values
    """

    def __init__(self, object_format: ObjectFormat = ObjectFormat.SAFE) -> None:
        self.object_format = object_format
        self._decoders: dict[ValueType, Callable[[str], Any]] = {
            ValueType.STRING: str,
            ValueType.SYMBOL: Symbol,
            ValueType.INTEGER: int,
            ValueType.FLOAT: float,
            ValueType.COMPLEX: _parse_complex,
            ValueType.RATIONAL: Fraction,
            ValueType.BOOLEAN: _parse_bool,
            ValueType.OBJECT: self._load_object,
        }

    def classify(self, value: Any) -> ValueType | None:
        """Get the value_type tag for a value (None for None)."""
        return classify(value)

    def encode(self, value: Any) -> tuple[ValueType, str]:
        """Convert a value to its (value_type, stored_value) pair.

        Args:
            value: Value to store (must not be None)

        Returns:
            Tuple of (tag, stored string)

        Raises:
            ValueEncodeError: If value is None or cannot be serialized
        """
        value_type = classify(value)
        if value_type is None:
            raise ValueEncodeError("Cannot encode a None value")

        if value_type == ValueType.OBJECT:
            return value_type, self._dump_object(value)
        if value_type == ValueType.BOOLEAN:
            return value_type, "true" if value else "false"
        if value_type == ValueType.FLOAT:
            return value_type, repr(value)
        return value_type, str(value)

    def decode(self, value_type: int, stored: str) -> Any:
        """Restore a value from its stored form.

        Args:
            value_type: Tag read from the value_type column
            stored: Text read from the value column

        Returns:
            The restored value (stored unchanged for unknown tags)

        Raises:
            ValueDecodeError: If stored text does not parse for its tag
        """
        tag = ValueType.from_value(value_type)
        if tag is None:
            logger.warning(f"Unknown value_type {value_type}, returning stored string")
            return stored

        try:
            return self._decoders[tag](stored)
        except (ValueError, TypeError, ZeroDivisionError, yaml.YAMLError) as e:
            raise ValueDecodeError(
                f"Failed to decode {tag.name} value {stored!r}: {e}",
                value_type=int(tag),
                stored=stored,
            ) from e

    def _dump_object(self, value: Any) -> str:
        try:
            if self.object_format == ObjectFormat.FULL:
                return yaml.dump(value, Dumper=_FullSymbolDumper, sort_keys=False)
            return yaml.dump(value, Dumper=_SafeSymbolDumper, sort_keys=False, allow_unicode=True)
        except yaml.YAMLError as e:
            raise ValueEncodeError(
                f"Cannot serialize {type(value).__name__} as {self.object_format.value} YAML: {e}",
                value_type=int(ValueType.OBJECT),
            ) from e

    def _load_object(self, stored: str) -> Any:
        if self.object_format == ObjectFormat.FULL:
            return yaml.load(stored, Loader=_FullSymbolLoader)
        return yaml.load(stored, Loader=_SafeSymbolLoader)


_default_codec = ValueCodec()


def encode(value: Any) -> tuple[ValueType, str]:
    """Encode with the default (safe) codec."""
    return _default_codec.encode(value)


def decode(value_type: int, stored: str) -> Any:
    """Decode with the default (safe) codec."""
    return _default_codec.decode(value_type, stored)
