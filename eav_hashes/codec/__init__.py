"""
Codec module for eav_hashes.

This module converts attribute values to and from their stored form:
- ValueType: closed set of storage tags
- Symbol: interned, symbol-flagged string
- ValueCodec: encode/decode driven by the tag

Invariants:
    - decode(*encode(v)) == v for every supported type
    - Tag numbers are part of the on-disk format and never change

How to change safely:
    - Add new tags at the end of ValueType with a decoder
    - Keep the safe YAML format as default
"""

from .types import PYTHON_TYPES, Symbol, ValueType
from .value_codec import ObjectFormat, ValueCodec, classify, decode, encode

__all__ = [
    "ValueType",
    "Symbol",
    "PYTHON_TYPES",
    "ValueCodec",
    "ObjectFormat",
    "classify",
    "encode",
    "decode",
]
