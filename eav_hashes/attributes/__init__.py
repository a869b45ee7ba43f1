"""
Attributes module for eav_hashes - the per-owner attribute bag.

This module handles:
- AttributeEntry: one typed attribute of an owner
- AttributeStore: lazy-loaded, write-buffered attribute bag
- AttributeBag: bag definition per owner type
- OwnerRecord: minimal owner implementation

Invariants:
    - Rows are fetched once per store and written only on flush()
    - None values are never stored; they delete the row on flush()
    - merge() is validated as a whole before being applied

How to change safely:
    - Keep AttributeStore the only code mutating entries
    - Verify lazy-load and dirty tracking with the in-memory backend
"""

from .attribute_store import AttributeStore
from .bag import AttributeBag
from .entry import EMPTY, AttributeEntry
from .owner import Owner, OwnerRecord

__all__ = [
    "AttributeStore",
    "AttributeBag",
    "AttributeEntry",
    "EMPTY",
    "Owner",
    "OwnerRecord",
]
