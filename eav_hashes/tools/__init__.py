"""
CLI tools for eav_hashes administration.

This module provides command-line tools for:
- keys: Register and list attribute keys, dump stored attributes

Invariants:
    - Tools work directly on the SQLite database
"""

from .keys_cli import KeysCLI, setup_logging

__all__ = ["KeysCLI", "setup_logging"]
