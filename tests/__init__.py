"""
eav_hashes Test Suite.

This package contains:
- unit/: Unit tests (in-memory storage, no files)
- integration/: Integration tests (SQLite databases in temp directories)
"""
