"""
SQLite attribute store for eav_hashes.

This module manages the SQLite database holding attribute rows and their
key registry. Each attribute bag definition gets its own pair of tables:
- <owner>_<bag>: one row per (owner, key) attribute
- <owner>_<bag>_keys: the registered keys for that bag

Invariants:
    - One entry row per (owner_id, key_id)
    - Writes run in a single BEGIN IMMEDIATE transaction
    - Table names are derived from the owner type and bag name only

How to change safely:
    - Schema migrations must be backward compatible
    - Use transactions for all write operations
    - Keep the value/value_type columns in sync with the codec tags

Table schema:
    <table>:
        - id INTEGER PRIMARY KEY
        - owner_id INTEGER
        - key_id INTEGER (id in <table>_keys)
        - entry_key TEXT
        - value TEXT
        - value_type INTEGER
        - symbol_key INTEGER (bool)
        - created_at INTEGER (Unix ms)
        - updated_at INTEGER (Unix ms)
        - UNIQUE (owner_id, key_id)
        - INDEX on entry_key, owner_id

    <table>_keys:
        - id INTEGER PRIMARY KEY
        - key_name TEXT UNIQUE
        - symbol_key INTEGER (bool)
        - created_at INTEGER
        - updated_at INTEGER
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import re
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Sequence

from ..schema.registry import DuplicateKeyError
from ..schema.types import KeyDescriptor
from .base import EntryRow, StoreNotInitializedError

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _now_ms() -> int:
    return int(time.time() * 1000)


def eav_table_name(owner_type: str, bag_name: str) -> str:
    """Derive the entry table name for an attribute bag.

    Example:
        >>> eav_table_name("Product", "tech_specs")
        'product_tech_specs'
        >>> eav_table_name("ProductVariant", "extras")
        'product_variant_extras'
    """
    owner = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", owner_type).lower()
    table = f"{owner}_{bag_name}".lower()
    if not _IDENTIFIER.match(table):
        raise ValueError(f"Invalid attribute table name: {table!r}")
    return table


class SqliteEntryStore:
    """SQLite storage for one attribute bag.

    Thread safety:
        Each database connection is created per-operation.
        SQLite handles concurrent access via WAL mode.

    Example:
        >>> store = SqliteEntryStore("/var/lib/eav/eav.db", "product_tech_specs")
        >>> await store.initialize()
        >>> rows = await store.fetch_all_for_owner(42)
    """

    # SQLite schema version for migrations
    SCHEMA_VERSION = 1

    def __init__(
        self,
        db_path: str | Path,
        table_name: str,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
        cache_size_pages: int = -64000,
    ) -> None:
        """Initialize the entry store.

        Args:
            db_path: SQLite database file
            table_name: Entry table name (keys table is <table_name>_keys)
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
            cache_size_pages: SQLite cache size (negative = KB)
        """
        if not _IDENTIFIER.match(table_name):
            raise ValueError(f"Invalid attribute table name: {table_name!r}")
        self.db_path = Path(db_path)
        self.table_name = table_name
        self.keys_table_name = f"{table_name}_keys"
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self.cache_size_pages = cache_size_pages
        self._lock = asyncio.Lock()

    @contextmanager
    def _get_connection(self, create: bool = False) -> Iterator[sqlite3.Connection]:
        """Get a database connection.

        Args:
            create: Whether to create database if not exists

        Yields:
            SQLite connection

        Raises:
            StoreNotInitializedError: If database doesn't exist and create=False
        """
        if not create and not self.db_path.exists():
            raise StoreNotInitializedError(f"Attribute database not found: {self.db_path}")

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit by default, explicit transactions
        )
        conn.row_factory = sqlite3.Row

        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            conn.execute(f"PRAGMA cache_size = {self.cache_size_pages}")
            if self.wal_mode:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            conn.execute("PRAGMA foreign_keys = ON")

            yield conn
        finally:
            conn.close()

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        """Create database schema."""
        table = self.table_name
        keys = self.keys_table_name
        conn.executescript(f"""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS {keys} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                key_name TEXT NOT NULL UNIQUE,
                symbol_key INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS {table} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id INTEGER NOT NULL,
                key_id INTEGER NOT NULL,
                entry_key TEXT NOT NULL,
                value TEXT NOT NULL,
                value_type INTEGER NOT NULL,
                symbol_key INTEGER NOT NULL DEFAULT 1,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL,
                UNIQUE (owner_id, key_id)
            );

            CREATE INDEX IF NOT EXISTS idx_{table}_entry_key ON {table}(entry_key);
            CREATE INDEX IF NOT EXISTS idx_{table}_owner ON {table}(owner_id);

            INSERT OR IGNORE INTO schema_version (version, applied_at)
            VALUES ({self.SCHEMA_VERSION}, strftime('%s', 'now') * 1000);
        """)

    async def initialize(self) -> None:
        """Create the database file and tables if they don't exist."""
        async with self._lock:
            with self._get_connection(create=True) as conn:
                self._create_schema(conn)
                logger.info(f"Initialized attribute tables: {self.table_name} in {self.db_path}")

    async def exists(self) -> bool:
        """Check if the database file exists."""
        return self.db_path.exists()

    def _row_to_entry(self, row: sqlite3.Row) -> EntryRow:
        return EntryRow(
            entry_id=row["id"],
            owner_id=row["owner_id"],
            key_id=row["key_id"],
            entry_key=row["entry_key"],
            value=row["value"],
            value_type=row["value_type"],
            symbol_key=bool(row["symbol_key"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def fetch_all_for_owner(self, owner_id: int) -> list[EntryRow]:
        """Fetch all attribute rows of an owner, in insertion order.

        Args:
            owner_id: Owner record id

        Returns:
            List of rows
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"SELECT * FROM {self.table_name} WHERE owner_id = ? ORDER BY id",
                (owner_id,),
            )
            return [self._row_to_entry(row) for row in cursor.fetchall()]

    async def upsert(self, row: EntryRow) -> EntryRow:
        """Insert or update a single row."""
        saved = await self.flush_rows([row], [])
        return saved[0]

    async def delete(self, row: EntryRow) -> bool:
        """Delete a single row.

        Returns:
            True if deleted, False if not found
        """
        with self._get_connection() as conn:
            return self._delete_row(conn, row)

    async def flush_rows(
        self,
        upserts: Sequence[EntryRow],
        deletes: Sequence[EntryRow],
    ) -> list[EntryRow]:
        """Apply deletes and upserts in one transaction.

        Args:
            upserts: Rows to insert or update
            deletes: Rows to delete

        Returns:
            Stored rows for upserts (ids and timestamps filled in)
        """
        now = _now_ms()
        saved: list[EntryRow] = []

        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                for row in deletes:
                    self._delete_row(conn, row)
                for row in upserts:
                    saved.append(self._upsert_row(conn, row, now))
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise

        logger.debug(
            "Flushed attribute rows",
            extra={
                "table": self.table_name,
                "upserts": len(upserts),
                "deletes": len(deletes),
            },
        )
        return saved

    def _upsert_row(self, conn: sqlite3.Connection, row: EntryRow, now: int) -> EntryRow:
        if row.owner_id is None:
            raise ValueError(f"Cannot store attribute '{row.entry_key}' without an owner_id")

        if row.entry_id is not None:
            cursor = conn.execute(
                f"""
                UPDATE {self.table_name}
                SET owner_id = ?, key_id = ?, entry_key = ?, value = ?,
                    value_type = ?, symbol_key = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    row.owner_id,
                    row.key_id,
                    row.entry_key,
                    row.value,
                    row.value_type,
                    int(row.symbol_key),
                    now,
                    row.entry_id,
                ),
            )
            if cursor.rowcount > 0:
                return dataclasses.replace(row, updated_at=now)

        conn.execute(
            f"""
            INSERT INTO {self.table_name}
                (owner_id, key_id, entry_key, value, value_type, symbol_key, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (owner_id, key_id) DO UPDATE SET
                entry_key = excluded.entry_key,
                value = excluded.value,
                value_type = excluded.value_type,
                symbol_key = excluded.symbol_key,
                updated_at = excluded.updated_at
            """,
            (
                row.owner_id,
                row.key_id,
                row.entry_key,
                row.value,
                row.value_type,
                int(row.symbol_key),
                now,
                now,
            ),
        )
        cursor = conn.execute(
            f"SELECT * FROM {self.table_name} WHERE owner_id = ? AND key_id = ?",
            (row.owner_id, row.key_id),
        )
        return self._row_to_entry(cursor.fetchone())

    def _delete_row(self, conn: sqlite3.Connection, row: EntryRow) -> bool:
        if row.entry_id is not None:
            cursor = conn.execute(
                f"DELETE FROM {self.table_name} WHERE id = ?",
                (row.entry_id,),
            )
        else:
            cursor = conn.execute(
                f"DELETE FROM {self.table_name} WHERE owner_id = ? AND key_id = ?",
                (row.owner_id, row.key_id),
            )
        return cursor.rowcount > 0

    async def get_stats(self) -> dict[str, int]:
        """Get row counts for this attribute bag."""
        with self._get_connection() as conn:
            stats = {}

            cursor = conn.execute(f"SELECT COUNT(*) FROM {self.table_name}")
            stats["entries"] = cursor.fetchone()[0]

            cursor = conn.execute(f"SELECT COUNT(DISTINCT owner_id) FROM {self.table_name}")
            stats["owners"] = cursor.fetchone()[0]

            cursor = conn.execute(f"SELECT COUNT(*) FROM {self.keys_table_name}")
            stats["keys"] = cursor.fetchone()[0]

            return stats


class SqliteKeyRegistry:
    """Key registry stored in the <table>_keys table of a SqliteEntryStore.

    Example:
        >>> registry = SqliteKeyRegistry(store)
        >>> await registry.register_key("color")
        >>> await registry.find_by_name("color")
        KeyDescriptor(key_id=1, name='color', symbolic=False)
    """

    def __init__(self, store: SqliteEntryStore) -> None:
        self.store = store

    @staticmethod
    def _row_to_descriptor(row: sqlite3.Row) -> KeyDescriptor:
        return KeyDescriptor(
            key_id=row["id"],
            name=row["key_name"],
            symbolic=bool(row["symbol_key"]),
        )

    async def register_key(self, name: str, symbolic: bool = False) -> KeyDescriptor:
        """Register a new key.

        Raises:
            DuplicateKeyError: If the name is already registered
            ValueError: If name is blank
        """
        if not name or not name.strip():
            raise ValueError("Key name cannot be empty")

        now = _now_ms()
        with self.store._get_connection() as conn:
            try:
                cursor = conn.execute(
                    f"""
                    INSERT INTO {self.store.keys_table_name}
                        (key_name, symbol_key, created_at, updated_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (name, int(symbolic), now, now),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateKeyError(f"Key name '{name}' already registered") from e

        logger.debug(f"Registered key: {name} (key_id={cursor.lastrowid})")
        return KeyDescriptor(key_id=cursor.lastrowid, name=name, symbolic=symbolic)

    async def find_by_name(self, name: str) -> Optional[KeyDescriptor]:
        with self.store._get_connection() as conn:
            cursor = conn.execute(
                f"SELECT * FROM {self.store.keys_table_name} WHERE key_name = ?",
                (str(name),),
            )
            row = cursor.fetchone()
            return self._row_to_descriptor(row) if row else None

    async def list_all(self) -> list[KeyDescriptor]:
        with self.store._get_connection() as conn:
            cursor = conn.execute(
                f"SELECT * FROM {self.store.keys_table_name} ORDER BY id"
            )
            return [self._row_to_descriptor(row) for row in cursor.fetchall()]
