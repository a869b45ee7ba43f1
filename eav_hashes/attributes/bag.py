"""
Attribute bag definitions.

An AttributeBag declares that records of one owner type carry a named set
of attributes (e.g. Product -> tech_specs). It binds the storage, key
registry and codec shared by every owner of that type and hands out one
AttributeStore per owner record.

Example:
    >>> tech_specs = await AttributeBag.open_sqlite("Product", "tech_specs", config)
    >>> await tech_specs.key_registry.register_key("color")
    >>> attrs = tech_specs.for_owner(product)
    >>> await attrs.set("color", "red")
"""

from __future__ import annotations

import logging
from typing import Optional

from ..codec import ObjectFormat, ValueCodec
from ..config import EavConfig
from ..schema.types import KeyRegistry
from ..store.base import EntryStorage
from ..store.sqlite_store import SqliteEntryStore, SqliteKeyRegistry, eav_table_name
from .attribute_store import AttributeStore
from .owner import Owner

logger = logging.getLogger(__name__)


class AttributeBag:
    """Attribute bag of one owner type.

    Attributes:
        owner_type: Owner type name (e.g. "Product")
        name: Bag name (e.g. "tech_specs")
        table_name: Derived entry table name (e.g. "product_tech_specs")
        storage: Row storage backend
        key_registry: Key lookup service
        codec: Value codec
    """

    def __init__(
        self,
        owner_type: str,
        name: str,
        storage: EntryStorage,
        key_registry: KeyRegistry,
        codec: Optional[ValueCodec] = None,
    ) -> None:
        self.owner_type = owner_type
        self.name = name
        self.table_name = eav_table_name(owner_type, name)
        self.storage = storage
        self.key_registry = key_registry
        self.codec = codec or ValueCodec()

    @classmethod
    async def open_sqlite(
        cls,
        owner_type: str,
        name: str,
        config: Optional[EavConfig] = None,
    ) -> AttributeBag:
        """Create a bag backed by the configured SQLite database.

        Creates the entry and key tables if needed.

        Args:
            owner_type: Owner type name
            name: Bag name
            config: Configuration (loaded from env if not provided)
        """
        config = config or EavConfig.from_env()
        storage = SqliteEntryStore(
            config.storage.db_path,
            eav_table_name(owner_type, name),
            wal_mode=config.storage.wal_mode,
            busy_timeout_ms=config.storage.busy_timeout_ms,
            cache_size_pages=config.storage.cache_size_pages,
        )
        await storage.initialize()
        codec = ValueCodec(ObjectFormat.from_str(config.codec.object_format))
        return cls(owner_type, name, storage, SqliteKeyRegistry(storage), codec)

    def for_owner(self, owner: Owner) -> AttributeStore:
        """Create the attribute store of an owner record."""
        return AttributeStore(
            owner,
            self.storage,
            self.key_registry,
            codec=self.codec,
            name=self.name,
        )

    def __repr__(self) -> str:
        return f"AttributeBag({self.owner_type}.{self.name}, table={self.table_name})"
