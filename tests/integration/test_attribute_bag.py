"""
Integration tests for AttributeBag on SQLite.

Tests cover:
- Full write/flush/reload flow through a real database
- Typed values surviving storage
- Delete-on-None and clear
- Object format configuration
"""

import tempfile
from fractions import Fraction

import pytest

from eav_hashes import AttributeBag, EavConfig, OwnerRecord, Symbol
from eav_hashes.config import CodecConfig, StorageConfig
from eav_hashes.errors import InvalidValueError, UnknownKeyError


class TestAttributeBagSqlite:
    """End-to-end tests for SQLite-backed attribute bags."""

    @pytest.fixture
    def data_dir(self):
        """Create temporary data directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield tmpdir

    @pytest.fixture
    def config(self, data_dir):
        """Configuration pointing at the temporary directory."""
        return EavConfig(storage=StorageConfig(data_dir=data_dir, wal_mode=False))

    async def open_bag(self, config):
        bag = await AttributeBag.open_sqlite("Product", "tech_specs", config)
        for name in ("color", "weight", "ratio", "specs", "in_stock"):
            await bag.key_registry.register_key(name)
        await bag.key_registry.register_key("size", symbolic=True)
        return bag

    @pytest.mark.asyncio
    async def test_table_name(self, config):
        """The bag derives its table from owner type and name."""
        bag = await AttributeBag.open_sqlite("ProductVariant", "extras", config)

        assert bag.table_name == "product_variant_extras"
        assert "product_variant_extras" in repr(bag)

    @pytest.mark.asyncio
    async def test_values_survive_flush_and_reload(self, config):
        """Typed values come back from a fresh store."""
        bag = await self.open_bag(config)
        product = OwnerRecord(id=42)

        attrs = bag.for_owner(product)
        await attrs.merge(
            {
                "color": "red",
                "weight": 12,
                "ratio": Fraction(1, 3),
                "specs": {"cpu": "arm", "cores": [4, 8]},
                "in_stock": False,
                "size": Symbol("large"),
            }
        )
        await attrs.flush()

        fresh = bag.for_owner(OwnerRecord(id=42))
        assert await fresh.as_dict() == {
            "color": "red",
            "weight": 12,
            "ratio": Fraction(1, 3),
            "specs": {"cpu": "arm", "cores": [4, 8]},
            "in_stock": False,
            "size": "large",
        }
        assert isinstance(await fresh.get("size"), Symbol)
        assert isinstance((await fresh.keys())[-1], Symbol)

    @pytest.mark.asyncio
    async def test_owners_are_isolated(self, config):
        """Each owner sees only its own attributes."""
        bag = await self.open_bag(config)

        first = bag.for_owner(OwnerRecord(id=1))
        await first.set("color", "red")
        await first.flush()

        second = bag.for_owner(OwnerRecord(id=2))
        assert await second.get("color") is None

    @pytest.mark.asyncio
    async def test_delete_on_none(self, config):
        """Clearing a value removes its row."""
        bag = await self.open_bag(config)

        attrs = bag.for_owner(OwnerRecord(id=7))
        await attrs.merge({"color": "red", "weight": 3})
        await attrs.flush()

        attrs = bag.for_owner(OwnerRecord(id=7))
        await attrs.set("color", None)
        await attrs.flush()

        stats = await bag.storage.get_stats()
        assert stats["entries"] == 1
        assert await bag.for_owner(OwnerRecord(id=7)).keys() == ["weight"]

    @pytest.mark.asyncio
    async def test_update_existing_value(self, config):
        """Changing a loaded value updates the same row."""
        bag = await self.open_bag(config)

        attrs = bag.for_owner(OwnerRecord(id=3))
        await attrs.set("weight", 1)
        await attrs.flush()
        await attrs.set("weight", 2.5)
        await attrs.flush()

        assert await bag.storage.get_stats() == {"entries": 1, "owners": 1, "keys": 6}
        assert await bag.for_owner(OwnerRecord(id=3)).get("weight") == 2.5

    @pytest.mark.asyncio
    async def test_clear(self, config):
        """clear() followed by flush() removes every row."""
        bag = await self.open_bag(config)

        attrs = bag.for_owner(OwnerRecord(id=9))
        await attrs.merge({"color": "red", "weight": 3})
        await attrs.flush()
        await attrs.clear()
        await attrs.flush()

        assert (await bag.storage.get_stats())["entries"] == 0

    @pytest.mark.asyncio
    async def test_new_owner_flow(self, config):
        """Attributes set before the owner is saved use its later id."""
        bag = await self.open_bag(config)
        product = OwnerRecord()

        attrs = bag.for_owner(product)
        await attrs.set("color", "red")
        product.id = 100
        await attrs.flush()

        assert await bag.for_owner(OwnerRecord(id=100)).get("color") == "red"

    @pytest.mark.asyncio
    async def test_empty_string_never_stored(self, config):
        """An existing value cannot be overwritten with an empty string."""
        bag = await self.open_bag(config)

        attrs = bag.for_owner(OwnerRecord(id=4))
        await attrs.set("color", "red")
        await attrs.flush()

        with pytest.raises(InvalidValueError):
            await attrs.set("color", "")
        await attrs.flush()

        assert await bag.for_owner(OwnerRecord(id=4)).get("color") == "red"

    @pytest.mark.asyncio
    async def test_symbols_inside_objects(self, config):
        """Objects holding Symbols survive the safe object format."""
        bag = await self.open_bag(config)
        specs = {Symbol("a"): 1, "tags": [Symbol("x")]}

        attrs = bag.for_owner(OwnerRecord(id=6))
        await attrs.set("specs", specs)
        await attrs.flush()

        restored = await bag.for_owner(OwnerRecord(id=6)).get("specs")
        assert restored == specs
        assert isinstance(restored["tags"][0], Symbol)

    @pytest.mark.asyncio
    async def test_unknown_key(self, config):
        """Keys must be registered in the bag's key table."""
        bag = await self.open_bag(config)
        attrs = bag.for_owner(OwnerRecord(id=1))

        with pytest.raises(UnknownKeyError):
            await attrs.merge({"color": "red", "colour": "red"})

        assert not attrs.dirty

    @pytest.mark.asyncio
    async def test_full_object_format(self, data_dir):
        """The full format stores Python-specific types."""
        config = EavConfig(
            storage=StorageConfig(data_dir=data_dir, wal_mode=False),
            codec=CodecConfig(object_format="full"),
        )
        bag = await self.open_bag(config)

        attrs = bag.for_owner(OwnerRecord(id=1))
        await attrs.set("specs", {"dims": (10, 20)})
        await attrs.flush()

        assert await bag.for_owner(OwnerRecord(id=1)).get("specs") == {"dims": (10, 20)}
