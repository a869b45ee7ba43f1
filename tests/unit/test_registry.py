"""
Unit tests for the key registry.

Tests cover:
- Key registration
- Registry freezing
- Duplicate detection
- Serialization
"""

import json

import pytest

from eav_hashes.codec import Symbol
from eav_hashes.schema import (
    DuplicateKeyError,
    InMemoryKeyRegistry,
    KeyDescriptor,
    KeyRegistry,
    RegistryFrozenError,
)


class TestKeyDescriptor:
    """Tests for KeyDescriptor."""

    def test_key_name_plain(self):
        """Plain keys keep str names."""
        color = KeyDescriptor(key_id=1, name="color")
        assert type(color.key_name) is str

    def test_key_name_symbolic(self):
        """Symbolic keys expose Symbol names."""
        size = KeyDescriptor(key_id=2, name="size", symbolic=True)
        assert isinstance(size.key_name, Symbol)
        assert size.key_name == "size"

    @pytest.mark.parametrize("key_id", [0, -1])
    def test_invalid_key_id(self, key_id):
        """key_id must be positive."""
        with pytest.raises(ValueError, match="positive"):
            KeyDescriptor(key_id=key_id, name="color")

    def test_blank_name(self):
        """Names cannot be blank."""
        with pytest.raises(ValueError, match="empty"):
            KeyDescriptor(key_id=1, name="  ")

    def test_dict_form(self):
        """Descriptors convert to and from dicts."""
        size = KeyDescriptor(key_id=2, name="size", symbolic=True)
        assert KeyDescriptor.from_dict(size.to_dict()) == size
        assert KeyDescriptor.from_dict({"key_id": 3, "name": "x"}).symbolic is False


class TestInMemoryKeyRegistry:
    """Tests for InMemoryKeyRegistry."""

    def test_satisfies_protocol(self):
        """The registry implements KeyRegistry."""
        assert isinstance(InMemoryKeyRegistry(), KeyRegistry)

    def test_register_key(self):
        """Can register a key."""
        registry = InMemoryKeyRegistry()
        color = registry.register_key("color")

        assert color.key_id == 1
        assert registry.get(1) == color
        assert registry.get("color") == color

    def test_auto_ids_follow_highest(self):
        """Auto-assigned ids continue after the highest id."""
        registry = InMemoryKeyRegistry()
        registry.register_key("color", key_id=10)
        weight = registry.register_key("weight")

        assert weight.key_id == 11

    def test_get_by_symbol(self):
        """Lookups accept Symbol names."""
        registry = InMemoryKeyRegistry()
        registry.register_key("size", symbolic=True)
        assert registry.get(Symbol("size")).name == "size"

    def test_duplicate_key_id_raises(self):
        """Registering a duplicate key_id raises error."""
        registry = InMemoryKeyRegistry()
        registry.register_key("color", key_id=1)

        with pytest.raises(DuplicateKeyError, match="key_id 1 already registered"):
            registry.register_key("weight", key_id=1)

    def test_duplicate_name_raises(self):
        """Registering a duplicate name raises error."""
        registry = InMemoryKeyRegistry()
        registry.register_key("color")

        with pytest.raises(DuplicateKeyError, match="name 'color' already registered"):
            registry.register_key("color")

    def test_freeze_registry(self):
        """Frozen registries reject new keys."""
        registry = InMemoryKeyRegistry()
        registry.register_key("color")
        registry.freeze()

        assert registry.frozen is True
        with pytest.raises(RegistryFrozenError):
            registry.register_key("weight")

    def test_freeze_twice_raises(self):
        """Freezing twice raises error."""
        registry = InMemoryKeyRegistry()
        registry.freeze()

        with pytest.raises(RegistryFrozenError, match="already frozen"):
            registry.freeze()

    @pytest.mark.asyncio
    async def test_async_lookups(self):
        """find_by_name and list_all serve AttributeStore lookups."""
        registry = InMemoryKeyRegistry()
        color = registry.register_key("color")
        weight = registry.register_key("weight")

        assert await registry.find_by_name("color") == color
        assert await registry.find_by_name("missing") is None
        assert await registry.list_all() == [color, weight]

    def test_json_round_trip(self):
        """Registry survives JSON serialization."""
        registry = InMemoryKeyRegistry()
        registry.register_key("weight", key_id=2)
        registry.register_key("size", symbolic=True, key_id=1)

        data = json.loads(registry.to_json())
        restored = InMemoryKeyRegistry.from_dict(data)

        assert [k["key_id"] for k in data["keys"]] == [1, 2]
        assert restored.get("size").symbolic is True
        assert restored.frozen is False
