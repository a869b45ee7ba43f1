"""
Unit tests for the in-memory entry storage.

Tests cover:
- Upsert keyed by (owner_id, key_id)
- Delete by id or by key
- Batched flush
- Failure injection and counters
"""

import pytest

from eav_hashes.store import EntryRow, EntryStorage, InMemoryEntryStore, StorageUnavailableError


def make_row(owner_id=1, key_id=1, key="color", value="red", value_type=0, **kwargs):
    return EntryRow(
        owner_id=owner_id,
        key_id=key_id,
        entry_key=key,
        value=value,
        value_type=value_type,
        **kwargs,
    )


class TestInMemoryEntryStore:
    """Tests for InMemoryEntryStore."""

    @pytest.fixture
    def storage(self):
        """Create a fresh storage."""
        return InMemoryEntryStore()

    def test_satisfies_protocol(self, storage):
        """The storage implements EntryStorage."""
        assert isinstance(storage, EntryStorage)

    @pytest.mark.asyncio
    async def test_upsert_assigns_id(self, storage):
        """New rows get an id and timestamps."""
        saved = await storage.upsert(make_row())

        assert saved.entry_id == 1
        assert saved.created_at is not None
        assert saved.updated_at == saved.created_at

    @pytest.mark.asyncio
    async def test_upsert_same_key_updates(self, storage):
        """A second row for the same owner and key replaces the first."""
        first = await storage.upsert(make_row(value="red"))
        second = await storage.upsert(make_row(value="blue"))

        assert second.entry_id == first.entry_id
        assert [row.value for row in storage.rows()] == ["blue"]

    @pytest.mark.asyncio
    async def test_upsert_requires_owner(self, storage):
        """Rows without an owner are rejected."""
        with pytest.raises(ValueError, match="owner_id"):
            await storage.upsert(make_row(owner_id=None))

    @pytest.mark.asyncio
    async def test_fetch_filters_by_owner(self, storage):
        """Only the owner's rows are returned."""
        await storage.upsert(make_row(owner_id=1, key="color"))
        await storage.upsert(make_row(owner_id=2, key="color"))
        await storage.upsert(make_row(owner_id=1, key_id=2, key="weight", value="3", value_type=2))

        rows = await storage.fetch_all_for_owner(1)

        assert [row.entry_key for row in rows] == ["color", "weight"]
        assert storage.fetch_count == 1

    @pytest.mark.asyncio
    async def test_fetch_returns_copies(self, storage):
        """Mutating fetched rows does not change storage."""
        await storage.upsert(make_row())
        rows = await storage.fetch_all_for_owner(1)
        rows[0].value = "changed"

        assert storage.rows()[0].value == "red"

    @pytest.mark.asyncio
    async def test_delete_by_id_and_key(self, storage):
        """Rows can be deleted by id or by (owner, key)."""
        saved = await storage.upsert(make_row())
        await storage.upsert(make_row(key_id=2, key="weight"))

        assert await storage.delete(make_row(entry_id=saved.entry_id)) is True
        assert await storage.delete(make_row(key_id=2, key="weight")) is True
        assert await storage.delete(make_row()) is False
        assert storage.delete_count == 2

    @pytest.mark.asyncio
    async def test_flush_rows(self, storage):
        """Deletes and upserts are applied together."""
        old = await storage.upsert(make_row())

        saved = await storage.flush_rows(
            [make_row(key_id=2, key="weight", value="3", value_type=2)],
            [old],
        )

        assert [row.entry_key for row in saved] == ["weight"]
        assert [row.entry_key for row in storage.rows()] == ["weight"]
        assert storage.write_count == 3

    @pytest.mark.asyncio
    async def test_fail_next(self, storage):
        """fail_next makes exactly one call fail."""
        storage.fail_next()

        with pytest.raises(StorageUnavailableError):
            await storage.flush_rows([make_row()], [])

        assert storage.rows() == []
        await storage.flush_rows([make_row()], [])
        assert len(storage.rows()) == 1

    @pytest.mark.asyncio
    async def test_fail_next_custom_error(self, storage):
        """fail_next can raise a given error."""
        storage.fail_next(RuntimeError("boom"))

        with pytest.raises(RuntimeError, match="boom"):
            await storage.fetch_all_for_owner(1)
