"""
Integration tests for the eav-keys CLI.

Tests cover:
- Key registration and listing
- Dumping an owner's attributes
- Stats output
- Error exit codes
"""

import json
import logging

import pytest

from eav_hashes.attributes import AttributeBag, OwnerRecord
from eav_hashes.config import EavConfig, StorageConfig
from eav_hashes.tools.keys_cli import KeysCLI, main


@pytest.fixture
def env(monkeypatch, tmp_path):
    """Point the CLI at a temporary database."""
    monkeypatch.setenv("EAV_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("SQLITE_WAL_MODE", "false")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.delenv("EAV_OBJECT_FORMAT", raising=False)
    monkeypatch.delenv("LOG_FORMAT", raising=False)
    return tmp_path


@pytest.fixture(autouse=True)
def restore_logging():
    """setup_logging() replaces the root handlers; put them back."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def run(*argv):
    with pytest.raises(SystemExit) as exc_info:
        main(["--owner-type", "Product", "--bag", "tech_specs", *argv])
    return exc_info.value.code


class TestKeysCLI:
    """Tests for the eav-keys command."""

    def test_register_and_list(self, env, capsys):
        """Registered keys show up in list output."""
        assert run("register", "color") == 0
        assert run("register", "size", "--symbol") == 0
        capsys.readouterr()

        assert run("list") == 0
        keys = json.loads(capsys.readouterr().out)

        assert keys == [
            {"key_id": 1, "name": "color", "symbolic": False},
            {"key_id": 2, "name": "size", "symbolic": True},
        ]

    def test_register_duplicate(self, env, capsys):
        """Registering an existing key fails with exit code 1."""
        run("register", "color")
        capsys.readouterr()

        assert run("register", "color") == 1
        assert "already registered" in capsys.readouterr().err

    def test_stats(self, env, capsys):
        """stats prints row counts."""
        run("register", "color")
        capsys.readouterr()

        assert run("stats") == 0
        assert json.loads(capsys.readouterr().out) == {"entries": 0, "keys": 1, "owners": 0}

    def test_missing_command(self, env):
        """A subcommand is required."""
        assert run() == 2

    @pytest.mark.asyncio
    async def test_dump(self, env):
        """dump returns an owner's attributes as JSON-friendly data."""
        config = EavConfig(storage=StorageConfig(data_dir=str(env), wal_mode=False))
        bag = await AttributeBag.open_sqlite("Product", "tech_specs", config)
        await bag.key_registry.register_key("color")
        await bag.key_registry.register_key("dims")
        await bag.key_registry.register_key("ratio")

        attrs = bag.for_owner(OwnerRecord(id=5))
        await attrs.merge({"color": "red", "dims": [10, 20], "ratio": 1 + 2j})
        await attrs.flush()

        dumped = await KeysCLI(bag).dump(5)

        assert dumped == {"color": "red", "dims": [10, 20], "ratio": "(1+2j)"}
        json.dumps(dumped)
