"""
Key administration CLI for eav_hashes.

This tool manages the key registry and inspects stored attributes of a
SQLite-backed attribute bag:
- register: Register a new attribute key
- list: List registered keys
- dump: Print the attributes of one owner as JSON
- stats: Print row counts

Usage:
    eav-keys --owner-type Product --bag tech_specs register color
    eav-keys --owner-type Product --bag tech_specs register size --symbol
    eav-keys --owner-type Product --bag tech_specs list
    eav-keys --owner-type Product --bag tech_specs dump 42

Configuration is read from the environment (see config.py).

Invariants:
    - Keys are only ever added, never removed
    - Output of list/dump/stats is JSON for scripting
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Optional, Sequence

import json_log_formatter

from ..attributes import AttributeBag, OwnerRecord
from ..config import EavConfig
from ..schema import DuplicateKeyError

logger = logging.getLogger(__name__)


def setup_logging(config: EavConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Loaded configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return repr(value)


class KeysCLI:
    """CLI commands bound to one attribute bag.

    Example:
        >>> cli = KeysCLI(bag)
        >>> await cli.register("color")
    """

    def __init__(self, bag: AttributeBag) -> None:
        self.bag = bag

    async def register(self, name: str, symbolic: bool = False) -> dict[str, Any]:
        descriptor = await self.bag.key_registry.register_key(name, symbolic=symbolic)
        return descriptor.to_dict()

    async def list_keys(self) -> list[dict[str, Any]]:
        return [d.to_dict() for d in await self.bag.key_registry.list_all()]

    async def dump(self, owner_id: int) -> dict[str, Any]:
        attrs = self.bag.for_owner(OwnerRecord(id=owner_id))
        return {str(k): _jsonable(v) for k, v in (await attrs.as_dict()).items()}

    async def stats(self) -> dict[str, int]:
        return await self.bag.storage.get_stats()


async def _run(args: argparse.Namespace, config: EavConfig) -> int:
    bag = await AttributeBag.open_sqlite(args.owner_type, args.bag, config)
    cli = KeysCLI(bag)

    if args.command == "register":
        try:
            result = await cli.register(args.name, symbolic=args.symbol)
        except DuplicateKeyError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(json.dumps(result))
    elif args.command == "list":
        print(json.dumps(await cli.list_keys(), indent=2))
    elif args.command == "dump":
        print(json.dumps(await cli.dump(args.owner_id), indent=2, sort_keys=True))
    elif args.command == "stats":
        print(json.dumps(await cli.stats(), indent=2, sort_keys=True))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for key administration."""
    parser = argparse.ArgumentParser(description="eav_hashes key administration tool")
    parser.add_argument("--owner-type", required=True, help="Owner type name, e.g. Product")
    parser.add_argument("--bag", required=True, help="Attribute bag name, e.g. tech_specs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_parser = subparsers.add_parser("register", help="Register a new key")
    register_parser.add_argument("name", help="Key name")
    register_parser.add_argument("--symbol", action="store_true", help="Register as a symbol key")

    subparsers.add_parser("list", help="List registered keys")

    dump_parser = subparsers.add_parser("dump", help="Print the attributes of an owner")
    dump_parser.add_argument("owner_id", type=int, help="Owner record id")

    subparsers.add_parser("stats", help="Print row counts")

    args = parser.parse_args(argv)

    config = EavConfig.from_env()
    setup_logging(config)
    config.log_config()

    sys.exit(asyncio.run(_run(args, config)))


if __name__ == "__main__":
    main()
