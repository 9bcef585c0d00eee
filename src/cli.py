#!/usr/bin/env python3
"""
Cache Maintenance CLI

Usage:
    python -m src.cli status [--pattern 'menu:*']
    python -m src.cli info
    python -m src.cli prewarm [--collections menu:list ingredients]
    python -m src.cli bump menu:list
    python -m src.cli invalidate menu:detail --id <menu-item-id>
    python -m src.cli delete <key>
    python -m src.cli refresh <key>

Output is JSON on stdout; structlog lines go to stderr so stdout stays parseable.
"""

import argparse
import asyncio
import sys
from enum import Enum
from typing import Any

import orjson

from src.application.context import CacheContext
from src.core.config.settings import get_settings
from src.core.exceptions import CacheCoreError
from src.core.logging.logger import get_logger, setup_logging
from src.infrastructure.store.sqlalchemy_store import SqlAlchemySourceStore

logger = get_logger(__name__)


class ExitCode(Enum):
    SUCCESS = 0
    GENERAL_ERROR = 1
    UNSUPPORTED = 2


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="catalogue-cache",
        description="Inspect and maintain the catalogue cache",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s status                          # Every cached key with its TTL
  %(prog)s prewarm                         # Warm every collection
  %(prog)s bump menu:list                  # Retire the current menu list
  %(prog)s invalidate menu:detail --id 42  # Drop one menu item's detail
        """,
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")

    commands = parser.add_subparsers(dest="command", required=True)

    status = commands.add_parser("status", help="List cached keys with TTLs and the last sync time")
    status.add_argument("--pattern", default="*", help="Glob of keys to list (default: *)")

    commands.add_parser("info", help="Current version and presence per collection")

    prewarm = commands.add_parser("prewarm", help="Load collections from the store into the cache")
    prewarm.add_argument("--collections", nargs="+", metavar="COLLECTION", help="Collections to warm")

    bump = commands.add_parser("bump", help="Bump a collection's version counter")
    bump.add_argument("collection", help="Cache base key, e.g. menu:list")

    invalidate = commands.add_parser("invalidate", help="Invalidate a collection or one entity")
    invalidate.add_argument("collection", help="Cache base key, e.g. menu:detail")
    invalidate.add_argument("--id", dest="entity_id", default=None, help="Entity id")

    delete = commands.add_parser("delete", help="Delete one physical key")
    delete.add_argument("key")

    refresh = commands.add_parser("refresh", help="Reload one collection-wide key from the store")
    refresh.add_argument("key")

    return parser


def _print(payload: Any) -> None:
    sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode() + "\n")


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = SqlAlchemySourceStore.from_settings(settings)

    async with await CacheContext.create(settings, store) as context:
        inspector = context.inspector

        if args.command == "status":
            _print(await inspector.status(args.pattern))
        elif args.command == "info":
            _print(await inspector.collection_info())
        elif args.command == "prewarm":
            _print(await inspector.prewarm(args.collections))
        elif args.command == "bump":
            _print({"collection": args.collection, "version": await inspector.bump(args.collection)})
        elif args.command == "invalidate":
            repo = context.repositories.get(args.collection)
            if repo is None:
                _print({"ok": False, "message": f"unknown collection {args.collection}"})
                return ExitCode.UNSUPPORTED.value
            result = await repo.invalidate(args.entity_id)
            await context.invalidator.mark_last_sync()
            _print({"collection": args.collection, "id": args.entity_id, "result": result})
        elif args.command == "delete":
            _print({"key": args.key, "deleted": await inspector.delete_key(args.key)})
        elif args.command == "refresh":
            refreshed = await inspector.refresh_key(args.key)
            _print({"key": args.key, "refreshed": refreshed})
            if not refreshed:
                return ExitCode.UNSUPPORTED.value

    return ExitCode.SUCCESS.value


def main(argv: list[str] | None = None) -> int:
    """Application entry point."""
    args = create_parser().parse_args(argv)
    setup_logging(log_level=args.log_level, stream=sys.stderr)

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.warning("Operation interrupted by user")
        return ExitCode.GENERAL_ERROR.value
    except CacheCoreError as e:
        _print({"ok": False, **e.to_dict()})
        return ExitCode.GENERAL_ERROR.value


if __name__ == "__main__":
    sys.exit(main())
