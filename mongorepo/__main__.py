"""mongorepo CLI entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

load_dotenv(Path.cwd() / ".env")

from mongorepo import __version__
from mongorepo.config import get_settings
from mongorepo.connection import (
    check_connection,
    close_client,
    get_connection_info,
    init_client,
)
from mongorepo.repository import RepositoryError, create_repository

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from mongorepo.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()
        info = get_connection_info()

        print("\n=== mongorepo Configuration ===\n")

        print("MongoDB:")
        print(f"  URL: {info['url']}")
        print(f"  Database: {settings.mongodb.database}")
        print(f"  TZ Aware: {settings.mongodb.tz_aware}")
        print(f"  Server Selection Timeout: {settings.mongodb.server_selection_timeout_ms} ms\n")

        print("Repository:")
        print(f"  Emit Events: {settings.repository.emit_events}")
        print(f"  Log Operations: {settings.repository.log_operations}\n")

        print(f"Log Level: {settings.log_level}")
        print(f"Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")
        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1


async def _ping() -> bool:
    init_client(get_settings())
    try:
        return await check_connection()
    finally:
        close_client()


def cmd_ping(args: argparse.Namespace) -> int:
    """Check MongoDB connectivity."""
    info = get_connection_info()
    if asyncio.run(_ping()):
        print(f"\n✓ Connected to {info['url']} ({info['database']})\n")
        return 0

    print(f"\n❌ Could not reach {info['url']}\n")
    return 1


async def _count(collection_name: str) -> int:
    init_client(get_settings())
    try:
        repository = create_repository(collection_name)
        return await repository.count_all()
    finally:
        close_client()


def cmd_count(args: argparse.Namespace) -> int:
    """Count documents in a collection."""
    _init_logfire()
    try:
        total = asyncio.run(_count(args.collection))
    except RepositoryError as e:
        logger.error(f"Count failed: {e}")
        print(f"\n❌ Failed to count {args.collection}: {e}\n")
        return 1

    print(f"{args.collection}: {total}")
    return 0


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="mongorepo",
        description="Inspect the MongoDB setup used by mongorepo repositories",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    config_parser = subparsers.add_parser("config", help="Show merged configuration")
    config_parser.set_defaults(func=cmd_config)

    ping_parser = subparsers.add_parser("ping", help="Check MongoDB connectivity")
    ping_parser.set_defaults(func=cmd_ping)

    count_parser = subparsers.add_parser("count", help="Count documents in a collection")
    count_parser.add_argument("collection", help="Collection name")
    count_parser.set_defaults(func=cmd_count)

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        logging.getLogger().setLevel(get_settings().log_level)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
