"""mongosetup CLI entry point."""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError
from pymongo.errors import PyMongoError

load_dotenv(Path.cwd() / ".env")

from mongosetup import __version__
from mongosetup.config import DEFAULT_CONNECTION_STRING_NAME, Settings, load_settings
from mongosetup.data import RepositoryRegistry, User, set_registry
from mongosetup.database import close_all, get_db_info, sanitize_mongodb_url
from mongosetup.exceptions import ConfigurationError
from mongosetup.seed import DEVELOPER_EMAIL, seed_developer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


def _load_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.config)
    level = logging.DEBUG if args.debug else getattr(logging, settings.log_level, logging.INFO)
    logging.getLogger().setLevel(level)
    return settings


def _init_logfire(settings: Settings) -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from mongosetup.observability import initialize_logfire

        initialize_logfire(settings)
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def _create_registry(settings: Settings) -> RepositoryRegistry:
    return RepositoryRegistry(settings=settings)


def _print_validation_error(e: ValidationError) -> None:
    print("\n❌ Configuration Error:\n")
    for error in e.errors():
        print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
    print()


def _wait_for_key(args: argparse.Namespace) -> None:
    if args.no_wait:
        return
    try:
        input()
    except EOFError:
        pass


def cmd_seed(args: argparse.Namespace) -> int:
    """Seed the developer user and report the result."""
    try:
        settings = _load_settings(args)
    except ValidationError as e:
        _print_validation_error(e)
        return 1

    _init_logfire(settings)
    previous = set_registry(_create_registry(settings))

    try:
        print(f"Creating user 'Developer ({DEVELOPER_EMAIL})'")
        user = seed_developer()
        print(f"Saved user 'Developer ({DEVELOPER_EMAIL})' with Id '{user.id}'")
        print(f"Saved user 'Developer ({DEVELOPER_EMAIL})' with display name '{user.display_name}'")
        print(f"Total collections '{User.count()}'")

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print(f"\n❌ {e}\n")
        return 1
    except PyMongoError as e:
        logger.error(f"MongoDB error while seeding: {e}")
        print(f"\n❌ Seeding failed: {e}\n")
        return 1
    finally:
        set_registry(previous)
        close_all()

    _wait_for_key(args)
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = _load_settings(args)
    except ValidationError as e:
        _print_validation_error(e)
        return 1

    print("\n=== mongosetup Configuration ===\n")
    print(f"Config File: {settings.config_file}")
    print(f"Environment: {settings.environment}")
    print(f"Default Database: {settings.default_database}")
    print(f"Server Selection Timeout: {settings.server_selection_timeout_ms} ms\n")

    print("Connection Strings:")
    if settings.connection_strings:
        for name, url in sorted(settings.connection_strings.items()):
            print(f"  {name}: {sanitize_mongodb_url(url)}")
    else:
        print("  (None)")
    print()

    print(f"Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")
    return 0


def cmd_ping(args: argparse.Namespace) -> int:
    """Check that the configured MongoDB server is reachable."""
    try:
        settings = _load_settings(args)
    except ValidationError as e:
        _print_validation_error(e)
        return 1


    name = args.connection or DEFAULT_CONNECTION_STRING_NAME
    url = settings.get_connection_string(name)
    if url is None:
        print(f"\n❌ MongoDB connection string '{name}' is missing from configuration\n")
        return 1

    try:
        info = get_db_info(url, settings.default_database)
    finally:
        close_all()

    connected = info["status"] == "connected"
    print(f"\n{name}: {info['url']} (database '{info['database']}')")
    print(f"Status: {'✓ connected' if connected else '✗ unreachable'}\n")
    return 0 if connected else 1


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="mongosetup",
        description="Seed the developer user into MongoDB",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"mongosetup {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Exit without waiting for a keypress",
    )
    parser.set_defaults(func=cmd_seed)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_seed = subparsers.add_parser(
        "seed",
        help="Create or update the developer user (default)",
    )
    parser_seed.set_defaults(func=cmd_seed)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_ping = subparsers.add_parser(
        "ping",
        help="Check the MongoDB connection",
    )
    parser_ping.add_argument(
        "--connection",
        default=None,
        help=f"Connection string name (default: {DEFAULT_CONNECTION_STRING_NAME})",
    )
    parser_ping.set_defaults(func=cmd_ping)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
