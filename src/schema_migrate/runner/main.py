"""
CLI main entry point.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Any, Callable, Optional, TextIO

from ..config import MigrateConfig, create_default_config, load_config
from ..errors import MigrateError
from ..files import Direction, MigrationFile
from ..migrate import InterruptHandler, Migrator
from ..pipe import Pipe, spawn

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="schema-migrate",
        description="Apply and revert versioned schema migrations",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("migrate.yaml"),
        help="Path to config file (default: migrate.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--url",
        type=str,
        help="Driver URL, e.g. sqlite:///data/app.db (overrides config)",
    )
    parser.add_argument(
        "--path",
        type=Path,
        help="Migrations directory (default: current directory)",
    )
    parser.add_argument(
        "--id",
        dest="migration_id",
        type=str,
        help="Version track inside the store (overrides config)",
    )
    parser.add_argument(
        "--non-graceful",
        action="store_true",
        help="Stop immediately on ^C instead of finishing the running migration",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # create command
    create_parser = subparsers.add_parser("create", help="Create a new migration")
    create_parser.add_argument("name", type=str, help="Migration name (spaces become _)")

    subparsers.add_parser("up", help="Apply all -up- migrations")
    subparsers.add_parser("down", help="Apply all -down- migrations")
    subparsers.add_parser("reset", help="Down followed by Up")
    subparsers.add_parser("redo", help="Roll back most recent migration, then apply it again")
    subparsers.add_parser("version", help="Show current migration version")

    # migrate command
    migrate_parser = subparsers.add_parser("migrate", help="Apply migrations -n|+n")
    migrate_parser.add_argument("n", type=int, help="Relative number of migrations")

    # goto command
    goto_parser = subparsers.add_parser("goto", help="Migrate to version v")
    goto_parser.add_argument("v", type=int, help="Target version (0 = everything down)")

    # init command
    subparsers.add_parser("init", help="Write a default config file")

    subparsers.add_parser("help", help="Show this help")

    return parser


def write_pipe(pipe: Pipe, out: Optional[TextIO] = None) -> bool:
    """
    Print progress events until the pipe closes.

    Args:
        pipe: Pipe to drain
        out: Stream to print to (default: the current sys.stdout)

    Returns:
        False if any error was printed
    """
    out = out or sys.stdout
    ok = True
    for event in pipe:
        if isinstance(event, MigrationFile):
            marker = ">" if event.direction == Direction.UP else "<"
            print(f"{marker} {event.filename}", file=out)
        elif isinstance(event, Exception):
            print(f"❌ {event}\n", file=out)
            ok = False
        else:
            print(str(event), file=out)
    return ok


def print_timer(started: float, out: Optional[TextIO] = None) -> None:
    """Print time elapsed since started."""
    out = out or sys.stdout
    elapsed = time.monotonic() - started
    if elapsed > 60:
        print(f"\n{elapsed / 60:.4f} minutes", file=out)
    else:
        print(f"\n{elapsed:.4f} seconds", file=out)


def run_operation(
    migrator: Migrator, operation: Callable[..., None], *args: Any
) -> int:
    """Run a streaming operation, printing its progress."""
    started = time.monotonic()
    with InterruptHandler(migrator.graceful) as interrupts:
        pipe = Pipe(operation.__name__)
        spawn(operation, pipe, *args, cancel=interrupts.cancel, name="migrate-cli")
        ok = write_pipe(pipe)
    print_timer(started)
    return 0 if ok else 1


def cmd_create(migrator: Migrator, name: str) -> int:
    """Create a new migration pair."""
    try:
        pair = migrator.create(name)
    except (MigrateError, ValueError) as e:
        print(f"❌ {e}")
        return 1

    print(f"Version {pair.version} migration files created in {migrator.path}:")
    print(pair.up.filename)
    print(pair.down.filename)
    return 0


def cmd_version(migrator: Migrator) -> int:
    """Print the current version."""
    try:
        version = migrator.version()
    except MigrateError as e:
        print(f"❌ {e}")
        return 1

    print(version)
    return 0


def cmd_init(config_path: Path) -> int:
    """Write a default config file."""
    if config_path.exists():
        print(f"❌ {config_path} already exists")
        return 1
    create_default_config(config_path)
    print(f"✓ Wrote {config_path}")
    return 0


def build_config(parsed: argparse.Namespace) -> MigrateConfig:
    """Load config file, then apply command line overrides."""
    config = load_config(parsed.config)
    if parsed.url:
        config.url = parsed.url
    if parsed.path:
        config.path = parsed.path
    if parsed.migration_id is not None:
        config.migration_id = parsed.migration_id
    if parsed.non_graceful:
        config.graceful = False
    return config


def main(args: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command or parsed.command == "help":
        parser.print_help()
        return 0 if parsed.command == "help" else 1

    if parsed.command == "init":
        return cmd_init(parsed.config)

    # Load config
    try:
        config = build_config(parsed)
    except Exception as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    errors = config.validate()
    if errors:
        for error in errors:
            print(f"❌ {error}")
        return 1

    migrator = Migrator.from_config(config)

    # Route to command
    try:
        if parsed.command == "create":
            return cmd_create(migrator, parsed.name)
        elif parsed.command == "version":
            return cmd_version(migrator)
        elif parsed.command == "up":
            return run_operation(migrator, migrator.up)
        elif parsed.command == "down":
            return run_operation(migrator, migrator.down)
        elif parsed.command == "reset":
            return run_operation(migrator, migrator.reset)
        elif parsed.command == "redo":
            return run_operation(migrator, migrator.redo)
        elif parsed.command == "migrate":
            return run_operation(migrator, migrator.migrate, parsed.n)
        elif parsed.command == "goto":
            if parsed.v < 0:
                print("❌ Unable to parse param <v>.")
                return 1
            return run_operation(migrator, migrator.goto, parsed.v)
        else:
            parser.print_help()
            return 1
    except KeyboardInterrupt:
        print("\n❌ Aborted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
