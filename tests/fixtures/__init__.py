"""
Test fixtures for migration scripts.

Provides helpers to lay out migration directories and a few sample
SQLite scripts.
"""

from pathlib import Path

USERS_UP = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    email TEXT NOT NULL
);
"""

USERS_DOWN = "DROP TABLE users;"

INDEX_UP = "CREATE UNIQUE INDEX idx_users_email ON users(email);"

INDEX_DOWN = "DROP INDEX idx_users_email;"

BROKEN_UP = """
CREATE TABLE audit_log (id INTEGER PRIMARY KEY);

INSERT INTO audit_log (id) VALUES (1);
CREATE TABLE orders (id INTEGER PRIMARY KEY, total NUMERIC;
"""


def write_migration(
    directory: Path,
    version: int,
    name: str,
    up: str = "",
    down: str = "",
    extension: str = "sql",
) -> None:
    """Write an up/down pair by hand."""
    (directory / f"{version:04d}_{name}.up.{extension}").write_text(up)
    (directory / f"{version:04d}_{name}.down.{extension}").write_text(down)


def write_sample_migrations(directory: Path) -> None:
    """Write 0001_init_users and 0002_add_index."""
    write_migration(directory, 1, "init_users", USERS_UP, USERS_DOWN)
    write_migration(directory, 2, "add_index", INDEX_UP, INDEX_DOWN)
