"""
SQLite driver.

URL format:
    sqlite:///absolute/path/to/db.sqlite
    sqlite://relative/path/to/db.sqlite

Applied versions are tracked in a `schema_migrations` table, one row per
(id, version). Each step runs in a single transaction together with its
ledger update, so a failing script leaves the ledger untouched.
"""

import logging
import re
import sqlite3
from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any, Optional

from ..errors import CloseError, DriverConnectionError, StepExecutionError, VersionQueryError
from ..files import Direction, MigrationFile, line_column_from_offset, lines_before_and_after
from ..pipe import Pipe
from .base import Driver
from .registry import register_driver

logger = logging.getLogger(__name__)

_COMMENTS = re.compile(r"--[^\n]*|/\*.*?\*/", re.DOTALL)


def _is_blank(sql: str) -> bool:
    """True for chunks holding only whitespace, comments and semicolons."""
    return not _COMMENTS.sub("", sql).strip(" \t\r\n;")


def split_statements(script: str) -> Iterator[tuple[int, str]]:
    """
    Split a script into statements.

    Uses sqlite3.complete_statement, so semicolons inside string literals
    and trigger bodies do not end a statement.

    Yields:
        (offset of the statement in script, statement text)
    """
    start = 0
    position = 0
    while True:
        semicolon = script.find(";", position)
        if semicolon == -1:
            break
        position = semicolon + 1
        chunk = script[start:position]
        if sqlite3.complete_statement(chunk):
            if not _is_blank(chunk):
                yield start + len(chunk) - len(chunk.lstrip()), chunk.strip()
            start = position

    tail = script[start:]
    if not _is_blank(tail):
        yield start + len(tail) - len(tail.lstrip()), tail.strip()


@register_driver("sqlite")
class SQLiteDriver(Driver):
    """
    Driver for SQLite databases.

    An externally supplied sqlite3.Connection must be opened with
    check_same_thread=False, since steps run on their own thread, and must
    not have a transaction open. It is never closed by the driver.
    """

    TABLE_NAME = "schema_migrations"

    def __init__(self):
        self.conn: Optional[sqlite3.Connection] = None
        self.owns_connection = False

    @classmethod
    def accepts(cls, instance: Any) -> bool:
        return isinstance(instance, sqlite3.Connection)

    @staticmethod
    def database_path(url: str) -> str:
        """Database path from a sqlite:// URL."""
        _, sep, path = url.partition("://")
        if not sep or not path:
            raise DriverConnectionError(f"Invalid SQLite URL '{url}', expected sqlite://<path>")
        return path

    def initialize(self, url: str, instance: Any = None) -> None:
        if instance is not None:
            if not self.accepts(instance):
                raise DriverConnectionError(
                    f"Expected instance of sqlite3.Connection, got {instance!r}"
                )
            if instance.in_transaction:
                raise DriverConnectionError(
                    "Connection has an open transaction, commit or roll back before migrating"
                )
            self.conn = instance
            self.owns_connection = False
        else:
            db_path = self.database_path(url)
            try:
                self.conn = sqlite3.connect(db_path, isolation_level=None, check_same_thread=False)
            except sqlite3.Error as e:
                raise DriverConnectionError(f"Cannot open SQLite database {db_path}: {e}") from e
            self.owns_connection = True
            logger.debug(f"Opened SQLite database {db_path}")

        try:
            self.conn.execute("SELECT 1")
            self._ensure_version_table()
        except sqlite3.Error as e:
            raise DriverConnectionError(f"SQLite database not usable: {e}") from e

    def _ensure_version_table(self) -> None:
        """Create the ledger table if it doesn't exist."""
        pending = self.conn.in_transaction
        self.conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.TABLE_NAME} (
                id TEXT NOT NULL,
                version INTEGER NOT NULL,
                applied_at TEXT NOT NULL,
                PRIMARY KEY (id, version)
            )
        """
        )
        if self.conn.in_transaction and not pending:
            self.conn.commit()

    def close(self) -> None:
        if self.conn is None:
            return
        if self.owns_connection:
            try:
                self.conn.close()
            except sqlite3.Error as e:
                raise CloseError(f"Failed to close SQLite database: {e}") from e
        self.conn = None

    @property
    def filename_extension(self) -> str:
        return "sql"

    def version(self, migration_id: str) -> int:
        try:
            row = self.conn.execute(
                f"SELECT MAX(version) FROM {self.TABLE_NAME} WHERE id = ?",
                (migration_id,),
            ).fetchone()
        except sqlite3.Error as e:
            raise VersionQueryError(f"Cannot read {self.TABLE_NAME}: {e}") from e
        return row[0] if row and row[0] is not None else 0

    def execute(self, migration_id: str, file: MigrationFile, pipe: Pipe) -> None:
        script = file.read_text()

        self.conn.execute("BEGIN")
        try:
            if file.direction == Direction.UP:
                now = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
                self.conn.execute(
                    f"INSERT INTO {self.TABLE_NAME} (id, version, applied_at) VALUES (?, ?, ?)",
                    (migration_id, file.version, now),
                )
            else:
                self.conn.execute(
                    f"DELETE FROM {self.TABLE_NAME} WHERE id = ? AND version = ?",
                    (migration_id, file.version),
                )

            for offset, statement in split_statements(script):
                try:
                    self.conn.execute(statement)
                except sqlite3.Error as e:
                    raise self._step_error(file, script, offset, e) from e

            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

        logger.info(f"Applied {file.filename}")

    @staticmethod
    def _step_error(
        file: MigrationFile, script: str, offset: int, error: sqlite3.Error
    ) -> StepExecutionError:
        """Build a step error pointing at the failing statement."""
        line, column = line_column_from_offset(script, offset)
        return StepExecutionError(
            file,
            f"{type(error).__name__}: {error}",
            line=line,
            column=column,
            excerpt=lines_before_and_after(script, line, 5, 5),
        )
