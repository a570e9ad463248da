"""Test fixtures and utilities."""

from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional

import pytest

from schema_migrate.driver import Driver, register_driver
from schema_migrate.files import Direction, MigrationFile
from schema_migrate.pipe import Pipe


@register_driver("fake")
class FakeDriver(Driver):
    """
    In-memory driver for orchestration tests.

    Ledgers are shared per URL across driver instances, like a real store.
    A script whose content is FAIL raises before the ledger moves.
    """

    ledgers: dict[str, dict[str, set[int]]] = {}
    executed: list[str] = []
    hooks: dict[str, Callable[[MigrationFile], None]] = {}
    close_error: Optional[Exception] = None
    version_error: Optional[Exception] = None

    @classmethod
    def reset_state(cls) -> None:
        cls.ledgers = {}
        cls.executed = []
        cls.hooks = {}
        cls.close_error = None
        cls.version_error = None

    def initialize(self, url: str, instance: Any = None) -> None:
        self.url = url
        self.ledger = FakeDriver.ledgers.setdefault(url, {})

    def close(self) -> None:
        if FakeDriver.close_error is not None:
            raise FakeDriver.close_error

    @property
    def filename_extension(self) -> str:
        return "sql"

    def version(self, migration_id: str) -> int:
        if FakeDriver.version_error is not None:
            raise FakeDriver.version_error
        return max(self.ledger.get(migration_id, set()), default=0)

    def execute(self, migration_id: str, file: MigrationFile, pipe: Pipe) -> None:
        content = file.read_text()
        hook = FakeDriver.hooks.get(file.filename)
        if hook is not None:
            hook(file)
        if content.strip() == "FAIL":
            raise RuntimeError(f"cannot apply {file.filename}")

        applied = self.ledger.setdefault(migration_id, set())
        if file.direction == Direction.UP:
            applied.add(file.version)
        else:
            applied.discard(file.version)
        FakeDriver.executed.append(file.filename)


@pytest.fixture(autouse=True)
def fake_driver_state():
    """Fresh fake ledgers for every test."""
    FakeDriver.reset_state()
    yield FakeDriver
    FakeDriver.reset_state()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep MIGRATE_* variables of the developer's shell out of tests."""
    for name in ("MIGRATE_URL", "MIGRATE_PATH", "MIGRATE_ID", "MIGRATE_GRACEFUL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def migrations_dir(tmp_path) -> Path:
    """Empty migrations directory."""
    directory = tmp_path / "migrations"
    directory.mkdir()
    return directory


@pytest.fixture
def db_url(tmp_path) -> str:
    """URL of a temporary SQLite database."""
    return f"sqlite://{tmp_path / 'test.db'}"

