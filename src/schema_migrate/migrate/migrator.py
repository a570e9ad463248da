"""
Migration orchestrator.

Every run goes through the same stages:
    init driver -> discover files -> read version -> select steps
    -> apply steps one by one -> close driver -> close pipe

Streaming operations (up, down, migrate, goto, redo, reset) write progress
events to a pipe and close it when done; run them on their own thread and
iterate the pipe. The *_sync variants do that for you and return
(errors, ok).
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from ..config import MigrateConfig
from ..driver import Driver, new_driver
from ..errors import CloseError, MigrateError, VersionQueryError
from ..files import (
    FileStore,
    FilesystemStore,
    MigrationFile,
    MigrationFilePair,
    MigrationFileSet,
    create_migration_files,
    read_migration_files,
)
from ..pipe import Pipe, close, read_errors, spawn, wait_and_redirect
from .interrupts import InterruptHandler

logger = logging.getLogger(__name__)

# Picks the scripts to run from the discovered set and the current version
Selector = Callable[[MigrationFileSet, int], list[MigrationFile]]

INTERRUPTED_MESSAGE = "Interrupted, remaining migrations were not applied"


def _pending(files: MigrationFileSet, version: int) -> list[MigrationFile]:
    return files.to_last_from(version)


def _applied(files: MigrationFileSet, version: int) -> list[MigrationFile]:
    return files.to_first_from(version)


def _relative(relative_n: int) -> Selector:
    def select(files: MigrationFileSet, version: int) -> list[MigrationFile]:
        return files.relative_from(version, relative_n)

    return select


@dataclass
class Migrator:
    """
    Applies migrations from path to the store behind url.

    Attributes:
        url: Driver URL; the scheme selects the driver (e.g. sqlite://...)
        path: Directory holding the migration scripts
        migration_id: Version track inside the store ("" is the default track)
        instance: Live connection handle to use instead of url (never closed)
        store: Where scripts are read from
        graceful: Observe interrupts between steps; False leaves ^C alone
    """

    url: str = ""
    path: str = "."
    migration_id: str = ""
    instance: Any = None
    store: FileStore = field(default_factory=FilesystemStore)
    graceful: bool = True

    @classmethod
    def from_config(cls, config: MigrateConfig, store: Optional[FileStore] = None) -> "Migrator":
        """Build a migrator from loaded configuration."""
        return cls(
            url=config.url,
            path=str(config.path),
            migration_id=config.migration_id,
            store=store or FilesystemStore(),
            graceful=config.graceful,
        )

    # Streaming operations

    def up(self, pipe: Pipe, cancel: Optional[threading.Event] = None) -> None:
        """Apply all pending migrations."""
        self._run(pipe, _pending, cancel, "up")

    def down(self, pipe: Pipe, cancel: Optional[threading.Event] = None) -> None:
        """Roll back all applied migrations."""
        self._run(pipe, _applied, cancel, "down")

    def migrate(
        self, pipe: Pipe, relative_n: int, cancel: Optional[threading.Event] = None
    ) -> None:
        """Apply the next n (n > 0) or roll back the last |n| (n < 0) migrations."""
        self._run(pipe, _relative(relative_n), cancel, f"migrate {relative_n:+d}")

    def goto(self, pipe: Pipe, target: int, cancel: Optional[threading.Event] = None) -> None:
        """Migrate up or down to an absolute version (0 rolls back everything)."""

        def select(files: MigrationFileSet, version: int) -> list[MigrationFile]:
            if target < 0:
                raise ValueError(f"Target version must not be negative, got {target}")
            return files.to(version, target)

        self._run(pipe, select, cancel, f"goto {target}")

    def redo(self, pipe: Pipe, cancel: Optional[threading.Event] = None) -> None:
        """Roll back the most recent migration, then apply it again."""
        if self._first_phase(pipe, _relative(-1), cancel, "redo-down"):
            self.migrate(pipe, +1, cancel)
        else:
            close(pipe)

    def reset(self, pipe: Pipe, cancel: Optional[threading.Event] = None) -> None:
        """Roll back all migrations, then apply them all again."""
        if self._first_phase(pipe, _applied, cancel, "reset-down"):
            self.up(pipe, cancel)
        else:
            close(pipe)

    # Blocking operations

    def up_sync(self) -> tuple[list[Exception], bool]:
        return self._run_sync(self.up)

    def down_sync(self) -> tuple[list[Exception], bool]:
        return self._run_sync(self.down)

    def migrate_sync(self, relative_n: int) -> tuple[list[Exception], bool]:
        return self._run_sync(self.migrate, relative_n)

    def goto_sync(self, target: int) -> tuple[list[Exception], bool]:
        return self._run_sync(self.goto, target)

    def redo_sync(self) -> tuple[list[Exception], bool]:
        return self._run_sync(self.redo)

    def reset_sync(self) -> tuple[list[Exception], bool]:
        return self._run_sync(self.reset)

    # Queries

    def version(self) -> int:
        """
        Current version of the store for migration_id.

        Raises:
            DriverConnectionError: If the driver cannot be initialized
            VersionQueryError: If the ledger cannot be read
        """
        driver = new_driver(self.url, self.instance)
        try:
            return self._current_version(driver)
        finally:
            driver.close()

    def create(self, name: str) -> MigrationFilePair:
        """
        Create empty up/down scripts for the next version in path.

        Raises:
            DriverConnectionError: If the driver cannot be initialized
            DiscoveryError: If the existing migrations are invalid
        """
        driver = new_driver(self.url, self.instance)
        try:
            extension = driver.filename_extension
        finally:
            driver.close()
        return create_migration_files(self.store, self.path, name, extension)

    # Internals

    def _observed(self, cancel: Optional[threading.Event]) -> Optional[threading.Event]:
        return cancel if self.graceful else None

    def _run_sync(
        self, operation: Callable[..., None], *args: Any
    ) -> tuple[list[Exception], bool]:
        """Run a streaming operation on its own thread and collect its errors."""
        name = operation.__name__
        with InterruptHandler(self.graceful) as interrupts:
            pipe = Pipe(name)
            spawn(operation, pipe, *args, cancel=interrupts.cancel, name=f"migrate-{name}")
            errors = read_errors(pipe)
        return errors, len(errors) == 0

    def _first_phase(
        self,
        pipe: Pipe,
        select: Selector,
        cancel: Optional[threading.Event],
        operation: str,
    ) -> bool:
        """
        Run the first half of redo/reset on an inner pipe forwarded into pipe.

        Returns:
            True if the second half should run: no errors were forwarded and
            the first half was not stopped short by an interrupt
        """
        aborted = threading.Event()
        first = Pipe(operation)
        spawn(self._run, first, select, cancel, operation, aborted, name=f"migrate-{operation}")
        ok = wait_and_redirect(first, pipe)
        return ok and not aborted.is_set()

    def _run(
        self,
        pipe: Pipe,
        select: Selector,
        cancel: Optional[threading.Event],
        operation: str,
        aborted: Optional[threading.Event] = None,
    ) -> None:
        """Run one operation end to end; always closes pipe."""
        try:
            self._run_steps(pipe, select, self._observed(cancel), operation, aborted)
        except Exception as e:
            logger.exception(f"Unexpected error during {operation}")
            if not pipe.closed:
                close(pipe, e)

    def _run_steps(
        self,
        pipe: Pipe,
        select: Selector,
        cancel: Optional[threading.Event],
        operation: str,
        aborted: Optional[threading.Event],
    ) -> None:
        logger.info(f"Running {operation} (path={self.path}, id='{self.migration_id}')")

        try:
            driver = new_driver(self.url, self.instance)
        except MigrateError as e:
            logger.error(f"{operation} failed: {e}")
            close(pipe, e)
            return

        try:
            self._plan_and_apply(driver, pipe, select, cancel, operation, aborted)
        finally:
            self._close_driver(driver, pipe)
        close(pipe)

    def _plan_and_apply(
        self,
        driver: Driver,
        pipe: Pipe,
        select: Selector,
        cancel: Optional[threading.Event],
        operation: str,
        aborted: Optional[threading.Event],
    ) -> None:
        try:
            files = read_migration_files(self.store, self.path, driver.filename_extension)
            version = self._current_version(driver)
            steps = select(files, version)
        except (MigrateError, ValueError) as e:
            logger.error(f"{operation} failed: {e}")
            pipe.send(e)
            return

        logger.info(f"Current version {version}, {len(steps)} migration(s) to apply")
        if self._apply(driver, steps, pipe, cancel, aborted):
            logger.info(f"{operation} finished")

    def _apply(
        self,
        driver: Driver,
        steps: list[MigrationFile],
        pipe: Pipe,
        cancel: Optional[threading.Event],
        aborted: Optional[threading.Event],
    ) -> bool:
        """
        Apply steps in order, stopping at the first failure or interrupt.

        The interrupt flag is checked before each step, so a step that is
        running always completes and an interrupt during the last step
        stops nothing.
        """
        for file in steps:
            if cancel is not None and cancel.is_set():
                self._abort(pipe, aborted)
                return False

            logger.info(f"Applying {file.filename}")
            step = Pipe(file.filename)
            spawn(driver.migrate, self.migration_id, file, step, name=f"migrate-{file.filename}")
            if not wait_and_redirect(step, pipe):
                return False
        return True

    @staticmethod
    def _abort(pipe: Pipe, aborted: Optional[threading.Event]) -> None:
        logger.warning("Interrupted, remaining migrations skipped")
        if aborted is not None:
            aborted.set()
        pipe.send(INTERRUPTED_MESSAGE)

    def _current_version(self, driver: Driver) -> int:
        try:
            return driver.version(self.migration_id)
        except MigrateError:
            raise
        except Exception as e:
            raise VersionQueryError(f"Cannot read current version: {e}") from e

    @staticmethod
    def _close_driver(driver: Driver, pipe: Pipe) -> None:
        """Close the driver, reporting failures on pipe."""
        try:
            driver.close()
        except CloseError as e:
            logger.error(f"Closing driver failed: {e}")
            pipe.send(e)
        except Exception as e:
            logger.error(f"Closing driver failed: {e}")
            error = CloseError(f"Failed to close {driver.scheme} driver: {e}")
            error.__cause__ = e
            pipe.send(error)
