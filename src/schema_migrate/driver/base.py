"""
Driver interface every storage backend implements.

A driver owns the version ledger of its store. The orchestrator only reads
the version; the ledger moves as a side effect of a successful step.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from ..errors import MigrateError, StepExecutionError
from ..files import MigrationFile
from ..pipe import Pipe

logger = logging.getLogger(__name__)


class Driver(ABC):
    """
    Base class for storage backends.

    Backends implement:
    - initialize/close: connection lifecycle, ledger creation
    - filename_extension: script suffix the backend runs (e.g. "sql")
    - version: highest applied version for a migration id
    - execute: apply one script and move the ledger with it

    migrate() wraps execute() in the pipe protocol used by the orchestrator.
    """

    # URL scheme, set by register_driver
    scheme: ClassVar[str] = ""

    @classmethod
    def accepts(cls, instance: Any) -> bool:
        """Whether this driver can use an externally opened connection handle."""
        return False

    @abstractmethod
    def initialize(self, url: str, instance: Any = None) -> None:
        """
        Open (or adopt) the connection and ensure the version ledger exists.

        Args:
            url: Backend connection URL; ignored when instance is given
            instance: Live connection handle owned by the caller

        Raises:
            DriverConnectionError: If the store cannot be reached
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Release resources opened by initialize().

        Connections supplied by the caller are left open.

        Raises:
            CloseError: If releasing resources fails
        """
        pass

    @property
    @abstractmethod
    def filename_extension(self) -> str:
        """Extension of the scripts this backend runs."""
        pass

    @abstractmethod
    def version(self, migration_id: str) -> int:
        """Highest applied version for migration_id, 0 if none."""
        pass

    @abstractmethod
    def execute(self, migration_id: str, file: MigrationFile, pipe: Pipe) -> None:
        """
        Apply one script and record the version change.

        Up scripts add their version to the ledger, down scripts remove it.
        On failure the ledger must be left as it was before the call.
        Informational text may be sent on pipe; the pipe must not be closed.

        Raises:
            Exception: Any failure; reported as an error event by migrate()
        """
        pass

    def migrate(self, migration_id: str, file: MigrationFile, pipe: Pipe) -> None:
        """
        Run one step and report it on pipe, then close pipe.

        The file is always the first event, followed by any text or error.
        """
        try:
            pipe.send(file)
            self.execute(migration_id, file, pipe)
        except MigrateError as e:
            logger.error(f"Migration {file.filename} failed: {e}")
            pipe.send(e)
        except Exception as e:
            logger.error(f"Migration {file.filename} failed: {e}")
            error = StepExecutionError(file, f"{type(e).__name__}: {e}")
            error.__cause__ = e
            pipe.send(error)
        finally:
            pipe.close()
