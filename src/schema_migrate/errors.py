"""
Error taxonomy for migration runs.

Fatal errors (connection, discovery, version query) stop a run before any
step executes. Step errors stop the run after the failing step. Close
errors are reported but do not change the outcome of a run.
"""

from typing import Any, Optional


class MigrateError(Exception):
    """Base exception for all migration errors."""

    pass


class DriverConnectionError(MigrateError):
    """Backend unreachable or misconfigured."""

    pass


class UnknownDriverError(DriverConnectionError):
    """No registered driver handles the given URL or connection handle."""

    pass


class DiscoveryError(MigrateError):
    """Migration file set is malformed or incomplete."""

    pass


class VersionNotFoundError(DiscoveryError):
    """Stored version does not match any discovered migration."""

    def __init__(self, version: int):
        self.version = version
        super().__init__(f"Version {version} not found in migration files")


class ContentReadError(MigrateError):
    """A migration script could not be read."""

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to read {path}: {cause}")


class VersionQueryError(MigrateError):
    """The version ledger could not be read."""

    pass


class StepExecutionError(MigrateError):
    """A migration script failed to apply."""

    def __init__(
        self,
        file: Any,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        excerpt: Optional[str] = None,
    ):
        self.file = file
        self.message = message
        self.line = line
        self.column = column
        self.excerpt = excerpt

        text = f"{file.filename}: {message}"
        if line is not None:
            text += f" in line {line}, column {column}"
        if excerpt:
            text += f":\n\n{excerpt}"
        super().__init__(text)


class CloseError(MigrateError):
    """Releasing backend resources failed."""

    pass


class PipeClosedError(RuntimeError):
    """Event sent on a pipe that is already closed."""

    pass
