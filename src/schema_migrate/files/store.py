"""
File stores that migration scripts are read from.

The orchestrator only needs to list a directory and read a file; writing
is used when new migrations are created.
"""

import logging
import posixpath
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


class FileStore(ABC):
    """Source of migration scripts."""

    @abstractmethod
    def list_dir(self, path: str) -> list[str]:
        """
        List the file names directly inside path.

        Raises:
            OSError: If the directory cannot be listed
        """
        pass

    @abstractmethod
    def read_file(self, path: str) -> bytes:
        """
        Read a whole file.

        Raises:
            OSError: If the file cannot be read
        """
        pass

    @abstractmethod
    def write_file(self, path: str, content: bytes) -> None:
        """Create or replace a file."""
        pass

    def join(self, directory: str, filename: str) -> str:
        """Build the path of filename inside directory."""
        return str(Path(directory) / filename)


class FilesystemStore(FileStore):
    """Reads migrations from the local file system."""

    def list_dir(self, path: str) -> list[str]:
        return sorted(entry.name for entry in Path(path).iterdir() if entry.is_file())

    def read_file(self, path: str) -> bytes:
        return Path(path).read_bytes()

    def write_file(self, path: str, content: bytes) -> None:
        Path(path).write_bytes(content)
        logger.debug(f"Wrote {path} ({len(content)} bytes)")


class MemoryStore(FileStore):
    """
    Keeps migrations in a dict of path -> content.

    Used for migrations bundled with an application (e.g. loaded from
    package data at startup) and in tests.
    """

    def __init__(self, files: Optional[dict[str, Union[bytes, str]]] = None):
        self.files: dict[str, bytes] = {}
        for path, content in (files or {}).items():
            self.write_file(path, content if isinstance(content, bytes) else content.encode())

    def join(self, directory: str, filename: str) -> str:
        return posixpath.join(directory, filename)

    def list_dir(self, path: str) -> list[str]:
        # Directories are implicit, an unknown one is simply empty
        directory = posixpath.normpath(path)
        return sorted(
            posixpath.basename(key)
            for key in self.files
            if (posixpath.dirname(key) or ".") == directory
        )

    def read_file(self, path: str) -> bytes:
        try:
            return self.files[posixpath.normpath(path)]
        except KeyError:
            raise FileNotFoundError(f"No such file: {path}") from None

    def write_file(self, path: str, content: bytes) -> None:
        self.files[posixpath.normpath(path)] = content
