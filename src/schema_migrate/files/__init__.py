"""
Migration files.

Provides:
- Discovery of up/down script pairs in a file store
- Range selection over the sorted set (forward, backward, relative, absolute)
- Creation of new, empty migration pairs
- File stores: local file system and in-memory
"""

from .migration_file import (
    Direction,
    MigrationFile,
    MigrationFilePair,
    MigrationFileSet,
    create_migration_files,
    filename_regex,
    format_version,
    parse_filename,
    read_migration_files,
)
from .store import FileStore, FilesystemStore, MemoryStore
from .text import line_column_from_offset, lines_before_and_after

__all__ = [
    "Direction",
    "MigrationFile",
    "MigrationFilePair",
    "MigrationFileSet",
    "create_migration_files",
    "filename_regex",
    "format_version",
    "parse_filename",
    "read_migration_files",
    "FileStore",
    "FilesystemStore",
    "MemoryStore",
    "line_column_from_offset",
    "lines_before_and_after",
]
