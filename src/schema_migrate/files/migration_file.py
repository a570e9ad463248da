"""
Migration file model.

A migration is a pair of scripts sharing one version:
    0001_init_users.up.sql
    0001_init_users.down.sql

Files are named <zero-padded version>_<name>.<up|down>.<extension>, the
extension being chosen by the driver (e.g. "sql").
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..errors import ContentReadError, DiscoveryError, VersionNotFoundError
from .store import FileStore

logger = logging.getLogger(__name__)

VERSION_WIDTH = 4


class Direction(str, Enum):
    """Which half of a migration a script is."""

    UP = "up"
    DOWN = "down"


def filename_regex(extension: str) -> re.Pattern:
    """Pattern matching migration file names for a driver's extension."""
    return re.compile(rf"^([0-9]+)_(.+)\.(up|down)\.{re.escape(extension)}$")


def parse_filename(filename: str, extension: str) -> tuple[int, str, Direction]:
    """
    Split a migration file name into (version, name, direction).

    Raises:
        DiscoveryError: If the name does not follow the naming scheme
    """
    match = filename_regex(extension).match(filename)
    if match:
        return int(match.group(1)), match.group(2), Direction(match.group(3))

    # Not a valid name; work out what is wrong with it
    stem = filename[: -len(extension) - 1] if filename.endswith(f".{extension}") else filename
    version_part, _, rest = stem.partition("_")
    if not re.fullmatch(r"[0-9]+", version_part):
        raise DiscoveryError(f"{filename}: cannot parse version '{version_part}'")

    _, dot, suffix = rest.rpartition(".")
    if not dot or suffix not in (Direction.UP.value, Direction.DOWN.value):
        raise DiscoveryError(f"{filename}: missing or invalid direction, expected .up or .down")

    raise DiscoveryError(
        f"{filename}: expected <version>_<name>.<up|down>.{extension}"
    )


def format_version(version: int, width: int = VERSION_WIDTH) -> str:
    """
    Zero-pad a version to a multiple of width digits.

    >>> format_version(7)
    '0007'
    >>> format_version(12345)
    '00012345'
    """
    digits = str(version)
    if len(digits) % width:
        digits = digits.zfill(len(digits) + width - len(digits) % width)
    return digits


@dataclass
class MigrationFile:
    """One script of a migration (the up or the down half)."""

    version: int
    name: str
    direction: Direction
    path: str  # Directory the file lives in
    filename: str
    store: FileStore = field(repr=False, compare=False)
    # Loaded on demand by read_content()
    content: Optional[bytes] = field(default=None, repr=False, compare=False)

    @property
    def full_path(self) -> str:
        """Path of the script inside its store."""
        return self.store.join(self.path, self.filename)

    def read_content(self) -> bytes:
        """
        Load the script, once.

        Raises:
            ContentReadError: If the store cannot read the file
        """
        if self.content is None:
            try:
                self.content = self.store.read_file(self.full_path)
            except OSError as e:
                raise ContentReadError(self.full_path, e) from e
        return self.content

    def read_text(self) -> str:
        """Load the script as UTF-8 text."""
        content = self.read_content()
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ContentReadError(self.full_path, e) from e

    def __str__(self) -> str:
        return self.filename


@dataclass
class MigrationFilePair:
    """Up and down scripts of one version."""

    version: int
    up: MigrationFile
    down: MigrationFile

    def __post_init__(self):
        for half in (self.up, self.down):
            if half.version != self.version:
                raise DiscoveryError(
                    f"{half.filename}: version {half.version} does not match {self.version}"
                )
        if self.up.name != self.down.name:
            raise DiscoveryError(
                f"Version {self.version} has mismatched names: "
                f"{self.up.filename}, {self.down.filename}"
            )

    @property
    def name(self) -> str:
        return self.up.name


class MigrationFileSet:
    """
    Migration pairs sorted by version.

    Versions are unique and strictly increasing; gaps are allowed.

    Range queries return the scripts to run, in the order to run them:
    - to_last_from: up scripts above the current version
    - to_first_from: down scripts at or below the current version
    - relative_from: the next/previous n scripts
    - to: the scripts needed to reach an absolute version
    """

    def __init__(self, pairs: Optional[list[MigrationFilePair]] = None):
        self.pairs = sorted(pairs or [], key=lambda p: p.version)
        for previous, current in zip(self.pairs, self.pairs[1:]):
            if previous.version == current.version:
                raise DiscoveryError(f"Duplicate migration version {current.version}")

    def __len__(self) -> int:
        return len(self.pairs)

    def __iter__(self) -> Iterator[MigrationFilePair]:
        return iter(self.pairs)

    def __getitem__(self, index: int) -> MigrationFilePair:
        return self.pairs[index]

    @property
    def versions(self) -> list[int]:
        return [pair.version for pair in self.pairs]

    @property
    def last_version(self) -> int:
        """Highest known version, 0 for an empty set."""
        return self.pairs[-1].version if self.pairs else 0

    def _check_version(self, version: int) -> None:
        # A stored version must match a script on disk, else they have drifted apart
        if version != 0 and version not in self.versions:
            raise VersionNotFoundError(version)

    def to_last_from(self, current: int) -> list[MigrationFile]:
        """Up scripts with version > current, ascending."""
        return [pair.up for pair in self.pairs if pair.version > current]

    def to_first_from(self, current: int) -> list[MigrationFile]:
        """Down scripts with version <= current, descending."""
        return [pair.down for pair in reversed(self.pairs) if pair.version <= current]

    def relative_from(self, current: int, relative_n: int) -> list[MigrationFile]:
        """
        Scripts for n steps relative to current.

        n > 0 applies the next n up scripts, n < 0 the previous |n| down
        scripts, n == 0 nothing. Counts beyond the available scripts are
        truncated.

        Raises:
            VersionNotFoundError: If current matches no known migration
        """
        self._check_version(current)
        if relative_n > 0:
            return self.to_last_from(current)[:relative_n]
        if relative_n < 0:
            return self.to_first_from(current)[:-relative_n]
        return []

    def to(self, current: int, target: int) -> list[MigrationFile]:
        """
        Scripts that move the store from current to target.

        Raises:
            VersionNotFoundError: If either version is unknown (0 is always valid)
        """
        self._check_version(current)
        self._check_version(target)
        if target > current:
            return [pair.up for pair in self.pairs if current < pair.version <= target]
        if target < current:
            return [
                pair.down for pair in reversed(self.pairs) if target < pair.version <= current
            ]
        return []


def read_migration_files(store: FileStore, path: str, extension: str) -> MigrationFileSet:
    """
    Discover the migrations in a directory.

    Files that do not end in ".<extension>" are ignored. Every other file
    must follow the naming scheme, and every version needs both halves.

    Raises:
        DiscoveryError: If the directory cannot be listed or the set is invalid
    """
    try:
        filenames = store.list_dir(path)
    except OSError as e:
        raise DiscoveryError(f"Cannot list migrations in {path}: {e}") from e

    halves: dict[int, dict[Direction, MigrationFile]] = {}
    for filename in sorted(filenames):
        if filename.startswith(".") or not filename.endswith(f".{extension}"):
            continue

        version, name, direction = parse_filename(filename, extension)
        by_direction = halves.setdefault(version, {})
        if direction in by_direction:
            raise DiscoveryError(
                f"Duplicate {direction.value} migration for version {version}: "
                f"{by_direction[direction].filename}, {filename}"
            )
        by_direction[direction] = MigrationFile(
            version=version,
            name=name,
            direction=direction,
            path=path,
            filename=filename,
            store=store,
        )

    pairs = []
    for version in sorted(halves):
        by_direction = halves[version]
        for direction in Direction:
            if direction not in by_direction:
                present = next(iter(by_direction.values()))
                raise DiscoveryError(
                    f"Version {version} has no {direction.value} migration "
                    f"(found {present.filename})"
                )
        pairs.append(
            MigrationFilePair(
                version=version,
                up=by_direction[Direction.UP],
                down=by_direction[Direction.DOWN],
            )
        )

    logger.debug(f"Discovered {len(pairs)} migrations in {path}")
    return MigrationFileSet(pairs)


def create_migration_files(
    store: FileStore, path: str, name: str, extension: str
) -> MigrationFilePair:
    """
    Write an empty up/down pair numbered after the last existing migration.

    Spaces in name become underscores.

    Raises:
        ValueError: If name is empty
        DiscoveryError: If the existing migrations cannot be read
    """
    name = name.strip().replace(" ", "_")
    if not name:
        raise ValueError("Migration name must not be empty")

    existing = read_migration_files(store, path, extension)
    version = existing.last_version + 1
    version_str = format_version(version)

    files = {}
    for direction in Direction:
        files[direction] = MigrationFile(
            version=version,
            name=name,
            direction=direction,
            path=path,
            filename=f"{version_str}_{name}.{direction.value}.{extension}",
            store=store,
            content=b"",
        )

    for migration_file in files.values():
        store.write_file(migration_file.full_path, migration_file.content)
    logger.info(f"Created migration {version_str}_{name} in {path}")

    return MigrationFilePair(
        version=version,
        up=files[Direction.UP],
        down=files[Direction.DOWN],
    )
