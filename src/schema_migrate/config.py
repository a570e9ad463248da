"""
Configuration management.

Settings come from a YAML file, with environment variables taking
precedence:
- MIGRATE_URL: driver URL (e.g. sqlite:///var/lib/app.db)
- MIGRATE_PATH: directory holding the migration scripts
- MIGRATE_ID: version track inside the store
- MIGRATE_GRACEFUL (true/false): finish the running step on ^C
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class MigrateConfig:
    """Settings for a migration run."""

    # Driver URL; the scheme selects the backend
    url: str = ""
    # Directory holding <version>_<name>.<up|down>.<ext> scripts
    path: Path = field(default_factory=lambda: Path("."))
    # Independent version track inside one store ("" = default track)
    migration_id: str = ""
    # Let the running step finish on ^C instead of dying mid-step
    graceful: bool = True

    def validate(self) -> list[str]:
        """Validate configuration completeness.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not self.url:
            errors.append("url is required")
        elif "://" not in self.url:
            errors.append(f"url '{self.url}' has no scheme (expected <driver>://...)")

        if not str(self.path):
            errors.append("path is required")

        return errors


def _parse_bool(value: str, default: bool) -> bool:
    value = value.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return default


def load_config(config_path: Path) -> MigrateConfig:
    """
    Load configuration from YAML file.

    A missing file yields the defaults; environment variables override
    values from the file.
    """
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    if not isinstance(data, dict):
        raise ConfigValidationError(f"{config_path}: expected a mapping at the top level")

    graceful = bool(data.get("graceful", True))
    graceful_env = os.environ.get("MIGRATE_GRACEFUL", "")
    if graceful_env:
        graceful = _parse_bool(graceful_env, graceful)

    return MigrateConfig(
        url=os.environ.get("MIGRATE_URL", data.get("url", "")),
        path=Path(os.environ.get("MIGRATE_PATH", data.get("path", "."))),
        migration_id=os.environ.get("MIGRATE_ID", str(data.get("migration_id", ""))),
        graceful=graceful,
    )


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# Schema migration configuration
#
# Environment variables override these values:
#   MIGRATE_URL, MIGRATE_PATH, MIGRATE_ID, MIGRATE_GRACEFUL

# Driver URL; the scheme selects the backend
url: "sqlite:///data/app.db"

# Directory holding the migration scripts
path: "migrations"

# Version track inside the store (empty = default track)
migration_id: ""

# On ^C: finish the running migration, then stop (false = stop immediately)
graceful: true
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
