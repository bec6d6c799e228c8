"""
Configuration management for scribe stores.

The configuration is stored as a TOML file in the store directory.
It records the store format version and how snapshots are written.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import tomli_w


CONFIG_FILENAME = "scribe.toml"
CONFIG_VERSION = 1
STORE_PATH_ENV = "SCRIBE_STORE_PATH"
DEFAULT_STORE_DIRNAME = ".scribe"


@dataclass
class StoreConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    snapshot_extension: str = "json"
    ops_log: bool = True

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def get_default_store_path() -> Path:
    """
    Resolve the store directory when none is given.

    Priority:
    1. SCRIBE_STORE_PATH environment variable
    2. ~/.scribe
    """
    env_path = os.environ.get(STORE_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser().resolve()
    return Path.home() / DEFAULT_STORE_DIRNAME


def load_config(store_path: Path) -> StoreConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    store = data.get("store", {})
    version = store.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    snapshots = data.get("snapshots", {})
    extension = snapshots.get("extension", "json")
    if not isinstance(extension, str) or not extension.strip("."):
        raise ValueError(f"Invalid snapshot extension: {extension!r}")

    return StoreConfig(
        path=store_path,
        version=version,
        created=store.get("created", ""),
        snapshot_extension=extension.lstrip("."),
        ops_log=bool(data.get("logging", {}).get("ops_log", True)),
    )


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
        },
        "snapshots": {
            "extension": config.snapshot_extension,
        },
        "logging": {
            "ops_log": config.ops_log,
        },
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Path) -> StoreConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    config_path = store_path / CONFIG_FILENAME

    if config_path.exists():
        return load_config(store_path)
    else:
        config = StoreConfig(path=store_path)
        save_config(config)
        return config
