"""
Configuration management for Playlister.

This module loads the record store settings (database location and SQLite
pragmas) from a TOML file.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Path to the config directory
CONFIG_DIR = Path(__file__).parent

JOURNAL_MODES = frozenset({"WAL", "DELETE", "TRUNCATE", "MEMORY"})
SYNCHRONOUS_LEVELS = frozenset({"OFF", "NORMAL", "FULL"})


class ConfigError(ValueError):
    """Raised when a config file holds an invalid value."""


def check_pragmas(journal_mode: str, synchronous: str) -> None:
    """
    Reject pragma values outside the whitelists.

    SQLite silently ignores unknown values, and these strings are
    interpolated into PRAGMA statements.
    """
    if journal_mode not in JOURNAL_MODES:
        raise ConfigError(
            f"Unsupported journal_mode {journal_mode!r}; "
            f"expected one of {sorted(JOURNAL_MODES)}"
        )
    if synchronous not in SYNCHRONOUS_LEVELS:
        raise ConfigError(
            f"Unsupported synchronous {synchronous!r}; "
            f"expected one of {sorted(SYNCHRONOUS_LEVELS)}"
        )


@dataclass(frozen=True)
class StoreConfig:
    """Loaded record store configuration."""

    database: str = "playlister.db"
    foreign_keys: bool = True
    journal_mode: str = "WAL"
    synchronous: str = "NORMAL"

    def __post_init__(self) -> None:
        if not self.database:
            raise ConfigError("store.database must not be empty")
        check_pragmas(self.journal_mode, self.synchronous)

    @property
    def is_memory(self) -> bool:
        return self.database == ":memory:"


def _parse_store(data: dict[str, Any]) -> StoreConfig:
    """Parse the [store] section from the TOML data."""
    if not isinstance(data, dict):
        raise ConfigError(f"[store] must be a table, got {data!r}")

    pragmas = data.get("pragmas", {})
    if not isinstance(pragmas, dict):
        raise ConfigError(f"store.pragmas must be a table, got {pragmas!r}")

    database = data.get("database", "playlister.db")
    if not isinstance(database, str):
        raise ConfigError(f"store.database must be a string, got {database!r}")

    foreign_keys = data.get("foreign_keys", True)
    if not isinstance(foreign_keys, bool):
        raise ConfigError(f"store.foreign_keys must be a boolean, got {foreign_keys!r}")

    journal_mode = pragmas.get("journal_mode", "WAL")
    synchronous = pragmas.get("synchronous", "NORMAL")
    for key, value in (("journal_mode", journal_mode), ("synchronous", synchronous)):
        if not isinstance(value, str):
            raise ConfigError(f"store.pragmas.{key} must be a string, got {value!r}")

    return StoreConfig(
        database=database,
        foreign_keys=foreign_keys,
        journal_mode=journal_mode.upper(),
        synchronous=synchronous.upper(),
    )


def load_store_config(config_path: Path | None = None) -> StoreConfig:
    """
    Load store configuration from TOML file.

    Args:
        config_path: Path to store.toml. If None, uses default location.

    Returns:
        Loaded StoreConfig instance.
    """
    if config_path is None:
        config_path = CONFIG_DIR / "store.toml"

    logger.debug("Loading store config from %s", config_path)

    with config_path.open("rb") as f:
        data = tomllib.load(f)

    return _parse_store(data.get("store", {}))


# Global singleton instance (lazy loaded)
_store_config: StoreConfig | None = None


def get_store_config() -> StoreConfig:
    """
    Get the global store configuration (lazy loaded singleton).

    Returns:
        The StoreConfig instance.
    """
    global _store_config

    if _store_config is None:
        _store_config = load_store_config()

    return _store_config


def reload_store_config(config_path: Path | None = None) -> StoreConfig:
    """
    Force reload of store configuration.

    Returns:
        The newly loaded StoreConfig instance.
    """
    global _store_config
    _store_config = load_store_config(config_path)
    return _store_config
