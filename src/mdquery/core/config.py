"""Configuration management for mdquery."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .exceptions import ConfigError


@dataclass
class QueryCacheConfig:
    """Query result cache configuration."""

    enabled: bool = True
    ttl_ms: int = 5000
    max_entries: int = 100
    # Entries dropped in one pass once max_entries is exceeded
    eviction_batch: int = 20

    def validate(self) -> None:
        """Raise ConfigError if any value is out of range."""
        if self.ttl_ms < 0:
            raise ConfigError(f"cache ttl_ms must be >= 0, got {self.ttl_ms}")
        if self.max_entries < 1:
            raise ConfigError(f"cache max_entries must be >= 1, got {self.max_entries}")
        if not 1 <= self.eviction_batch <= self.max_entries:
            raise ConfigError(
                f"cache eviction_batch must be between 1 and max_entries "
                f"({self.max_entries}), got {self.eviction_batch}"
            )


@dataclass
class TaskConfig:
    """TASK query scanning configuration."""

    # Spaces per nesting level when computing task depth (tabs count as one level)
    indent_width: int = 2
    skip_code_blocks: bool = True


@dataclass
class Config:
    """Main engine configuration."""

    cache: QueryCacheConfig = field(default_factory=QueryCacheConfig)
    tasks: TaskConfig = field(default_factory=TaskConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        config = cls()
        config._apply_env()
        config.cache.validate()
        return config

    @classmethod
    def from_file(cls, path: Path | str) -> "Config":
        """Load configuration from a TOML file, then apply env overrides.

        Args:
            path: Path to a TOML file with optional [cache] and [tasks] tables.

        Returns:
            Config with file values and environment overrides applied.

        Raises:
            ConfigError: If the file cannot be read or contains bad values.
        """
        path = Path(path)
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Cannot load config file {path}: {e}") from e

        config = cls()
        _update_dataclass(config.cache, data.get("cache", {}), "cache")
        _update_dataclass(config.tasks, data.get("tasks", {}), "tasks")
        config._apply_env()
        config.cache.validate()
        return config

    @classmethod
    def from_env_or_file(cls, path: Path | str | None = None) -> "Config":
        """Load from an explicit path, $MDQUERY_CONFIG, or the environment only."""
        if path is None:
            path = os.environ.get("MDQUERY_CONFIG")
        if path:
            return cls.from_file(path)
        return cls.from_env()

    def _apply_env(self) -> None:
        if ttl := os.environ.get("MDQUERY_CACHE_TTL_MS"):
            self.cache.ttl_ms = _parse_int("MDQUERY_CACHE_TTL_MS", ttl)

        if max_entries := os.environ.get("MDQUERY_CACHE_MAX_ENTRIES"):
            self.cache.max_entries = _parse_int("MDQUERY_CACHE_MAX_ENTRIES", max_entries)

        if batch := os.environ.get("MDQUERY_CACHE_EVICTION_BATCH"):
            self.cache.eviction_batch = _parse_int("MDQUERY_CACHE_EVICTION_BATCH", batch)

        if enabled := os.environ.get("MDQUERY_CACHE_ENABLED"):
            self.cache.enabled = enabled.strip().lower() not in ("0", "false", "no", "off")


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


def _update_dataclass(target: Any, values: dict[str, Any], section: str) -> None:
    """Copy known keys from a TOML table onto a config dataclass."""
    if not isinstance(values, dict):
        raise ConfigError(f"[{section}] must be a table")
    for key, value in values.items():
        if not hasattr(target, key):
            raise ConfigError(f"Unknown config key: {section}.{key}")
        expected = type(getattr(target, key))
        # bool is an int subclass; neither may stand in for the other
        if isinstance(value, bool) != (expected is bool) or not isinstance(value, expected):
            raise ConfigError(
                f"{section}.{key} must be {expected.__name__}, got {type(value).__name__} {value!r}"
            )
        setattr(target, key, value)
