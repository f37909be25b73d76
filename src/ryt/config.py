"""Configuration for ryt.

Configuration is assembled from an explicit environment snapshot plus an
optional TOML file, so nothing below reads process-global state.

Example ~/.config/ryt/config.toml:
    ignore = ["dist", "coverage"]
    jobs = 16
    log_level = "info"
    log_format = "json"
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from ryt.errors import ConfigurationError
from ryt.logging import LogFormat, parse_level

PRIMARY_ENV = "RYT_PATH"
FALLBACK_ENV = "HOME"
CONFIG_ENV = "RYT_CONFIG"

VCS_MARKER = ".git"
MANIFEST_NAME = "package.json"
ALWAYS_IGNORED = frozenset({".git", "node_modules"})


@dataclass(frozen=True)
class RytConfig:
    """Settings shared by discovery and command handlers."""

    env: Mapping[str, str] = field(default_factory=dict)
    ignore: frozenset[str] = ALWAYS_IGNORED
    vcs_marker: str = VCS_MARKER
    manifest_name: str = MANIFEST_NAME
    jobs: int = 8
    log_level: int = logging.WARNING
    log_format: LogFormat = LogFormat.TEXT
    source: Path | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> RytConfig:
        """Build config from an environment snapshot and any config file it points to."""
        config = cls(env=dict(env))

        path = find_config_file(env)
        if path is not None:
            config = config.merge(load_toml(path), source=path)

        overrides: dict[str, Any] = {}
        if env.get("RYT_LOG_LEVEL"):
            overrides["log_level"] = env["RYT_LOG_LEVEL"]
        if env.get("RYT_LOG_FORMAT"):
            overrides["log_format"] = env["RYT_LOG_FORMAT"]
        if overrides:
            config = config.merge(overrides)
        return config

    def merge(self, data: Mapping[str, Any], source: Path | None = None) -> RytConfig:
        """Return a copy with values from a parsed config mapping applied."""
        where = source or self.source
        changes: dict[str, Any] = {}

        for key, value in data.items():
            if key == "ignore":
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise ConfigurationError("'ignore' must be a list of names", file=where)
                changes["ignore"] = ALWAYS_IGNORED | frozenset(value)
            elif key == "jobs":
                if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                    raise ConfigurationError("'jobs' must be a positive integer", file=where)
                changes["jobs"] = value
            elif key == "log_level":
                try:
                    changes["log_level"] = parse_level(value)
                except ValueError as e:
                    raise ConfigurationError(str(e), file=where) from e
            elif key == "log_format":
                try:
                    changes["log_format"] = LogFormat(str(value).lower())
                except ValueError as e:
                    raise ConfigurationError(
                        f"unknown log format: {value} (expected text or json)", file=where
                    ) from e
            else:
                raise ConfigurationError(f"unknown config key: {key}", file=where)

        if source is not None:
            changes["source"] = source
        return replace(self, **changes)


def find_config_file(env: Mapping[str, str]) -> Path | None:
    """Locate the config file: $RYT_CONFIG, else ~/.config/ryt/config.toml."""
    explicit = env.get(CONFIG_ENV)
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"config file not found: {path}", file=path)
        return path

    home = env.get(FALLBACK_ENV)
    if home:
        path = Path(home) / ".config" / "ryt" / "config.toml"
        if path.is_file():
            return path
    return None


def load_toml(path: Path) -> dict[str, Any]:
    """Parse a TOML config file."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"invalid TOML in {path}: {e}", file=path) from e
    except OSError as e:
        raise ConfigurationError(f"cannot read {path}: {e.strerror}", file=path) from e
