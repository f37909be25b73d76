"""Search root resolution.

The path to scan comes from, in order: `--path=<value>` / `-p <value>`,
$RYT_PATH, then $HOME (with a warning). The winning string may itself
hold several `:`-separated roots.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ryt.argv import FlagValue
from ryt.config import FALLBACK_ENV, PRIMARY_ENV
from ryt.errors import ConfigurationError, UsageError
from ryt.logging import RytLogger, get_logger

PATH_SEPARATOR = ":"


class PathSource(Enum):
    """Where the search path came from."""

    FLAG = "flag"
    PRIMARY_ENV = "primary_env"
    FALLBACK_ENV = "fallback_env"


@dataclass(frozen=True)
class PathResolution:
    value: str
    source: PathSource
    warning: str | None = None


def resolve_path_string(
    flags: Mapping[str, FlagValue],
    env: Mapping[str, str],
    primary_var: str = PRIMARY_ENV,
    fallback_var: str = FALLBACK_ENV,
) -> PathResolution:
    """Pick the search path string by priority.

    Args:
        flags: Parsed flag values (see ryt.argv.parse_flags)
        env: Environment snapshot

    Raises:
        UsageError: if the flag is given without a value
        ConfigurationError: if neither a flag nor either variable is set
    """
    for name in ("path", "p"):
        if name not in flags:
            continue
        value = flags[name]
        if not isinstance(value, str) or not value:
            flag = f"--{name}" if len(name) > 1 else f"-{name}"
            raise UsageError(f"{flag} requires a value: --path=<dir>[:<dir>...]")
        return PathResolution(value, PathSource.FLAG)

    if env.get(primary_var):
        return PathResolution(env[primary_var], PathSource.PRIMARY_ENV)

    if env.get(fallback_var):
        return PathResolution(
            env[fallback_var],
            PathSource.FALLBACK_ENV,
            warning=f"${primary_var} not set, searching ${fallback_var} ({env[fallback_var]})",
        )

    raise ConfigurationError(
        f"no entrypoint found; ${primary_var} or ${fallback_var} environment variables required",
        suggestion=f"export {primary_var}=<dir>[:<dir>...] or pass --path=<dir>",
    )


def split_roots(value: str, cwd: str | Path, home: str | None = None) -> list[Path]:
    """Split a `:`-joined path string into absolute roots.

    Empty segments are dropped, a leading `~` is replaced by `home` when
    given, and relative segments are anchored at `cwd`. Symlinks are left
    unresolved.
    """
    roots = []
    for segment in value.split(PATH_SEPARATOR):
        if not segment:
            continue
        expanded = segment
        if home and (segment == "~" or segment.startswith("~/")):
            expanded = home + segment[1:]
        roots.append(Path(os.path.abspath(os.path.join(cwd, expanded))))
    return roots


def resolve_search_roots(
    flags: Mapping[str, FlagValue],
    env: Mapping[str, str],
    cwd: str | Path,
    logger: RytLogger | None = None,
) -> list[Path]:
    """Resolve the path string by priority, then split it into roots."""
    resolution = resolve_path_string(flags, env)
    if resolution.warning:
        (logger or get_logger("paths")).warning(resolution.warning)
    return split_roots(resolution.value, cwd, home=env.get(FALLBACK_ENV))
