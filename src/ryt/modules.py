"""Module records: manifest and VCS status joined per module path."""

from __future__ import annotations

import asyncio
import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ryt.argv import ParsedArgs
from ryt.backend import Git
from ryt.config import RytConfig
from ryt.errors import ManifestError, UsageError
from ryt.logging import get_logger
from ryt.parallel import ordered_map
from ryt.paths import resolve_search_roots
from ryt.walker import find_all_modules

logger = get_logger("modules")

UNNAMED = "UNNAMED"
NO_VERSION = "0.0.0"

BRANCH_PREFIX_LENGTH = 3  # "## "

DEPENDENCY_FIELDS = ("dependencies", "devDependencies", "peerDependencies")


@dataclass(frozen=True)
class ModuleInfo:
    """A discovered module: where it is, what it is, and its git state."""

    path: Path
    package_name: str = UNNAMED
    package_version: str = NO_VERSION
    vcs_branch: str = ""
    vcs_status_files: tuple[str, ...] = ()
    dependency_names: tuple[str, ...] = ()

    @property
    def vcs_status_file_names(self) -> tuple[str, ...]:
        """Bare file names: the last whitespace-separated token of each status line."""
        return tuple(line.split()[-1] for line in self.vcs_status_files if line.split())

    @property
    def is_clean(self) -> bool:
        return not self.vcs_status_files


def _read_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


async def read_manifest(module_path: Path, manifest_name: str = "package.json") -> dict[str, Any]:
    """Read and parse a module's manifest.

    Raises:
        ManifestError: if the file is missing, unreadable, not JSON, or not an object
    """
    path = module_path / manifest_name
    try:
        data = await asyncio.to_thread(_read_json, path)
    except FileNotFoundError as e:
        raise ManifestError(path, "file not found", missing=True) from e
    except OSError as e:
        raise ManifestError(path, e.strerror or str(e)) from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestError(path, f"invalid JSON ({e})") from e

    if not isinstance(data, dict):
        raise ManifestError(path, f"expected a JSON object, got {type(data).__name__}")
    return data


def parse_status_output(output: str) -> tuple[str, tuple[str, ...]]:
    """Split `status --porcelain --branch` output into (branch, file lines).

    >>> parse_status_output("## main\\n?? hey")
    ('main', ('?? hey',))
    """
    lines = output.split("\n")
    branch = lines[0][BRANCH_PREFIX_LENGTH:] if lines else ""
    files = tuple(line for line in lines[1:] if line.strip())
    return branch, files


def _dependency_names(manifest: dict[str, Any]) -> tuple[str, ...]:
    names: set[str] = set()
    for key in DEPENDENCY_FIELDS:
        deps = manifest.get(key)
        if isinstance(deps, dict):
            names.update(deps)
    return tuple(sorted(names))


def _text_field(manifest: dict[str, Any], key: str, default: str) -> str:
    value = manifest.get(key, default)
    return value if isinstance(value, str) and value else default


async def read_module_info(
    path: Path, git: Git | None = None, config: RytConfig | None = None
) -> ModuleInfo:
    """Read manifest and git status concurrently and join them.

    Both reads are awaited; if either failed, its error is raised (the
    manifest error first) and no record is produced.
    """
    git = git or Git()
    config = config or RytConfig()

    manifest, status = await asyncio.gather(
        read_manifest(path, config.manifest_name),
        git.status(path),
        return_exceptions=True,
    )
    if isinstance(manifest, BaseException):
        raise manifest
    if isinstance(status, BaseException):
        raise status

    branch, files = parse_status_output(status)
    return ModuleInfo(
        path=path,
        package_name=_text_field(manifest, "name", UNNAMED),
        package_version=_text_field(manifest, "version", NO_VERSION),
        vcs_branch=branch,
        vcs_status_files=files,
        dependency_names=_dependency_names(manifest),
    )


def compile_grep(pattern: str | bool | None) -> re.Pattern[str] | None:
    """Compile the --grep pattern, if given."""
    if pattern is None or pattern is False:
        return None
    if pattern is True or not pattern:
        raise UsageError("--grep requires a pattern: --grep=<pattern>")
    try:
        return re.compile(pattern)
    except re.error as e:
        raise UsageError(f"invalid --grep pattern {pattern!r}: {e}") from e


async def discover(
    parsed: ParsedArgs,
    config: RytConfig,
    cwd: str | Path,
    git: Git | None = None,
) -> list[ModuleInfo]:
    """Resolve roots, walk them, and read every module found.

    Results are in discovery order. The first module that cannot be read
    (in that order) aborts the whole discovery.
    """
    git = git or Git()
    grep = compile_grep(parsed.flag_value("--grep"))
    roots = resolve_search_roots(parsed.flag_values, config.env, cwd, logger)
    paths = await find_all_modules(roots, config)
    logger.debug(f"found {len(paths)} modules", roots=":".join(str(r) for r in roots))

    with logger.timed("read_module_info", count=len(paths)):
        infos = await ordered_map(
            lambda path: read_module_info(path, git, config), paths, config.jobs
        )

    if grep is not None:
        infos = [info for info in infos if grep.search(info.package_name)]
    return infos
