"""Module discovery.

A module is a directory whose immediate entries include both the VCS
marker (`.git`) and the manifest (`package.json`), matched by name only.
The walk stops descending at the first module it meets, skips ignored
directory names, and treats unreadable directories as empty.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Iterable
from pathlib import Path

from ryt.config import RytConfig
from ryt.logging import get_logger

logger = get_logger("walker")


def is_module(names: Iterable[str], config: RytConfig | None = None) -> bool:
    """Check the module predicate against a directory's entry names."""
    config = config or RytConfig()
    names = set(names)
    return config.vcs_marker in names and config.manifest_name in names


def _read_entries(path: Path) -> list[tuple[str, bool]]:
    """(name, is_dir) for each entry, sorted by name; [] if unreadable."""
    try:
        with os.scandir(path) as it:
            entries = []
            for entry in it:
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                except OSError:
                    is_dir = False
                entries.append((entry.name, is_dir))
    except OSError as e:
        logger.debug(f"skipping unreadable directory: {e.strerror}", path=str(path))
        return []
    return sorted(entries)


async def find_modules(root: str | Path, config: RytConfig | None = None) -> list[Path]:
    """Find all module directories under root, depth-first, pre-order.

    Args:
        root: Absolute directory to scan
        config: Marker names and ignore set (default RytConfig())

    Returns:
        Module paths; siblings appear in name order
    """
    config = config or RytConfig()
    path = Path(root)
    entries = await asyncio.to_thread(_read_entries, path)

    if is_module((name for name, _ in entries), config):
        return [path]

    subdirs = [
        path / name for name, is_dir in entries if is_dir and name not in config.ignore
    ]
    if not subdirs:
        return []

    nested = await asyncio.gather(*(find_modules(subdir, config) for subdir in subdirs))
    return [module for found in nested for module in found]


async def find_all_modules(
    roots: Iterable[str | Path], config: RytConfig | None = None
) -> list[Path]:
    """Walk each root in order and concatenate the results.

    Overlapping roots yield duplicate paths; no deduplication is done.
    """
    config = config or RytConfig()
    results: list[Path] = []
    for root in roots:
        with logger.timed("walk", root=str(root)):
            results.extend(await find_modules(root, config))
    return results
