"""Shared fixtures: workspaces of fake and real modules."""

import json
import logging
import subprocess
from pathlib import Path

import pytest


def git_init(path: Path) -> None:
    """Initialize a real git repository at path."""
    subprocess.run(["git", "init", "-q", str(path)], check=True)


def write_manifest(path: Path, **fields) -> None:
    path.mkdir(parents=True, exist_ok=True)
    (path / "package.json").write_text(json.dumps(fields))


@pytest.fixture
def make_module(tmp_path: Path):
    """Create a module (manifest + .git) under tmp_path.

    real_git=False only creates an empty `.git` directory, which is enough
    for discovery but not for status.
    """

    def _make(relpath: str, real_git: bool = True, **fields) -> Path:
        path = tmp_path / relpath
        write_manifest(path, **fields)
        if real_git:
            git_init(path)
        else:
            (path / ".git").mkdir()
        return path

    return _make


@pytest.fixture(autouse=True)
def reset_ryt_logging():
    """Drop handlers main() installs so they never outlive captured streams."""
    yield
    root = logging.getLogger("ryt")
    root.handlers.clear()
    root.setLevel(logging.NOTSET)
