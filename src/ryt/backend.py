"""git and npm, run as async subprocesses per module.

Every call is scoped to one module directory and returns the decoded
output; failures raise BackendError with the tool's own diagnostic.
"""

from __future__ import annotations

import asyncio
import subprocess
from enum import Enum
from pathlib import Path

from ryt.errors import BackendError
from ryt.logging import get_logger

logger = get_logger("backend")


async def run_process(
    program: str,
    *args: str,
    cwd: str | Path | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run a command asynchronously and capture its output.

    Trailing newlines are removed from stdout; leading whitespace is kept
    because porcelain formats are column-sensitive.
    """
    logger.debug(f"{program} {' '.join(args)}", cwd=str(cwd) if cwd else "")
    try:
        proc = await asyncio.create_subprocess_exec(
            program,
            *args,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise BackendError(f"{program} not found: is it installed?", 127, str(e), cwd) from e
    except NotADirectoryError as e:
        raise BackendError(f"{cwd} is not a directory", 1, str(e), cwd) from e

    stdout, stderr = await proc.communicate()
    stdout_str = stdout.decode(errors="replace").rstrip("\n")
    stderr_str = stderr.decode(errors="replace").strip()

    if check and proc.returncode != 0:
        detail = stderr_str or stdout_str
        raise BackendError(
            f"{program} {' '.join(args)} failed in {cwd}: {detail}",
            proc.returncode or 1,
            stderr_str,
            cwd,
        )

    return subprocess.CompletedProcess(
        args=[program, *args],
        returncode=proc.returncode or 0,
        stdout=stdout_str,
        stderr=stderr_str,
    )


class CheckoutMode(Enum):
    """How `checkout` treats the target branch."""

    EXISTING = "existing"  # switch only if the branch exists
    CREATE = "create"  # -b: create if missing, else switch
    RESET = "reset"  # -B: create or reset to HEAD


class Git:
    """git operations scoped to a module directory."""

    def __init__(self, executable: str = "git"):
        self.executable = executable

    async def _run(self, path: Path, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        return await run_process(self.executable, *args, cwd=path, check=check)

    def status_args(self, path: Path) -> list[str]:
        return [
            f"--git-dir={path / '.git'}",
            f"--work-tree={path}",
            "status",
            "--porcelain",
            "--branch",
        ]

    async def status(self, path: Path) -> str:
        """Raw `status --porcelain --branch` output."""
        result = await self._run(path, *self.status_args(path))
        return result.stdout

    async def log(self, path: Path, max_count: int) -> list[str]:
        result = await self._run(path, "log", "--oneline", f"--max-count={max_count}", check=False)
        if result.returncode != 0:
            # No commits yet
            return []
        return [line for line in result.stdout.splitlines() if line]

    async def fetch(self, path: Path) -> str:
        return (await self._run(path, "fetch", "--all", "--prune")).stderr

    async def merge(self, path: Path) -> str:
        return (await self._run(path, "merge", "--ff-only", "@{upstream}")).stdout

    async def pull(self, path: Path) -> str:
        return (await self._run(path, "pull", "--ff-only")).stdout

    async def push(self, path: Path) -> str:
        return (await self._run(path, "push", "origin", "HEAD")).stderr

    async def has_branch(self, path: Path, branch: str) -> bool:
        result = await self._run(
            path, "rev-parse", "--verify", "--quiet", f"refs/heads/{branch}", check=False
        )
        return result.returncode == 0

    def checkout_args(self, branch: str, mode: CheckoutMode, exists: bool) -> list[str]:
        if mode is CheckoutMode.RESET:
            return ["checkout", "-B", branch]
        if mode is CheckoutMode.CREATE and not exists:
            return ["checkout", "-b", branch]
        return ["checkout", branch]

    async def checkout(self, path: Path, branch: str, mode: CheckoutMode) -> bool:
        """Switch branches. Returns False when skipped for a missing branch."""
        exists = await self.has_branch(path, branch)
        if mode is CheckoutMode.EXISTING and not exists:
            return False
        await self._run(path, *self.checkout_args(branch, mode, exists))
        return True

    async def delete_branch(self, path: Path, branch: str) -> bool:
        """Delete a merged local branch. Returns False if it does not exist."""
        if not await self.has_branch(path, branch):
            return False
        await self._run(path, "branch", "-d", branch)
        return True

    def clean_args(self, force: bool) -> list[str]:
        # -X: ignored files only; -x: ignored and untracked
        return ["clean", "-fxdq"] if force else ["clean", "-fXdq"]

    async def clean(self, path: Path, force: bool = False) -> None:
        await self._run(path, *self.clean_args(force))

    async def last_tag(self, path: Path) -> str | None:
        result = await self._run(path, "describe", "--tags", "--abbrev=0", check=False)
        return result.stdout.strip() if result.returncode == 0 else None

    async def commits_since(self, path: Path, ref: str) -> int:
        result = await self._run(path, "rev-list", "--count", f"{ref}..HEAD")
        return int(result.stdout.strip() or 0)


class Npm:
    """npm operations scoped to a module directory."""

    def __init__(self, executable: str = "npm"):
        self.executable = executable

    async def install(self, path: Path) -> None:
        await run_process(self.executable, "install", "--no-package-lock", cwd=path)

    async def version(self, path: Path, bump: str) -> str:
        """Bump the version, commit and tag. Returns the new version (`v1.2.3`)."""
        result = await run_process(self.executable, "version", bump, cwd=path)
        return result.stdout.strip().splitlines()[-1] if result.stdout.strip() else ""

    async def publish(self, path: Path) -> None:
        await run_process(self.executable, "publish", cwd=path)
