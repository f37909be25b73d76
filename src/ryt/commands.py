"""Commands: a closed set of variants, parsing, and handlers.

`parse_command` maps ParsedArgs to exactly one variant; `dispatch` runs
its handler, which returns a CommandResult. Handlers never print.
"""

from __future__ import annotations

import asyncio
import re
import shutil
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import ClassVar

from ryt import __version__
from ryt.argv import ParsedArgs
from ryt.backend import CheckoutMode, Git, Npm
from ryt.config import RytConfig
from ryt.errors import UsageError
from ryt.logging import get_logger
from ryt.modules import ModuleInfo, discover
from ryt.parallel import ordered_map
from ryt.usage import USAGE

logger = get_logger("commands")

DEFAULT_LOG_COUNT = 10
BUMPS = ("major", "minor", "patch")

_COUNT_FLAG = re.compile(r"^-(\d+)$")
_SEMVER = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:[-+].*)?$")


# =============================================================================
# Variants
# =============================================================================


class Command:
    """Base for command variants."""

    discovers: ClassVar[bool] = True


@dataclass(frozen=True)
class ShowVersion(Command):
    discovers: ClassVar[bool] = False


@dataclass(frozen=True)
class ShowUsage(Command):
    discovers: ClassVar[bool] = False


@dataclass(frozen=True)
class UnknownCommand(Command):
    name: str
    discovers: ClassVar[bool] = False


@dataclass(frozen=True)
class InvalidUsage(Command):
    message: str
    discovers: ClassVar[bool] = False


@dataclass(frozen=True)
class ListModules(Command):
    pass


@dataclass(frozen=True)
class Status(Command):
    pass


@dataclass(frozen=True)
class Branch(Command):
    pass


@dataclass(frozen=True)
class Log(Command):
    max_count: int = DEFAULT_LOG_COUNT


@dataclass(frozen=True)
class Install(Command):
    pass


@dataclass(frozen=True)
class Link(Command):
    pass


@dataclass(frozen=True)
class Clean(Command):
    force: bool = False


class SyncAction(Enum):
    FETCH = "fetch"
    MERGE = "merge"
    PULL = "pull"
    PUSH = "push"

    @property
    def past_tense(self) -> str:
        return {"fetch": "fetched", "merge": "merged", "pull": "pulled", "push": "pushed"}[
            self.value
        ]


@dataclass(frozen=True)
class Sync(Command):
    action: SyncAction


@dataclass(frozen=True)
class Checkout(Command):
    branch: str
    mode: CheckoutMode = CheckoutMode.EXISTING
    dry_run: bool = False


@dataclass(frozen=True)
class Delete(Command):
    branch: str


@dataclass(frozen=True)
class Dist(Command):
    bump: str
    dry_run: bool = False


# =============================================================================
# Parsing
# =============================================================================


def _log_count(parsed: ParsedArgs) -> int:
    value = parsed.flag_value("--max-count")
    if isinstance(value, str):
        if not value.isdigit():
            raise UsageError(f"--max-count expects a number, got {value!r}")
        return int(value)

    for token in reversed(parsed.flags):
        match = _COUNT_FLAG.match(token)
        if match:
            return int(match.group(1))

    if parsed.has_flag("-n"):
        if len(parsed.args) > 1 and parsed.args[1].isdigit():
            return int(parsed.args[1])
        raise UsageError("-n expects a number: ryt log -n <number>")

    return DEFAULT_LOG_COUNT


def _dry_run(parsed: ParsedArgs) -> bool:
    return parsed.has_flag("-n", "--dry-run")


def _checkout(parsed: ParsedArgs) -> Command:
    if len(parsed.args) < 2:
        return InvalidUsage("checkout requires a branch: ryt checkout <branch>")
    if parsed.has_flag("-B"):
        mode = CheckoutMode.RESET
    elif parsed.has_flag("-b"):
        mode = CheckoutMode.CREATE
    else:
        mode = CheckoutMode.EXISTING
    return Checkout(branch=parsed.args[1], mode=mode, dry_run=_dry_run(parsed))


def _delete(parsed: ParsedArgs) -> Command:
    if len(parsed.args) < 2:
        return InvalidUsage("delete requires a branch: ryt delete <branch>")
    return Delete(branch=parsed.args[1])


def _dist(parsed: ParsedArgs) -> Command:
    if len(parsed.args) < 2 or parsed.args[1] not in BUMPS:
        return InvalidUsage("dist requires one of major, minor, patch: ryt dist <major|minor|patch>")
    return Dist(bump=parsed.args[1], dry_run=_dry_run(parsed))


def _log(parsed: ParsedArgs) -> Command:
    try:
        return Log(max_count=_log_count(parsed))
    except UsageError as e:
        return InvalidUsage(str(e))


_PARSERS: dict[str, Callable[[ParsedArgs], Command]] = {
    "list": lambda _: ListModules(),
    "ls": lambda _: ListModules(),
    "status": lambda _: Status(),
    "s": lambda _: Status(),
    "branch": lambda _: Branch(),
    "b": lambda _: Branch(),
    "log": _log,
    "lg": _log,
    "install": lambda _: Install(),
    "i": lambda _: Install(),
    "link": lambda _: Link(),
    "ln": lambda _: Link(),
    "clean": lambda p: Clean(force=p.has_flag("-f")),
    "fetch": lambda _: Sync(SyncAction.FETCH),
    "merge": lambda _: Sync(SyncAction.MERGE),
    "pull": lambda _: Sync(SyncAction.PULL),
    "push": lambda _: Sync(SyncAction.PUSH),
    "checkout": _checkout,
    "ch": _checkout,
    "delete": _delete,
    "dist": _dist,
}


def parse_command(parsed: ParsedArgs) -> Command:
    """Pick the command to run. Version beats help beats the command name."""
    if parsed.has_flag("-v", "--version"):
        return ShowVersion()
    if parsed.has_flag("-h", "--help") or parsed.command is None:
        return ShowUsage()
    parser = _PARSERS.get(parsed.command)
    if parser is None:
        return UnknownCommand(parsed.command)
    return parser(parsed)


# =============================================================================
# Handlers
# =============================================================================


@dataclass
class CommandResult:
    lines: list[str] = field(default_factory=list)
    exit_code: int = 0


@dataclass
class Context:
    """Everything a handler may touch."""

    parsed: ParsedArgs
    config: RytConfig
    cwd: Path
    git: Git = field(default_factory=Git)
    npm: Npm = field(default_factory=Npm)

    async def modules(self) -> list[ModuleInfo]:
        return await discover(self.parsed, self.config, self.cwd, self.git)

    async def each(self, func: Callable[[ModuleInfo], Awaitable[list[str]]]) -> list[str]:
        """Run func per module concurrently; concatenate its lines in discovery order."""
        modules = await self.modules()
        results = await ordered_map(func, modules, self.config.jobs)
        return [line for lines in results for line in lines]


def bump_version(version: str, bump: str) -> str:
    """`bump_version("1.2.3", "minor")` -> `"1.3.0"`."""
    match = _SEMVER.match(version)
    if not match:
        raise UsageError(f"cannot bump non-semver version {version!r}")
    major, minor, patch = (int(part) for part in match.groups())
    if bump == "major":
        return f"{major + 1}.0.0"
    if bump == "minor":
        return f"{major}.{minor + 1}.0"
    return f"{major}.{minor}.{patch + 1}"


async def show_version(command: ShowVersion, context: Context) -> CommandResult:
    return CommandResult([f"v{__version__}"])


async def show_usage(command: ShowUsage, context: Context) -> CommandResult:
    return CommandResult([USAGE.rstrip("\n")])


async def unknown_command(command: UnknownCommand, context: Context) -> CommandResult:
    return CommandResult([f"{command.name} is not a ryt command", USAGE.rstrip("\n")], exit_code=1)


async def invalid_usage(command: InvalidUsage, context: Context) -> CommandResult:
    return CommandResult([command.message, USAGE.rstrip("\n")], exit_code=1)


async def list_modules(command: ListModules, context: Context) -> CommandResult:
    modules = await context.modules()
    return CommandResult([f"{m.package_name}-{m.package_version}" for m in modules])


async def status(command: Status, context: Context) -> CommandResult:
    modules = await context.modules()
    return CommandResult(
        [f"{m.package_name} {line}" for m in modules for line in m.vcs_status_files]
    )


async def branch(command: Branch, context: Context) -> CommandResult:
    modules = await context.modules()
    return CommandResult([f"{m.package_name} {m.vcs_branch}" for m in modules])


async def log(command: Log, context: Context) -> CommandResult:
    async def one(module: ModuleInfo) -> list[str]:
        commits = await context.git.log(module.path, command.max_count)
        return [f"{module.package_name} {commit}" for commit in commits]

    return CommandResult(await context.each(one))


async def install(command: Install, context: Context) -> CommandResult:
    async def one(module: ModuleInfo) -> list[str]:
        await context.npm.install(module.path)
        return [f"{module.package_name} installed"]

    return CommandResult(await context.each(one))


def _replace_with_symlink(link: Path, target: Path) -> None:
    if link.is_symlink() or link.is_file():
        link.unlink()
    elif link.is_dir():
        shutil.rmtree(link)
    link.parent.mkdir(parents=True, exist_ok=True)
    link.symlink_to(target, target_is_directory=True)


def link_modules(modules: list[ModuleInfo]) -> list[tuple[ModuleInfo, str, Path]]:
    """Symlink node_modules/<dep> to the workspace module providing <dep>.

    Returns (module, dependency, target) for every link made.
    """
    by_name: dict[str, Path] = {}
    for module in modules:
        by_name.setdefault(module.package_name, module.path)

    made = []
    for module in modules:
        for dep in module.dependency_names:
            target = by_name.get(dep)
            if target is None or target == module.path:
                continue
            _replace_with_symlink(module.path / "node_modules" / dep, target)
            made.append((module, dep, target))
    return made


async def link(command: Link, context: Context) -> CommandResult:
    modules = await context.modules()
    made = await asyncio.to_thread(link_modules, modules)
    return CommandResult([f"{m.package_name} {dep} -> {target}" for m, dep, target in made])


async def clean(command: Clean, context: Context) -> CommandResult:
    async def one(module: ModuleInfo) -> list[str]:
        await context.git.clean(module.path, force=command.force)
        return [f"{module.package_name} cleaned"]

    return CommandResult(await context.each(one))


async def sync(command: Sync, context: Context) -> CommandResult:
    operation = getattr(context.git, command.action.value)

    async def one(module: ModuleInfo) -> list[str]:
        printed = await operation(module.path)
        lines = [f"{module.package_name} {command.action.past_tense}"]
        lines.extend(
            f"{module.package_name} {line}" for line in printed.splitlines() if line.strip()
        )
        return lines

    return CommandResult(await context.each(one))


async def checkout(command: Checkout, context: Context) -> CommandResult:
    async def one(module: ModuleInfo) -> list[str]:
        name = module.package_name
        if command.dry_run:
            exists = await context.git.has_branch(module.path, command.branch)
            if command.mode is CheckoutMode.EXISTING and not exists:
                return [f"{name} no branch {command.branch}"]
            args = context.git.checkout_args(command.branch, command.mode, exists)
            return [f"{name} git {' '.join(args)}"]

        if await context.git.checkout(module.path, command.branch, command.mode):
            return [f"{name} {command.branch}"]
        return [f"{name} no branch {command.branch}"]

    return CommandResult(await context.each(one))


async def delete(command: Delete, context: Context) -> CommandResult:
    async def one(module: ModuleInfo) -> list[str]:
        if await context.git.delete_branch(module.path, command.branch):
            return [f"{module.package_name} deleted {command.branch}"]
        return [f"{module.package_name} no branch {command.branch}"]

    return CommandResult(await context.each(one))


async def dist(command: Dist, context: Context) -> CommandResult:
    async def one(module: ModuleInfo) -> list[str]:
        name = module.package_name
        tag = await context.git.last_tag(module.path)
        if tag is not None and await context.git.commits_since(module.path, tag) == 0:
            return [f"{name} unchanged"]
        if command.dry_run:
            bumped = bump_version(module.package_version, command.bump)
            return [f"{name} {module.package_version} -> {bumped}"]
        new_version = await context.npm.version(module.path, command.bump)
        await context.npm.publish(module.path)
        logger.info("published", module=name, version=new_version)
        return [f"{name} {new_version}"]

    return CommandResult(await context.each(one))


HANDLERS: dict[type[Command], Callable[..., Awaitable[CommandResult]]] = {
    ShowVersion: show_version,
    ShowUsage: show_usage,
    UnknownCommand: unknown_command,
    InvalidUsage: invalid_usage,
    ListModules: list_modules,
    Status: status,
    Branch: branch,
    Log: log,
    Install: install,
    Link: link,
    Clean: clean,
    Sync: sync,
    Checkout: checkout,
    Delete: delete,
    Dist: dist,
}


async def dispatch(command: Command, context: Context) -> CommandResult:
    """Run the handler for a command variant."""
    handler = HANDLERS[type(command)]
    logger.debug(f"dispatch {type(command).__name__}")
    return await handler(command, context)
