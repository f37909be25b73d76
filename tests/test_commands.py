"""Tests for command parsing and handlers."""

import subprocess
from pathlib import Path

import pytest

from ryt import __version__
from ryt.argv import parse_argv
from ryt.backend import CheckoutMode, Git, Npm
from ryt.commands import (
    HANDLERS,
    Branch,
    Checkout,
    Clean,
    Command,
    CommandResult,
    Context,
    Delete,
    Dist,
    Install,
    InvalidUsage,
    Link,
    ListModules,
    Log,
    ShowUsage,
    ShowVersion,
    Status,
    Sync,
    SyncAction,
    UnknownCommand,
    bump_version,
    dispatch,
    parse_command,
)
from ryt.config import RytConfig
from ryt.errors import ConfigurationError, UsageError


def cmd(*tokens: str) -> Command:
    return parse_command(parse_argv(["python", "ryt", *tokens]))


class TestParseCommand:
    """Tests for parse_command."""

    def test_version_beats_everything(self):
        assert cmd("ls", "-h", "-v") == ShowVersion()
        assert cmd("--version") == ShowVersion()

    def test_help(self):
        assert cmd() == ShowUsage()
        assert cmd("--help") == ShowUsage()
        assert cmd("ls", "-h") == ShowUsage()
        assert cmd("--yo") == ShowUsage()

    @pytest.mark.parametrize(
        "tokens,expected",
        [
            (["list"], ListModules()),
            (["ls"], ListModules()),
            (["status"], Status()),
            (["s"], Status()),
            (["branch"], Branch()),
            (["b"], Branch()),
            (["install"], Install()),
            (["i"], Install()),
            (["link"], Link()),
            (["ln"], Link()),
            (["clean"], Clean()),
            (["clean", "-f"], Clean(force=True)),
            (["fetch"], Sync(SyncAction.FETCH)),
            (["merge"], Sync(SyncAction.MERGE)),
            (["pull"], Sync(SyncAction.PULL)),
            (["push"], Sync(SyncAction.PUSH)),
            (["delete", "old"], Delete("old")),
            (["dist", "minor"], Dist("minor")),
            (["dist", "patch", "-n"], Dist("patch", dry_run=True)),
        ],
    )
    def test_aliases(self, tokens, expected):
        assert cmd(*tokens) == expected

    def test_log_counts(self):
        assert cmd("log") == Log()
        assert cmd("lg", "-n", "3") == Log(3)
        assert cmd("log", "-7") == Log(7)
        assert cmd("log", "--max-count=4") == Log(4)

    def test_log_bad_count(self):
        assert isinstance(cmd("log", "--max-count=lots"), InvalidUsage)
        assert isinstance(cmd("log", "-n"), InvalidUsage)

    def test_checkout_modes(self):
        assert cmd("checkout", "dev") == Checkout("dev")
        assert cmd("ch", "dev", "-b") == Checkout("dev", CheckoutMode.CREATE)
        assert cmd("ch", "-B", "dev", "--dry-run") == Checkout(
            "dev", CheckoutMode.RESET, dry_run=True
        )

    def test_missing_arguments(self):
        assert isinstance(cmd("checkout"), InvalidUsage)
        assert isinstance(cmd("delete"), InvalidUsage)
        assert isinstance(cmd("dist"), InvalidUsage)
        assert isinstance(cmd("dist", "huge"), InvalidUsage)

    def test_unknown(self):
        assert cmd("unknown") == UnknownCommand("unknown")

    def test_every_variant_has_a_handler(self):
        variants = {
            ShowVersion, ShowUsage, UnknownCommand, InvalidUsage, ListModules, Status,
            Branch, Log, Install, Link, Clean, Sync, Checkout, Delete, Dist,
        }
        assert set(HANDLERS) == variants


class TestBumpVersion:
    @pytest.mark.parametrize(
        "version,bump,expected",
        [
            ("1.2.3", "major", "2.0.0"),
            ("1.2.3", "minor", "1.3.0"),
            ("1.2.3", "patch", "1.2.4"),
            ("1.2.3-beta.1", "patch", "1.2.4"),
        ],
    )
    def test_bump(self, version, bump, expected):
        assert bump_version(version, bump) == expected

    def test_not_semver(self):
        with pytest.raises(UsageError):
            bump_version("latest", "patch")


class RecordingGit(Git):
    """Git double: canned status, records mutating calls."""

    def __init__(self, branches: set[str] | None = None, tag: str | None = None, ahead: int = 0):
        super().__init__()
        self.branches = branches or set()
        self.tag = tag
        self.ahead = ahead
        self.calls: list[tuple] = []

    async def status(self, path: Path) -> str:
        return f"## main\n M {path.name}.js"

    async def log(self, path: Path, max_count: int) -> list[str]:
        return [f"abc{i} commit {i}" for i in range(max_count)][:2]

    async def _run(self, path: Path, *args: str, check: bool = True):
        self.calls.append((path.name, *args))
        return subprocess.CompletedProcess(["git", *args], 0, "", "")

    async def has_branch(self, path: Path, branch: str) -> bool:
        return branch in self.branches

    async def last_tag(self, path: Path) -> str | None:
        return self.tag

    async def commits_since(self, path: Path, ref: str) -> int:
        return self.ahead


class RecordingNpm(Npm):
    def __init__(self):
        super().__init__()
        self.calls: list[tuple] = []

    async def install(self, path: Path) -> None:
        self.calls.append(("install", path.name))

    async def version(self, path: Path, bump: str) -> str:
        self.calls.append(("version", path.name, bump))
        return "v1.0.1"

    async def publish(self, path: Path) -> None:
        self.calls.append(("publish", path.name))


@pytest.fixture
def workspace(make_module):
    make_module("a", real_git=False, name="alpha", version="1.0.0", dependencies={"beta": "*"})
    make_module("b", real_git=False, name="beta", version="2.0.0")
    return make_module


async def run(tmp_path: Path, *tokens: str, git=None, npm=None) -> CommandResult:
    parsed = parse_argv(["python", "ryt", *tokens])
    context = Context(
        parsed=parsed,
        config=RytConfig(env={"RYT_PATH": str(tmp_path)}),
        cwd=tmp_path,
        git=git or RecordingGit(),
        npm=npm or RecordingNpm(),
    )
    return await dispatch(parse_command(parsed), context)


class TestHandlers:
    """Handlers against a two-module workspace with fake backends."""

    async def test_version(self, tmp_path: Path):
        result = await run(tmp_path, "-v")
        assert result.lines == [f"v{__version__}"]
        assert result.exit_code == 0

    async def test_usage_needs_no_search_path(self, tmp_path: Path):
        parsed = parse_argv(["python", "ryt"])
        context = Context(parsed=parsed, config=RytConfig(env={}), cwd=tmp_path)
        result = await dispatch(parse_command(parsed), context)
        assert result.lines[0].startswith("description:")

    async def test_unknown(self, tmp_path: Path):
        result = await run(tmp_path, "unknown")
        assert result.lines[0] == "unknown is not a ryt command"
        assert "usage: ryt" in result.lines[1]
        assert result.exit_code == 1

    async def test_list(self, tmp_path: Path, workspace):
        result = await run(tmp_path, "ls")
        assert result.lines == ["alpha-1.0.0", "beta-2.0.0"]

    async def test_list_without_search_path(self, tmp_path: Path):
        parsed = parse_argv(["python", "ryt", "ls"])
        context = Context(parsed=parsed, config=RytConfig(env={}), cwd=tmp_path)
        with pytest.raises(ConfigurationError):
            await dispatch(parse_command(parsed), context)

    async def test_status(self, tmp_path: Path, workspace):
        result = await run(tmp_path, "s")
        assert result.lines == ["alpha  M a.js", "beta  M b.js"]

    async def test_branch(self, tmp_path: Path, workspace):
        result = await run(tmp_path, "b", "--grep=alp")
        assert result.lines == ["alpha main"]

    async def test_log(self, tmp_path: Path, workspace):
        result = await run(tmp_path, "lg", "-n", "1")
        assert result.lines == ["alpha abc0 commit 0", "beta abc0 commit 0"]

    async def test_install(self, tmp_path: Path, workspace):
        npm = RecordingNpm()
        result = await run(tmp_path, "i", npm=npm)
        assert result.lines == ["alpha installed", "beta installed"]
        assert npm.calls == [("install", "a"), ("install", "b")]

    async def test_clean(self, tmp_path: Path, workspace):
        git = RecordingGit()
        await run(tmp_path, "clean", "-f", git=git)
        assert git.calls == [("a", "clean", "-fxdq"), ("b", "clean", "-fxdq")]

    async def test_sync(self, tmp_path: Path, workspace):
        git = RecordingGit()
        result = await run(tmp_path, "pull", git=git)
        assert result.lines == ["alpha pulled", "beta pulled"]
        assert git.calls == [("a", "pull", "--ff-only"), ("b", "pull", "--ff-only")]

    async def test_sync_includes_git_output(self, tmp_path: Path, workspace):
        class ChattyGit(RecordingGit):
            async def pull(self, path: Path) -> str:
                return f"Updating 1a2b..3c4d\n\nFast-forward\n {path.name}.js | 2 +-"

        result = await run(tmp_path, "pull", git=ChattyGit())

        assert result.lines == [
            "alpha pulled",
            "alpha Updating 1a2b..3c4d",
            "alpha Fast-forward",
            "alpha  a.js | 2 +-",
            "beta pulled",
            "beta Updating 1a2b..3c4d",
            "beta Fast-forward",
            "beta  b.js | 2 +-",
        ]

    async def test_checkout_existing(self, tmp_path: Path, workspace):
        git = RecordingGit(branches={"dev"})
        result = await run(tmp_path, "ch", "dev", git=git)
        assert result.lines == ["alpha dev", "beta dev"]

    async def test_checkout_missing_branch_is_noop(self, tmp_path: Path, workspace):
        git = RecordingGit()
        result = await run(tmp_path, "ch", "dev", git=git)
        assert result.lines == ["alpha no branch dev", "beta no branch dev"]
        assert git.calls == []

    async def test_checkout_dry_run(self, tmp_path: Path, workspace):
        git = RecordingGit()
        result = await run(tmp_path, "ch", "-b", "dev", "-n", git=git)
        assert result.lines == ["alpha git checkout -b dev", "beta git checkout -b dev"]
        assert git.calls == []

    async def test_delete(self, tmp_path: Path, workspace):
        git = RecordingGit(branches={"old"})
        result = await run(tmp_path, "delete", "old", git=git)
        assert result.lines == ["alpha deleted old", "beta deleted old"]

    async def test_dist_skips_unchanged(self, tmp_path: Path, workspace):
        npm = RecordingNpm()
        result = await run(tmp_path, "dist", "patch", git=RecordingGit(tag="v1", ahead=0), npm=npm)
        assert result.lines == ["alpha unchanged", "beta unchanged"]
        assert npm.calls == []

    async def test_dist_dry_run(self, tmp_path: Path, workspace):
        npm = RecordingNpm()
        result = await run(tmp_path, "dist", "minor", "-n", npm=npm)
        assert result.lines == ["alpha 1.0.0 -> 1.1.0", "beta 2.0.0 -> 2.1.0"]
        assert npm.calls == []

    async def test_dist_publishes(self, tmp_path: Path, workspace):
        npm = RecordingNpm()
        result = await run(tmp_path, "dist", "patch", git=RecordingGit(tag="v1", ahead=2), npm=npm)
        assert result.lines == ["alpha v1.0.1", "beta v1.0.1"]
        assert ("publish", "a") in npm.calls
        assert ("publish", "b") in npm.calls

    async def test_link(self, tmp_path: Path, workspace):
        result = await run(tmp_path, "ln")

        link = tmp_path / "a" / "node_modules" / "beta"
        assert result.lines == [f"alpha beta -> {tmp_path / 'b'}"]
        assert link.is_symlink()
        assert link.resolve() == (tmp_path / "b").resolve()

    async def test_link_replaces_installed_copy(self, tmp_path: Path, workspace):
        installed = tmp_path / "a" / "node_modules" / "beta"
        installed.mkdir(parents=True)
        (installed / "index.js").write_text("")

        await run(tmp_path, "link")

        assert installed.is_symlink()
