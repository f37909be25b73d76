"""Command-line token parsing.

Raw argv is partitioned into positional arguments and flag tokens. The
command name is the first positional argument; everything else is
interpreted later by the command that receives it.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

RECOGNIZED_FLAGS = frozenset(
    {
        "-h",
        "--help",
        "-n",
        "--dry-run",
        "-v",
        "--version",
        "-p",
        "--path",
        "--grep",
        "-f",
        "-b",
        "-B",
        "--max-count",
    }
)

# Short flags whose value is the following token (`-p ~/code`)
VALUE_FLAGS = frozenset({"-p"})

_COUNT_FLAG = re.compile(r"^-\d+$")

FlagValue = str | bool


def flag_name(token: str) -> str:
    """`--path=foo` -> `--path`."""
    return token.split("=", 1)[0]


def is_flag(token: str, strict: bool = False) -> bool:
    """Whether a token is a flag under the given parsing mode."""
    if not token.startswith("-") or token == "-":
        return False
    if not strict:
        return True
    return flag_name(token) in RECOGNIZED_FLAGS or bool(_COUNT_FLAG.match(token))


@dataclass(frozen=True)
class ParsedArgs:
    """Positional arguments and raw flag tokens, each in input order."""

    args: tuple[str, ...] = ()
    flags: tuple[str, ...] = ()

    @property
    def command(self) -> str | None:
        return self.args[0] if self.args else None

    @property
    def flag_values(self) -> dict[str, FlagValue]:
        return parse_flags(self.flags)

    def has_flag(self, *names: str) -> bool:
        """Check for any of the given flags, e.g. has_flag("-h", "--help")."""
        wanted = {name.lstrip("-") for name in names}
        return any(key in wanted for key in self.flag_values)

    def flag_value(self, *names: str) -> FlagValue | None:
        """Value of the first of `names` that is present, or None."""
        values = self.flag_values
        for name in names:
            key = name.lstrip("-")
            if key in values:
                return values[key]
        return None


def parse_argv(argv: Sequence[str], strict: bool = False) -> ParsedArgs:
    """Partition argv into positional arguments and flags.

    The first two tokens name the interpreter and script and are dropped.
    Every remaining token lands in exactly one of `args` or `flags`.

    Args:
        argv: Full process argument vector
        strict: Only treat RECOGNIZED_FLAGS (and `-<number>`) as flags;
            other dashed tokens become positional arguments

    Returns:
        ParsedArgs
    """
    tokens = list(argv[2:])
    args: list[str] = []
    flags: list[str] = []

    i = 0
    while i < len(tokens):
        token = tokens[i]
        if is_flag(token, strict):
            flags.append(token)
            if (
                token in VALUE_FLAGS
                and i + 1 < len(tokens)
                and not tokens[i + 1].startswith("-")
            ):
                flags.append(tokens[i + 1])
                i += 1
        else:
            args.append(token)
        i += 1

    return ParsedArgs(args=tuple(args), flags=tuple(flags))


def parse_flags(flags: Sequence[str]) -> dict[str, FlagValue]:
    """Map flag names (dashes stripped) to values.

    `--dry-run` -> {"dry-run": True}, `--path=a:b` -> {"path": "a:b"},
    `-p a` -> {"p": "a"}. The last occurrence of a repeated flag wins.
    """
    values: dict[str, FlagValue] = {}
    i = 0
    while i < len(flags):
        token = flags[i]
        name, sep, value = token.partition("=")
        key = name.lstrip("-")
        if sep:
            values[key] = value
        elif name in VALUE_FLAGS and i + 1 < len(flags) and not flags[i + 1].startswith("-"):
            values[key] = flags[i + 1]
            i += 1
        else:
            values[key] = True
        i += 1
    return values
