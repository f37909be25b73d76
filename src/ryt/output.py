"""Console output for the CLI.

Command results go to stdout as plain lines so they can be piped; errors
go to stderr, colored when stderr is a terminal.

Usage:
    from ryt.output import Output

    output = Output()
    output.render(result)
    output.error("no entrypoint found")
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from ryt.commands import CommandResult


@dataclass
class OutputStyle:
    """Styling configuration for output."""

    use_colors: bool = True

    colors: dict[str, str] = field(
        default_factory=lambda: {
            "reset": "\033[0m",
            "red": "\033[31m",
        }
    )


class Output:
    """Writes command results and errors to the terminal."""

    def __init__(
        self,
        style: OutputStyle | None = None,
        stdout: IO[str] | None = None,
        stderr: IO[str] | None = None,
    ) -> None:
        self.style = style or OutputStyle()
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr

    def _colored(self, message: str, color: str, stream: IO[str]) -> str:
        if self.style.use_colors and stream.isatty():
            return f"{self.style.colors[color]}{message}{self.style.colors['reset']}"
        return message

    def print(self, message: str) -> None:
        """Print raw message (no formatting)."""
        self.stdout.write(f"{message}\n")
        self.stdout.flush()

    def error(self, message: str) -> None:
        self.stderr.write(self._colored(message, "red", self.stderr) + "\n")
        self.stderr.flush()

    def render(self, result: CommandResult) -> None:
        """Print every line of a command result."""
        for line in result.lines:
            self.print(line)
