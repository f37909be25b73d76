"""Error taxonomy with actionable feedback.

Every failure the tool reports deliberately is a RytError carrying a
category, a human-readable message and, where possible, a suggestion.
The CLI is the only place these are converted into text and an exit code.

Usage:
    from ryt.errors import RytError

    try:
        await discover(context)
    except RytError as e:
        print(e.to_result().to_compact())
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Any


class ErrorCategory(Enum):
    """Categories of errors for appropriate handling."""

    CONFIG = auto()  # No search path, bad config file
    FILE_NOT_FOUND = auto()  # Missing manifest
    PARSE_ERROR = auto()  # Corrupt manifest
    EXTERNAL = auto()  # git/npm failures
    VALIDATION = auto()  # Invalid command arguments
    INTERNAL = auto()


@dataclass
class ErrorResult:
    """What the CLI prints for a failure."""

    category: ErrorCategory
    message: str
    suggestion: str | None = None

    def to_compact(self) -> str:
        """Format as compact string."""
        parts = [self.message]
        if self.suggestion:
            parts.append(f"  Try: {self.suggestion}")
        return "\n".join(parts)


class RytError(Exception):
    """Base exception for ryt with structured error handling."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        suggestion: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.category = category
        self.suggestion = suggestion
        self.context = context or {}

    def to_result(self) -> ErrorResult:
        """Convert to ErrorResult."""
        return ErrorResult(
            category=self.category,
            message=str(self),
            suggestion=self.suggestion,
        )


class ConfigurationError(RytError):
    """No search path could be resolved, or a config file is invalid."""

    def __init__(
        self,
        message: str,
        file: str | Path | None = None,
        suggestion: str | None = None,
    ):
        super().__init__(
            message,
            category=ErrorCategory.CONFIG,
            suggestion=suggestion,
            context={"file": str(file) if file else None},
        )


class ManifestError(RytError):
    """A module's package.json is missing or cannot be parsed."""

    def __init__(self, path: str | Path, detail: str, missing: bool = False):
        super().__init__(
            f"cannot read manifest {path}: {detail}",
            category=ErrorCategory.FILE_NOT_FOUND if missing else ErrorCategory.PARSE_ERROR,
            suggestion="Check that package.json exists and is valid JSON",
            context={"path": str(path)},
        )
        self.path = Path(path)


class BackendError(RytError):
    """An external git/npm invocation failed."""

    def __init__(
        self,
        message: str,
        returncode: int,
        stderr: str,
        cwd: str | Path | None = None,
    ):
        super().__init__(
            message,
            category=ErrorCategory.EXTERNAL,
            context={"returncode": returncode, "cwd": str(cwd) if cwd else None},
        )
        self.returncode = returncode
        self.stderr = stderr


class UsageError(RytError):
    """Invalid arguments for an otherwise known command."""

    def __init__(self, message: str):
        super().__init__(message, category=ErrorCategory.VALIDATION)

