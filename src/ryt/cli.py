"""Command-line interface for ryt."""

from __future__ import annotations

import asyncio
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

from ryt.argv import parse_argv
from ryt.commands import Context, dispatch, parse_command
from ryt.config import RytConfig
from ryt.errors import RytError
from ryt.logging import configure_logging, get_logger
from ryt.output import Output

logger = get_logger("cli")


def main(
    argv: Sequence[str] | None = None,
    env: Mapping[str, str] | None = None,
    cwd: str | Path | None = None,
    output: Output | None = None,
) -> int:
    """Main entry point.

    Args:
        argv: User arguments (default: sys.argv[1:])
        env: Environment snapshot (default: os.environ)
        cwd: Directory relative paths resolve against (default: os.getcwd())
        output: Where results are written

    Returns:
        Process exit code
    """
    user_args = sys.argv[1:] if argv is None else list(argv)
    env = dict(os.environ if env is None else env)
    cwd = Path(cwd or os.getcwd())
    output = output or Output()

    parsed = parse_argv([sys.executable, "ryt", *user_args])
    command = parse_command(parsed)

    try:
        config = RytConfig.from_env(env) if command.discovers else RytConfig(env=env)
        configure_logging(config.log_level, config.log_format, stream=output.stderr)
        context = Context(parsed=parsed, config=config, cwd=cwd)
        result = asyncio.run(dispatch(command, context))
    except RytError as e:
        error = e.to_result()
        logger.debug("command failed", category=error.category.name, **e.context)
        output.error(error.to_compact())
        return 1
    except KeyboardInterrupt:
        output.error("interrupted")
        return 130

    output.render(result)
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
