"""Shell and git utilities.

Provides simple wrappers around subprocess calls for running git queries
and the user-configured publish commands.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
import sys
from pathlib import Path

from .errors import SubprocessSpawnError

logger = logging.getLogger(__name__)


def git(*args: str, cwd: Path | None = None, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "status", "--porcelain").
        cwd: Directory to run in. Defaults to the process working directory.
        check: If True (default), raise on non-zero exit. Set to False
               for commands that may legitimately fail (e.g., ref lookup).

    Returns:
        Stdout from the git command with the trailing newline removed.

    Raises:
        SubprocessSpawnError: If the git executable cannot be started.
        subprocess.CalledProcessError: If check is True and git fails.
    """
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    try:
        result = subprocess.run(
            ["git", *args], cwd=cwd, capture_output=True, text=True, check=check
        )
    except FileNotFoundError as exc:
        raise SubprocessSpawnError("git executable not found") from exc
    return result.stdout.rstrip("\n")


def git_paths(*args: str, cwd: Path | None = None) -> list[str]:
    """Run a git command with NUL-separated output and return the entries."""
    output = git(args[0], "-z", *args[1:], cwd=cwd)
    return [entry for entry in output.split("\0") if entry]


def shell_argv(command: str) -> list[str]:
    """Wrap a command string for the platform shell."""
    if sys.platform == "win32":
        return ["cmd", "/C", command]
    return ["sh", "-c", command]


async def run_shell(command: str, cwd: Path) -> int:
    """Run a command string through the platform shell and wait for it.

    Unlike git(), this doesn't capture output - stdout and stderr are
    inherited so users can follow publish progress.

    Returns:
        The process exit status.

    Raises:
        SubprocessSpawnError: If the shell cannot be started.
    """
    logger.debug("running %r in %s", command, cwd)
    try:
        process = await asyncio.create_subprocess_exec(*shell_argv(command), cwd=cwd)
    except OSError as exc:
        raise SubprocessSpawnError(f"Failed to run '{command}': {exc}") from exc
    return await process.wait()


def capture(*args: str, cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    """Run a command and capture its output without checking the exit status.

    Raises:
        OSError: If the executable cannot be started.
    """
    logger.debug("%s (cwd=%s)", " ".join(args), cwd)
    return subprocess.run(args, cwd=cwd, capture_output=True, text=True, check=False)
