"""Clone a template repository and strip its git metadata.

The clone itself is delegated to the ``git`` executable; this module only
turns its exit status into a ``CloneError`` and removes ``.git`` afterwards so
the destination is a plain directory tree.
"""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass
from pathlib import Path

from stamper.config import Config
from stamper.utils import console, run_command


@dataclass
class CloneResult:
    """Source and destination of a finished clone."""

    source: str
    destination: Path


class CloneError(Exception):
    """Raised when a template source cannot be cloned."""

    def __init__(self, message: str, source: str, command: str = "", stderr: str = ""):
        self.source = source
        self.command = command
        self.stderr = stderr
        super().__init__(message)


async def _run_git(*args: str, config: Config, source: str) -> str:
    """Run a git command and return its stdout.

    Raises CloneError if git is missing or exits with a non-zero code.
    """
    cmd = [config.git_executable, *args]
    cmd_str = " ".join(cmd)

    try:
        returncode, stdout, stderr = await run_command(cmd, timeout=config.clone_timeout)
    except FileNotFoundError as exc:
        raise CloneError(
            f"Git executable not found: {config.git_executable}",
            source=source,
            command=cmd_str,
        ) from exc

    if returncode != 0:
        raise CloneError(
            f"Git command failed (exit {returncode}): {cmd_str}\n{stderr}",
            source=source,
            command=cmd_str,
            stderr=stderr,
        )
    return stdout


async def clone_repo_and_clean(
    source: str,
    destination: str | Path,
    config: Config | None = None,
) -> CloneResult:
    """Clone *source* into *destination* and delete the ``.git`` directory.

    Args:
        source: Git URL or local repository path.
        destination: Directory to clone into.  Git refuses non-empty targets.
        config: Supplies the git executable and clone timeout.

    Returns:
        ``CloneResult`` describing where the template now lives.

    Raises:
        CloneError: If the source is unreachable, not a repository, or the
            destination cannot be used.
    """
    config = config or Config()
    dest = Path(destination)

    console.print(f"  Cloning [bold]{source}[/bold] into [bold]{dest}[/bold]")
    await _run_git("clone", "--", source, str(dest), config=config, source=source)

    git_dir = dest / ".git"
    if git_dir.is_dir():
        await asyncio.to_thread(shutil.rmtree, git_dir)
    elif git_dir.exists():
        # worktree or submodule layouts leave a .git file instead
        git_dir.unlink()

    return CloneResult(source=source, destination=dest)
