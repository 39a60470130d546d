"""git clone primitives.

Clones are executed with the git executable via subprocess; output is
captured and surfaced through logging.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


class SourceControlError(Exception):
    """Raised when a git command fails."""

    def __init__(
        self,
        message: str,
        command: str = "",
        stderr: str = "",
        code: str = "source_control_error",
    ) -> None:
        super().__init__(message)
        self.command = command
        self.stderr = stderr
        self.code = code


def run_git(
    args: list[str],
    cwd: Path | None = None,
    git: str = "git",
) -> subprocess.CompletedProcess[str]:
    """Run a git command, raising on failure.

    Args:
        args: Arguments after the git executable.
        cwd: Working directory.
        git: git executable.

    Returns:
        Completed process.

    Raises:
        SourceControlError: If git cannot be started or exits non-zero.
    """
    cmd = [git, *args]
    cmd_str = shlex.join(cmd)
    logger.debug("Running: %s", cmd_str)

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise SourceControlError(
            f"Failed to run git: {e}",
            command=cmd_str,
        ) from e

    if result.returncode != 0:
        raise SourceControlError(
            f"git exited with code {result.returncode}: {result.stderr.strip()}",
            command=cmd_str,
            stderr=result.stderr,
        )
    return result


def git_clone(
    source: Path,
    target: Path,
    version: str | None = None,
    git: str = "git",
) -> None:
    """Clone a local repository, or update an existing clone.

    Args:
        source: Local repository path.
        target: Destination directory.
        version: Revision to check out, if any.
        git: git executable.

    Raises:
        SourceControlError: If any git command fails.
    """
    if target.exists():
        logger.debug("%s exists, pulling from %s", target, source)
        run_git(["pull", "--no-edit", str(source.resolve())], cwd=target, git=git)
    else:
        logger.info("Cloning %s into %s", source, target)
        run_git(["clone", str(source), str(target)], git=git)

    if version is not None:
        run_git(["checkout", version], cwd=target, git=git)


def git_clone_general(
    url: str,
    target: Path,
    version: str | None = None,
    git: str = "git",
) -> bool:
    """Clone a repository from a URL.

    Args:
        url: Repository URL.
        target: Destination directory.
        version: Revision to check out, if any.
        git: git executable.

    Returns:
        True if the clone (and checkout) succeeded.
    """
    logger.info("Fetching package: git clone %s %s [version=%s]", url, target, version)
    try:
        run_git(["clone", url, str(target)], git=git)
        if version is not None:
            run_git(["checkout", version], cwd=target, git=git)
    except SourceControlError as e:
        logger.warning("Clone of %s failed: %s", url, e)
        return False
    return True


__all__ = ["SourceControlError", "git_clone", "git_clone_general", "run_git"]
