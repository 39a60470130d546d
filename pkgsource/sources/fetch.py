"""Remote fetch of package sources.

This module handles:
- Cloning a package whose id names a local repository
- Cloning ``https://<package path>`` into a scratch directory
- Promoting a finished clone into its workspace location

A failed clone may leave a partial directory at its target, so remote
clones are staged in a temporary directory that is removed on every exit
path; only complete clones are renamed into place.
"""

from __future__ import annotations

import errno
import logging
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from pkgsource.sources.errors import FailedToCreateTempDirError
from pkgsource.sources.source_control import (
    SourceControlError,
    git_clone,
    git_clone_general,
)
from pkgsource.sources.workspace import make_dir_recursive

if TYPE_CHECKING:
    from pkgsource.package_id import PackageId

logger = logging.getLogger(__name__)

STAGING_PREFIX = "pkgsource"
CLONE_TARGET_NAME = "pkgsource_temp"


def _promote(staged: Path, local: Path) -> bool:
    """Move a staged clone to its final location.

    Args:
        staged: Completed clone in the scratch directory.
        local: Final destination.

    Returns:
        True if the clone now lives at ``local``.
    """
    if not make_dir_recursive(local.parent):
        return False
    try:
        staged.rename(local)
    except OSError as e:
        if e.errno != errno.EXDEV:
            logger.warning("Failed to move %s to %s: %s", staged, local, e)
            return False
        # Scratch space is on another filesystem
        try:
            shutil.move(str(staged), str(local))
        except OSError as move_error:
            logger.warning("Failed to move %s to %s: %s", staged, local, move_error)
            return False
    return True


def fetch_git(
    local: Path,
    pkg_id: PackageId,
    tmp_dir: Path | None = None,
    git: str = "git",
) -> Path | None:
    """Fetch a package's source with git into ``local``.

    If the package path names an existing local directory it is cloned
    directly. Otherwise the path is treated as a URL fragment and cloned
    from ``https://<path>``.

    Args:
        local: Destination directory for the source.
        pkg_id: Package to fetch.
        tmp_dir: Parent directory for the scratch area (system default if None).
        git: git executable.

    Returns:
        ``local`` on success, None if the package could not be fetched.

    Raises:
        FailedToCreateTempDirError: If the scratch directory cannot be created.
    """
    try:
        scratch = tempfile.TemporaryDirectory(prefix=STAGING_PREFIX, dir=tmp_dir)
    except OSError as e:
        raise FailedToCreateTempDirError(
            f"Failed to create temporary directory for fetching git sources: {e}"
        ) from e

    with scratch as scratch_dir:
        clone_target = Path(scratch_dir) / CLONE_TARGET_NAME

        local_repo = Path(pkg_id.path)
        logger.debug(
            "Checking whether %s exists locally (cwd = %s)", local_repo, Path.cwd()
        )
        if local_repo.exists():
            logger.debug("%s exists locally, cloning it into %s", local_repo, local)
            try:
                git_clone(local_repo, local, pkg_id.version, git=git)
            except SourceControlError as e:
                logger.warning("Local clone of %s failed: %s", local_repo, e)
                return None
            return local

        if len(pkg_id.path.parts) < 2:
            # Not a URL fragment
            return None

        url = f"https://{pkg_id.path}"
        if not git_clone_general(url, clone_target, pkg_id.version, git=git):
            return None

        if _promote(clone_target, local):
            logger.info("Fetched %s into %s", pkg_id, local)
            return local
        return None


__all__ = ["CLONE_TARGET_NAME", "STAGING_PREFIX", "fetch_git"]
