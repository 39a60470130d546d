"""Workspace layout helpers.

A workspace is a directory holding package sources under ``src/``;
build output lands under ``build/`` of the destination workspace.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pkgsource.config import Settings
    from pkgsource.package_id import PackageId

logger = logging.getLogger(__name__)

SOURCE_DIR = "src"


def is_workspace(path: Path) -> bool:
    """Check whether a directory has the workspace layout.

    Args:
        path: Directory to check.

    Returns:
        True if ``path/src`` is a directory.
    """
    return (path / SOURCE_DIR).is_dir()


def make_dir_recursive(path: Path) -> bool:
    """Create a directory and any missing ancestors.

    Args:
        path: Directory to create.

    Returns:
        True if the directory exists afterwards.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.debug("Failed to create %s: %s", path, e)
        return False
    return path.is_dir()


def default_workspace(settings: Settings) -> Path:
    """Return the default workspace, creating it if missing.

    Args:
        settings: Application settings.

    Returns:
        Path to the default workspace.
    """
    workspace = settings.default_workspace.expanduser()
    workspace.mkdir(parents=True, exist_ok=True)
    return workspace


def find_dir_using_path_hack(
    pkg_id: PackageId,
    search_path: Sequence[Path],
) -> Path | None:
    """Search non-workspace directories for a package's source.

    Args:
        pkg_id: Package to look for.
        search_path: Directories to search, in order.

    Returns:
        First ``<entry>/<pkg path>`` that is a directory, or None.
    """
    for entry in search_path:
        if is_workspace(entry):
            continue
        candidate = entry / pkg_id.path
        logger.debug("Path hack: checking %s", candidate)
        if candidate.is_dir():
            return candidate
    return None


__all__ = [
    "SOURCE_DIR",
    "default_workspace",
    "find_dir_using_path_hack",
    "is_workspace",
    "make_dir_recursive",
]
