"""Error types for package source resolution and building.

Each error carries a stable ``code`` for programmatic handling; the CLI
prints the message and exits non-zero.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pkgsource.package_id import PackageId

# Reasons attached to NonexistentPackageError
REASON_NOT_FOUND = (
    "supplied path for package dir does not exist, "
    "and couldn't interpret it as a URL fragment"
)
REASON_NOT_A_DIRECTORY = "supplied path for package dir is a non-directory"


class PackageSourceError(Exception):
    """Base error for package source operations."""

    def __init__(self, message: str, code: str = "package_source_error") -> None:
        super().__init__(message)
        self.code = code


class NonexistentPackageError(PackageSourceError):
    """Raised when no source directory can be found or fetched for a package."""

    def __init__(
        self,
        pkg_id: PackageId,
        reason: str,
        code: str = "nonexistent_package",
    ) -> None:
        super().__init__(f"Package {pkg_id}: {reason}", code=code)
        self.pkg_id = pkg_id
        self.reason = reason


class FailedToCreateTempDirError(PackageSourceError):
    """Raised when the staging directory for a git fetch cannot be created."""

    def __init__(self, message: str, code: str = "temp_dir_error") -> None:
        super().__init__(message, code=code)


class MissingBuildFilesError(PackageSourceError):
    """Raised when discovery finds no build units in a package."""

    def __init__(self, pkg_id: PackageId, code: str = "missing_build_files") -> None:
        super().__init__(f"No build units found for package {pkg_id}", code=code)
        self.pkg_id = pkg_id


class NotAWorkspaceError(PackageSourceError):
    """Raised when a package root is not a workspace and hack mode is off."""

    def __init__(self, path: Path, code: str = "not_a_workspace") -> None:
        super().__init__(
            f"Package root {path} is not a workspace; pass --hack "
            "if you want to treat it as a package source",
            code=code,
        )
        self.path = path


__all__ = [
    "FailedToCreateTempDirError",
    "MissingBuildFilesError",
    "NonexistentPackageError",
    "NotAWorkspaceError",
    "PackageSourceError",
    "REASON_NOT_A_DIRECTORY",
    "REASON_NOT_FOUND",
]
