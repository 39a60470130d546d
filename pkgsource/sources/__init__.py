"""Package source location.

This module handles:
- Resolving package ids to source directories in a workspace
- Fetching missing packages with git
- Discovering build units by file name
"""

from pkgsource.sources.errors import (
    FailedToCreateTempDirError,
    MissingBuildFilesError,
    NonexistentPackageError,
    NotAWorkspaceError,
    PackageSourceError,
)
from pkgsource.sources.package import PackageSource

__all__ = [
    "FailedToCreateTempDirError",
    "MissingBuildFilesError",
    "NonexistentPackageError",
    "NotAWorkspaceError",
    "PackageSource",
    "PackageSourceError",
]
