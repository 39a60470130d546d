"""Package identifiers.

A package identifier names a package by a hierarchical path (which doubles
as a URL fragment for fetching, e.g. ``github.com/user/project``) plus an
optional version.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import PurePosixPath

# Version text used for directory naming when no version is given
DEFAULT_VERSION = "0.1"

VERSION_SEPARATOR = "#"


class InvalidPackageIdError(ValueError):
    """Raised when a package identifier cannot be parsed."""

    def __init__(
        self, text: str, reason: str, code: str = "invalid_package_id"
    ) -> None:
        super().__init__(f"Invalid package id {text!r}: {reason}")
        self.text = text
        self.reason = reason
        self.code = code


@dataclass(frozen=True)
class PackageId:
    """Immutable package identifier.

    Attributes:
        path: Hierarchical namespace path.
        version: Requested version, or None for the default.
    """

    path: PurePosixPath
    version: str | None = None

    def __post_init__(self) -> None:
        if not self.path.parts:
            raise InvalidPackageIdError(str(self.path), "empty path")
        if self.path.is_absolute():
            raise InvalidPackageIdError(str(self.path), "path must be relative")
        if ".." in self.path.parts:
            raise InvalidPackageIdError(str(self.path), "path must not contain '..'")

    @classmethod
    def parse(cls, text: str) -> PackageId:
        """Parse ``path[#version]`` into a PackageId.

        Args:
            text: Identifier text.

        Returns:
            Parsed PackageId.

        Raises:
            InvalidPackageIdError: If the text is not a valid identifier.
        """
        raw = text.strip()
        path_part, sep, version = raw.partition(VERSION_SEPARATOR)
        path_part = path_part.strip().rstrip("/")
        if not path_part:
            raise InvalidPackageIdError(text, "empty path")
        if sep and not version.strip():
            raise InvalidPackageIdError(text, "empty version")
        return cls(PurePosixPath(path_part), version.strip() if sep else None)

    @property
    def short_name(self) -> str:
        """Last path segment."""
        return self.path.name

    @property
    def version_str(self) -> str:
        """Version text used in version-qualified directory names."""
        return self.version if self.version is not None else DEFAULT_VERSION

    def prefixes(self) -> Iterator[tuple[PackageId, PurePosixPath]]:
        """Yield every proper prefix of the path with its remaining suffix.

        Prefixes are produced from longest to shortest and carry no version.

        Yields:
            Tuples of (prefix id, suffix path).
        """
        parts = self.path.parts
        for i in range(len(parts) - 1, 0, -1):
            yield PackageId(PurePosixPath(*parts[:i])), PurePosixPath(*parts[i:])

    def __str__(self) -> str:
        if self.version is None:
            return str(self.path)
        return f"{self.path}{VERSION_SEPARATOR}{self.version}"


__all__ = ["DEFAULT_VERSION", "InvalidPackageIdError", "PackageId"]
