"""Package source resolution, build unit discovery and build orchestration.

This module provides PackageSource, the unpacked source of one package:
- resolve(): locate the source directory for a package id
- find_units(): classify entry points by file name
- declare_inputs(): register unit files with a build cache
- build(): compile every unit in library, executable, test, benchmark order
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from pkgsource.builds.cache_key import Prep, digest_file_with_date
from pkgsource.builds.compiler import BuildContext
from pkgsource.package_id import PackageId
from pkgsource.sources.errors import (
    REASON_NOT_A_DIRECTORY,
    REASON_NOT_FOUND,
    MissingBuildFilesError,
    NonexistentPackageError,
    NotAWorkspaceError,
)
from pkgsource.sources.fetch import fetch_git
from pkgsource.sources.workspace import (
    SOURCE_DIR,
    find_dir_using_path_hack,
    is_workspace,
)
from pkgsource.types import UNIT_FILENAMES, BuildUnit, OutputType

logger = logging.getLogger(__name__)

PACKAGE_SCRIPT = "pkg.rs"

# (destination, package id) -> fetched directory or None
Fetcher = Callable[[Path, PackageId], Path | None]
# (package id, reason) -> substitute directory
NonexistentHandler = Callable[[PackageId, str], Path]
# (message) -> substitute destination workspace
NotAWorkspaceHandler = Callable[[str], Path]


def candidate_dirs(
    workspace: Path,
    pkg_id: PackageId,
    use_path_hack: bool,
) -> list[Path]:
    """Return the directories that may hold a package's source, in priority order.

    Args:
        workspace: Workspace root.
        pkg_id: Package to locate.
        use_path_hack: Whether hack mode is enabled.

    Returns:
        Candidate directories.
    """
    if use_path_hack:
        return [workspace]
    src = workspace / SOURCE_DIR
    return [
        src / pkg_id.path.parent / f"{pkg_id.short_name}-{pkg_id.version_str}",
        src / pkg_id.path,
    ]


@dataclass
class PackageSource:
    """The unpacked source of a package inside a workspace.

    Attributes:
        workspace: Root of the workspace owning the package.
        start_dir: Directory holding this package's files; normally
            ``workspace/src/<path>`` but may be the workspace itself.
        pkg_id: Package identifier. After prefix resolution this is the
            enclosing package's id.
        libs: Library units.
        mains: Executable units.
        tests: Test units.
        benchs: Benchmark units.
    """

    workspace: Path
    start_dir: Path
    pkg_id: PackageId
    libs: list[BuildUnit] = field(default_factory=list)
    mains: list[BuildUnit] = field(default_factory=list)
    tests: list[BuildUnit] = field(default_factory=list)
    benchs: list[BuildUnit] = field(default_factory=list)

    def __str__(self) -> str:
        return (
            f"Package ID {self.pkg_id} in start dir {self.start_dir} "
            f"[workspace = {self.workspace}]"
        )

    @classmethod
    def resolve(
        cls,
        workspace: Path,
        pkg_id: PackageId,
        use_path_hack: bool = False,
        *,
        search_path: Sequence[Path] = (),
        fetch: Fetcher | None = None,
        on_nonexistent: NonexistentHandler | None = None,
    ) -> PackageSource:
        """Locate the source directory for a package.

        Tries, in order: the candidate directories, a package whose id is a
        prefix of ``pkg_id`` (so ids may point into the middle of another
        package), a git fetch into each candidate, and in hack mode the
        search path.

        Args:
            workspace: Workspace root.
            pkg_id: Package to locate.
            use_path_hack: Treat ``workspace`` itself as the package source.
            search_path: Directories searched in hack mode.
            fetch: Fetch strategy; defaults to fetch_git.
            on_nonexistent: Called with (pkg_id, reason) instead of raising
                NonexistentPackageError; its return value is used as the
                source directory.

        Returns:
            PackageSource with empty unit collections.

        Raises:
            NonexistentPackageError: If no source directory can be found.
            FailedToCreateTempDirError: If fetch staging cannot be created.
        """
        if fetch is None:
            fetch = fetch_git

        logger.debug(
            "Checking package source for package ID %s, workspace = %s",
            pkg_id,
            workspace,
        )

        to_try = candidate_dirs(workspace, pkg_id, use_path_hack)
        logger.debug("Checking dirs: %s", os.pathsep.join(str(d) for d in to_try))

        found = next((d for d in to_try if d.is_dir()), None)

        if found is None:
            for prefix_id, suffix in pkg_id.prefixes():
                prefix_dir = workspace / SOURCE_DIR / prefix_id.path
                logger.debug("Checking if %s is a directory", prefix_dir)
                if prefix_dir.is_dir():
                    sub = cls.resolve(
                        workspace,
                        prefix_id,
                        use_path_hack,
                        search_path=search_path,
                        fetch=fetch,
                        on_nonexistent=on_nonexistent,
                    )
                    start_dir = sub.start_dir / suffix
                    logger.debug(
                        "Returning [%s|%s|%s]", workspace, start_dir, sub.pkg_id
                    )
                    return cls(
                        workspace=workspace, start_dir=start_dir, pkg_id=sub.pkg_id
                    )

            for candidate in to_try:
                logger.debug("Calling fetch_git on %s", candidate)
                found = fetch(candidate, pkg_id)
                if found is not None:
                    break

        if found is None and use_path_hack:
            found = find_dir_using_path_hack(pkg_id, search_path)

        if found is None:
            found = _nonexistent(pkg_id, REASON_NOT_FOUND, on_nonexistent)

        logger.debug("For package id %s, returning %s", pkg_id, found)

        if not found.is_dir():
            found = _nonexistent(pkg_id, REASON_NOT_A_DIRECTORY, on_nonexistent)

        return cls(workspace=workspace, start_dir=found, pkg_id=pkg_id)

    def package_script(self) -> Path | None:
        """Return the package build script in the start directory, if present."""
        script = self.start_dir / PACKAGE_SCRIPT
        logger.debug("Checking whether %s exists", script)
        return script if script.exists() else None

    def units(self, output_kind: OutputType) -> list[BuildUnit]:
        """Return the unit collection for a kind."""
        return {
            OutputType.LIBRARY: self.libs,
            OutputType.EXECUTABLE: self.mains,
            OutputType.TEST: self.tests,
            OutputType.BENCHMARK: self.benchs,
        }[output_kind]

    def all_units(self) -> Iterator[tuple[OutputType, BuildUnit]]:
        """Yield (kind, unit) pairs in build order."""
        for output_kind in OutputType:
            for unit in self.units(output_kind):
                yield output_kind, unit

    def unit_path(self, unit: BuildUnit) -> Path:
        """Return the absolute, normalized path of a unit's entry point."""
        return Path(os.path.normpath(self.start_dir / unit.file))

    def find_units(self) -> None:
        """Discover build units under the start directory.

        Files are matched by exact name; see UNIT_FILENAMES. Files are
        visited in sorted path order.

        Raises:
            MissingBuildFilesError: If no unit of any kind is found.
        """
        logger.debug("Matching against %s", self.pkg_id.short_name)

        for path in sorted(self.start_dir.rglob("*")):
            output_kind = UNIT_FILENAMES.get(path.name)
            if output_kind is None or not path.is_file():
                continue
            unit = BuildUnit(file=path.relative_to(self.start_dir))
            logger.debug("Will compile %s", unit.file)
            self.units(output_kind).append(unit)

        if not any(self.units(kind) for kind in OutputType):
            logger.warning(
                "Couldn't infer any crates to build. "
                "Try naming a crate `main.rs`, `lib.rs`, `test.rs`, or `bench.rs`."
            )
            raise MissingBuildFilesError(self.pkg_id)

        logger.debug(
            "In %s, found %d libs, %d mains, %d tests, %d benchs",
            self.start_dir,
            len(self.libs),
            len(self.mains),
            len(self.tests),
            len(self.benchs),
        )

    def declare_inputs(self, prep: Prep) -> None:
        """Declare every unit file as a build input."""
        for _, unit in self.all_units():
            path = self.unit_path(unit)
            logger.debug("Declaring input: %s", path)
            prep.declare_input("file", str(path), digest_file_with_date(path))

    def destination_workspace(
        self,
        context: BuildContext,
        on_not_workspace: NotAWorkspaceHandler | None = None,
    ) -> Path:
        """Determine where build output goes.

        Args:
            context: Build context.
            on_not_workspace: Called with the error message instead of
                raising NotAWorkspaceError; its return value is used.

        Returns:
            Destination workspace.

        Raises:
            NotAWorkspaceError: If the package root is not a workspace and
                hack mode is off.
        """
        if is_workspace(self.workspace):
            logger.debug("%s is a workspace", self.workspace)
            return self.workspace
        if context.use_path_hack and context.default_workspace is not None:
            logger.debug("Using hack: %s", context.default_workspace)
            return context.default_workspace
        error = NotAWorkspaceError(self.workspace)
        if on_not_workspace is not None:
            return on_not_workspace(str(error))
        raise error

    def build(
        self,
        context: BuildContext,
        cfgs: list[str],
        on_not_workspace: NotAWorkspaceHandler | None = None,
    ) -> str:
        """Compile all units.

        Libraries are built first so later units in the same invocation can
        use them. Compiler errors propagate and stop the build.

        Args:
            context: Build context.
            cfgs: Global configuration tags, appended to each unit's own.
            on_not_workspace: See destination_workspace().

        Returns:
            Destination workspace path as text.
        """
        destination = self.destination_workspace(context, on_not_workspace)

        for output_kind in OutputType:
            logger.debug(
                "Building %s units, destination = %s", output_kind.value, destination
            )
            for unit in self.units(output_kind):
                path = self.unit_path(unit)
                logger.debug("Compiling %s", path)
                artifact = context.compiler.compile(
                    self.pkg_id,
                    path,
                    destination,
                    unit.flags,
                    [*unit.cfgs, *cfgs],
                    output_kind,
                )
                logger.debug("Result of compiling %s was %s", path, artifact)

        return str(destination)


def _nonexistent(
    pkg_id: PackageId,
    reason: str,
    handler: NonexistentHandler | None,
) -> Path:
    if handler is None:
        raise NonexistentPackageError(pkg_id, reason)
    return handler(pkg_id, reason)


__all__ = ["PACKAGE_SCRIPT", "PackageSource", "candidate_dirs"]
