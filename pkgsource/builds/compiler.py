"""Compiler invocation for build units.

This module handles:
- Composing compiler commands for each build unit kind
- Executing the compiler with subprocess
- Capturing compiler output to per-unit log files
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from pkgsource.types import OutputType

if TYPE_CHECKING:
    from pkgsource.package_id import PackageId

logger = logging.getLogger(__name__)

BUILD_DIR = "build"


class CompilationError(Exception):
    """Raised when compiling a build unit fails."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        log_path: Path | None = None,
        code: str = "compile_error",
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.log_path = log_path
        self.code = code


class Compiler(Protocol):
    """Compiles a single build unit and returns the artifact path."""

    executable: str

    def compile(
        self,
        pkg_id: PackageId,
        source: Path,
        destination: Path,
        flags: tuple[str, ...],
        cfgs: list[str],
        output_kind: OutputType,
    ) -> Path: ...


@dataclass
class BuildContext:
    """Collaborators and mode flags for a build invocation.

    Attributes:
        compiler: Compiler used for every unit.
        default_workspace: Destination in hack mode when the package root is
            not a workspace.
        use_path_hack: Whether hack mode is enabled.
    """

    compiler: Compiler
    default_workspace: Path | None = None
    use_path_hack: bool = False


def artifact_name(pkg_id: PackageId, output_kind: OutputType) -> str:
    """Return the artifact file name for a unit kind."""
    name = pkg_id.short_name
    if output_kind is OutputType.LIBRARY:
        return f"lib{name}.rlib"
    if output_kind is OutputType.TEST:
        return f"{name}-test"
    if output_kind is OutputType.BENCHMARK:
        return f"{name}-bench"
    return name


def compose_compile_command(
    executable: str,
    source: Path,
    output: Path,
    flags: tuple[str, ...],
    cfgs: list[str],
    output_kind: OutputType,
    crate_name: str,
) -> list[str]:
    """Compose the compiler command line for one unit.

    Args:
        executable: Compiler executable.
        source: Absolute path of the unit's entry point.
        output: Artifact path.
        flags: Unit-specific flags, appended verbatim.
        cfgs: Configuration tags, each passed as ``--cfg``.
        output_kind: Kind of unit being built.
        crate_name: Name of the produced crate.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = [executable, str(source), "--crate-name", crate_name.replace("-", "_")]

    if output_kind is OutputType.LIBRARY:
        cmd.append("--crate-type=lib")
    elif output_kind is OutputType.EXECUTABLE:
        cmd.append("--crate-type=bin")
    else:
        cmd.append("--test")
        if output_kind is OutputType.BENCHMARK:
            cmd.extend(["--cfg", "bench"])

    for cfg in cfgs:
        cmd.extend(["--cfg", cfg])

    cmd.extend(flags)
    cmd.extend(["-L", str(output.parent), "-o", str(output)])
    return cmd


class RustcCompiler:
    """Compiler backed by an external executable run per unit."""

    def __init__(self, executable: str = "rustc", timeout: int | None = None) -> None:
        self.executable = executable
        self.timeout = timeout

    def compile(
        self,
        pkg_id: PackageId,
        source: Path,
        destination: Path,
        flags: tuple[str, ...],
        cfgs: list[str],
        output_kind: OutputType,
    ) -> Path:
        """Compile one unit into ``<destination>/build/<pkg path>/``.

        Args:
            pkg_id: Package the unit belongs to.
            source: Absolute path of the unit's entry point.
            destination: Destination workspace.
            flags: Unit-specific flags.
            cfgs: Merged configuration tags.
            output_kind: Kind of unit being built.

        Returns:
            Path of the produced artifact.

        Raises:
            CompilationError: If the compiler cannot start or fails.
        """
        out_dir = destination / BUILD_DIR / pkg_id.path
        out_dir.mkdir(parents=True, exist_ok=True)
        output = out_dir / artifact_name(pkg_id, output_kind)
        log_path = out_dir / f"{output.name}.log"

        cmd = compose_compile_command(
            self.executable,
            source,
            output,
            flags,
            cfgs,
            output_kind,
            pkg_id.short_name,
        )
        cmd_str = shlex.join(cmd)
        logger.info("Compiling %s (%s)", source, output_kind.value)
        logger.debug("Executing: %s", cmd_str)

        started_at = datetime.now(timezone.utc)
        try:
            with log_path.open("w") as log_file:
                log_file.write(f"# Command: {cmd_str}\n")
                log_file.write(f"# Started: {started_at.isoformat()}\n\n")
                log_file.flush()

                result = subprocess.run(
                    cmd,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    timeout=self.timeout,
                    check=False,
                )
        except subprocess.TimeoutExpired as e:
            raise CompilationError(
                f"Compiling {source} timed out after {self.timeout} seconds",
                exit_code=-1,
                log_path=log_path,
                code="compile_timeout",
            ) from e
        except OSError as e:
            raise CompilationError(
                f"Failed to execute compiler: {e}",
                log_path=log_path,
                code="execution_error",
            ) from e

        if result.returncode != 0:
            logger.error(
                "Compiling %s failed with exit code %d. See log: %s",
                source,
                result.returncode,
                log_path,
            )
            raise CompilationError(
                f"Compiling {source} failed with exit code {result.returncode}",
                exit_code=result.returncode,
                log_path=log_path,
            )

        return output


__all__ = [
    "BUILD_DIR",
    "BuildContext",
    "CompilationError",
    "Compiler",
    "RustcCompiler",
    "artifact_name",
    "compose_compile_command",
]
