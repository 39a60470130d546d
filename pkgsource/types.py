"""Shared type definitions for pkgsource.

This module contains dataclasses, enums, and type aliases shared across
subpackages to avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath


class OutputType(str, Enum):
    """Kind of build unit, also used as the compiler output kind.

    Declaration order is the order in which units are built.
    """

    LIBRARY = "library"
    EXECUTABLE = "executable"
    TEST = "test"
    BENCHMARK = "benchmark"


class BuildStatus(str, Enum):
    """Status of a build operation."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# Exact file names recognized as build unit entry points
UNIT_FILENAMES: dict[str, OutputType] = {
    "lib.rs": OutputType.LIBRARY,
    "main.rs": OutputType.EXECUTABLE,
    "test.rs": OutputType.TEST,
    "bench.rs": OutputType.BENCHMARK,
}


@dataclass(frozen=True)
class BuildUnit:
    """A discovered source entry point.

    Attributes:
        file: Path relative to the package start directory.
        flags: Unit-specific compiler flags.
        cfgs: Unit-specific configuration tags.
    """

    file: PurePath
    flags: tuple[str, ...] = ()
    cfgs: tuple[str, ...] = ()


__all__ = [
    "BuildStatus",
    "BuildUnit",
    "OutputType",
    "UNIT_FILENAMES",
]
