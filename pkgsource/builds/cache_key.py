"""Input fingerprints and cache key computation for builds.

This module handles:
- Fingerprinting source files by content and modification time
- Collecting declared build inputs
- Deterministic hash computation over normalized inputs

Cache keys ensure builds with identical inputs are not repeated.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from pkgsource.package_id import PackageId

# Schema version for cache key format; bump when cache key format changes
CACHE_KEY_SCHEMA_VERSION = "2"

# Default chunk size for hashing
HASH_CHUNK_SIZE = 64 * 1024  # 64KB


class Prep(Protocol):
    """Preparation handle of a build cache."""

    def declare_input(self, kind: str, name: str, fingerprint: bytes) -> None: ...


def digest_file_with_date(
    file_path: Path,
    chunk_size: int = HASH_CHUNK_SIZE,
) -> bytes:
    """Fingerprint a file by its contents and modification time.

    Args:
        file_path: Path to the file.
        chunk_size: Size of chunks for streaming hash.

    Returns:
        SHA-256 digest bytes.
    """
    sha256 = hashlib.sha256()
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    sha256.update(str(file_path.stat().st_mtime_ns).encode("ascii"))
    return sha256.digest()


@dataclass
class InputPrep:
    """In-memory preparation handle collecting declared inputs.

    Attributes:
        inputs: Mapping of (kind, name) to fingerprint.
    """

    inputs: dict[tuple[str, str], bytes] = field(default_factory=dict)

    def declare_input(self, kind: str, name: str, fingerprint: bytes) -> None:
        """Register an input, replacing any earlier fingerprint for it."""
        self.inputs[(kind, name)] = fingerprint

    def snapshot(self) -> dict[str, dict[str, str]]:
        """Return declared inputs as a JSON-ready mapping.

        Returns:
            ``{kind: {name: hex fingerprint}}`` with sorted names.
        """
        snapshot: dict[str, dict[str, str]] = {}
        for (kind, name), fingerprint in sorted(self.inputs.items()):
            snapshot.setdefault(kind, {})[name] = fingerprint.hex()
        return snapshot


def compute_cache_key(
    pkg_id: PackageId,
    prep: InputPrep,
    cfgs: list[str] | None = None,
    destination: str | None = None,
    compiler: str | None = None,
) -> tuple[str, dict[str, Any]]:
    """Compute a cache key for building a package.

    The cache key is a SHA-256 hash of the canonical JSON representation
    of the package id, configuration tags, destination workspace, compiler
    executable and declared inputs.

    Args:
        pkg_id: Package being built.
        prep: Preparation handle holding the declared inputs.
        cfgs: Global configuration tags.
        destination: Destination workspace, if it can be determined.
        compiler: Compiler executable.

    Returns:
        Tuple of (cache key as ``sha256:...``, input snapshot).
    """
    snapshot: dict[str, Any] = {
        "schema_version": CACHE_KEY_SCHEMA_VERSION,
        "package_id": str(pkg_id),
        "cfgs": sorted(cfgs or []),
        "destination": destination,
        "compiler": compiler,
        "inputs": prep.snapshot(),
    }

    # Serialize to canonical JSON (sorted keys, no extra whitespace)
    canonical_json = json.dumps(snapshot, sort_keys=True, separators=(",", ":"))
    hash_hex = hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()

    return f"sha256:{hash_hex}", snapshot


__all__ = [
    "CACHE_KEY_SCHEMA_VERSION",
    "InputPrep",
    "Prep",
    "compute_cache_key",
    "digest_file_with_date",
]
