"""Build service module.

This module provides the high-level build API:
- build_or_reuse(): build a package unless an identical build succeeded
- list_builds(): query build records
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from pkgsource.builds.cache_key import InputPrep, compute_cache_key
from pkgsource.builds.models import BuildRecord
from pkgsource.sources.errors import NotAWorkspaceError
from pkgsource.types import BuildStatus

if TYPE_CHECKING:
    from pkgsource.builds.compiler import BuildContext
    from pkgsource.sources.package import PackageSource

logger = logging.getLogger(__name__)


def _get_cached_build(
    session: Session,
    cache_key: str,
) -> BuildRecord | None:
    """Find the newest successful build with the same cache key.

    Args:
        session: Database session.
        cache_key: Cache key to look up.

    Returns:
        BuildRecord if found, None otherwise.
    """
    stmt = (
        select(BuildRecord)
        .where(
            BuildRecord.cache_key == cache_key,
            BuildRecord.status == BuildStatus.SUCCEEDED.value,
        )
        .order_by(BuildRecord.id.desc())
        .limit(1)
    )
    return session.execute(stmt).scalar_one_or_none()


def _destination_or_none(src: PackageSource, context: BuildContext) -> str | None:
    """Return the destination workspace, or None if it cannot be determined."""
    try:
        return str(src.destination_workspace(context))
    except NotAWorkspaceError:
        return None


def build_or_reuse(
    session: Session,
    src: PackageSource,
    context: BuildContext,
    cfgs: list[str] | None = None,
    force_rebuild: bool = False,
) -> tuple[BuildRecord, bool]:
    """Build a package or reuse an identical earlier build.

    This is the main entry point for building. It:
    1. Declares every unit file as an input
    2. Computes the cache key from the inputs, configuration tags,
       destination workspace and compiler executable
    3. Checks for an earlier successful build with the same key
    4. If not found (or force_rebuild), builds and records the result

    Args:
        session: Database session.
        src: PackageSource with units already discovered.
        context: Build context.
        cfgs: Global configuration tags.
        force_rebuild: Build even if a cached build exists.

    Returns:
        Tuple of (BuildRecord, is_cache_hit).

    Raises:
        NotAWorkspaceError: If no destination workspace can be determined.
        CompilationError: If compiling a unit fails.
    """
    cfgs = list(cfgs or [])

    prep = InputPrep()
    src.declare_inputs(prep)
    cache_key, snapshot = compute_cache_key(
        src.pkg_id,
        prep,
        cfgs,
        destination=_destination_or_none(src, context),
        compiler=context.compiler.executable,
    )
    logger.info("Computed cache key: %s", cache_key[:32])

    if not force_rebuild:
        cached = _get_cached_build(session, cache_key)
        if cached is not None:
            logger.info(
                "Cache hit for key %s, reusing build %d", cache_key[:32], cached.id
            )
            return cached, True

    record = BuildRecord(
        package_id=str(src.pkg_id),
        start_dir=str(src.start_dir),
        cache_key=cache_key,
        input_snapshot=snapshot,
        unit_count=len(prep.inputs),
        status=BuildStatus.PENDING.value,
    )
    session.add(record)
    record.mark_running()
    session.flush()

    try:
        destination = src.build(context, cfgs)
    except Exception as e:
        record.mark_failed(type(e).__name__, str(e))
        session.flush()
        logger.error("Build %d of %s failed: %s", record.id, src.pkg_id, e)
        raise

    record.mark_succeeded(destination)
    session.flush()
    logger.info("Build %d of %s succeeded: %s", record.id, src.pkg_id, destination)
    return record, False


def list_builds(
    session: Session,
    package_id: str | None = None,
    limit: int | None = None,
) -> list[BuildRecord]:
    """List build records, newest first.

    Args:
        session: Database session.
        package_id: Only builds of this package id.
        limit: Maximum number of records.

    Returns:
        List of BuildRecord.
    """
    stmt = select(BuildRecord).order_by(BuildRecord.id.desc())
    if package_id is not None:
        stmt = stmt.where(BuildRecord.package_id == package_id)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(session.execute(stmt).scalars().all())


__all__ = ["build_or_reuse", "list_builds"]
