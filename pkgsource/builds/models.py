"""Build ORM models.

This module defines the BuildRecord model storing one package build
invocation, its cache key and input snapshot.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from pkgsource.db import Base
from pkgsource.types import BuildStatus


class BuildRecord(Base):
    """ORM model for package build records.

    Attributes:
        id: Primary key.
        package_id: Text form of the built package id.
        start_dir: Resolved source directory.
        destination: Destination workspace of the build.
        status: Build status (pending, running, succeeded, failed).
        requested_at: Timestamp when build was requested.
        started_at: Timestamp when build started executing.
        finished_at: Timestamp when build finished.
        input_snapshot: JSON representation of all build inputs.
        cache_key: Hash of input_snapshot for cache lookup.
        unit_count: Number of units compiled.
        error_type: Type of error if build failed.
        error_message: Error message if build failed.
    """

    __tablename__ = "build_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    package_id: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    start_dir: Mapped[str] = mapped_column(String(1000), nullable=False)
    destination: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Status and timing
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BuildStatus.PENDING.value, index=True
    )
    requested_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Cache key and input snapshot
    input_snapshot: Mapped[dict[str, object] | None] = mapped_column(
        JSON, nullable=True
    )
    cache_key: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    unit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Error tracking
    error_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("ix_build_records_key_status", "cache_key", "status"),)

    def __repr__(self) -> str:
        """Return string representation of BuildRecord."""
        return (
            f"<BuildRecord(id={self.id}, package_id='{self.package_id}', "
            f"status='{self.status}', cache_key='{self.cache_key[:16]}...')>"
        )

    def mark_running(self) -> None:
        """Mark this build as running."""
        self.status = BuildStatus.RUNNING.value
        self.started_at = datetime.now(timezone.utc)

    def mark_succeeded(self, destination: str) -> None:
        """Mark this build as succeeded."""
        self.status = BuildStatus.SUCCEEDED.value
        self.destination = destination
        self.finished_at = datetime.now(timezone.utc)

    def mark_failed(self, error_type: str, error_message: str) -> None:
        """Mark this build as failed."""
        self.status = BuildStatus.FAILED.value
        self.error_type = error_type
        self.error_message = error_message
        self.finished_at = datetime.now(timezone.utc)


__all__ = ["BuildRecord"]
