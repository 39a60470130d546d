"""Tests for database helpers.

These tests verify engine creation, table setup and the transactional
session scope against temporary SQLite databases.
"""

import pytest
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from pkgsource.builds.models import BuildRecord
from pkgsource.db import Base, create_all_tables, get_engine, get_session
from pkgsource.types import BuildStatus


def _record(package_id: str = "foo") -> BuildRecord:
    return BuildRecord(
        package_id=package_id,
        start_dir=f"/ws/src/{package_id}",
        cache_key=f"sha256:{package_id}",
        status=BuildStatus.SUCCEEDED.value,
    )


@pytest.fixture
def factory(tmp_path):
    """Session factory bound to a file-backed database."""
    engine = get_engine(f"sqlite:///{tmp_path}/test.db")
    create_all_tables(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


class TestDatabaseSetup:
    """Test database setup and helpers."""

    def test_get_engine_creates_parent(self, tmp_path):
        """get_engine should create the SQLite file's parent directory."""
        db_path = tmp_path / "nested" / "dir" / "test.db"
        engine = get_engine(f"sqlite:///{db_path}")
        assert engine is not None
        assert db_path.parent.is_dir()

    def test_get_engine_memory(self):
        """In-memory URLs need no directory."""
        engine = get_engine("sqlite:///:memory:")
        assert engine is not None

    def test_create_all_tables(self, tmp_path):
        """create_all_tables should register the build records table."""
        engine = get_engine(f"sqlite:///{tmp_path}/test.db")
        create_all_tables(engine)
        assert "build_records" in Base.metadata.tables


class TestGetSession:
    """Test the get_session context manager."""

    def test_commits_on_success(self, factory):
        """Data added inside the scope is committed."""
        with get_session(factory) as session:
            session.add(_record("committed"))

        with get_session(factory) as session:
            result = session.execute(
                select(BuildRecord).where(BuildRecord.package_id == "committed")
            ).scalar_one_or_none()
            assert result is not None
            assert result.status == BuildStatus.SUCCEEDED.value

    def test_rolls_back_on_error(self, factory):
        """An exception inside the scope discards pending changes."""
        with pytest.raises(RuntimeError):
            with get_session(factory) as session:
                session.add(_record("discarded"))
                session.flush()
                raise RuntimeError("boom")

        with get_session(factory) as session:
            result = session.execute(
                select(BuildRecord).where(BuildRecord.package_id == "discarded")
            ).scalar_one_or_none()
            assert result is None
