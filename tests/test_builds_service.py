"""Tests for builds/service.py module.

Tests build reuse against an in-memory database with a fake compiler.
"""

from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pkgsource.builds.compiler import BuildContext, CompilationError
from pkgsource.builds.models import BuildRecord
from pkgsource.builds.service import build_or_reuse, list_builds
from pkgsource.db import Base
from pkgsource.package_id import PackageId
from pkgsource.sources.errors import NotAWorkspaceError
from pkgsource.sources.package import PackageSource
from pkgsource.types import BuildStatus


class CountingCompiler:
    """Fake compiler counting its invocations."""

    def __init__(self, fail: bool = False, executable: str = "rustc") -> None:
        self.count = 0
        self.fail = fail
        self.executable = executable

    def compile(self, pkg_id, source, destination, flags, cfgs, output_kind):
        self.count += 1
        if self.fail:
            raise CompilationError("error: expected item", exit_code=1)
        return destination / "build" / source.name


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def session(engine):
    """Create a session for testing."""
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Workspace holding package foo with a library and an executable."""
    ws = tmp_path / "ws"
    pkg = ws / "src" / "foo"
    pkg.mkdir(parents=True)
    (pkg / "lib.rs").write_text("pub fn f() {}\n")
    (pkg / "main.rs").write_text("fn main() {}\n")
    return ws


def _source(workspace: Path) -> PackageSource:
    src = PackageSource.resolve(
        workspace, PackageId.parse("foo"), fetch=lambda local, pkg_id: None
    )
    src.find_units()
    return src


def _context(compiler, tmp_path: Path) -> BuildContext:
    return BuildContext(compiler=compiler, default_workspace=tmp_path / "default")


class TestBuildOrReuse:
    """Tests for build_or_reuse."""

    def test_first_build(self, session, workspace: Path, tmp_path: Path) -> None:
        """The first build compiles every unit and records success."""
        compiler = CountingCompiler()

        record, cache_hit = build_or_reuse(
            session, _source(workspace), _context(compiler, tmp_path), ["debug"]
        )

        assert cache_hit is False
        assert compiler.count == 2
        assert record.status == BuildStatus.SUCCEEDED.value
        assert record.destination == str(workspace)
        assert record.package_id == "foo"
        assert record.unit_count == 2
        assert record.cache_key.startswith("sha256:")
        assert record.input_snapshot["cfgs"] == ["debug"]
        assert record.started_at is not None
        assert record.finished_at is not None

    def test_unchanged_inputs_reused(
        self, session, workspace: Path, tmp_path: Path
    ) -> None:
        """A second build with identical inputs is a cache hit."""
        compiler = CountingCompiler()
        context = _context(compiler, tmp_path)

        first, _ = build_or_reuse(session, _source(workspace), context)
        second, cache_hit = build_or_reuse(session, _source(workspace), context)

        assert cache_hit is True
        assert second.id == first.id
        assert compiler.count == 2

    def test_changed_file_rebuilds(
        self, session, workspace: Path, tmp_path: Path
    ) -> None:
        """Modifying a unit file invalidates the cache."""
        compiler = CountingCompiler()
        context = _context(compiler, tmp_path)

        first, _ = build_or_reuse(session, _source(workspace), context)
        (workspace / "src" / "foo" / "main.rs").write_text("fn main() { run() }\n")
        second, cache_hit = build_or_reuse(session, _source(workspace), context)

        assert cache_hit is False
        assert second.id != first.id
        assert second.cache_key != first.cache_key
        assert compiler.count == 4

    def test_different_cfgs_rebuild(
        self, session, workspace: Path, tmp_path: Path
    ) -> None:
        """Different configuration tags are a different build."""
        compiler = CountingCompiler()
        context = _context(compiler, tmp_path)

        build_or_reuse(session, _source(workspace), context, ["a"])
        _, cache_hit = build_or_reuse(session, _source(workspace), context, ["b"])

        assert cache_hit is False

    def test_different_compiler_rebuilds(
        self, session, workspace: Path, tmp_path: Path
    ) -> None:
        """Switching the compiler executable is a different build."""
        build_or_reuse(
            session, _source(workspace), _context(CountingCompiler(), tmp_path)
        )

        compiler = CountingCompiler(executable="/opt/rust/bin/rustc")
        record, cache_hit = build_or_reuse(
            session, _source(workspace), _context(compiler, tmp_path)
        )

        assert cache_hit is False
        assert compiler.count == 2
        assert record.input_snapshot["compiler"] == "/opt/rust/bin/rustc"

    def test_different_destination_rebuilds(self, session, tmp_path: Path) -> None:
        """In hack mode a new default workspace is a different build."""
        pkg = tmp_path / "plain"
        pkg.mkdir()
        (pkg / "lib.rs").write_text("")

        def hack_source() -> PackageSource:
            src = PackageSource.resolve(
                pkg,
                PackageId.parse("plain"),
                use_path_hack=True,
                fetch=lambda local, pkg_id: None,
            )
            src.find_units()
            return src

        compiler = CountingCompiler()
        first, _ = build_or_reuse(
            session,
            hack_source(),
            BuildContext(compiler, tmp_path / "one", use_path_hack=True),
        )
        second, cache_hit = build_or_reuse(
            session,
            hack_source(),
            BuildContext(compiler, tmp_path / "two", use_path_hack=True),
        )

        assert cache_hit is False
        assert first.destination == str(tmp_path / "one")
        assert second.destination == str(tmp_path / "two")
        assert second.input_snapshot["destination"] == str(tmp_path / "two")
        assert compiler.count == 2

    def test_force_rebuild(self, session, workspace: Path, tmp_path: Path) -> None:
        """force_rebuild ignores cached builds."""
        compiler = CountingCompiler()
        context = _context(compiler, tmp_path)

        build_or_reuse(session, _source(workspace), context)
        _, cache_hit = build_or_reuse(
            session, _source(workspace), context, force_rebuild=True
        )

        assert cache_hit is False
        assert compiler.count == 4

    def test_failure_recorded(self, session, workspace: Path, tmp_path: Path) -> None:
        """A compiler error is recorded and re-raised."""
        compiler = CountingCompiler(fail=True)

        with pytest.raises(CompilationError):
            build_or_reuse(session, _source(workspace), _context(compiler, tmp_path))

        (record,) = list_builds(session)
        assert record.status == BuildStatus.FAILED.value
        assert record.error_type == "CompilationError"
        assert "expected item" in record.error_message

    def test_failed_build_not_reused(
        self, session, workspace: Path, tmp_path: Path
    ) -> None:
        """Only successful builds are reused."""
        with pytest.raises(CompilationError):
            build_or_reuse(
                session,
                _source(workspace),
                _context(CountingCompiler(fail=True), tmp_path),
            )

        compiler = CountingCompiler()
        _, cache_hit = build_or_reuse(
            session, _source(workspace), _context(compiler, tmp_path)
        )

        assert cache_hit is False
        assert compiler.count == 2

    def test_not_a_workspace_recorded(self, session, tmp_path: Path) -> None:
        """Destination errors surface as NotAWorkspaceError."""
        pkg = tmp_path / "plain"
        pkg.mkdir()
        (pkg / "lib.rs").write_text("")
        src = PackageSource.resolve(
            pkg,
            PackageId.parse("plain"),
            use_path_hack=True,
            fetch=lambda local, pkg_id: None,
        )
        src.find_units()

        with pytest.raises(NotAWorkspaceError):
            build_or_reuse(session, src, _context(CountingCompiler(), tmp_path))

        (record,) = list_builds(session)
        assert record.status == BuildStatus.FAILED.value
        assert record.error_type == "NotAWorkspaceError"


class TestListBuilds:
    """Tests for list_builds."""

    def _record(self, session, package_id: str) -> BuildRecord:
        record = BuildRecord(
            package_id=package_id,
            start_dir="/ws/src/" + package_id,
            cache_key=f"sha256:{package_id}",
            status=BuildStatus.SUCCEEDED.value,
        )
        session.add(record)
        session.flush()
        return record

    def test_newest_first(self, session) -> None:
        """Records are returned newest first."""
        a = self._record(session, "a")
        b = self._record(session, "b")
        assert [r.id for r in list_builds(session)] == [b.id, a.id]

    def test_filter_and_limit(self, session) -> None:
        """Records can be filtered by package and limited."""
        self._record(session, "a")
        self._record(session, "b")
        self._record(session, "a")

        assert [r.package_id for r in list_builds(session, package_id="a")] == [
            "a",
            "a",
        ]
        assert len(list_builds(session, limit=1)) == 1

    def test_empty(self, session) -> None:
        """No records gives an empty list."""
        assert list_builds(session) == []
