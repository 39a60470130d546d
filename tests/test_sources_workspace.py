"""Tests for sources/workspace.py module."""

from pathlib import Path

from pkgsource.config import Settings
from pkgsource.package_id import PackageId
from pkgsource.sources.workspace import (
    default_workspace,
    find_dir_using_path_hack,
    is_workspace,
    make_dir_recursive,
)


class TestIsWorkspace:
    """Tests for is_workspace."""

    def test_with_src_dir(self, tmp_path: Path) -> None:
        """A directory with src/ is a workspace."""
        (tmp_path / "src").mkdir()
        assert is_workspace(tmp_path) is True

    def test_without_src_dir(self, tmp_path: Path) -> None:
        """A directory without src/ is not a workspace."""
        assert is_workspace(tmp_path) is False

    def test_src_is_file(self, tmp_path: Path) -> None:
        """A src file does not make a workspace."""
        (tmp_path / "src").write_text("not a dir")
        assert is_workspace(tmp_path) is False

    def test_missing_dir(self, tmp_path: Path) -> None:
        """A missing directory is not a workspace."""
        assert is_workspace(tmp_path / "missing") is False


class TestMakeDirRecursive:
    """Tests for make_dir_recursive."""

    def test_creates_ancestors(self, tmp_path: Path) -> None:
        """Should create all missing ancestors."""
        target = tmp_path / "a" / "b" / "c"
        assert make_dir_recursive(target) is True
        assert target.is_dir()

    def test_existing(self, tmp_path: Path) -> None:
        """Should succeed for an existing directory."""
        assert make_dir_recursive(tmp_path) is True

    def test_blocked_by_file(self, tmp_path: Path) -> None:
        """Should return False when a file is in the way."""
        (tmp_path / "file").write_text("x")
        assert make_dir_recursive(tmp_path / "file" / "sub") is False


class TestDefaultWorkspace:
    """Tests for default_workspace."""

    def test_creates_configured_dir(self, tmp_path: Path) -> None:
        """Should return and create the configured workspace."""
        settings = Settings(default_workspace=tmp_path / "default")
        result = default_workspace(settings)
        assert result == tmp_path / "default"
        assert result.is_dir()


class TestFindDirUsingPathHack:
    """Tests for find_dir_using_path_hack."""

    def test_finds_first_match(self, tmp_path: Path) -> None:
        """Should return the first search entry holding the package."""
        first = tmp_path / "first"
        second = tmp_path / "second"
        (second / "foo" / "bar").mkdir(parents=True)
        first.mkdir()

        result = find_dir_using_path_hack(PackageId.parse("foo/bar"), [first, second])
        assert result == second / "foo" / "bar"

    def test_skips_workspaces(self, tmp_path: Path) -> None:
        """Workspaces on the search path should be skipped."""
        ws = tmp_path / "ws"
        (ws / "src").mkdir(parents=True)
        (ws / "foo").mkdir()

        assert find_dir_using_path_hack(PackageId.parse("foo"), [ws]) is None

    def test_no_match(self, tmp_path: Path) -> None:
        """Should return None when nothing matches."""
        assert find_dir_using_path_hack(PackageId.parse("foo"), [tmp_path]) is None
