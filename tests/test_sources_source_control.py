"""Tests for sources/source_control.py module.

Uses mocked subprocess so no git executable or network is needed.
"""

from pathlib import Path
from unittest.mock import MagicMock, call, patch

import pytest

from pkgsource.sources.source_control import (
    SourceControlError,
    git_clone,
    git_clone_general,
    run_git,
)

RUN = "pkgsource.sources.source_control.subprocess.run"


def _completed(returncode: int = 0, stderr: str = "") -> MagicMock:
    result = MagicMock()
    result.returncode = returncode
    result.stdout = ""
    result.stderr = stderr
    return result


class TestRunGit:
    """Tests for run_git."""

    def test_success(self) -> None:
        """Should return the completed process."""
        with patch(RUN, return_value=_completed()) as mock_run:
            run_git(["status"], git="mygit")

        args, kwargs = mock_run.call_args
        assert args[0] == ["mygit", "status"]
        assert kwargs["check"] is False

    def test_nonzero_exit(self) -> None:
        """Should raise with stderr on failure."""
        with patch(RUN, return_value=_completed(128, "fatal: nope")):
            with pytest.raises(SourceControlError) as exc_info:
                run_git(["clone", "x", "y"])

        assert "fatal: nope" in str(exc_info.value)
        assert exc_info.value.stderr == "fatal: nope"
        assert exc_info.value.code == "source_control_error"

    def test_missing_executable(self) -> None:
        """Should wrap OSError when git cannot start."""
        with patch(RUN, side_effect=FileNotFoundError("git")):
            with pytest.raises(SourceControlError):
                run_git(["status"])


class TestGitCloneGeneral:
    """Tests for git_clone_general."""

    def test_clone_without_version(self, tmp_path: Path) -> None:
        """Should clone and not check out anything."""
        target = tmp_path / "clone"
        with patch(RUN, return_value=_completed()) as mock_run:
            assert git_clone_general("https://example.com/a/b", target) is True

        assert mock_run.call_count == 1
        assert mock_run.call_args[0][0] == [
            "git",
            "clone",
            "https://example.com/a/b",
            str(target),
        ]

    def test_clone_with_version(self, tmp_path: Path) -> None:
        """Should check out the version after cloning."""
        target = tmp_path / "clone"
        with patch(RUN, return_value=_completed()) as mock_run:
            assert git_clone_general("https://example.com/a/b", target, "v1.0")

        assert mock_run.call_count == 2
        checkout = mock_run.call_args_list[1]
        assert checkout[0][0] == ["git", "checkout", "v1.0"]
        assert checkout[1]["cwd"] == target

    def test_clone_failure_returns_false(self, tmp_path: Path) -> None:
        """Should return False instead of raising."""
        with patch(RUN, return_value=_completed(128, "not found")):
            assert git_clone_general("https://example.com/a/b", tmp_path / "c") is False

    def test_missing_git_returns_false(self, tmp_path: Path) -> None:
        """Should return False when git is unavailable."""
        with patch(RUN, side_effect=OSError("no git")):
            assert git_clone_general("https://example.com/a/b", tmp_path / "c") is False


class TestGitClone:
    """Tests for git_clone (local repositories)."""

    def test_clone_new_target(self, tmp_path: Path) -> None:
        """Should clone when the target does not exist."""
        source = tmp_path / "repo"
        target = tmp_path / "out"
        with patch(RUN, return_value=_completed()) as mock_run:
            git_clone(source, target)

        assert mock_run.call_args_list == [
            call(
                ["git", "clone", str(source), str(target)],
                cwd=None,
                capture_output=True,
                text=True,
                check=False,
            )
        ]

    def test_pull_existing_target(self, tmp_path: Path) -> None:
        """Should pull into an existing clone."""
        source = tmp_path / "repo"
        target = tmp_path / "out"
        target.mkdir()
        with patch(RUN, return_value=_completed()) as mock_run:
            git_clone(source, target, "v2")

        pull, checkout = mock_run.call_args_list
        assert pull[0][0][:2] == ["git", "pull"]
        assert pull[1]["cwd"] == target
        assert checkout[0][0] == ["git", "checkout", "v2"]

    def test_failure_raises(self, tmp_path: Path) -> None:
        """Local clone failures should raise."""
        with patch(RUN, return_value=_completed(1, "boom")):
            with pytest.raises(SourceControlError):
                git_clone(tmp_path / "repo", tmp_path / "out")
