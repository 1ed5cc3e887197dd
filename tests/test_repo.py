"""Tests for the repository descriptor and its preparation."""

import dataclasses
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from git_tether.constants import DEFAULT_BRANCH, DEFAULT_INTERVAL
from git_tether.errors import ConfigurationError
from git_tether.repo import Repo, SyncState

URL = "https://example.com/org/site.git"


def make_repo(path: Path, url: str = URL) -> Repo:
    return Repo(url=url, host="example.com", path=path)


def test_repo_defaults_and_immutability(tmp_path: Path) -> None:
    """Verifies default branch and interval, and that descriptors are frozen."""
    repo = make_repo(tmp_path / "site")

    assert repo.branch == DEFAULT_BRANCH
    assert repo.interval == DEFAULT_INTERVAL
    assert repo.name == "site"
    assert not repo.uses_key

    with pytest.raises(dataclasses.FrozenInstanceError):
        repo.branch = "main"  # type: ignore[misc]


def test_prepare_creates_missing_directory(tmp_path: Path) -> None:
    """Verifies that a missing clone target is created."""
    target = tmp_path / "a" / "b" / "site"
    make_repo(target).prepare()
    assert target.is_dir()


def test_prepare_accepts_empty_directory(tmp_path: Path) -> None:
    """Verifies that an empty directory is a valid clone target."""
    target = tmp_path / "site"
    target.mkdir()
    make_repo(target).prepare()
    assert target.is_dir()


def test_prepare_rejects_non_empty_directory(tmp_path: Path) -> None:
    """Verifies that unrelated files are never clobbered by a clone."""
    (tmp_path / "index.html").write_text("hello")

    with pytest.raises(ConfigurationError, match="directory not empty"):
        make_repo(tmp_path).prepare()


def test_prepare_rejects_file_target(tmp_path: Path) -> None:
    """Verifies that a regular file cannot be used as a clone target."""
    target = tmp_path / "site"
    target.write_text("not a dir")

    with pytest.raises(ConfigurationError, match="not a directory"):
        make_repo(target).prepare()


@pytest.mark.parametrize(
    "origin", [URL, URL.removesuffix(".git")], ids=["exact", "without-suffix"]
)
def test_prepare_accepts_existing_clone_of_same_repo(
    tmp_path: Path, mocker: MagicMock, origin: str
) -> None:
    """Verifies that an existing clone of the same remote is reused."""
    (tmp_path / ".git").mkdir()
    mock_cls = mocker.patch("git_tether.repo.GitRepo")
    mock_cls.return_value.origin_url.return_value = origin

    make_repo(tmp_path).prepare()

    mock_cls.assert_called_once_with(tmp_path)


def test_prepare_rejects_clone_of_other_repo(tmp_path: Path, mocker: MagicMock) -> None:
    """Verifies that a working tree pointing elsewhere is refused."""
    (tmp_path / ".git").mkdir()
    mock_cls = mocker.patch("git_tether.repo.GitRepo")
    mock_cls.return_value.origin_url.return_value = "https://example.com/other.git"

    with pytest.raises(ConfigurationError, match="Another git repo"):
        make_repo(tmp_path).prepare()


def test_prepare_reports_unreadable_origin(tmp_path: Path, mocker: MagicMock) -> None:
    """Verifies that a clone without a readable origin is refused."""
    (tmp_path / ".git").mkdir()
    mock_cls = mocker.patch("git_tether.repo.GitRepo")
    mock_cls.return_value.origin_url.side_effect = RuntimeError("no remote")

    with pytest.raises(ConfigurationError, match="Cannot retrieve repo url"):
        make_repo(tmp_path).prepare()


def test_sync_state_starts_empty() -> None:
    """Verifies the state of a repository that was never synced."""
    state = SyncState()
    assert state.last_attempt is None
    assert state.last_success is None
    assert state.runs == 0
