"""Shared test fixtures.

Git-backed tests build real repositories under ``tmp_path`` with GitPython
and clone them over ``file://`` URLs, so no network access is needed.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import git
import pytest

from tests.factories import commit_files
from tfcleanup.audit.settings import RepositorySettings, get_settings


@pytest.fixture
def make_remote(tmp_path: Path) -> Callable[..., str]:
    """Create a git repository with committed files; returns its ``file://`` URL."""

    def _make(name: str = "infra", files: dict[str, str] | None = None) -> str:
        repo_dir = tmp_path / "remotes" / name
        repo_dir.mkdir(parents=True)
        git.Repo.init(repo_dir).close()
        commit_files(repo_dir, files or {"README.md": "infra\n"}, message="initial")
        return repo_dir.as_uri()

    return _make


@pytest.fixture
def repo_settings(tmp_path: Path) -> RepositorySettings:
    """Repository settings with checkouts isolated under ``tmp_path``."""
    return RepositorySettings(git_dir=str(tmp_path / "checkouts"))


@pytest.fixture(autouse=True)
def _isolate_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's TFCLEANUP_* environment, settings.toml and .env out of the tests."""
    for key in list(os.environ):
        if key.startswith("TFCLEANUP_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
