"""Shared fixtures: local git repositories served over file:// URLs"""

import pytest

from src.models.site_config import RefreshMode
from src.services.git_checkout import CheckoutEngine
from src.services.sync_policy import SyncPolicy
from tests.helpers import DEFAULT_COMMIT_DATE, RemoteRepo, git


@pytest.fixture
def make_remote(tmp_path):
    """Factory creating a repository on branch master with one commit"""

    def _make(name: str, files: dict[str, str], date: str = DEFAULT_COMMIT_DATE) -> RemoteRepo:
        path = tmp_path / "remotes" / name
        path.mkdir(parents=True)
        git(path, "init", "--quiet")
        git(path, "symbolic-ref", "HEAD", "refs/heads/master")
        repo = RemoteRepo(path)
        repo.commit(files, date=date, message="initial")
        return repo

    return _make


@pytest.fixture
def make_engine():
    """Factory creating a checkout engine for a refresh mode"""

    def _make(mode: RefreshMode = RefreshMode.LAST_RESORT) -> CheckoutEngine:
        return CheckoutEngine(SyncPolicy(mode))

    return _make
