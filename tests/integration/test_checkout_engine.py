"""Integration tests for shallow sparse checkouts against local repositories"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from src.models.fetch_result import FetchOutcome
from src.models.remote_source import RemoteSource
from src.models.site_config import RefreshMode
from src.services.git_checkout import (
    CacheEntryConflictError,
    CheckoutError,
    GitError,
    GitRepository,
    is_cache_entry,
)
from tests.helpers import checked_out_files

DOCS_REPO_FILES = {
    "docs/intro.md": "# Intro\n",
    "docs/guides/setup.md": "# Setup\n",
    "src/main.py": "print('hi')\n",
    "README.md": "# Tool\n",
}


class TestCheckoutEngine:
    """Test sync of remote sources into cache entries"""

    def test_new_sparse_checkout(self, tmp_path, make_remote, make_engine):
        """Test that a first sync initializes the entry and checks out only the subtree"""
        remote = make_remote("tool", DOCS_REPO_FILES)
        checkout = tmp_path / "checkout"
        source = RemoteSource(url=remote.url, branch="master", subtrees=("docs",))

        result = make_engine().sync(checkout, source)

        assert result.success is True
        assert result.reason == FetchOutcome.CHECKED_OUT
        assert result.newly_initialized is True
        assert result.modified_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert checked_out_files(checkout) == {"docs/intro.md", "docs/guides/setup.md"}
        assert is_cache_entry(checkout)

        sparse_file = checkout / ".git" / "info" / "sparse-checkout"
        assert sparse_file.read_text(encoding="utf-8").splitlines() == ["/docs"]

    def test_existing_entry_is_reused(self, tmp_path, make_remote, make_engine):
        """Test that a second sync reports the entry as not newly initialized"""
        remote = make_remote("tool", DOCS_REPO_FILES)
        source = RemoteSource(url=remote.url, branch="master", subtrees=("docs",))
        engine = make_engine()

        engine.sync(tmp_path / "checkout", source)
        result = engine.sync(tmp_path / "checkout", source)

        assert result.success is True
        assert result.newly_initialized is False

    def test_full_checkout_without_subtrees(self, tmp_path, make_remote, make_engine):
        """Test that an empty subtree list checks out the whole tree"""
        remote = make_remote("tool", DOCS_REPO_FILES)
        checkout = tmp_path / "checkout"

        result = make_engine().sync(checkout, RemoteSource(url=remote.url, branch="master"))

        assert result.success is True
        assert checked_out_files(checkout) == set(DOCS_REPO_FILES)
        assert not (checkout / ".git" / "info" / "sparse-checkout").exists()

    @pytest.mark.parametrize("mode", [RefreshMode.ALWAYS, RefreshMode.LAST_RESORT])
    def test_sparse_absent_is_not_an_error(self, tmp_path, make_remote, make_engine, mode):
        """Test that a missing subtree yields a negative result without raising"""
        remote = make_remote("tool", {"src/main.py": "print('hi')\n"})
        checkout = tmp_path / "checkout"
        source = RemoteSource(url=remote.url, branch="master", subtrees=("docs",))
        engine = make_engine(mode)

        result = engine.sync(checkout, source)

        assert result.success is False
        assert result.reason == FetchOutcome.SPARSE_ABSENT
        assert result.modified_at is None
        assert checked_out_files(checkout) == set()

        # The entry stays usable: syncing again gives the same answer
        again = engine.sync(checkout, source)
        assert again.reason == FetchOutcome.SPARSE_ABSENT
        assert again.newly_initialized is False

    def test_always_discards_local_changes(self, tmp_path, make_remote, make_engine):
        """Test that always-mode syncs reset the checkout to the remote tip"""
        remote = make_remote("tool", DOCS_REPO_FILES)
        checkout = tmp_path / "checkout"
        source = RemoteSource(url=remote.url, branch="master", subtrees=("docs",))
        engine = make_engine(RefreshMode.ALWAYS)

        engine.sync(checkout, source)
        (checkout / "docs" / "intro.md").write_text("local edit\n", encoding="utf-8")
        result = engine.sync(checkout, source)

        assert result.success is True
        assert (checkout / "docs" / "intro.md").read_text(encoding="utf-8") == "# Intro\n"

    def test_always_follows_remote_tip(self, tmp_path, make_remote, make_engine):
        """Test that always-mode syncs pick up new commits and deletions"""
        remote = make_remote("tool", DOCS_REPO_FILES)
        checkout = tmp_path / "checkout"
        source = RemoteSource(url=remote.url, branch="master", subtrees=("docs",))
        engine = make_engine(RefreshMode.ALWAYS)

        engine.sync(checkout, source)
        remote.commit(
            {"docs/new.md": "# New\n"},
            date="2024-03-01T12:00:00+00:00",
            remove=("docs/guides/setup.md",),
        )
        result = engine.sync(checkout, source)

        assert result.modified_at == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)
        assert checked_out_files(checkout) == {"docs/intro.md", "docs/new.md"}

    def test_last_resort_uses_cached_refs_without_network(
        self, tmp_path, make_remote, make_engine
    ):
        """Test that a satisfied last-resort sync performs no fetch"""
        remote = make_remote("tool", DOCS_REPO_FILES)
        checkout = tmp_path / "checkout"
        source = RemoteSource(url=remote.url, branch="master", subtrees=("docs",))
        engine = make_engine(RefreshMode.LAST_RESORT)
        engine.sync(checkout, source)

        # A newer remote commit is not picked up: the cache is good enough
        remote.commit({"docs/new.md": "# New\n"}, date="2024-03-01T00:00:00+00:00")

        with patch.object(GitRepository, "fetch", autospec=True) as mock_fetch:
            result = engine.sync(checkout, source)

        assert mock_fetch.call_count == 0
        assert result.success is True
        assert result.modified_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert not (checkout / "docs" / "new.md").exists()

    def test_last_resort_sparse_absent_without_network(
        self, tmp_path, make_remote, make_engine
    ):
        """Test that an absent subtree in cached refs is not a reason to fetch"""
        remote = make_remote("tool", {"src/main.py": "print('hi')\n"})
        checkout = tmp_path / "checkout"
        source = RemoteSource(url=remote.url, branch="master", subtrees=("docs",))
        engine = make_engine(RefreshMode.LAST_RESORT)
        engine.sync(checkout, source)

        with patch.object(GitRepository, "fetch", autospec=True) as mock_fetch:
            result = engine.sync(checkout, source)

        assert mock_fetch.call_count == 0
        assert result.reason == FetchOutcome.SPARSE_ABSENT

    def test_last_resort_fetches_once_when_checkout_fails(
        self, tmp_path, make_remote, make_engine
    ):
        """Test the single fetch-and-retry after a failed checkout from cache"""
        remote = make_remote("tool", DOCS_REPO_FILES)
        checkout = tmp_path / "checkout"
        source = RemoteSource(url=remote.url, branch="master", subtrees=("docs",))
        engine = make_engine(RefreshMode.LAST_RESORT)
        engine.sync(checkout, source)

        real_checkout = GitRepository.checkout
        attempts = []

        def flaky_checkout(repo, ref):
            attempts.append(ref)
            if len(attempts) == 1:
                raise GitError("git checkout failed: index.lock exists", "index.lock exists")
            return real_checkout(repo, ref)

        real_fetch = GitRepository.fetch
        with (
            patch.object(GitRepository, "checkout", autospec=True, side_effect=flaky_checkout),
            patch.object(
                GitRepository, "fetch", autospec=True, side_effect=real_fetch
            ) as mock_fetch,
        ):
            result = engine.sync(checkout, source)

        assert result.success is True
        assert len(attempts) == 2
        assert mock_fetch.call_count == 1

    def test_checkout_failure_after_retry_raises(self, tmp_path, make_remote, make_engine):
        """Test that a checkout failing after the retry propagates as CheckoutError"""
        remote = make_remote("tool", DOCS_REPO_FILES)
        checkout = tmp_path / "checkout"
        source = RemoteSource(url=remote.url, branch="master", subtrees=("docs",))
        engine = make_engine(RefreshMode.LAST_RESORT)
        engine.sync(checkout, source)

        with patch.object(
            GitRepository,
            "checkout",
            autospec=True,
            side_effect=GitError("git checkout failed: broken", "broken"),
        ):
            with pytest.raises(CheckoutError) as exc_info:
                engine.sync(checkout, source)

        assert "broken" in str(exc_info.value)

    def test_legacy_sparse_error_is_sparse_absent(self, tmp_path, make_remote, make_engine):
        """Test that git's old 'no entry' checkout error is read as an absent subtree"""
        remote = make_remote("tool", DOCS_REPO_FILES)
        source = RemoteSource(url=remote.url, branch="master", subtrees=("docs",))
        message = "error: Sparse checkout leaves no entry on working directory"

        with patch.object(
            GitRepository, "checkout", autospec=True, side_effect=GitError(message, message)
        ):
            result = make_engine().sync(tmp_path / "checkout", source)

        assert result.reason == FetchOutcome.SPARSE_ABSENT

    def test_unreachable_remote_raises_checkout_error(self, tmp_path, make_engine):
        """Test that fetch failures surface as CheckoutError"""
        missing = (tmp_path / "missing-remote").as_uri()

        with pytest.raises(CheckoutError):
            make_engine(RefreshMode.ALWAYS).sync(
                tmp_path / "checkout", RemoteSource(url=missing, branch="master")
            )

    def test_filesystem_failure_raises_checkout_error(self, tmp_path, make_remote, make_engine):
        """Test that a file occupying the checkout path surfaces as CheckoutError"""
        remote = make_remote("tool", DOCS_REPO_FILES)
        checkout = tmp_path / "checkout"
        checkout.write_text("not a directory\n", encoding="utf-8")

        with pytest.raises(CheckoutError) as exc_info:
            make_engine().sync(checkout, RemoteSource(url=remote.url, branch="master"))

        assert isinstance(exc_info.value.cause, OSError)

    def test_missing_branch_raises_checkout_error(self, tmp_path, make_remote, make_engine):
        """Test that a branch absent from the remote surfaces as CheckoutError"""
        remote = make_remote("tool", DOCS_REPO_FILES)

        with pytest.raises(CheckoutError):
            source = RemoteSource(url=remote.url, branch="gh-pages")
            make_engine().sync(tmp_path / "checkout", source)

    def test_repointed_entry_fails_fast(self, tmp_path, make_remote, make_engine):
        """Test that syncing another remote into an existing entry is refused"""
        first = make_remote("first", DOCS_REPO_FILES)
        second = make_remote("second", DOCS_REPO_FILES)
        checkout = tmp_path / "checkout"
        engine = make_engine()
        engine.sync(checkout, RemoteSource(url=first.url, branch="master"))

        with pytest.raises(CacheEntryConflictError):
            engine.sync(checkout, RemoteSource(url=second.url, branch="master"))

    def test_skip_uses_existing_checkout(self, tmp_path, make_remote, make_engine):
        """Test that skip mode returns the current checkout without fetching"""
        remote = make_remote("tool", DOCS_REPO_FILES)
        checkout = tmp_path / "checkout"
        source = RemoteSource(url=remote.url, branch="master", subtrees=("docs",))
        make_engine(RefreshMode.ALWAYS).sync(checkout, source)
        (checkout / "docs" / "intro.md").write_text("local edit\n", encoding="utf-8")

        with patch.object(GitRepository, "fetch", autospec=True) as mock_fetch:
            result = make_engine(RefreshMode.SKIP).sync(checkout, source)

        assert mock_fetch.call_count == 0
        assert result.success is True
        assert result.modified_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert (checkout / "docs" / "intro.md").read_text(encoding="utf-8") == "local edit\n"

    def test_skip_without_cache_reports_not_cached(self, tmp_path, make_remote, make_engine):
        """Test that skip mode never fetches a source it has not seen"""
        remote = make_remote("tool", DOCS_REPO_FILES)

        with patch.object(GitRepository, "fetch", autospec=True) as mock_fetch:
            result = make_engine(RefreshMode.SKIP).sync(
                tmp_path / "checkout", RemoteSource(url=remote.url, branch="master")
            )

        assert mock_fetch.call_count == 0
        assert result.success is False
        assert result.reason == FetchOutcome.NOT_CACHED

    def test_timestamp_only_checks_out_nothing(self, tmp_path, make_remote, make_engine):
        """Test that a timestamp-only sync reads the tip time without a working tree"""
        remote = make_remote("tool", DOCS_REPO_FILES, date="2023-06-15T08:30:00+02:00")
        checkout = tmp_path / "_tool_repo"

        result = make_engine().sync(
            checkout, RemoteSource(url=remote.url, branch="master"), timestamp_only=True
        )

        assert result.success is True
        assert result.modified_at == datetime(2023, 6, 15, 6, 30, tzinfo=timezone.utc)
        assert checked_out_files(checkout) == set()

    def test_distinct_paths_are_order_independent(self, tmp_path, make_remote, make_engine):
        """Test that syncing distinct sources in either order gives the same checkouts"""
        alpha = make_remote("alpha", DOCS_REPO_FILES)
        beta = make_remote("beta", {"docs/beta.md": "# Beta\n"})
        engine = make_engine()

        def sync_all(root, order):
            sources = {
                "alpha": RemoteSource(url=alpha.url, branch="master", subtrees=("docs",)),
                "beta": RemoteSource(url=beta.url, branch="master", subtrees=("docs",)),
            }
            for name in order:
                engine.sync(root / name, sources[name])
            return {name: checked_out_files(root / name) for name in sources}

        assert sync_all(tmp_path / "one", ["alpha", "beta"]) == sync_all(
            tmp_path / "two", ["beta", "alpha"]
        )
