"""Shallow, sparse git checkouts of remote sources"""

import logging
import os
import subprocess
from datetime import datetime
from pathlib import Path

from src.models.fetch_result import FetchOutcome, FetchResult
from src.models.remote_source import RemoteSource
from src.services.sync_policy import SyncPlan, SyncPolicy

logger = logging.getLogger(__name__)

# Error older git releases raise when a sparse checkout matches no file
SPARSE_EMPTY_MESSAGE = "Sparse checkout leaves no entry on working directory"

DEFAULT_SSH_COMMAND = "ssh -o UserKnownHostsFile=/dev/null -o StrictHostKeyChecking=no"


class GitError(Exception):
    """A git command failed"""

    def __init__(self, message: str, stderr: str = ""):
        self.message = message
        self.stderr = stderr
        super().__init__(message)


class CheckoutError(Exception):
    """Raised when a source cannot be checked out, even after a fetch"""

    def __init__(self, message: str, cause: Exception | None = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class CacheEntryConflictError(Exception):
    """Raised when an existing checkout points at a different remote"""

    pass


def is_cache_entry(path: Path | str) -> bool:
    """Whether a git checkout already exists at path"""
    return (Path(path) / ".git").exists()


class GitRepository:
    """Thin wrapper running git commands inside one working directory"""

    def __init__(self, root: Path | str, git_executable: str = "git"):
        self.root = Path(root)
        self.git_executable = git_executable

    def run(self, *args: str) -> str:
        """Run a git command and return stdout"""
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        try:
            result = subprocess.run(
                [self.git_executable, "-C", str(self.root), *args],
                capture_output=True,
                text=True,
                check=True,
                env=env,
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise GitError(f"git {' '.join(args)} failed: {stderr}", stderr) from e
        except FileNotFoundError as e:
            raise GitError(f"Git executable not found: {self.git_executable}") from e
        return result.stdout.strip()

    def init(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.run("init", "--quiet")

    def set_config(self, key: str, value: str) -> None:
        self.run("config", key, value)

    def get_config(self, key: str) -> str | None:
        try:
            return self.run("config", "--get", key) or None
        except GitError:
            return None

    def add_remote(self, name: str, url: str) -> None:
        self.run("remote", "add", name, url)

    def write_sparse_checkout(self, subtrees: tuple[str, ...]) -> None:
        """Enable sparse checkout restricted to the given repository paths"""
        self.set_config("core.sparseCheckout", "true")
        info_dir = self.root / ".git" / "info"
        info_dir.mkdir(parents=True, exist_ok=True)
        with open(info_dir / "sparse-checkout", "a", encoding="utf-8") as f:
            for subtree in subtrees:
                f.write(f"/{subtree.strip('/')}\n")

    def fetch(self, remote: str, branch: str) -> None:
        """Shallow fetch of a single branch into its remote-tracking ref"""
        self.run(
            "fetch",
            "--quiet",
            "--depth",
            "1",
            remote,
            f"+refs/heads/{branch}:refs/remotes/{remote}/{branch}",
        )

    def has_ref(self, ref: str) -> bool:
        try:
            self.run("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        except GitError:
            return False
        return True

    def has_head(self) -> bool:
        return self.has_ref("HEAD")

    def paths_exist(self, ref: str, paths: tuple[str, ...]) -> bool:
        """Whether any of the paths exists in the tree of ref"""
        output = self.run("ls-tree", "--name-only", ref, "--", *(p.strip("/") for p in paths))
        return bool(output)

    def reset_hard(self) -> None:
        self.run("reset", "--hard", "--quiet")

    def checkout(self, ref: str) -> None:
        self.run("checkout", "--quiet", "--force", "--detach", ref)

    def commit_time(self, ref: str = "HEAD") -> datetime:
        """Commit time of the latest commit reachable from ref"""
        return datetime.fromisoformat(self.run("log", "-1", "--format=%cI", ref))


class CheckoutEngine:
    """Synchronize remote sources into local shallow, sparse checkouts"""

    def __init__(
        self,
        policy: SyncPolicy,
        git_executable: str = "git",
        remote_name: str = "origin",
        ssh_command: str = DEFAULT_SSH_COMMAND,
    ):
        """
        Initialize checkout engine

        Args:
            policy: Sync policy for the configured refresh mode
            git_executable: Git executable to invoke
            remote_name: Name given to the remote in every checkout
            ssh_command: core.sshCommand for new checkouts (host keys are not verified)
        """
        self.policy = policy
        self.git_executable = git_executable
        self.remote_name = remote_name
        self.ssh_command = ssh_command

    def sync(
        self, path: Path | str, source: RemoteSource, *, timestamp_only: bool = False
    ) -> FetchResult:
        """
        Bring the checkout at path up to date with the source

        Args:
            path: Local checkout directory
            source: Remote repository, branch and sparse subtrees
            timestamp_only: Fetch without checking out files, only read the latest commit time

        Returns:
            FetchResult; SPARSE_ABSENT when none of the subtrees exists on the branch,
            NOT_CACHED when the refresh mode forbids fetching a missing checkout

        Raises:
            CheckoutError: If the source cannot be fetched or checked out, including
                filesystem failures while preparing the checkout
            CacheEntryConflictError: If path is a checkout of another remote
        """
        path = Path(path)
        newly_initialized = not is_cache_entry(path)
        repo = GitRepository(path, self.git_executable)
        ref = f"{self.remote_name}/{source.branch}"

        try:
            if newly_initialized:
                self._initialize(repo, source)
            else:
                self._verify_remote(repo, source)

            plan = self.policy.plan(has_cached_refs=repo.has_ref(ref))

            if not plan.network_allowed and not timestamp_only and repo.has_head():
                logger.debug(f"Using existing checkout at {path}")
                return FetchResult.checked_out(repo.commit_time(), newly_initialized)

            if plan.fetch_first:
                logger.info(f"Fetching {source.url} ({source.branch}) into {path}")
                repo.fetch(self.remote_name, source.branch)
            elif not repo.has_ref(ref):
                logger.info(f"No cached data for {source.url} at {path}, fetching disabled")
                return FetchResult.failed(FetchOutcome.NOT_CACHED, newly_initialized)

            if timestamp_only:
                return FetchResult.checked_out(repo.commit_time(ref), newly_initialized)

            if not self._checkout(repo, ref, source, plan):
                logger.info(f"{source.url} ({source.branch}) has no {list(source.subtrees)}")
                return FetchResult.failed(FetchOutcome.SPARSE_ABSENT, newly_initialized)

            return FetchResult.checked_out(repo.commit_time(), newly_initialized)

        except (GitError, OSError) as e:
            raise CheckoutError(f"Failed to check out {source.url} into {path}: {e}", e) from e

    def _initialize(self, repo: GitRepository, source: RemoteSource) -> None:
        """Create a new cache entry; sparse paths are written before any fetch"""
        logger.debug(f"Initializing checkout at {repo.root}")
        repo.init()
        repo.set_config("core.sshCommand", self.ssh_command)
        repo.add_remote(self.remote_name, source.url)
        if source.subtrees:
            repo.write_sparse_checkout(source.subtrees)

    def _verify_remote(self, repo: GitRepository, source: RemoteSource) -> None:
        current_url = repo.get_config(f"remote.{self.remote_name}.url")
        if current_url != source.url:
            raise CacheEntryConflictError(
                f"Checkout at {repo.root} tracks {current_url!r}, not {source.url!r}"
            )

    def _checkout(
        self, repo: GitRepository, ref: str, source: RemoteSource, plan: SyncPlan
    ) -> bool:
        """Check out ref, fetching once more on failure when the plan allows"""
        try:
            return self._attempt_checkout(repo, ref, source, plan.discard_local_changes)
        except GitError as e:
            if SPARSE_EMPTY_MESSAGE in e.stderr:
                return False
            if not plan.fetch_on_failure:
                raise
            logger.info(f"Checkout of {ref} from cache failed, fetching {source.url}: {e}")

        repo.fetch(self.remote_name, source.branch)
        try:
            return self._attempt_checkout(repo, ref, source, plan.discard_local_changes)
        except GitError as e:
            if SPARSE_EMPTY_MESSAGE in e.stderr:
                return False
            raise

    def _attempt_checkout(
        self, repo: GitRepository, ref: str, source: RemoteSource, discard_local_changes: bool
    ) -> bool:
        if source.subtrees and not repo.paths_exist(ref, source.subtrees):
            return False
        if discard_local_changes and repo.has_head():
            repo.reset_hard()
        repo.checkout(ref)
        return True
