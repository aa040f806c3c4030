"""Keeps the local vault working copy reconciled with its single remote branch.

The `RepositoryManager` owns the working copy for the lifetime of the process.
It exposes two operations:

* `ensure_ready()` clones the vault, or reconciles an existing copy (identity,
  authenticated remote, drift auto-commit, rebase-pull).
* `publish(path)` commits and pushes one freshly written note.

Every git failure is wrapped in a typed `SyncError` at the step where it
happens. Neither operation raises; failures are logged and, for `publish`,
reported through a `SyncAttemptResult`.
"""

import enum
import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from .config import Config
from .constants import (
    APP_NAME,
    AUTO_COMMIT_MESSAGE,
    COMMIT_MESSAGE_TEMPLATE,
)
from .git_wrapper import GitError, GitRepo
from .remote import build_authenticated_url, strip_credentials

logger = logging.getLogger(APP_NAME)


class SyncError(Exception):
    """Base class for failures in the reconciliation steps."""


class CloneError(SyncError):
    """The working copy could not be created (or is missing)."""


class RemoteConfigError(SyncError):
    """Identity or remote URL could not be written to the working copy."""


class DriftCommitError(SyncError):
    """Uncommitted local changes could not be auto-committed."""


class PullError(SyncError):
    """The rebase-pull from the remote branch failed."""


class StageOrCommitError(SyncError):
    """The note could not be staged or committed."""


class PushError(SyncError):
    """The remote rejected or never received the push."""


class SyncStatus(enum.Enum):
    """Outcome of one publish attempt."""

    SUCCESS = "success"
    PUSH_FAILED_LOCAL_SAVED = "push_failed_local_saved"
    FATAL_LOCAL_ERROR = "fatal_local_error"


@dataclass
class SyncAttemptResult:
    """What happened to one note.

    Attributes:
        status (SyncStatus): The classified outcome.
        path (str | None): The repository-relative path that was published.
        error (Exception | None): The failure that decided the outcome, if any.
        pull_failed (bool): Whether the tolerated pre-push pull failed.
    """

    status: SyncStatus
    path: str | None = None
    error: Exception | None = None
    pull_failed: bool = False

    @property
    def ok(self) -> bool:
        return self.status is SyncStatus.SUCCESS


@dataclass(frozen=True)
class RepositoryHandle:
    """Identifies the working copy and the remote it mirrors."""

    path: Path
    remote_url: str
    username: str = ""
    token: str = ""
    remote_name: str = "origin"
    branch: str = "main"
    inbox_dir: str = "00_inbox"
    user_name: str = "ObsidianMemoBot"
    user_email: str = "bot@example.com"

    @classmethod
    def from_config(cls, config: Config) -> "RepositoryHandle":
        return cls(
            path=Path(config.repo.path).expanduser().resolve(),
            remote_url=config.repo.remote_url,
            username=config.auth.username,
            token=config.auth.token,
            remote_name=config.repo.remote_name,
            branch=config.repo.branch,
            inbox_dir=config.repo.inbox_dir,
            user_name=config.identity.name,
            user_email=config.identity.email,
        )

    @property
    def authenticated_url(self) -> str:
        if not (self.username and self.token):
            return self.remote_url
        return build_authenticated_url(self.remote_url, self.username, self.token)

    @property
    def display_url(self) -> str:
        """The remote URL without credentials, safe for logs."""
        return strip_credentials(self.remote_url)

    @property
    def inbox_path(self) -> Path:
        return self.path / self.inbox_dir


@dataclass(frozen=True)
class SyncPolicy:
    """Decisions applied when the working copy is not in a clean, current state.

    Attributes:
        auto_commit_drift (bool): Commit uncommitted changes at bootstrap so the
            rebase-pull runs on a clean tree.
        abort_on_pull_failure (bool): Stop a publish when its pre-push pull fails.
            When False the note is still committed and a push is attempted.
    """

    auto_commit_drift: bool = True
    abort_on_pull_failure: bool = False


class RepositoryManager:
    """Sole owner of the working copy directory.

    All operations are serialized by an internal lock so overlapping callers
    (e.g. two notes captured in the same second) never run git concurrently
    on the same tree.
    """

    def __init__(
        self,
        handle: RepositoryHandle,
        policy: SyncPolicy | None = None,
        git_timeout: float | None = None,
    ):
        self.handle = handle
        self.policy = policy or SyncPolicy()
        self.git_timeout = git_timeout
        self._lock = threading.Lock()
        self.local_only = False

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def ensure_ready(self) -> bool:
        """Clones or reconciles the working copy. Safe to call repeatedly.

        Returns:
            bool: True if the working copy is synced with the remote,
                  False if it was left in whatever local state resulted.
        """
        with self._lock:
            synced = False
            try:
                if (self.handle.path / ".git").exists():
                    logger.info(
                        f"Vault exists at {self.handle.path}, reconciling with "
                        f"{self.handle.display_url}..."
                    )
                    self._reconcile()
                    logger.info("Vault repository updated.")
                else:
                    logger.info(f"Cloning vault from {self.handle.display_url}...")
                    self._clone()
                    logger.info(f"Vault cloned into {self.handle.path}.")
                self.local_only = False
                synced = True
            except CloneError as e:
                self.local_only = True
                logger.error(f"CLONE ERROR: {e}")
                logger.warning("Sync disabled for this session; notes stay local.")
            except SyncError as e:
                logger.error(f"SYNC ERROR ({type(e).__name__}): {e}")
                logger.warning("Continuing with the current local state.")
            except Exception as e:
                logger.critical(f"CRITICAL during bootstrap: {e}")

            try:
                self.handle.inbox_path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error(f"Could not create inbox {self.handle.inbox_path}: {e}")
            return synced

    def _clone(self) -> GitRepo:
        try:
            repo = GitRepo.clone(
                self.handle.authenticated_url, self.handle.path, self.git_timeout
            )
        except (GitError, OSError) as e:
            raise CloneError(str(e)) from e
        self._set_identity(repo)
        return repo

    def _reconcile(self) -> None:
        repo = self._open()
        self._set_identity(repo)
        self._reset_remote(repo)
        if self.policy.auto_commit_drift:
            self._commit_drift(repo)
        self._pull(repo)

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(self, relative_path: str | Path) -> SyncAttemptResult:
        """Commits and pushes one note that is already written to disk.

        The file itself is never touched: whatever the outcome, it stays in
        the working copy exactly as written.

        Args:
            relative_path (str | Path): The note path, relative to the repo root.

        Returns:
            SyncAttemptResult: SUCCESS, PUSH_FAILED_LOCAL_SAVED for any git
                failure, or FATAL_LOCAL_ERROR for anything unexpected.
        """
        rel = Path(relative_path).as_posix()
        filename = Path(rel).name
        result = SyncAttemptResult(SyncStatus.SUCCESS, path=rel)

        with self._lock:
            try:
                if self.local_only:
                    logger.warning("Sync disabled for this session, skipping pull/push.")
                    raise CloneError("Working copy was not cloned at startup")
                repo = self._open()
                self._ensure_authenticated_remote(repo)

                try:
                    self._pull(repo)
                except PullError as e:
                    result.pull_failed = True
                    if self.policy.abort_on_pull_failure:
                        raise
                    logger.warning(f"PULL FAILED, continuing with push: {e}")

                self._stage_and_commit(repo, rel, filename)
                self._push(repo)
                logger.info(f"SUCCESS: {rel} pushed to {self.handle.branch}.")

            except SyncError as e:
                logger.error(f"SYNC ERROR ({type(e).__name__}) for {rel}: {e}")
                logger.info(f"File saved locally but not pushed: {rel}")
                result.status = SyncStatus.PUSH_FAILED_LOCAL_SAVED
                result.error = e
            except Exception as e:
                logger.critical(f"CRITICAL while publishing {rel}: {e}")
                result.status = SyncStatus.FATAL_LOCAL_ERROR
                result.error = e

        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _open(self) -> GitRepo:
        try:
            return GitRepo(self.handle.path, timeout=self.git_timeout)
        except ValueError as e:
            raise CloneError(str(e)) from e

    def _set_identity(self, repo: GitRepo) -> None:
        try:
            repo.set_config("user.name", self.handle.user_name)
            repo.set_config("user.email", self.handle.user_email)
        except GitError as e:
            raise RemoteConfigError(f"Could not set committer identity: {e}") from e

    def _reset_remote(self, repo: GitRepo) -> None:
        """Replaces the remote with its authenticated form."""
        name = self.handle.remote_name
        if not self.handle.remote_url:
            logger.warning(f"No remote URL configured, leaving remote {name} unchanged.")
            return
        try:
            if not repo.remove_remote(name):
                logger.info(f"Remote {name} does not exist, skipping removal.")
            repo.add_remote(name, self.handle.authenticated_url)
        except GitError as e:
            raise RemoteConfigError(f"Could not configure remote {name}: {e}") from e
        logger.info(f"Updated remote {name} with authentication.")

    def _ensure_authenticated_remote(self, repo: GitRepo) -> None:
        if not self.handle.remote_url:
            logger.warning(
                f"No remote URL configured, leaving remote {self.handle.remote_name} unchanged."
            )
            return
        current = repo.get_remote_url(self.handle.remote_name)
        if current != self.handle.authenticated_url:
            logger.info("Updating remote URL with authentication...")
            self._reset_remote(repo)

    def _commit_drift(self, repo: GitRepo) -> bool:
        try:
            if not repo.status_porcelain():
                return False
            repo.add_all()
            repo.commit(AUTO_COMMIT_MESSAGE)
        except GitError as e:
            raise DriftCommitError(str(e)) from e
        logger.info("Auto-committed local changes before pull.")
        return True

    def _pull(self, repo: GitRepo) -> None:
        try:
            repo.pull_rebase(self.handle.remote_name, self.handle.branch)
        except GitError as e:
            raise PullError(str(e)) from e

    def _stage_and_commit(self, repo: GitRepo, rel: str, filename: str) -> None:
        try:
            repo.add(rel)
            repo.commit(COMMIT_MESSAGE_TEMPLATE.format(filename=filename))
        except GitError as e:
            raise StageOrCommitError(str(e)) from e

    def _push(self, repo: GitRepo) -> None:
        try:
            repo.push(self.handle.remote_name, self.handle.branch)
        except GitError as e:
            raise PushError(str(e)) from e

