import logging
import os
import subprocess
from pathlib import Path

from .constants import APP_NAME
from .remote import redact_credentials

logger = logging.getLogger(APP_NAME)


class GitError(RuntimeError):
    """Raised when a git command exits non-zero or exceeds its timeout."""


def _git_env() -> dict[str, str]:
    """Builds the subprocess environment for non-interactive git calls."""
    env = os.environ.copy()
    # Never block on a credential prompt; a bad token must fail fast.
    env["GIT_TERMINAL_PROMPT"] = "0"
    env["GIT_SSH_COMMAND"] = "ssh -o BatchMode=yes"
    return env


def _execute(args: list[str], cwd: Path, timeout: float | None) -> str:
    try:
        res = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
            env=_git_env(),
            timeout=timeout,
        )
        return res.stdout.strip()
    except subprocess.CalledProcessError as e:
        raise GitError(redact_credentials(f"Git error: {e.stderr or e}")) from e
    except subprocess.TimeoutExpired as e:
        raise GitError(
            redact_credentials(f"Git timeout after {timeout}s: {' '.join(e.cmd)}")
        ) from e


class GitRepo:
    """A wrapper around the Git command-line interface for a specific repository.

    This class provides methods to execute the handful of Git operations the
    note synchronizer needs, abstracting away the command construction and
    output handling.

    Attributes:
        path (Path): The file system path to the repository root.
        timeout (float | None): Seconds before any single git command is aborted.
    """

    def __init__(self, path: Path, timeout: float | None = None):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.
            timeout (float | None, optional): Per-command timeout in seconds.
                                              Defaults to None (no timeout).

        Raises:
            ValueError: If the specified path does not contain a .git directory.
        """
        self.path = path
        self.timeout = timeout
        if not (self.path / ".git").exists():
            raise ValueError(f"Not a git repository: {self.path}")

    @classmethod
    def clone(cls, url: str, path: Path, timeout: float | None = None) -> "GitRepo":
        """Clones a remote into `path` and returns a wrapper for the new copy.

        Args:
            url (str): The remote URL (may carry embedded credentials).
            path (Path): The destination directory. Must be absent or empty.
            timeout (float | None, optional): Timeout for the clone and for the
                                              returned instance's commands.

        Returns:
            GitRepo: The wrapper for the freshly cloned repository.

        Raises:
            GitError: If the clone fails.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        _execute(["clone", url, str(path)], cwd=path.parent, timeout=timeout)
        return cls(path, timeout=timeout)

    def _run(self, args: list[str]) -> str:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.

        Returns:
            str: The stripped stdout of the command.

        Raises:
            GitError: If the git command fails or times out.
        """
        return _execute(args, cwd=self.path, timeout=self.timeout)

    def current_branch(self) -> str:
        """Retrieves the name of the currently checked-out branch."""
        return self._run(["branch", "--show-current"])

    def set_config(self, key: str, value: str) -> None:
        """Writes a repository-local git config value (e.g. `user.name`)."""
        self._run(["config", key, value])

    def get_remote_url(self, name: str) -> str | None:
        """Returns the fetch URL of a remote, or None if it is not configured."""
        try:
            return self._run(["remote", "get-url", name])
        except GitError as e:
            logger.debug(f"No URL for remote '{name}': {e}")
            return None

    def remove_remote(self, name: str) -> bool:
        """Removes a remote.

        Returns:
            bool: False if the remote did not exist, True if it was removed.
        """
        try:
            self._run(["remote", "remove", name])
            return True
        except GitError as e:
            logger.debug(f"Remote '{name}' does not exist, skipping removal: {e}")
            return False

    def add_remote(self, name: str, url: str) -> None:
        """Registers a new remote."""
        self._run(["remote", "add", name, url])

    def status_porcelain(self, path: str | None = None) -> list[str]:
        """Returns the porcelain (machine-readable) status of the repository.

        Args:
            path (Optional[str], optional): A specific path to check status for.
                                            Defaults to None.

        Returns:
            list[str]: A list of status lines returned by `git status --porcelain`.
        """
        cmd = ["status", "--porcelain"]
        if path:
            cmd.append(path)
        output = self._run(cmd)
        return output.splitlines() if output else []

    def add(self, path: str) -> None:
        """Stages exactly one path."""
        self._run(["add", "--", path])

    def add_all(self) -> None:
        """
        Stages all changes (modified, deleted, and untracked files)
        in the working directory.
        """
        self._run(["add", "."])

    def commit(self, message: str) -> None:
        """Creates a new commit with the provided message."""
        self._run(["commit", "-m", message])

    def pull_rebase(self, remote: str, branch: str) -> None:
        """Fetches `remote/branch` and replays local commits on top of it."""
        self._run(["pull", "--rebase", remote, branch])

    def push(self, remote: str, branch: str) -> None:
        """Pushes the local branch to the remote branch of the same name."""
        self._run(["push", remote, branch])

    def get_last_commit_time(self, rev: str = "HEAD") -> str:
        """Gets the relative time since the last commit (e.g. '2 hours ago')."""
        return self._run(["log", "-1", "--format=%cr", rev])
