"""Shared fixtures: a throwaway bare remote seeded with one commit."""

import shutil
import subprocess
from pathlib import Path

import pytest

from memo_bot.sync import RepositoryHandle


def git(*args: str, cwd: Path) -> str:
    """Runs git for test setup/inspection and returns stripped stdout."""
    res = subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    )
    return res.stdout.strip()


def remote_subjects(remote: Path) -> list[str]:
    """Commit subjects on the remote's main branch, newest first."""
    return git("log", "--format=%s", "main", cwd=remote).splitlines()


def remote_changed_files(remote: Path, rev: str = "main") -> list[str]:
    return git("show", "--name-only", "--format=", rev, cwd=remote).splitlines()


@pytest.fixture
def isolated_git(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keeps the developer's global/system git config out of the tests."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    (tmp_path / "gitconfig").write_text(
        "[user]\n\tname = Tester\n\temail = tester@example.com\n"
    )


@pytest.fixture
def remote_repo(tmp_path: Path, isolated_git: None) -> Path:
    """A bare repository whose `main` branch holds a single README commit."""
    seed = tmp_path / "seed"
    seed.mkdir()
    git("init", cwd=seed)
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=seed)
    (seed / "README.md").write_text("# Vault\n")
    git("add", ".", cwd=seed)
    git("commit", "-m", "Initial vault", cwd=seed)

    bare = tmp_path / "remote.git"
    git("clone", "--bare", str(seed), str(bare), cwd=tmp_path)
    return bare


@pytest.fixture
def push_external(tmp_path: Path, remote_repo: Path):
    """Returns a helper that commits a file to the remote from another clone."""
    other = tmp_path / "other"
    git("clone", str(remote_repo), str(other), cwd=tmp_path)

    def _push(name: str, content: str, message: str) -> None:
        git("pull", "--rebase", "origin", "main", cwd=other)
        (other / name).parent.mkdir(parents=True, exist_ok=True)
        (other / name).write_text(content)
        git("add", name, cwd=other)
        git("commit", "-m", message, cwd=other)
        git("push", "origin", "main", cwd=other)

    return _push


@pytest.fixture
def handle(tmp_path: Path, remote_repo: Path) -> RepositoryHandle:
    return RepositoryHandle(
        path=tmp_path / "vault",
        remote_url=str(remote_repo),
        user_name="MemoBot Test",
        user_email="memo@example.com",
    )
