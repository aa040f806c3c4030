"""Memo Bot: Discord messages as notes in a git-synced vault.

This package provides the Discord listener, the note formatter, and the
repository manager that keeps a local vault working copy reconciled with its
remote branch.
"""

from . import (
    bot,
    capture,
    cli,
    config,
    constants,
    daemon,
    git_wrapper,
    liveness,
    notes,
    remote,
    report,
    sync,
)

__all__ = [
    "bot",
    "capture",
    "cli",
    "config",
    "constants",
    "daemon",
    "git_wrapper",
    "liveness",
    "notes",
    "remote",
    "report",
    "sync",
]
