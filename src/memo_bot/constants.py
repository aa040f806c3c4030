import os
from pathlib import Path

"""Global constants and path definitions for Memo Bot.

This module defines the filesystem layout (adhering to XDG standards where applicable),
application identifiers, and the default git and note conventions used across the
application.
"""

# --- Identity ---
APP_NAME = "memo-bot"
"""str: The human-readable application name (also the logger name)."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "memo-bot"
"""Path: The directory for runtime state data (logs)."""

LOG_FILE = STATE_DIR / "bot.log"
"""Path: The file path for the daemon process logs."""

# --- Configuration Paths ---
CONFIG_DIR: Path = Path.home() / ".config/memo-bot"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

ENV_FILE: Path = Path(".env")
"""Path: The dotenv file read from the working directory at startup."""

# --- Git / Note Conventions ---
DEFAULT_REPO_PATH = "./obsidian"
"""str: Where the vault working copy lives unless configured otherwise."""

DEFAULT_REMOTE = "origin"
DEFAULT_BRANCH = "main"

INBOX_DIR = "00_inbox"
"""str: Vault subdirectory that receives new notes."""

GITHUB_PREFIX = "https://github.com/"
"""str: The only remote prefix that receives embedded credentials."""

AUTO_COMMIT_MESSAGE = "Auto-commit: save local changes before pull"
COMMIT_MESSAGE_TEMPLATE = "Add memo: {filename}"

NOTE_SOURCE = "discord"
"""str: Suffix used in note filenames (`<timestamp>_discord.md`)."""

NOTE_TAGS = "#discord #memo"

FILENAME_TIME_FORMAT = "%Y%m%d_%H%M%S"
DISPLAY_TIME_FORMAT = "%Y/%m/%d %H:%M:%S"
