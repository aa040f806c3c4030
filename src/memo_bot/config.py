import logging
import os
import re
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from .constants import (
    APP_NAME,
    CONFIG_FILE,
    DEFAULT_BRANCH,
    DEFAULT_REMOTE,
    DEFAULT_REPO_PATH,
    ENV_FILE,
    INBOX_DIR,
)

logger = logging.getLogger(APP_NAME)


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '100MB') to bytes."""
    if isinstance(value, int):
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


def parse_time(value: int | str) -> int:
    """Converts human-readable time strings (e.g., '2m', '90s') to seconds."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid time format '{value}'")
    if isinstance(value, int):
        return value
    text = str(value).strip().lower()
    if text.isdigit():
        return int(text)
    match = re.match(r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)s?$", text)
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return int(num * multiplier[unit])


def parse_bool(value: bool | str) -> bool:
    """Accepts TOML booleans and the usual environment spellings."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Invalid boolean '{value}'")


@dataclass
class RepoConfig:
    """Vault working copy settings.

    Attributes:
        path (str): Local directory of the working copy.
        remote_url (str): Plain HTTPS URL of the hosted vault repository.
        remote_name (str): Name of the git remote used for pull and push.
        branch (str): The single shared branch notes are pushed to.
        inbox_dir (str): Subdirectory (relative to `path`) receiving new notes.
    """

    path: str = DEFAULT_REPO_PATH
    remote_url: str = ""
    remote_name: str = DEFAULT_REMOTE
    branch: str = DEFAULT_BRANCH
    inbox_dir: str = INBOX_DIR


@dataclass
class AuthConfig:
    """Credentials embedded into the remote URL.

    Attributes:
        username (str): Account name on the hosting service.
        token (str): Pre-formed access token.
    """

    username: str = ""
    token: str = ""


@dataclass
class IdentityConfig:
    """Committer identity written into the working copy's git config."""

    name: str = "ObsidianMemoBot"
    email: str = "bot@example.com"


@dataclass
class DiscordConfig:
    """Chat connection settings.

    Attributes:
        token (str): Bot token used to log in.
        channel_id (int): The only channel whose messages become notes.
    """

    token: str = ""
    channel_id: int = 0


@dataclass
class NotesConfig:
    """Note formatting settings.

    Attributes:
        timezone (str): IANA zone used for filenames and note headers.
    """

    timezone: str = "UTC"


@dataclass
class ServerConfig:
    """Liveness endpoint settings."""

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass
class LimitsConfig:
    """Resource limitation settings.

    Attributes:
        git_timeout (int): Seconds before a single git command is aborted.
        max_log_size (int): Max bytes for log files before rotation.
    """

    git_timeout: int = 120
    max_log_size: int = 5 * 1024 * 1024


# Environment variable -> (section, key).
ENV_VARS: dict[str, tuple[str, str]] = {
    "REPO_PATH": ("repo", "path"),
    "OBSIDIAN_REPO_URL": ("repo", "remote_url"),
    "GITHUB_USERNAME": ("auth", "username"),
    "GITHUB_TOKEN": ("auth", "token"),
    "GIT_USER_NAME": ("identity", "name"),
    "GIT_USER_EMAIL": ("identity", "email"),
    "DISCORD_TOKEN": ("discord", "token"),
    "CHANNEL_ID": ("discord", "channel_id"),
    "NOTE_TIMEZONE": ("notes", "timezone"),
    "PORT": ("server", "port"),
    "GIT_TIMEOUT": ("limits", "git_timeout"),
}

REQUIRED: list[tuple[str, str]] = [
    ("discord", "token"),
    ("discord", "channel_id"),
    ("repo", "remote_url"),
]

SECRET_KEYS = {("auth", "token"), ("discord", "token")}

_PARSERS = {
    "git_timeout": parse_time,
    "max_log_size": parse_size,
    "channel_id": int,
    "port": int,
    "enabled": parse_bool,
}


@dataclass
class Config:
    """Global configuration aggregator.

    Values are resolved once at startup and treated as immutable afterwards.

    Attributes:
        repo (RepoConfig): Working copy and remote settings.
        auth (AuthConfig): Remote credentials.
        identity (IdentityConfig): Committer identity.
        discord (DiscordConfig): Chat connection settings.
        notes (NotesConfig): Note formatting settings.
        server (ServerConfig): Liveness endpoint settings.
        limits (LimitsConfig): Resource limits.
    """

    repo: RepoConfig = field(default_factory=RepoConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)
    discord: DiscordConfig = field(default_factory=DiscordConfig)
    notes: NotesConfig = field(default_factory=NotesConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)

    @classmethod
    def load(
        cls,
        path: Path | None = None,
        env_file: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "Config":
        """Loads and merges configuration from defaults, TOML, dotenv and environment.

        Args:
            path (Path | None): TOML file to read. Defaults to the global CONFIG_FILE.
            env_file (Path | None): Dotenv file to read. Defaults to ENV_FILE.
            environ (Mapping[str, str] | None): Environment mapping. Defaults to
                                                `os.environ`.

        Returns:
            Config: The fully merged configuration object.
        """
        instance = cls()

        # 1. TOML file
        toml_path = path or CONFIG_FILE
        if toml_path.exists():
            instance._merge_from_file(toml_path)

        # 2. Dotenv file, then the real environment (which wins).
        env: dict[str, str] = {}
        dotenv_path = env_file or ENV_FILE
        if dotenv_path.exists():
            env.update(
                {k: v for k, v in dotenv_values(dotenv_path).items() if v is not None}
            )
        env.update(os.environ if environ is None else environ)
        instance._merge_from_env(env)

        return instance

    def _merge_from_file(self, path: Path) -> None:
        """Parses a TOML file and merges it into the current instance."""
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            for section, values in data.items():
                self._merge_section(section, values)

        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
        except Exception as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    def _merge_from_env(self, env: Mapping[str, str]) -> None:
        """Applies the recognised environment variables on top of the file values."""
        updates: dict[str, dict[str, str]] = {}
        for var, (section, key) in ENV_VARS.items():
            value = env.get(var)
            if value:
                updates.setdefault(section, {})[key] = value
        for section, values in updates.items():
            self._merge_section(section, values)

    def _merge_section(self, section: str, values: Any) -> None:
        current = getattr(self, section, None)
        if current is None or not hasattr(current, "__dataclass_fields__"):
            logger.warning(f"Unknown config section [{section}]. Ignoring.")
            return
        if not isinstance(values, dict):
            logger.warning(f"Config section [{section}] is not a table. Ignoring.")
            return
        setattr(self, section, self._update_dataclass(section, current, values))

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: {', '.join(sorted(invalid_keys))}. Ignoring."
            )

        # 2. Process valid keys
        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                parser = _PARSERS.get(k)
                filtered_updates[k] = parser(v) if parser else v
            except (ValueError, TypeError) as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)

    def missing(self) -> list[str]:
        """Lists required settings that are still empty, as `section.key` names."""
        return [
            f"{section}.{key}"
            for section, key in REQUIRED
            if not getattr(getattr(self, section), key)
        ]

    def as_dict(self, mask_secrets: bool = True) -> dict[str, dict[str, Any]]:
        """Flattens the configuration for display, masking tokens by default."""
        result: dict[str, dict[str, Any]] = {}
        for section_field in fields(self):
            section = getattr(self, section_field.name)
            values = {}
            for f in fields(section):
                value = getattr(section, f.name)
                if mask_secrets and (section_field.name, f.name) in SECRET_KEYS:
                    value = "SET" if value else "NOT SET"
                values[f.name] = value
            result[section_field.name] = values
        return result
