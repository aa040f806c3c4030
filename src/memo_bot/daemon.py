import logging
import sys
from logging.handlers import RotatingFileHandler

from .bot import MemoClient
from .capture import NoteCapture
from .config import ENV_VARS, SECRET_KEYS, Config
from .constants import APP_NAME, LOG_FILE
from .liveness import start_liveness_server
from .notes import resolve_timezone
from .sync import RepositoryHandle, RepositoryManager

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)


def setup_logging(interactive: bool, max_log_size: int = 5 * 1024 * 1024) -> None:
    """Configures the logging subsystem.

    Args:
        interactive (bool): If True, logs to stdout. If False, logs to stderr and
                            to a rotating log file.
        max_log_size (int, optional): Bytes before the log file is rotated.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )

    # Always log to a stream (captured by systemd/containers).
    stream_handler = logging.StreamHandler(
        sys.stderr if not interactive else sys.stdout
    )
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if not interactive:
        try:
            LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                LOG_FILE,
                maxBytes=max_log_size,
                backupCount=5,
            )
        except OSError as e:
            logger.warning(f"File logging disabled, cannot open {LOG_FILE}: {e}")
            return
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def log_environment(config: Config) -> None:
    """Reports which environment-backed settings are present, never their secrets."""
    logger.info("Environment check:")
    for var, (section, key) in ENV_VARS.items():
        value = getattr(getattr(config, section), key)
        if (section, key) in SECRET_KEYS or not value:
            shown = "SET" if value else "NOT SET"
        else:
            shown = value
        logger.info(f"- {var}: {shown}")


def build_manager(config: Config) -> RepositoryManager:
    return RepositoryManager(
        RepositoryHandle.from_config(config),
        git_timeout=config.limits.git_timeout or None,
    )


def bootstrap(manager: RepositoryManager) -> bool:
    """Prepares the working copy once, before any message is accepted.

    Never retries and never raises; a failure leaves the bot running with
    local-only notes.
    """
    try:
        ready = manager.ensure_ready()
    except Exception as e:
        logger.critical(f"CRITICAL bootstrap failure: {e}")
        return False
    if not ready:
        logger.warning("Git sync failed, but bot will continue working locally.")
    return ready


def main(config: Config | None = None, interactive: bool = False) -> None:
    """Runs the bot until the Discord connection is closed.

    Args:
        config (Config | None, optional): Preloaded configuration.
        interactive (bool, optional): Log to stdout only (no log file).
    """
    config = config or Config.load()
    setup_logging(interactive, config.limits.max_log_size)
    log_environment(config)

    manager = build_manager(config)
    bootstrap(manager)

    if config.server.enabled:
        try:
            start_liveness_server(config.server.host, config.server.port)
        except OSError as e:
            logger.error(f"Liveness endpoint not started: {e}")

    capture = NoteCapture(manager, resolve_timezone(config.notes.timezone))
    client = MemoClient(capture, config.discord.channel_id)
    # discord.py would otherwise install its own root handler.
    client.run(config.discord.token, log_handler=None)
