"""Turns chat messages into Markdown note files."""

import datetime
import logging
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .constants import (
    APP_NAME,
    DISPLAY_TIME_FORMAT,
    FILENAME_TIME_FORMAT,
    NOTE_SOURCE,
    NOTE_TAGS,
)

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class MessageReceived:
    """A chat message selected for capture.

    Attributes:
        author (str): Display name of the sender.
        channel_id (int): Channel the message was posted in.
        content (str): The message body.
        created_at (datetime.datetime): When the message was posted (tz-aware).
        channel_name (str): Human-readable channel name.
    """

    author: str
    channel_id: int
    content: str
    created_at: datetime.datetime
    channel_name: str


def resolve_timezone(name: str) -> datetime.tzinfo:
    """Looks up an IANA zone, falling back to UTC on unknown names."""
    if name.upper() == "UTC":
        return datetime.timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.warning(f"Unknown timezone '{name}' ({e}). Using UTC.")
        return datetime.timezone.utc


def _localize(moment: datetime.datetime, tz: datetime.tzinfo) -> datetime.datetime:
    if moment.tzinfo is None:
        # Naive timestamps are taken to be UTC (discord.py always sends aware ones).
        moment = moment.replace(tzinfo=datetime.timezone.utc)
    return moment.astimezone(tz)


def note_filename(
    event: MessageReceived, tz: datetime.tzinfo = datetime.timezone.utc
) -> str:
    """Builds `<yyyyMMdd_HHmmss>_discord.md` from the message timestamp."""
    stamp = _localize(event.created_at, tz).strftime(FILENAME_TIME_FORMAT)
    return f"{stamp}_{NOTE_SOURCE}.md"


def format_note(
    event: MessageReceived, tz: datetime.tzinfo = datetime.timezone.utc
) -> str:
    """Renders the note body (header, sender, channel, time, text, tag line)."""
    stamp = _localize(event.created_at, tz).strftime(DISPLAY_TIME_FORMAT)
    return (
        f"# Discord memo - {stamp}\n"
        "\n"
        f"**Sender**: {event.author}\n"
        f"**Channel**: {event.channel_name}\n"
        f"**Posted**: {stamp}\n"
        "\n"
        f"{event.content}\n"
        "\n"
        "---\n"
        f"{NOTE_TAGS}\n"
    )


def write_note(
    inbox: Path, event: MessageReceived, tz: datetime.tzinfo = datetime.timezone.utc
) -> Path:
    """Writes the note for `event` into `inbox` without overwriting anything.

    Notes posted within the same second get a numeric suffix
    (`..._2_discord.md`) instead of replacing the earlier file.

    Args:
        inbox (Path): Target directory, created if missing.
        event (MessageReceived): The message to store.
        tz (datetime.tzinfo, optional): Zone for the filename and header.

    Returns:
        Path: The path of the written file.

    Raises:
        OSError: If the directory or file cannot be written.
    """
    inbox.mkdir(parents=True, exist_ok=True)
    content = format_note(event, tz)
    base = note_filename(event, tz)
    stem = base.removesuffix(f"_{NOTE_SOURCE}.md")

    target = inbox / base
    counter = 1
    while True:
        try:
            with open(target, "x", encoding="utf-8") as f:
                f.write(content)
            break
        except FileExistsError:
            counter += 1
            target = inbox / f"{stem}_{counter}_{NOTE_SOURCE}.md"

    logger.info(f"Saved note to {target}")
    return target
