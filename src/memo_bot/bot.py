"""Discord listener that feeds one channel into the note pipeline."""

import asyncio
import logging
from typing import Any

import discord

from .capture import NoteCapture
from .constants import APP_NAME
from .notes import MessageReceived
from .report import acknowledgment

logger = logging.getLogger(APP_NAME)


def should_capture(message: Any, channel_id: int) -> bool:
    """Accepts human messages posted in the configured channel only."""
    if message.author.bot:
        return False
    return message.channel.id == channel_id


def event_from_message(message: Any) -> MessageReceived:
    """Copies the fields the note pipeline needs out of a `discord.Message`."""
    return MessageReceived(
        author=message.author.name,
        channel_id=message.channel.id,
        content=message.content,
        created_at=message.created_at,
        channel_name=getattr(message.channel, "name", str(message.channel.id)),
    )


def build_intents() -> discord.Intents:
    intents = discord.Intents.default()
    intents.guilds = True
    intents.guild_messages = True
    intents.message_content = True
    return intents


class MemoClient(discord.Client):
    """Discord client that turns channel messages into vault notes.

    Attributes:
        capture (NoteCapture): The pipeline run for every accepted message.
        channel_id (int): The only channel listened to.
    """

    def __init__(self, capture: NoteCapture, channel_id: int, **options: Any):
        options.setdefault("intents", build_intents())
        super().__init__(**options)
        self.capture = capture
        self.channel_id = channel_id

    async def on_ready(self) -> None:
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Monitoring channel ID: {self.channel_id}")

    async def on_message(self, message: discord.Message) -> None:
        if not should_capture(message, self.channel_id):
            return

        event = event_from_message(message)
        # Git work blocks; keep it off the event loop.
        result = await asyncio.to_thread(self.capture.handle, event)

        try:
            await message.add_reaction(acknowledgment(result.status))
        except discord.HTTPException as e:
            logger.warning(f"Could not react to message {message.id}: {e}")

    async def on_error(self, event_method: str, *args: Any, **kwargs: Any) -> None:
        logger.exception(f"Discord client error in {event_method}")
