import datetime
import logging

from .constants import APP_NAME
from .notes import MessageReceived, write_note
from .sync import RepositoryManager, SyncAttemptResult, SyncStatus

logger = logging.getLogger(APP_NAME)


class NoteCapture:
    """Writes a captured message into the vault inbox and publishes it.

    Attributes:
        manager (RepositoryManager): Owner of the working copy.
        tz (datetime.tzinfo): Zone used for filenames and note headers.
    """

    def __init__(
        self,
        manager: RepositoryManager,
        tz: datetime.tzinfo = datetime.timezone.utc,
    ):
        self.manager = manager
        self.tz = tz

    def handle(self, event: MessageReceived) -> SyncAttemptResult:
        """Saves `event` as a note, then commits and pushes it.

        Returns:
            SyncAttemptResult: FATAL_LOCAL_ERROR if the note could not be
                written, otherwise the result of the publish.
        """
        logger.info(f"New message from {event.author} in #{event.channel_name}")
        handle = self.manager.handle
        try:
            path = write_note(handle.inbox_path, event, self.tz)
        except OSError as e:
            logger.error(f"WRITE ERROR: could not save note from {event.author}: {e}")
            return SyncAttemptResult(SyncStatus.FATAL_LOCAL_ERROR, error=e)

        return self.manager.publish(path.relative_to(handle.path))
