import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from memo_bot.capture import NoteCapture
from memo_bot.notes import MessageReceived
from memo_bot.sync import RepositoryHandle, SyncAttemptResult, SyncStatus


@pytest.fixture
def manager(tmp_path: Path) -> MagicMock:
    manager = MagicMock()
    manager.handle = RepositoryHandle(path=tmp_path, remote_url="unused")
    manager.publish.side_effect = lambda rel: SyncAttemptResult(
        SyncStatus.SUCCESS, path=Path(rel).as_posix()
    )
    return manager


@pytest.fixture
def event() -> MessageReceived:
    return MessageReceived(
        author="alice",
        channel_id=1,
        content="Buy milk",
        created_at=datetime.datetime(2026, 1, 2, 3, 4, 5, tzinfo=datetime.timezone.utc),
        channel_name="general",
    )


def test_handle_writes_then_publishes(
    manager: MagicMock, event: MessageReceived, tmp_path: Path
) -> None:
    result = NoteCapture(manager).handle(event)

    assert result.status is SyncStatus.SUCCESS
    manager.publish.assert_called_once_with(
        Path("00_inbox/20260102_030405_discord.md")
    )
    assert (tmp_path / "00_inbox" / "20260102_030405_discord.md").exists()


def test_handle_reports_sync_failure_from_publish(
    manager: MagicMock, event: MessageReceived, tmp_path: Path
) -> None:
    manager.publish.side_effect = None
    manager.publish.return_value = SyncAttemptResult(
        SyncStatus.PUSH_FAILED_LOCAL_SAVED
    )

    result = NoteCapture(manager).handle(event)

    assert result.status is SyncStatus.PUSH_FAILED_LOCAL_SAVED
    assert (tmp_path / "00_inbox" / "20260102_030405_discord.md").exists()


def test_handle_write_failure_is_fatal(
    manager: MagicMock, event: MessageReceived, tmp_path: Path
) -> None:
    (tmp_path / "00_inbox").write_text("a file where the inbox should be")

    result = NoteCapture(manager).handle(event)

    assert result.status is SyncStatus.FATAL_LOCAL_ERROR
    assert isinstance(result.error, OSError)
    manager.publish.assert_not_called()


def test_handle_uses_configured_timezone(
    manager: MagicMock, event: MessageReceived
) -> None:
    tz = datetime.timezone(datetime.timedelta(hours=-5))

    NoteCapture(manager, tz).handle(event)

    (rel,), _ = manager.publish.call_args
    assert Path(rel).name == "20260101_220405_discord.md"
