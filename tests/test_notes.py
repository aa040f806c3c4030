import datetime
from pathlib import Path

import pytest

from memo_bot.notes import (
    MessageReceived,
    format_note,
    note_filename,
    resolve_timezone,
    write_note,
)

POSTED = datetime.datetime(2026, 3, 14, 9, 26, 53, tzinfo=datetime.timezone.utc)


@pytest.fixture
def event() -> MessageReceived:
    return MessageReceived(
        author="alice",
        channel_id=1234,
        content="Buy milk",
        created_at=POSTED,
        channel_name="general",
    )


def test_note_end_to_end(tmp_path: Path, event: MessageReceived) -> None:
    """A message from alice in #general becomes a tagged note named after its time."""
    path = write_note(tmp_path / "00_inbox", event)

    assert path.name == "20260314_092653_discord.md"
    text = path.read_text(encoding="utf-8")
    assert "**Sender**: alice" in text
    assert "**Channel**: general" in text
    assert "\nBuy milk\n" in text
    assert text.endswith("---\n#discord #memo\n")


def test_format_note_template(event: MessageReceived) -> None:
    assert format_note(event) == (
        "# Discord memo - 2026/03/14 09:26:53\n"
        "\n"
        "**Sender**: alice\n"
        "**Channel**: general\n"
        "**Posted**: 2026/03/14 09:26:53\n"
        "\n"
        "Buy milk\n"
        "\n"
        "---\n"
        "#discord #memo\n"
    )


def test_timezone_applies_to_filename_and_header(event: MessageReceived) -> None:
    jst = datetime.timezone(datetime.timedelta(hours=9))

    assert note_filename(event, jst) == "20260314_182653_discord.md"
    assert "# Discord memo - 2026/03/14 18:26:53" in format_note(event, jst)


def test_naive_timestamps_are_utc(event: MessageReceived) -> None:
    naive = MessageReceived(
        author="alice",
        channel_id=1,
        content="x",
        created_at=POSTED.replace(tzinfo=None),
        channel_name="general",
    )
    assert note_filename(naive) == note_filename(event)


def test_write_note_never_overwrites(tmp_path: Path, event: MessageReceived) -> None:
    first = write_note(tmp_path, event)
    second = write_note(tmp_path, event)
    third = write_note(tmp_path, event)

    assert first.name == "20260314_092653_discord.md"
    assert second.name == "20260314_092653_2_discord.md"
    assert third.name == "20260314_092653_3_discord.md"
    assert first.read_text(encoding="utf-8") == second.read_text(encoding="utf-8")


def test_write_note_raises_when_inbox_unusable(
    tmp_path: Path, event: MessageReceived
) -> None:
    blocker = tmp_path / "00_inbox"
    blocker.write_text("not a directory")

    with pytest.raises(OSError):
        write_note(blocker, event)


def test_resolve_timezone(caplog: pytest.LogCaptureFixture) -> None:
    assert resolve_timezone("UTC") is datetime.timezone.utc
    assert resolve_timezone("utc") is datetime.timezone.utc

    assert resolve_timezone("Not/A_Zone") is datetime.timezone.utc
    assert "Unknown timezone 'Not/A_Zone'" in caplog.text
