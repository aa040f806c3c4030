"""Maps sync outcomes to the reaction shown on the source message."""

from .sync import SyncStatus

ACKNOWLEDGMENTS: dict[SyncStatus, str] = {
    SyncStatus.SUCCESS: "✅",
    SyncStatus.PUSH_FAILED_LOCAL_SAVED: "🔄",  # saved, not synced
    SyncStatus.FATAL_LOCAL_ERROR: "❌",
}


def acknowledgment(status: SyncStatus) -> str:
    """Returns the emoji acknowledging a capture with the given outcome."""
    return ACKNOWLEDGMENTS[status]


def describe(status: SyncStatus) -> str:
    """Human-readable outcome, used by the CLI."""
    return {
        SyncStatus.SUCCESS: "Saved and pushed",
        SyncStatus.PUSH_FAILED_LOCAL_SAVED: "Saved locally, not synced",
        SyncStatus.FATAL_LOCAL_ERROR: "Not saved",
    }[status]
