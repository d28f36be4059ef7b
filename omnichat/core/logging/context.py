"""
Processing context management using contextvars.

The webhook router and the campaign engine set the channel and participant
they are working on; every logger obtained through get_logger picks them up
without explicit parameter passing.
"""

from contextvars import ContextVar

_channel_context: ContextVar[str | None] = ContextVar("channel_id", default=None)
_participant_context: ContextVar[str | None] = ContextVar(
    "participant_id", default=None
)


def set_processing_context(
    channel_id: str | int | None = None,
    participant_id: str | None = None,
) -> None:
    """
    Set the processing context for the current async context.

    Args:
        channel_id: Channel currently being processed
        participant_id: External participant (phone number, comment author, ...)
    """
    if channel_id is not None:
        _channel_context.set(str(channel_id))
    if participant_id is not None:
        _participant_context.set(participant_id)


def get_current_channel_context() -> str | None:
    """Get the current channel ID, or None if not set."""
    return _channel_context.get()


def get_current_participant_context() -> str | None:
    """Get the current participant ID, or None if not set."""
    return _participant_context.get()


def clear_processing_context() -> None:
    """Clear the processing context."""
    _channel_context.set(None)
    _participant_context.set(None)


def get_context_info() -> dict[str, str | None]:
    """Current context information for debugging."""
    return {
        "channel_id": get_current_channel_context(),
        "participant_id": get_current_participant_context(),
    }
