"""Error taxonomy surfaced by the status playback controller."""
from __future__ import annotations

from uuid import UUID


class StatusViewerError(RuntimeError):
    """Base class for errors the viewer reports to the presentation layer."""

    def __init__(self, message: str, *, item_id: UUID | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.item_id = item_id


class LoadFailure(StatusViewerError):
    """A timeline or comment page could not be fetched. Retryable."""

    retryable = True

    def __init__(self, message: str, *, author_id: UUID | None = None, item_id: UUID | None = None) -> None:
        super().__init__(message, item_id=item_id)
        self.author_id = author_id


class MutationFailure(StatusViewerError):
    """A reaction, comment or view was rejected; local state has been reverted."""

    retryable = False

    def __init__(self, message: str, *, kind: str, item_id: UUID | None = None) -> None:
        super().__init__(message, item_id=item_id)
        self.kind = kind


class InvalidInput(StatusViewerError, ValueError):
    """Input rejected before any remote call was made."""


class StaleTick(StatusViewerError):
    """A frame callback fired for a playback position that is no longer current."""


__all__ = ["StatusViewerError", "LoadFailure", "MutationFailure", "InvalidInput", "StaleTick"]
