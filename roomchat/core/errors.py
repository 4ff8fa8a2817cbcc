# roomchat/core/errors.py

from __future__ import annotations


class RoomChatError(Exception):
    """Base class for every error the chat core raises."""


class InvalidInput(RoomChatError):
    """Blank display name, room code or message, rejected before any side effect."""


class StoreUnavailable(RoomChatError):
    """A membership or message store call failed."""


class UploadFailed(RoomChatError):
    """The blob store could not take the file; no file message was created."""


class SessionStateError(RoomChatError):
    """Operation not allowed in the session's current state."""


class JoinFailed(RoomChatError):
    """
    Join transition failed. The session is back to DISCONNECTED.

    The underlying error is kept on ``cause`` (and chained as ``__cause__``).
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
