# roomchat/services/stores.py

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from roomchat.models.models import Member, Message

logger = logging.getLogger(__name__)

SequenceCallback = Callable[[List[Message]], None]

# ============================================================================
# SUBSCRIPTION HANDLE
# ============================================================================

class Subscription:
    """
    Handle for one live subscription to a room's message sequence.

    ``cancel()`` is synchronous and idempotent: once it returns, the
    callback is never invoked again. Store adapters deliver through
    :meth:`deliver` so a cancelled handle drops late deliveries.
    """

    def __init__(self, room_id: str, callback: SequenceCallback,
                 on_cancel: Optional[Callable[["Subscription"], None]] = None) -> None:
        self.room_id = room_id
        self.callback = callback
        self._on_cancel = on_cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def deliver(self, messages: List[Message]) -> None:
        if not self._active:
            return
        try:
            self.callback(list(messages))
        except Exception:
            logger.exception("Subscriber callback failed for room %s", self.room_id)

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._on_cancel is not None:
            self._on_cancel(self)
        logger.debug("Subscription to room %s cancelled", self.room_id)


# ============================================================================
# ADAPTER CONTRACTS
# ============================================================================

class MessageStore(ABC):
    """Append-only, store-ordered message log per room with live subscription."""

    @abstractmethod
    async def append(self, room_id: str, message: Message) -> str:
        """Append a message and return the id the store assigned to it."""

    @abstractmethod
    async def subscribe(self, room_id: str, callback: SequenceCallback) -> Subscription:
        """
        Watch a room. ``callback`` receives the complete ordered sequence
        each time the room's messages change.
        """

    def unsubscribe(self, subscription: Subscription | None) -> None:
        if subscription is not None:
            subscription.cancel()

    @abstractmethod
    async def delete_message(self, room_id: str, message_id: str) -> None:
        ...

    @abstractmethod
    async def list_messages(self, room_id: str) -> List[Message]:
        ...

    async def close(self) -> None:
        return None


class MembershipStore(ABC):

    @abstractmethod
    async def upsert_member(self, room_id: str, member_id: str, record: Member) -> None:
        ...

    @abstractmethod
    async def remove_member(self, room_id: str, member_id: str) -> None:
        """Removing an absent member is not an error."""

    @abstractmethod
    async def list_members(self, room_id: str) -> List[Member]:
        ...

    async def close(self) -> None:
        return None


class BlobStore(ABC):

    @abstractmethod
    async def upload(self, room_id: str, data: bytes, file_name: str) -> str:
        """Store the file and return an opaque locator for it."""
