# roomchat/services/memory_store.py

from __future__ import annotations

import itertools
import logging
from typing import Dict, List, Set

from roomchat.models.models import Member, Message
from roomchat.services.stores import (
    BlobStore,
    MembershipStore,
    MessageStore,
    SequenceCallback,
    Subscription,
)

logger = logging.getLogger(__name__)

# ============================================================================
# IN-MEMORY MESSAGE STORE
# ============================================================================

class InMemoryMessageStore(MessageStore):
    """
    Single-process message store.

    Data Structures:
        messages: Maps room_id -> ordered list of stored messages
        subscriptions: Maps room_id -> Set of live Subscription handles

    Order is arrival order at the store; ids come from a process-wide
    counter, zero-padded so they also sort in that order.

    Like a real-time database, subscribing delivers the current sequence
    straight away, and every append or delete pushes the full sequence to
    every subscriber of that room.
    """

    def __init__(self) -> None:
        self.messages: Dict[str, List[Message]] = {}
        self.subscriptions: Dict[str, Set[Subscription]] = {}
        self._ids = itertools.count(1)

    async def append(self, room_id: str, message: Message) -> str:
        message_id = f"{next(self._ids):012d}"
        stored = message.model_copy(update={"id": message_id})
        self.messages.setdefault(room_id, []).append(stored)
        logger.debug("Appended %s message %s to room %s", stored.type, message_id, room_id)
        self._notify(room_id)
        return message_id

    async def subscribe(self, room_id: str, callback: SequenceCallback) -> Subscription:
        subscription = Subscription(room_id, callback, on_cancel=self._discard)
        self.subscriptions.setdefault(room_id, set()).add(subscription)
        subscription.deliver(self.messages.get(room_id, []))
        return subscription

    async def delete_message(self, room_id: str, message_id: str) -> None:
        existing = self.messages.get(room_id, [])
        remaining = [m for m in existing if m.id != message_id]
        if len(remaining) != len(existing):
            self.messages[room_id] = remaining
            self._notify(room_id)

    async def list_messages(self, room_id: str) -> List[Message]:
        return list(self.messages.get(room_id, []))

    def _notify(self, room_id: str) -> None:
        snapshot = list(self.messages.get(room_id, []))
        # Copy to avoid modification during iteration
        for subscription in list(self.subscriptions.get(room_id, ())):
            subscription.deliver(snapshot)

    def _discard(self, subscription: Subscription) -> None:
        subscribers = self.subscriptions.get(subscription.room_id)
        if subscribers is not None:
            subscribers.discard(subscription)
            if not subscribers:
                del self.subscriptions[subscription.room_id]


# ============================================================================
# IN-MEMORY MEMBERSHIP + BLOB STORES
# ============================================================================

class InMemoryMembershipStore(MembershipStore):
    """Maps room_id -> {member_id: Member}."""

    def __init__(self) -> None:
        self.rooms: Dict[str, Dict[str, Member]] = {}

    async def upsert_member(self, room_id: str, member_id: str, record: Member) -> None:
        self.rooms.setdefault(room_id, {})[member_id] = record

    async def remove_member(self, room_id: str, member_id: str) -> None:
        self.rooms.get(room_id, {}).pop(member_id, None)

    async def list_members(self, room_id: str) -> List[Member]:
        return list(self.rooms.get(room_id, {}).values())


class InMemoryBlobStore(BlobStore):
    """Keeps uploads in a dict; locators look like ``memory://ROOM/0001_name``."""

    def __init__(self) -> None:
        self.blobs: Dict[str, bytes] = {}
        self._ids = itertools.count(1)

    async def upload(self, room_id: str, data: bytes, file_name: str) -> str:
        locator = f"memory://{room_id}/{next(self._ids):04d}_{file_name}"
        self.blobs[locator] = bytes(data)
        return locator
