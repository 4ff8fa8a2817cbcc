# tests/conftest.py

from __future__ import annotations

from typing import List

import pytest

from roomchat.core.errors import StoreUnavailable, UploadFailed
from roomchat.models.models import Member, Message
from roomchat.services.memory_store import (
    InMemoryBlobStore,
    InMemoryMembershipStore,
    InMemoryMessageStore,
)
from roomchat.services.room_directory import RoomDirectory
from roomchat.services.session import ChatSession


class RecordingMessageStore(InMemoryMessageStore):
    """In-memory store that remembers every call and can be told to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[str] = []
        self.fail_append_when = None
        self.fail_subscribe = False

    async def append(self, room_id: str, message: Message) -> str:
        self.calls.append("append")
        if self.fail_append_when is not None and self.fail_append_when(message):
            raise StoreUnavailable("message store down")
        return await super().append(room_id, message)

    async def subscribe(self, room_id, callback):
        self.calls.append("subscribe")
        if self.fail_subscribe:
            raise ConnectionError("subscription refused")
        return await super().subscribe(room_id, callback)


class RecordingMembershipStore(InMemoryMembershipStore):

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[str] = []
        self.fail_upsert = False
        self.fail_remove = False

    async def upsert_member(self, room_id: str, member_id: str, record: Member) -> None:
        self.calls.append("upsert")
        if self.fail_upsert:
            raise ConnectionError("membership store down")
        await super().upsert_member(room_id, member_id, record)

    async def remove_member(self, room_id: str, member_id: str) -> None:
        self.calls.append("remove")
        if self.fail_remove:
            raise ConnectionError("membership store down")
        await super().remove_member(room_id, member_id)


class FailingBlobStore(InMemoryBlobStore):

    async def upload(self, room_id: str, data: bytes, file_name: str) -> str:
        raise UploadFailed("bucket unavailable")


@pytest.fixture
def message_store() -> RecordingMessageStore:
    return RecordingMessageStore()


@pytest.fixture
def membership_store() -> RecordingMembershipStore:
    return RecordingMembershipStore()


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def directory(membership_store) -> RoomDirectory:
    return RoomDirectory(membership_store)


@pytest.fixture
def make_session(message_store, directory, blob_store):
    def _make(**overrides) -> ChatSession:
        return ChatSession(
            overrides.get("message_store", message_store),
            overrides.get("directory", directory),
            overrides.get("blob_store", blob_store),
        )
    return _make
