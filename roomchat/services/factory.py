# roomchat/services/factory.py

from __future__ import annotations

import logging
from dataclasses import dataclass

from roomchat.core.config import Settings
from roomchat.services.blob_store import LocalBlobStore
from roomchat.services.memory_store import InMemoryMembershipStore, InMemoryMessageStore
from roomchat.services.room_directory import RoomDirectory
from roomchat.services.session import ChatSession
from roomchat.services.stores import BlobStore, MembershipStore, MessageStore

logger = logging.getLogger(__name__)


@dataclass
class Stores:
    """The three collaborators a ChatSession needs, built once per process."""

    messages: MessageStore
    members: MembershipStore
    blobs: BlobStore

    @property
    def directory(self) -> RoomDirectory:
        return RoomDirectory(self.members)

    def new_session(self, system_sender: str | None = None) -> ChatSession:
        return ChatSession(self.messages, self.directory, self.blobs, system_sender=system_sender)

    async def close(self) -> None:
        await self.messages.close()
        await self.members.close()


async def build_stores(settings: Settings) -> Stores:
    """Pick the store backend named by STORE_BACKEND."""
    blobs = LocalBlobStore(settings.BLOB_DIR, url_prefix=settings.FILES_URL_PREFIX)

    if settings.STORE_BACKEND == "redis":
        from roomchat.services.redis_store import create_redis_stores

        messages, members = await create_redis_stores()
        logger.info("Using Redis store backend")
        return Stores(messages=messages, members=members, blobs=blobs)

    if settings.STORE_BACKEND != "memory":
        raise ValueError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND!r}")
    logger.info("Using in-memory store backend")
    return Stores(messages=InMemoryMessageStore(), members=InMemoryMembershipStore(), blobs=blobs)
