# roomchat/services/redis_store.py

from __future__ import annotations

import asyncio
import json
import logging
from typing import List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from roomchat.core.config import settings
from roomchat.core.errors import StoreUnavailable
from roomchat.models.models import Member, Message, parse_message
from roomchat.services.stores import (
    MembershipStore,
    MessageStore,
    SequenceCallback,
    Subscription,
)

logger = logging.getLogger(__name__)


def messages_key(room_id: str) -> str:
    return f"room:{room_id}:messages"


def members_key(room_id: str) -> str:
    return f"room:{room_id}:users"


def room_channel(room_id: str) -> str:
    return f"room:{room_id}"


async def connect_redis(host: str = "localhost", port: int = 6379,
                        access_key: str = "", ssl: bool = False) -> redis.Redis:
    """Establish async connection to Redis."""
    scheme = "rediss" if ssl else "redis"
    auth = f":{access_key}@" if access_key else ""
    client = redis.from_url(f"{scheme}://{auth}{host}:{port}", decode_responses=True)
    try:
        await client.ping()
    except RedisError as e:
        raise StoreUnavailable(f"Redis at {host}:{port} unreachable: {e}") from e
    logger.info(f"✓ Connected to Redis at {host}:{port}")
    return client


# ============================================================================
# REDIS MESSAGE STORE
# ============================================================================

class RedisMessageStore(MessageStore):
    """
    Message log on Redis Streams.

    Each room is one stream (``room:{code}:messages``); XADD ids give the
    store-assigned total order. Every append or delete publishes a change
    notice on ``room:{code}``, and each subscription re-reads the whole
    stream when it sees one.
    """

    def __init__(self, client: redis.Redis) -> None:
        self.client = client
        self._tasks: set[asyncio.Task] = set()

    async def append(self, room_id: str, message: Message) -> str:
        try:
            message_id = await self.client.xadd(
                messages_key(room_id),
                {"data": message.model_dump_json(exclude={"id"})},
            )
        except RedisError as e:
            raise StoreUnavailable(f"append to room {room_id} failed: {e}") from e

        # Stored once XADD returns; the change notice is best-effort
        try:
            await self.client.publish(room_channel(room_id), json.dumps({"event": "append", "id": message_id}))
        except RedisError as e:
            logger.error(f"Change notice for {message_id} in room {room_id} not published: {e}")
        logger.info(f"📤 Appended {message.type} message {message_id} to room {room_id}")
        return message_id

    async def list_messages(self, room_id: str) -> List[Message]:
        try:
            entries = await self.client.xrange(messages_key(room_id))
        except RedisError as e:
            raise StoreUnavailable(f"read of room {room_id} failed: {e}") from e

        messages: List[Message] = []
        for entry_id, fields in entries:
            try:
                payload = json.loads(fields["data"])
                payload["id"] = entry_id
                messages.append(parse_message(payload))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping unreadable entry {entry_id} in room {room_id}: {e}")
        return messages

    async def delete_message(self, room_id: str, message_id: str) -> None:
        try:
            removed = await self.client.xdel(messages_key(room_id), message_id)
        except RedisError as e:
            raise StoreUnavailable(f"delete in room {room_id} failed: {e}") from e

        if removed:
            try:
                await self.client.publish(room_channel(room_id), json.dumps({"event": "delete", "id": message_id}))
            except RedisError as e:
                logger.error(f"Change notice for deleting {message_id} in room {room_id} not published: {e}")

    async def subscribe(self, room_id: str, callback: SequenceCallback) -> Subscription:
        pubsub = self.client.pubsub()
        try:
            await pubsub.subscribe(room_channel(room_id))
            initial = await self.list_messages(room_id)
        except RedisError as e:
            await pubsub.aclose()
            raise StoreUnavailable(f"subscribe to room {room_id} failed: {e}") from e
        except StoreUnavailable:
            await pubsub.aclose()
            raise

        task: Optional[asyncio.Task] = None

        def _stop(_subscription: Subscription) -> None:
            if task is not None:
                task.cancel()

        subscription = Subscription(room_id, callback, on_cancel=_stop)
        subscription.deliver(initial)

        task = asyncio.create_task(self._listen(pubsub, subscription))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"✓ Subscribed to Redis channel '{room_channel(room_id)}'")
        return subscription

    async def _listen(self, pubsub, subscription: Subscription) -> None:
        try:
            async for message in pubsub.listen():
                if not subscription.active:
                    break
                if message["type"] != "message":
                    continue
                try:
                    sequence = await self.list_messages(subscription.room_id)
                except StoreUnavailable as e:
                    logger.error(f"Error refreshing room {subscription.room_id}: {e}")
                    continue
                subscription.deliver(sequence)
        except RedisError as e:
            logger.error(f"Redis listener for room {subscription.room_id} stopped: {e}")
        finally:
            await pubsub.aclose()

    async def close(self) -> None:
        """Close connections."""
        for task in list(self._tasks):
            task.cancel()
        await self.client.aclose()
        logger.info("Redis connection closed")


# ============================================================================
# REDIS MEMBERSHIP STORE
# ============================================================================

class RedisMembershipStore(MembershipStore):
    """Room members in a hash ``room:{code}:users`` keyed by member id."""

    def __init__(self, client: redis.Redis) -> None:
        self.client = client

    async def upsert_member(self, room_id: str, member_id: str, record: Member) -> None:
        try:
            await self.client.hset(members_key(room_id), member_id, record.model_dump_json())
        except RedisError as e:
            raise StoreUnavailable(f"upsert of member {member_id} failed: {e}") from e

    async def remove_member(self, room_id: str, member_id: str) -> None:
        try:
            await self.client.hdel(members_key(room_id), member_id)
        except RedisError as e:
            raise StoreUnavailable(f"removal of member {member_id} failed: {e}") from e

    async def list_members(self, room_id: str) -> List[Member]:
        try:
            records = await self.client.hgetall(members_key(room_id))
        except RedisError as e:
            raise StoreUnavailable(f"member read for room {room_id} failed: {e}") from e
        return [Member.model_validate_json(raw) for raw in records.values()]


async def create_redis_stores() -> tuple[RedisMessageStore, RedisMembershipStore]:
    client = await connect_redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        access_key=settings.REDIS_ACCESS_KEY,
        ssl=settings.REDIS_SSL,
    )
    return RedisMessageStore(client), RedisMembershipStore(client)
