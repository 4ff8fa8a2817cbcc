"""Tests for the Redis store adapters, against a mocked client."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from roomchat.core.errors import StoreUnavailable
from roomchat.models.models import Member, SystemMessage, TextMessage
from roomchat.services.redis_store import (
    RedisMembershipStore,
    RedisMessageStore,
    members_key,
    messages_key,
    room_channel,
)


def stream_entry(entry_id, message):
    return entry_id, {"data": message.model_dump_json(exclude={"id"})}


class FakePubSub:
    """Yields one change notice, then blocks like an idle channel."""

    def __init__(self):
        self.channels = []
        self.closed = False

    async def subscribe(self, channel):
        self.channels.append(channel)

    async def listen(self):
        yield {"type": "subscribe", "data": 1}
        yield {"type": "message", "data": json.dumps({"event": "append"})}
        await asyncio.Event().wait()

    async def aclose(self):
        self.closed = True


class TestRedisMessageStore:

    def test_append_adds_to_stream_and_notifies(self):
        client = AsyncMock()
        client.xadd.return_value = "1700000000000-0"
        store = RedisMessageStore(client)

        message_id = asyncio.run(store.append("ROOM1", SystemMessage(text="alice joined the room")))

        assert message_id == "1700000000000-0"
        key, fields = client.xadd.await_args.args
        assert key == messages_key("ROOM1")
        assert json.loads(fields["data"])["text"] == "alice joined the room"
        channel, notice = client.publish.await_args.args
        assert channel == room_channel("ROOM1")
        assert json.loads(notice)["id"] == message_id

    def test_list_messages_uses_stream_ids_and_skips_bad_entries(self):
        client = AsyncMock()
        client.xrange.return_value = [
            stream_entry("1-0", SystemMessage(text="alice joined the room")),
            ("2-0", {"data": "{not json"}),
            stream_entry("3-0", TextMessage(sender="alice", sender_id="a", text="aGk=", encoded=True)),
        ]
        store = RedisMessageStore(client)

        messages = asyncio.run(store.list_messages("ROOM1"))

        assert [m.id for m in messages] == ["1-0", "3-0"]
        assert isinstance(messages[1], TextMessage)
        assert messages[1].encoded is True

    def test_redis_errors_become_store_unavailable(self):
        client = AsyncMock()
        client.xadd.side_effect = RedisConnectionError("connection refused")
        store = RedisMessageStore(client)

        with pytest.raises(StoreUnavailable):
            asyncio.run(store.append("ROOM1", SystemMessage(text="hi")))

    def test_lost_change_notice_still_reports_stored_message(self):
        client = AsyncMock()
        client.xadd.return_value = "1-0"
        client.publish.side_effect = RedisConnectionError("connection reset")
        store = RedisMessageStore(client)

        message_id = asyncio.run(store.append("ROOM1", SystemMessage(text="hi")))

        assert message_id == "1-0"
        client.xadd.assert_awaited_once()
        client.publish.assert_awaited_once()

    def test_lost_delete_notice_is_not_an_error(self):
        client = AsyncMock()
        client.xdel.return_value = 1
        client.publish.side_effect = RedisConnectionError("connection reset")
        store = RedisMessageStore(client)

        asyncio.run(store.delete_message("ROOM1", "1-0"))

        client.xdel.assert_awaited_once_with(messages_key("ROOM1"), "1-0")

    def test_delete_only_notifies_when_something_was_removed(self):
        client = AsyncMock()
        client.xdel.return_value = 0
        store = RedisMessageStore(client)

        asyncio.run(store.delete_message("ROOM1", "9-0"))

        client.xdel.assert_awaited_once_with(messages_key("ROOM1"), "9-0")
        client.publish.assert_not_awaited()

    def test_subscription_refreshes_on_notice_and_stops_on_cancel(self):
        client = AsyncMock()
        pubsub = FakePubSub()
        client.pubsub = MagicMock(return_value=pubsub)
        client.xrange.side_effect = [
            [],
            [stream_entry("1-0", SystemMessage(text="bob joined the room"))],
        ]
        store = RedisMessageStore(client)
        seen = []

        async def scenario():
            subscription = await store.subscribe("ROOM1", seen.append)
            for _ in range(5):
                await asyncio.sleep(0)
            subscription.cancel()
            subscription.cancel()
            for _ in range(5):
                await asyncio.sleep(0)

        asyncio.run(scenario())

        assert pubsub.channels == [room_channel("ROOM1")]
        assert [len(batch) for batch in seen] == [0, 1]
        assert seen[1][0].text == "bob joined the room"
        assert pubsub.closed is True
        assert store._tasks == set()


class TestRedisMembershipStore:

    def test_upsert_remove_and_list(self):
        client = AsyncMock()
        member = Member(id="m-1", display_name="alice")
        client.hgetall.return_value = {"m-1": member.model_dump_json()}
        store = RedisMembershipStore(client)

        async def scenario():
            await store.upsert_member("ROOM1", "m-1", member)
            await store.remove_member("ROOM1", "m-1")
            return await store.list_members("ROOM1")

        members = asyncio.run(scenario())

        client.hset.assert_awaited_once_with(members_key("ROOM1"), "m-1", member.model_dump_json())
        client.hdel.assert_awaited_once_with(members_key("ROOM1"), "m-1")
        assert members == [member]

    def test_redis_errors_become_store_unavailable(self):
        client = AsyncMock()
        client.hset.side_effect = RedisConnectionError("connection refused")
        store = RedisMembershipStore(client)

        with pytest.raises(StoreUnavailable):
            asyncio.run(store.upsert_member("ROOM1", "m-1", Member(id="m-1", display_name="alice")))
