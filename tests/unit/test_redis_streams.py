# tests/unit/test_redis_streams.py
import pytest

from crm_shared.infrastructure.cache.redis_client import RedisClient
from crm_shared.infrastructure.messaging.redis_streams import RedisStreams


@pytest.fixture
def streams(redis_client):
    return RedisStreams(redis_client, default_block_ms=0, default_count=10)


@pytest.mark.asyncio
async def test_ensure_group_is_idempotent(streams, fake_redis):
    assert await streams.ensure_group("orders", "workers") is True
    assert await streams.ensure_group("orders", "workers") is True
    assert "orders" in fake_redis.streams


@pytest.mark.asyncio
async def test_new_then_pending_delivery(streams):
    await streams.ensure_group("orders", "workers")
    message_id = await streams.publish("orders", {"a": 1})

    first = await streams.read_group("orders", "workers", "c1")
    assert [(m.id, m.payload) for m in first] == [(message_id, {"a": 1})]

    assert await streams.read_group("orders", "workers", "c1") == []

    pending = await streams.read_group("orders", "workers", "c1", read_pending=True)
    assert [m.id for m in pending] == [message_id]
    pending_again = await streams.read_group("orders", "workers", "c1", read_pending=True)
    assert [m.id for m in pending_again] == [message_id]

    assert await streams.ack("orders", "workers", message_id) == 1
    assert await streams.read_group("orders", "workers", "c1", read_pending=True) == []


@pytest.mark.asyncio
async def test_ack_twice_is_a_noop(streams):
    await streams.ensure_group("orders", "workers")
    message_id = await streams.publish("orders", {"a": 1})
    await streams.read_group("orders", "workers", "c1")

    assert await streams.ack("orders", "workers", [message_id]) == 1
    assert await streams.ack("orders", "workers", [message_id]) == 0
    assert await streams.ack("orders", "workers", []) == 0


@pytest.mark.asyncio
async def test_group_starts_at_tail(streams):
    await streams.publish("orders", {"old": True})
    await streams.ensure_group("orders", "workers")
    await streams.publish("orders", {"new": True})

    messages = await streams.read_group("orders", "workers", "c1")

    assert [m.payload for m in messages] == [{"new": True}]


@pytest.mark.asyncio
async def test_each_group_sees_every_message_once(streams):
    await streams.ensure_group("orders", "billing")
    await streams.ensure_group("orders", "shipping")
    await streams.publish("orders", {"a": 1})

    billing = await streams.read_group("orders", "billing", "b1")
    shipping = await streams.read_group("orders", "shipping", "s1")
    other_billing = await streams.read_group("orders", "billing", "b2")

    assert len(billing) == len(shipping) == 1
    assert other_billing == []


@pytest.mark.asyncio
async def test_trimmed_pending_entry_has_no_payload(streams, fake_redis):
    await streams.ensure_group("orders", "workers")
    message_id = await streams.publish("orders", {"a": 1})
    await streams.read_group("orders", "workers", "c1")
    fake_redis.trim("orders", message_id)

    pending = await streams.read_group("orders", "workers", "c1", read_pending=True)

    assert pending[0].id == message_id
    assert pending[0].payload is None


@pytest.mark.asyncio
async def test_failures_return_sentinels(streams, fake_redis, settings):
    fake_redis.fail = True

    assert await streams.ensure_group("orders", "workers") is False
    assert await streams.publish("orders", {"a": 1}) is None
    assert await streams.read_group("orders", "workers", "c1") is None
    assert await streams.ack("orders", "workers", ["1-0"]) is None

    disconnected = RedisStreams(RedisClient(settings))
    assert await disconnected.read_group("orders", "workers", "c1") is None


@pytest.mark.asyncio
async def test_unserializable_payload_is_refused(streams, fake_redis):
    assert await streams.publish("orders", {"a": object()}) is None
    assert fake_redis.calls["XADD"] == 0


def test_read_defaults_come_from_settings(redis_client):
    streams = RedisStreams(redis_client)
    assert streams.default_block_ms == 0
    assert streams.default_count == 1


@pytest.mark.asyncio
async def test_pending_reads_page_past_a_given_id(streams):
    await streams.ensure_group("orders", "workers")
    first = await streams.publish("orders", {"n": 1})
    second = await streams.publish("orders", {"n": 2})
    await streams.read_group("orders", "workers", "c1")

    page = await streams.read_group("orders", "workers", "c1", read_pending=True, after_id=first)

    assert [m.id for m in page] == [second]
