import asyncio
from collections import Counter, defaultdict
from typing import Any, Optional

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from crm_shared.config import Settings
from crm_shared.infrastructure.background import BackgroundTaskRunner
from crm_shared.infrastructure.cache.redis_client import RedisClient
from crm_shared.utils.paths import get_path, split_path
from tenant_settings.application.services.settings_sync_service import SettingsSyncService
from tenant_settings.domain.entities.tenant_record import TenantRecord
from tenant_settings.domain.protocols.tenant_repository import DEFAULT_PROJECTION
from tenant_settings.indexers import DEFAULT_INDEXERS, IndexerTable


def _id_key(message_id: str) -> tuple[int, int]:
    ms, _, seq = message_id.partition("-")
    return int(ms), int(seq or 0)


class FakePubSub:
    def __init__(self, owner: "FakeRedis", ignore_subscribe_messages: bool = False) -> None:
        self._owner = owner
        self._queue: asyncio.Queue = asyncio.Queue()
        self.channels: set[str] = set()
        self.closed = False

    async def subscribe(self, *channels: str) -> None:
        for channel in channels:
            self.channels.add(channel)
            self._owner.subscribers[channel].append(self)

    async def unsubscribe(self, *channels: str) -> None:
        for channel in channels or tuple(self.channels):
            self.channels.discard(channel)
            if self in self._owner.subscribers[channel]:
                self._owner.subscribers[channel].remove(self)

    async def get_message(self, ignore_subscribe_messages: bool = False, timeout: float = 0.0):
        self._owner.check("GET_MESSAGE")
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            await asyncio.sleep(0)
            return None

    def deliver(self, channel: str, data: str) -> None:
        self._queue.put_nowait({"type": "message", "channel": channel, "data": data})

    async def aclose(self) -> None:
        self.closed = True


class FakeRedis:
    """
    In-memory async Redis double: strings, streams with consumer groups and
    per-consumer pending lists, pub/sub. Returns decoded strings like a client
    created with decode_responses=True. Set `fail = True` to simulate an outage.
    """

    def __init__(self) -> None:
        self.kv: dict[str, str] = {}
        self.streams: dict[str, list[tuple[str, Optional[dict[str, str]]]]] = {}
        self.groups: dict[tuple[str, str], dict[str, Any]] = {}
        self.subscribers: dict[str, list[FakePubSub]] = defaultdict(list)
        self.calls: Counter = Counter()
        self.fail = False
        self.closed = False
        self._seq = 0

    def check(self, op: str) -> None:
        self.calls[op] += 1
        if self.fail:
            raise RedisConnectionError("Connection refused")

    # ---- strings ----
    async def ping(self) -> bool:
        self.check("PING")
        return True

    async def get(self, key: str) -> Optional[str]:
        self.check("GET")
        return self.kv.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None, nx: bool = False):
        self.check("SET")
        if nx and key in self.kv:
            return None
        self.kv[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        self.check("DEL")
        return sum(1 for k in keys if self.kv.pop(k, None) is not None)

    async def exists(self, *keys: str) -> int:
        self.check("EXISTS")
        return sum(1 for k in keys if k in self.kv)

    async def aclose(self) -> None:
        self.closed = True

    # ---- streams ----
    async def xgroup_create(self, name: str, groupname: str, id: str = "$", mkstream: bool = False):
        self.check("XGROUP CREATE")
        if name not in self.streams:
            if not mkstream:
                raise ResponseError("ERR The XGROUP subcommand requires the key to exist")
            self.streams[name] = []
        if (name, groupname) in self.groups:
            raise ResponseError("BUSYGROUP Consumer Group name already exists")
        entries = self.streams[name]
        last = entries[-1][0] if id == "$" and entries else "0-0"
        self.groups[(name, groupname)] = {"last": last, "pel": defaultdict(list)}
        return True

    async def xadd(self, name: str, fields: dict[str, str]) -> str:
        self.check("XADD")
        self._seq += 1
        message_id = f"{self._seq}-0"
        self.streams.setdefault(name, []).append((message_id, dict(fields)))
        return message_id

    async def xreadgroup(self, groupname, consumername, streams, count=None, block=None, noack=False):
        self.check("XREADGROUP")
        # yield like a real round trip so polling loops never starve the event loop
        await asyncio.sleep(0)
        response = []
        for key, start in streams.items():
            group = self.groups.get((key, groupname))
            if group is None:
                raise ResponseError(f"NOGROUP No such key '{key}' or consumer group '{groupname}'")
            entries = self.streams.get(key, [])
            if start == ">":
                fresh = [e for e in entries if _id_key(e[0]) > _id_key(group["last"])]
                fresh = fresh[:count] if count else fresh
                if not fresh:
                    continue
                group["last"] = fresh[-1][0]
                group["pel"][consumername].extend(mid for mid, _ in fresh)
                response.append([key, fresh])
            else:
                pending = [mid for mid in group["pel"][consumername] if _id_key(mid) > _id_key(start)]
                pending = pending[:count] if count else pending
                bodies = dict(entries)
                response.append([key, [(mid, bodies.get(mid)) for mid in pending]])
        return response

    async def xack(self, name: str, groupname: str, *ids: str) -> int:
        self.check("XACK")
        group = self.groups.get((name, groupname))
        if group is None:
            return 0
        acked = 0
        for mid in ids:
            for pel in group["pel"].values():
                if mid in pel:
                    pel.remove(mid)
                    acked += 1
                    break
        return acked

    def pending(self, name: str, groupname: str, consumer: str) -> list[str]:
        return list(self.groups[(name, groupname)]["pel"][consumer])

    def trim(self, name: str, message_id: str) -> None:
        """Drop an entry body while leaving it in pending lists."""
        self.streams[name] = [(mid, None if mid == message_id else f) for mid, f in self.streams[name]]

    # ---- pub/sub ----
    async def publish(self, channel: str, message: str) -> int:
        self.check("PUBLISH")
        receivers = list(self.subscribers[channel])
        for sub in receivers:
            sub.deliver(channel, message)
        return len(receivers)

    def pubsub(self, ignore_subscribe_messages: bool = False) -> FakePubSub:
        return FakePubSub(self, ignore_subscribe_messages)


class FakeTenantRepository:
    """Tenant lookups over a list of records; records every filter it was asked."""

    def __init__(self, records=()) -> None:
        self.records: list[TenantRecord] = list(records)
        self.calls: list[dict] = []

    @staticmethod
    def _matches(record: TenantRecord, field: str, value: Any) -> bool:
        if field == "id":
            return record.id == value
        if field == "is_active":
            return record.is_active == value
        if field == "name":
            return record.display_name == value
        if field.startswith("settings."):
            found = get_path(record.settings, split_path(field[len("settings."):]))
            return found is not None and str(found) == str(value)
        raise AssertionError(f"unexpected filter {field}")

    async def find_one(self, filters, projection=DEFAULT_PROJECTION):
        self.calls.append(dict(filters))
        for record in self.records:
            if all(self._matches(record, f, v) for f, v in filters.items()):
                return record
        return None


def make_tenant(tenant_id: str = "t1", **integrations: Any) -> TenantRecord:
    """Tenant with meta_integrations built from keyword channel dicts."""
    return TenantRecord(
        id=tenant_id,
        settings={"timezone": "UTC", "meta_integrations": integrations},
        display_name=f"Tenant {tenant_id}",
    )


@pytest.fixture
def settings():
    return Settings(stream_block_ms=0)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def redis_client(settings, fake_redis):
    return RedisClient(settings, redis_client=fake_redis)


@pytest.fixture
def repository():
    return FakeTenantRepository()


@pytest.fixture
def background():
    return BackgroundTaskRunner("test", max_concurrency=4)


@pytest.fixture
def service(redis_client, repository, background):
    return SettingsSyncService(
        cache=redis_client,
        repository=repository,
        indexers=IndexerTable(DEFAULT_INDEXERS),
        background=background,
    )


@pytest.fixture
def tenant_factory():
    return make_tenant
