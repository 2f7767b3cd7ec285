"""
Redis Streams primitives for competing consumers.

At-least-once delivery: a message counts as processed only once acked. Anything
read but not acked stays in the consumer's pending list and comes back through
read_group(..., read_pending=True).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

from redis.asyncio import Redis
from redis.exceptions import ResponseError

from crm_shared.constants import STREAM_PAYLOAD_FIELD
from crm_shared.infrastructure.cache.redis_client import RedisClient
from crm_shared.infrastructure.observability.logger import get_logger
from crm_shared.utils.serialization import dumps, loads_or_raw

logger = get_logger(__name__)

NEW_MESSAGES_ID = ">"
PENDING_MESSAGES_ID = "0"


@dataclass(frozen=True)
class StreamMessage:
    """
    One stream entry as seen by a consumer.

    Attributes:
        id: Store-assigned id, increasing within the stream
        payload: Decoded JSON payload; None when a pending entry was trimmed
    """

    id: str
    payload: Any


class RedisStreams:
    """Consumer-group operations over the shared Redis handle."""

    def __init__(
        self,
        client: RedisClient,
        *,
        default_block_ms: Optional[int] = None,
        default_count: Optional[int] = None,
    ) -> None:
        self._client = client
        settings = client.settings
        self.default_block_ms = settings.stream_block_ms if default_block_ms is None else default_block_ms
        self.default_count = default_count or settings.stream_batch_size

    async def ensure_group(self, stream_key: str, group_name: str) -> bool:
        """
        Create the stream (if absent) and the group starting at the tail.

        Idempotent: an existing group (BUSYGROUP) is a success.
        """

        async def _run(r: Redis) -> bool:
            try:
                await r.xgroup_create(stream_key, group_name, id="$", mkstream=True)
            except ResponseError as e:
                if "BUSYGROUP" in str(e):
                    logger.debug("Consumer group already exists", stream=stream_key, group=group_name)
                    return True
                raise
            logger.info("Stream and consumer group ensured", stream=stream_key, group=group_name)
            return True

        return await self._client.guard(
            "XGROUP CREATE", _run, default=False, stream=stream_key, group=group_name
        )

    async def publish(self, stream_key: str, payload: Any) -> Optional[str]:
        """Append one message; returns its id, or None on failure."""
        try:
            body = dumps(payload)
        except (TypeError, ValueError) as e:
            logger.error("Stream payload is not JSON serializable", stream=stream_key, error=str(e))
            return None

        async def _run(r: Redis) -> str:
            message_id = await r.xadd(stream_key, {STREAM_PAYLOAD_FIELD: body})
            logger.debug("Message published to stream", stream=stream_key, message_id=message_id)
            return message_id

        return await self._client.guard("XADD", _run, stream=stream_key)

    async def read_group(
        self,
        stream_key: str,
        group_name: str,
        consumer_name: str,
        *,
        block_ms: Optional[int] = None,
        count: Optional[int] = None,
        read_pending: bool = False,
        after_id: Optional[str] = None,
    ) -> Optional[list[StreamMessage]]:
        """
        Read messages for `consumer_name` within `group_name`.

        Args:
            block_ms: Upper bound on the wait; 0 or less means do not block
            count: Maximum number of messages
            read_pending: False reads messages never delivered to the group;
                True re-delivers this consumer's own unacknowledged messages
            after_id: With read_pending, only pending messages with a greater id;
                lets a caller page through its pending list past entries it
                could not process

        Returns:
            Messages (empty on timeout), or None when the read itself failed
        """
        block = self.default_block_ms if block_ms is None else block_ms
        batch = count or self.default_count
        if read_pending:
            start_id = after_id or PENDING_MESSAGES_ID
        else:
            start_id = NEW_MESSAGES_ID

        async def _run(r: Redis) -> list[StreamMessage]:
            logger.debug(
                "Reading stream",
                stream=stream_key,
                group=group_name,
                consumer=consumer_name,
                source="pending" if read_pending else "new",
            )
            response = await r.xreadgroup(
                group_name,
                consumer_name,
                {stream_key: start_id},
                count=batch,
                block=block if block > 0 else None,
            )
            if not response:
                return []
            return [_to_message(message_id, fields) for message_id, fields in _entries(response)]

        return await self._client.guard(
            "XREADGROUP", _run, stream=stream_key, group=group_name, consumer=consumer_name
        )

    async def ack(
        self,
        stream_key: str,
        group_name: str,
        message_ids: Union[str, Sequence[str]],
    ) -> Optional[int]:
        """Remove ids from the group's pending list; already-acked ids count 0."""
        ids = [message_ids] if isinstance(message_ids, str) else list(message_ids)
        if not ids:
            return 0

        async def _run(r: Redis) -> int:
            acked = int(await r.xack(stream_key, group_name, *ids))
            logger.debug("ACK sent", stream=stream_key, group=group_name, requested=len(ids), acked=acked)
            return acked

        return await self._client.guard("XACK", _run, stream=stream_key, group=group_name)


def _entries(response: Any) -> list[tuple[str, Optional[dict[str, str]]]]:
    # [[stream, [(id, fields), ...]], ...]
    return [entry for _, entries in response for entry in entries]


def _to_message(message_id: str, fields: Optional[dict[str, str]]) -> StreamMessage:
    if not fields or STREAM_PAYLOAD_FIELD not in fields:
        return StreamMessage(id=message_id, payload=None)
    return StreamMessage(id=message_id, payload=loads_or_raw(fields[STREAM_PAYLOAD_FIELD]))
